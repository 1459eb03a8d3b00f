"""
Authentication for the WebDAV client.

Holds the configured credentials (none, Basic or Digest) and, for
Digest, the session state learned from the server's challenges.  The
AuthNegotiator produces the Authorization header for every outgoing
request and is the only place where that state is mutated; all access
to it goes through one asyncio lock, so concurrent requests against
the same nonce always get distinct, increasing nonce counts.

References:
    https://www.rfc-editor.org/rfc/rfc7616 (HTTP Digest Access Authentication)
    https://www.rfc-editor.org/rfc/rfc7617 (The 'Basic' HTTP Authentication Scheme)
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import secrets
from dataclasses import dataclass
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

import aiohttp

from asyncdav.lib.error import MalformedChallenge
from asyncdav.lib.error import log
from asyncdav.protocol.types import DAVRequest


def extract_auth_types(header: str) -> set[str]:
    """
    Extract authentication types from WWW-Authenticate header.

    Example:
        >>> sorted(extract_auth_types('Basic realm="test", Digest realm="test", nonce="n"'))
        ['basic', 'digest']
    """
    return {scheme for scheme, _ in parse_www_authenticate(header)}


@dataclass(frozen=True)
class AuthMode:
    """
    The configured authentication scheme.  Use the constructors
    AuthMode.none(), AuthMode.basic() and AuthMode.digest().
    """

    kind: str = "none"
    username: Optional[str] = None
    password: Optional[str] = None

    KINDS = ("none", "basic", "digest")

    def __post_init__(self) -> None:
        if self.kind not in self.KINDS:
            raise ValueError(f"unknown auth type {self.kind!r}, expected one of {self.KINDS}")
        if self.kind != "none" and (self.username is None or self.password is None):
            raise ValueError(f"{self.kind} authentication needs both username and password")
        if self.kind != "none" and ":" in self.username:
            raise ValueError('A ":" is not allowed in username (RFC 1945#section-11.1)')

    @classmethod
    def none(cls) -> "AuthMode":
        return cls("none")

    @classmethod
    def basic(cls, username: str, password: str) -> "AuthMode":
        return cls("basic", username, password)

    @classmethod
    def digest(cls, username: str, password: str) -> "AuthMode":
        return cls("digest", username, password)

    def __repr__(self) -> str:
        ## never leak the password into logs or tracebacks
        if self.kind == "none":
            return "AuthMode.none()"
        return f"AuthMode.{self.kind}({self.username!r}, '***')"


## Challenge parsing

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_PARAM_RE = re.compile(
    r'\s*(' + _TOKEN + r')\s*=\s*(?:"((?:[^"\\]|\\.)*)"|(' + _TOKEN + r'))\s*(?:,|$)'
)
_SCHEME_RE = re.compile(r"\s*(" + _TOKEN + r")(?=\s|,|$)")
_TOKEN68_RE = re.compile(r"\s*[A-Za-z0-9\-._~+/]+=*\s*(?:,|$)")
_UNESCAPE_RE = re.compile(r"\\(.)")


def parse_www_authenticate(header: str) -> List[Tuple[str, Dict[str, str]]]:
    """
    Splits a WWW-Authenticate header value into its challenges.

    A header may carry several challenges, and parameter values may
    be quoted strings containing commas, so a plain split on "," does
    not work.  Returns a list of (lowercased scheme, params) with
    lowercased parameter names.

    >>> parse_www_authenticate('Basic realm="a, b", Digest realm="r", nonce=abc')
    [('basic', {'realm': 'a, b'}), ('digest', {'realm': 'r', 'nonce': 'abc'})]
    """
    challenges: List[Tuple[str, Dict[str, str]]] = []
    pos = 0
    while pos < len(header):
        if header[pos] in " \t,":
            pos += 1
            continue
        match = _PARAM_RE.match(header, pos)
        if match and challenges:
            name, quoted, token = match.groups()
            value = _UNESCAPE_RE.sub(r"\1", quoted) if quoted is not None else token
            challenges[-1][1][name.lower()] = value
            pos = match.end()
            continue
        match = _SCHEME_RE.match(header, pos)
        if match:
            challenges.append((match.group(1).lower(), {}))
            pos = match.end()
            ## token68 form, i.e. "Bearer abc=="
            token68 = _TOKEN68_RE.match(header, pos)
            if token68 and not _PARAM_RE.match(header, pos):
                pos = token68.end()
            continue
        ## garbage - skip to the next comma
        comma = header.find(",", pos)
        pos = len(header) if comma < 0 else comma + 1
    return challenges


## Digest computation

def _sha512_256(data: bytes):
    return hashlib.new("sha512_256", data)


DIGEST_FUNCTIONS: Dict[str, Callable] = {
    "MD5": hashlib.md5,
    "MD5-SESS": hashlib.md5,
    "SHA-256": hashlib.sha256,
    "SHA-256-SESS": hashlib.sha256,
    "SHA-512-256": _sha512_256,
    "SHA-512-256-SESS": _sha512_256,
}

## RFC 7616 section 3.4: these are sent as quoted strings, the rest as tokens
QUOTED_AUTH_FIELDS = frozenset(
    {"username", "realm", "nonce", "uri", "response", "opaque", "cnonce"}
)


def escape_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _new_client_nonce() -> str:
    return secrets.token_hex(8)


@dataclass
class DigestSession:
    """
    Digest state learned from the last challenge.  nonce_count is the
    value to be used for the next request, it starts at 1 for every
    new nonce.
    """

    realm: str
    nonce: str
    opaque: Optional[str] = None
    qop: Optional[str] = None
    algorithm: str = "MD5"
    client_nonce: str = ""
    nonce_count: int = 1

    @classmethod
    def from_challenge(cls, params: Dict[str, str]) -> "DigestSession":
        """
        Validates the parameters of a Digest challenge.

        Raises:
            MalformedChallenge: realm or nonce missing, unsupported
                qop or algorithm.
        """
        for required in ("realm", "nonce"):
            if required not in params:
                raise MalformedChallenge(
                    reason=f"Digest challenge without {required} parameter"
                )
        if not params["nonce"]:
            raise MalformedChallenge(reason="Digest challenge with empty nonce")

        qop = None
        if params.get("qop"):
            offered = {q.strip().lower() for q in params["qop"].split(",") if q.strip()}
            ## auth-int would require hashing the request body, which we don't do
            if "auth" not in offered:
                raise MalformedChallenge(
                    reason=f"unsupported Digest qop {params['qop']!r}"
                )
            qop = "auth"

        algorithm = params.get("algorithm", "MD5").upper()
        if algorithm not in DIGEST_FUNCTIONS:
            raise MalformedChallenge(
                reason=f"unsupported Digest algorithm {algorithm!r}, "
                f"supported: {', '.join(sorted(DIGEST_FUNCTIONS))}"
            )

        return cls(
            realm=params["realm"],
            nonce=params["nonce"],
            opaque=params.get("opaque"),
            qop=qop,
            algorithm=algorithm,
            client_nonce=_new_client_nonce(),
        )


def digest_response(
    session: DigestSession,
    username: str,
    password: str,
    method: str,
    uri: str,
    nonce_count: int,
) -> str:
    """
    Computes the request-digest (the "response" field) of RFC 7616
    section 3.4.1 for qop=auth, or the RFC 2069 form if the server
    did not ask for a qop.
    """
    hash_fn = DIGEST_FUNCTIONS[session.algorithm]

    def H(data: str) -> str:
        return hash_fn(data.encode("utf-8")).hexdigest()

    HA1 = H(f"{username}:{session.realm}:{password}")
    if session.algorithm.endswith("-SESS"):
        HA1 = H(f"{HA1}:{session.nonce}:{session.client_nonce}")
    HA2 = H(f"{method.upper()}:{uri}")

    if session.qop:
        return H(
            f"{HA1}:{session.nonce}:{nonce_count:08x}:{session.client_nonce}:{session.qop}:{HA2}"
        )
    return H(f"{HA1}:{session.nonce}:{HA2}")


def digest_header(
    session: DigestSession,
    username: str,
    password: str,
    method: str,
    uri: str,
    nonce_count: int,
) -> str:
    """Formats the complete Authorization header value"""
    fields = {
        "username": escape_quotes(username),
        "realm": escape_quotes(session.realm),
        "nonce": escape_quotes(session.nonce),
        "uri": uri,
        "response": digest_response(
            session, username, password, method, uri, nonce_count
        ),
        "algorithm": session.algorithm,
    }
    if session.opaque is not None:
        fields["opaque"] = escape_quotes(session.opaque)
    if session.qop:
        fields["qop"] = session.qop
        fields["nc"] = f"{nonce_count:08x}"
        fields["cnonce"] = session.client_nonce

    pairs = []
    for name, value in fields.items():
        if name in QUOTED_AUTH_FIELDS:
            pairs.append(f'{name}="{value}"')
        else:
            pairs.append(f"{name}={value}")
    return "Digest " + ", ".join(pairs)


def basic_header(username: str, password: str) -> str:
    return aiohttp.BasicAuth(username, password, encoding="utf-8").encode()


class AuthNegotiator:
    """
    Produces Authorization headers for outgoing requests.

    For Digest, nothing can be sent before the server has issued a
    challenge; authorize() returns None until on_challenge() has been
    fed a WWW-Authenticate header.  From then on every request is
    authorized preemptively with an incremented nonce count.
    """

    def __init__(self, mode: Optional[AuthMode] = None) -> None:
        self.mode = mode or AuthMode.none()
        self.session: Optional[DigestSession] = None
        self._lock = asyncio.Lock()

    async def authorize(self, request: DAVRequest) -> Optional[str]:
        """
        Returns the Authorization header value for the request, or
        None if there is nothing to send (no auth configured, or
        Digest without a challenge yet).
        """
        if self.mode.kind == "none":
            return None
        if self.mode.kind == "basic":
            return basic_header(self.mode.username, self.mode.password)

        async with self._lock:
            session = self.session
            if session is None:
                return None
            nonce_count = session.nonce_count
            session.nonce_count += 1
            ## the hashing is done inside the lock as well, so that the
            ## session can't be replaced between reading and using it
            return digest_header(
                session,
                self.mode.username,
                self.mode.password,
                request.method.value,
                request.path,
                nonce_count,
            )

    async def on_challenge(self, header: Optional[str]) -> bool:
        """
        Digests a WWW-Authenticate header from a 401 response.

        Returns True if the Digest session was initialized or replaced,
        meaning that a retry with fresh credentials makes sense.  A
        challenge with the same nonce as the current session keeps the
        nonce count running, a new nonce resets it to 1 and generates
        a new client nonce.

        Raises:
            MalformedChallenge: the header is missing or has neither a
                Basic nor a Digest challenge, or the Digest challenge
                is unusable.
        """
        if not header:
            raise MalformedChallenge(reason="401 response without WWW-Authenticate header")
        challenges = parse_www_authenticate(header)
        schemes = [scheme for scheme, _ in challenges]
        if "digest" not in schemes and "basic" not in schemes:
            raise MalformedChallenge(
                reason=f"no Basic or Digest challenge in WWW-Authenticate: {header!r}"
            )
        if self.mode.kind != "digest" or "digest" not in schemes:
            return False

        params = challenges[schemes.index("digest")][1]
        new_session = DigestSession.from_challenge(params)
        async with self._lock:
            if self.session is not None and self.session.nonce == new_session.nonce:
                new_session.nonce_count = self.session.nonce_count
                new_session.client_nonce = self.session.client_nonce
            else:
                log.debug(f"new digest nonce for realm {new_session.realm!r}")
            self.session = new_session
        return True
