"""
Unit tests for the authentication logic.

These tests are pure, no HTTP communication and no mocking is needed.
"""
import asyncio
import base64
import re

import pytest

from asyncdav.lib import error
from asyncdav.lib.auth import (
    AuthMode,
    AuthNegotiator,
    DigestSession,
    digest_response,
    extract_auth_types,
    parse_www_authenticate,
)
from asyncdav.protocol import DAVMethod, DAVRequest

CHALLENGE = (
    'Digest realm="example.com", qop="auth", '
    'nonce="dcd98b7102dd2f0e8b11d0f600bfb0c093", '
    'opaque="5ccc069c403ebaf9f0171e9517f40e41"'
)


def make_request(method=DAVMethod.GET, url="http://example.com/dir/index.html"):
    return DAVRequest(method=method, url=url)


def header_fields(header: str) -> dict:
    scheme, fields = parse_www_authenticate(header)[0]
    assert scheme == "digest"
    return fields


class TestAuthMode:
    def test_constructors(self):
        assert AuthMode.none().kind == "none"
        assert AuthMode.basic("user", "pass").username == "user"
        assert AuthMode.digest("user", "pass").kind == "digest"

    def test_missing_password(self):
        with pytest.raises(ValueError):
            AuthMode("basic", "user", None)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            AuthMode("bearer", "user", "token")

    def test_colon_in_username(self):
        with pytest.raises(ValueError):
            AuthMode.digest("us:er", "pass")
        with pytest.raises(ValueError):
            AuthMode.basic("us:er", "pass")

    def test_repr_hides_password(self):
        assert "secret" not in repr(AuthMode.basic("user", "secret"))


class TestChallengeParsing:
    def test_single_digest(self):
        challenges = parse_www_authenticate(CHALLENGE)
        assert len(challenges) == 1
        scheme, params = challenges[0]
        assert scheme == "digest"
        assert params["realm"] == "example.com"
        assert params["nonce"] == "dcd98b7102dd2f0e8b11d0f600bfb0c093"
        assert params["qop"] == "auth"
        assert params["opaque"] == "5ccc069c403ebaf9f0171e9517f40e41"

    def test_unquoted_values_and_case(self):
        (scheme, params), = parse_www_authenticate(
            "DIGEST Realm=x, NONCE=abc, algorithm=SHA-256"
        )
        assert scheme == "digest"
        assert params == {"realm": "x", "nonce": "abc", "algorithm": "SHA-256"}

    def test_comma_inside_quotes(self):
        (_, params), = parse_www_authenticate('Digest realm="a, b", nonce="n", qop="auth,auth-int"')
        assert params["realm"] == "a, b"
        assert params["qop"] == "auth,auth-int"

    def test_escaped_quote(self):
        (_, params), = parse_www_authenticate(r'Digest realm="say \"hi\"", nonce="n"')
        assert params["realm"] == 'say "hi"'

    def test_multiple_challenges(self):
        challenges = parse_www_authenticate(
            'Basic realm="files", Digest realm="files", nonce="abc", qop="auth"'
        )
        assert [scheme for scheme, _ in challenges] == ["basic", "digest"]
        assert challenges[1][1]["nonce"] == "abc"

    def test_token68(self):
        challenges = parse_www_authenticate('Bearer abc==, Digest realm="r", nonce="n"')
        assert [scheme for scheme, _ in challenges] == ["bearer", "digest"]

    def test_extract_auth_types(self):
        assert extract_auth_types('Basic realm="test", Digest realm="test", nonce="n"') == {
            "basic",
            "digest",
        }


class TestDigestComputation:
    def test_rfc2617_example(self):
        """The worked example of RFC 2617 section 3.5"""
        session = DigestSession(
            realm="testrealm@host.com",
            nonce="dcd98b7102dd2f0e8b11d0f600bfb0c093",
            opaque="5ccc069c403ebaf9f0171e9517f40e41",
            qop="auth",
            client_nonce="0a4f113b",
        )
        response = digest_response(
            session, "Mufasa", "Circle Of Life", "GET", "/dir/index.html", 1
        )
        assert response == "6629fae49393a05397450978507c4ef1"

    def test_different_nc_gives_different_response(self):
        session = DigestSession(realm="x", nonce="abc", qop="auth", client_nonce="c")
        first = digest_response(session, "u", "p", "GET", "/", 1)
        second = digest_response(session, "u", "p", "GET", "/", 2)
        assert first != second

    def test_sess_algorithm_differs(self):
        plain = DigestSession(realm="x", nonce="abc", qop="auth", client_nonce="c")
        sess = DigestSession(
            realm="x", nonce="abc", qop="auth", client_nonce="c", algorithm="MD5-SESS"
        )
        assert digest_response(plain, "u", "p", "GET", "/", 1) != digest_response(
            sess, "u", "p", "GET", "/", 1
        )

    def test_sha256(self):
        session = DigestSession(
            realm="x", nonce="abc", qop="auth", client_nonce="c", algorithm="SHA-256"
        )
        assert len(digest_response(session, "u", "p", "GET", "/", 1)) == 64


class TestDigestSession:
    def test_from_challenge_defaults(self):
        session = DigestSession.from_challenge({"realm": "x", "nonce": "abc"})
        assert session.algorithm == "MD5"
        assert session.qop is None
        assert session.opaque is None
        assert session.nonce_count == 1
        assert session.client_nonce

    @pytest.mark.parametrize("missing", ["realm", "nonce"])
    def test_missing_required(self, missing):
        params = {"realm": "x", "nonce": "abc", "qop": "auth"}
        del params[missing]
        with pytest.raises(error.MalformedChallenge):
            DigestSession.from_challenge(params)

    def test_auth_int_only_is_refused(self):
        with pytest.raises(error.MalformedChallenge):
            DigestSession.from_challenge({"realm": "x", "nonce": "abc", "qop": "auth-int"})

    def test_auth_preferred_when_both_offered(self):
        session = DigestSession.from_challenge(
            {"realm": "x", "nonce": "abc", "qop": "auth-int, auth"}
        )
        assert session.qop == "auth"

    def test_unknown_algorithm(self):
        with pytest.raises(error.MalformedChallenge):
            DigestSession.from_challenge({"realm": "x", "nonce": "abc", "algorithm": "ROT13"})


class TestAuthNegotiator:
    @pytest.mark.asyncio
    async def test_no_auth(self):
        negotiator = AuthNegotiator(AuthMode.none())
        assert await negotiator.authorize(make_request()) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,password",
        [("user", "password"), ("üser", "pässword"), ("a", ""), ("name", "pass:with:colons")],
    )
    async def test_basic_decodes_to_credentials(self, username, password):
        negotiator = AuthNegotiator(AuthMode.basic(username, password))
        header = await negotiator.authorize(make_request())
        scheme, encoded = header.split(" ", 1)
        assert scheme == "Basic"
        assert base64.b64decode(encoded).decode("utf-8") == f"{username}:{password}"

    @pytest.mark.asyncio
    async def test_digest_without_challenge(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        assert await negotiator.authorize(make_request()) is None

    @pytest.mark.asyncio
    async def test_digest_header(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        assert await negotiator.on_challenge(CHALLENGE)
        header = await negotiator.authorize(make_request())
        assert header.startswith("Digest ")
        fields = header_fields(header)
        assert fields["username"] == "user"
        assert fields["realm"] == "example.com"
        assert fields["uri"] == "/dir/index.html"
        assert fields["nc"] == "00000001"
        assert fields["qop"] == "auth"
        assert fields["opaque"] == "5ccc069c403ebaf9f0171e9517f40e41"
        assert re.fullmatch("[0-9a-f]{32}", fields["response"])

        expected = digest_response(
            negotiator.session, "user", "password", "GET", "/dir/index.html", 1
        )
        assert fields["response"] == expected

    @pytest.mark.asyncio
    async def test_digest_uri_includes_query(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        await negotiator.on_challenge(CHALLENGE)
        header = await negotiator.authorize(make_request(url="http://example.com/a?b=c"))
        assert header_fields(header)["uri"] == "/a?b=c"

    @pytest.mark.asyncio
    async def test_increments_nc_on_requests(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        await negotiator.on_challenge(CHALLENGE)
        first = header_fields(await negotiator.authorize(make_request()))
        second = header_fields(await negotiator.authorize(make_request()))
        assert first["nc"] == "00000001"
        assert second["nc"] == "00000002"
        assert first["response"] != second["response"]

    @pytest.mark.asyncio
    async def test_new_nonce_resets_nc(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        await negotiator.on_challenge(CHALLENGE)
        await negotiator.authorize(make_request())
        await negotiator.authorize(make_request())
        cnonce = negotiator.session.client_nonce

        await negotiator.on_challenge('Digest realm="example.com", qop="auth", nonce="notthesame"')
        assert negotiator.session.nonce == "notthesame"
        fields = header_fields(await negotiator.authorize(make_request()))
        assert fields["nc"] == "00000001"
        assert fields["nonce"] == "notthesame"
        assert fields["cnonce"] != cnonce

    @pytest.mark.asyncio
    async def test_same_nonce_keeps_counting(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        await negotiator.on_challenge(CHALLENGE)
        await negotiator.authorize(make_request())
        await negotiator.on_challenge(CHALLENGE)
        fields = header_fields(await negotiator.authorize(make_request()))
        assert fields["nc"] == "00000002"

    @pytest.mark.asyncio
    async def test_no_qop(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        await negotiator.on_challenge('Digest realm="x", nonce="abc"')
        fields = header_fields(await negotiator.authorize(make_request()))
        assert "nc" not in fields
        assert "cnonce" not in fields
        assert "qop" not in fields
        assert fields["response"] == digest_response(
            negotiator.session, "user", "password", "GET", "/dir/index.html", 1
        )

    @pytest.mark.asyncio
    async def test_bad_challenge_keeps_state(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        with pytest.raises(error.MalformedChallenge):
            await negotiator.on_challenge(
                'Digest realm="example.com", qop="auth", opaque="5ccc069c403ebaf9f0171e9517f40e41"'
            )
        assert negotiator.session is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Bearer realm=\"x\"", "Negotiate"])
    async def test_unusable_challenge(self, header):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        with pytest.raises(error.MalformedChallenge):
            await negotiator.on_challenge(header)

    @pytest.mark.asyncio
    async def test_basic_challenge_for_digest_client(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        assert not await negotiator.on_challenge('Basic realm="x"')
        assert negotiator.session is None

    @pytest.mark.asyncio
    async def test_digest_challenge_for_basic_client(self):
        negotiator = AuthNegotiator(AuthMode.basic("user", "password"))
        assert not await negotiator.on_challenge(CHALLENGE)
        assert negotiator.session is None

    def test_negotiator_created_outside_event_loop(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))

        async def run():
            await negotiator.on_challenge(CHALLENGE)
            return await asyncio.gather(
                *[negotiator.authorize(make_request()) for _ in range(5)]
            )

        headers = asyncio.run(run())
        ncs = sorted(int(header_fields(h)["nc"], 16) for h in headers)
        assert ncs == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_concurrent_requests_get_distinct_nc(self):
        negotiator = AuthNegotiator(AuthMode.digest("user", "password"))
        await negotiator.on_challenge(CHALLENGE)
        headers = await asyncio.gather(
            *[negotiator.authorize(make_request()) for _ in range(50)]
        )
        ncs = [int(header_fields(h)["nc"], 16) for h in headers]
        assert sorted(ncs) == list(range(1, 51))
