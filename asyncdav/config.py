import json
import logging
import os
from typing import Any
from typing import Dict
from typing import Optional

"""
Connection parameters for the client, from keyword arguments, the
environment or a config file.  The protocol code never looks at any
of this; it is only used by asyncdav.get_davclient().

The config file is JSON (or YAML, if pyyaml is installed) with one
section per server:

    {
        "default": {
            "url": "https://dav.example.com/remote.php/dav/files/me/",
            "username": "me",
            "password": "secret",
            "auth_type": "digest"
        },
        "backup": {"inherits": "default", "url": "https://backup.example.com/dav/"}
    }
"""

## Keys accepted by AsyncDAVClient, and how to convert them from strings
CONNECTION_KEYS = {
    "url": str,
    "username": str,
    "password": str,
    "auth_type": str,
    "timeout": float,
    "ssl_verify_cert": lambda x: str(x).lower() not in ("0", "false", "no", "off"),
    "huge_tree": lambda x: str(x).lower() in ("1", "true", "yes", "on"),
}


def config_section(config: Dict[str, Any], section: str = "default") -> Dict[str, Any]:
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def read_config(fn: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Reads a JSON or YAML config file.  Without a file name, the
    default locations are tried.  Returns None if no file was found,
    and an empty dict if the file is broken (after logging an error).
    """
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config/"
        for config_file in (
            f"{cfgdir}/asyncdav/webdav.conf",
            f"{cfgdir}/asyncdav/webdav.yaml",
            f"{cfgdir}/asyncdav/webdav.json",
            "/etc/asyncdav/webdav.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        with open(fn, "rb") as config_file:
            raw = config_file.read()
    except FileNotFoundError:
        logging.info(f"no config file found at {fn}")
        return None

    try:
        return json.loads(raw)
    except json.decoder.JSONDecodeError:
        pass

    ## Late import.  yaml is an optional dependency
    try:
        import yaml
    except ImportError:
        logging.error(
            f"config file {fn} exists but is not valid json, and pyyaml is not installed."
        )
        return {}
    try:
        ret = yaml.safe_load(raw)
    except yaml.YAMLError:
        logging.error(
            f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax.",
            exc_info=True,
        )
        return {}
    if not isinstance(ret, dict):
        logging.error(f"config file {fn} should contain a mapping of sections")
        return {}
    return ret


def _convert(conf: Dict[str, Any]) -> Dict[str, Any]:
    ret = {}
    for key, value in conf.items():
        if key not in CONNECTION_KEYS:
            logging.warning(f"ignoring unknown connection parameter {key}")
            continue
        ret[key] = CONNECTION_KEYS[key](value)
    return ret


def get_connection_params(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    section: str = "default",
    environment: bool = True,
    **config_data: Any,
) -> Optional[Dict[str, Any]]:
    """
    Collects keyword arguments for AsyncDAVClient.  The first source
    giving anything wins:

    * config_data
    * environment variables WEBDAV_URL, WEBDAV_USERNAME, ...
    * the config file (WEBDAV_CONFIG_FILE or the default locations)
    """
    if config_data:
        return config_data

    if environment:
        conf = {
            key[7:].lower(): value
            for key, value in os.environ.items()
            if key.startswith("WEBDAV_") and not key.startswith("WEBDAV_CONFIG")
        }
        if conf:
            return _convert(conf)
        if not config_file:
            config_file = os.environ.get("WEBDAV_CONFIG_FILE")
        if not section or section == "default":
            section = os.environ.get("WEBDAV_CONFIG_SECTION", section)

    if check_config_file:
        cfg = read_config(config_file)
        if cfg:
            conf = config_section(cfg, section)
            if conf:
                return _convert(conf)
    return None
