"""Homeserver configuration layered on top of the generated homeserver.yaml.

The server is started with three ``--config-path`` options, later files
overriding earlier ones:

- homeserver.yaml: generated by the server itself
- additional.yaml: listener, registration and rate limit overrides for CI
- custom.yaml: raw YAML supplied by the user
"""

import logging
from pathlib import Path
from typing import Any

import yaml

HOMESERVER_CONFIG = "homeserver.yaml"
ADDITIONAL_CONFIG = "additional.yaml"
CUSTOM_CONFIG = "custom.yaml"

CONFIG_FILES = (HOMESERVER_CONFIG, ADDITIONAL_CONFIG, CUSTOM_CONFIG)

_log = logging.getLogger("hscfg")


def _limit(per_second: int = 1000, burst_count: int = 1000) -> dict[str, int]:
    return {"per_second": per_second, "burst_count": burst_count}


# Tests hammer the server far beyond what production limits allow
RATE_LIMIT_OVERRIDES: dict[str, Any] = {
    "rc_message": _limit(),
    "rc_registration": _limit(),
    "rc_login": {
        "address": _limit(),
        "account": _limit(),
        "failed_attempts": _limit(),
    },
    "rc_admin_redaction": _limit(),
    "rc_joins": {
        "local": _limit(),
        "remote": _limit(),
    },
    "rc_3pid_validation": _limit(),
    "rc_invites": {
        "per_room": _limit(),
        "per_user": _limit(),
    },
}


def build_additional_config(
    port: int,
    public_baseurl: str = "",
    disable_rate_limiting: bool = False
) -> dict[str, Any]:
    """Build the CI overrides for the generated homeserver config.

    Args:
        port: Port for the plain HTTP listener
        public_baseurl: Advertised base URL, ``http://localhost:<port>`` if empty
        disable_rate_limiting: Merge RATE_LIMIT_OVERRIDES into the result
    """
    additional: dict[str, Any] = {
        "public_baseurl": public_baseurl or f"http://localhost:{port}",
        "enable_registration": True,
        "enable_registration_without_verification": True,
        "listeners": [
            {
                "port": int(port),
                "tls": False,
                "bind_addresses": ["0.0.0.0"],
                "type": "http",
                "resources": [
                    {
                        "names": ["client", "federation"],
                        "compress": False,
                    }
                ],
            }
        ],
    }
    if disable_rate_limiting:
        additional.update(RATE_LIMIT_OVERRIDES)
    return additional


def write_config_files(workdir: str | Path, additional: dict[str, Any], custom_config: str = "") -> list[Path]:
    """Write additional.yaml and custom.yaml into ``workdir``."""
    workdir = Path(workdir)
    additional_path = workdir / ADDITIONAL_CONFIG
    with additional_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(additional, f, default_flow_style=False, sort_keys=False)

    custom_path = workdir / CUSTOM_CONFIG
    custom_path.write_text(custom_config or "", encoding="utf-8")

    _log.info(f"Wrote {additional_path.name} and {custom_path.name}")
    return [additional_path, custom_path]
