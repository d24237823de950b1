"""Pytest configuration for homeserver-harness tests.

This file makes fixtures from tests/fixtures/ available to all tests.
"""

import pytest

# Import fixtures to make them discoverable by pytest
from tests.fixtures.http_fixtures import refused_url, silent_server

from hs_harness.config import HarnessSettings

# Make fixtures available
__all__ = [
    "refused_url",
    "silent_server",
    "settings",
]


@pytest.fixture
def settings(tmp_path) -> HarnessSettings:
    """Settings pointing every path into a temporary directory."""
    return HarnessSettings(
        workdir=str(tmp_path / "synapse"),
        state_file=str(tmp_path / "state" / "state.yaml"),
        artifact_dir=str(tmp_path / "artifacts"),
        host="127.0.0.1",
        health_path="/",
        max_attempts=50,
        retry_delay=0.1,
        grace_period=0.5,
        skip_install=True,
    )
