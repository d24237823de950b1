"""Test hsctl commands through typer's CliRunner."""

import logging
import os
import subprocess
import sys

import pytest
from typer.testing import CliRunner

from hs_harness.management.handoff import FileHandoffStore, ServerHandoff
from hs_harness.provisioning.installer import INSTALLERS, PipInstaller
from hsctl.app import app
from hsctl.commands.inspect import pid_alive
from tests.helpers.wait_helpers import kill_quietly, wait_for_exit

runner = CliRunner()


class SleepingInstaller(PipInstaller):
    """Launches a process that never opens the HTTP port."""

    def server_command(self, config_paths):
        return [sys.executable, "-c", "import time; time.sleep(30)"]


def dead_pid() -> int:
    gone = subprocess.Popen(["true"])
    gone.wait(timeout=10)
    return gone.pid


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run every command from an empty directory, outside of any CI runner."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith(("GITHUB_", "INPUT_", "STATE_")) or name == "RUNNER_TEMP":
            monkeypatch.delenv(name)

    # Commands reconfigure the root logger, restore it afterwards
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "start" in result.output
    assert "stop" in result.output


def test_probe_refused_exits_1(refused_url):
    result = runner.invoke(app, ["probe", refused_url, "--timeout", "0.5"])

    assert result.exit_code == 1
    assert "transport error" in result.output
    assert refused_url in result.output


def test_status_without_handoff():
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "none recorded" in result.output


def test_status_with_recorded_server(tmp_path):
    ServerHandoff(pid=os.getpid(), workdir=str(tmp_path / "synapse")).write_to(
        FileHandoffStore(".hs-harness/state.yaml")
    )

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert str(os.getpid()) in result.output
    assert "running" in result.output


def test_stop_without_server_still_succeeds():
    result = runner.invoke(app, ["stop", "--no-color"])
    assert result.exit_code == 0


def test_stop_with_invalid_config_still_tears_down(tmp_path):
    (tmp_path / "hs-harness.yaml").write_text("http_port: not-a-port\n")
    store = FileHandoffStore(".hs-harness/state.yaml")
    ServerHandoff(pid=dead_pid(), workdir=str(tmp_path / "synapse")).write_to(store)

    result = runner.invoke(app, ["stop", "--no-color", "--no-upload"])

    assert result.exit_code == 0
    assert "tearing down with default settings" in result.output
    assert "not running at teardown time" in result.output
    assert not store.is_available()


def test_stop_ignores_unknown_installer(tmp_path, monkeypatch):
    monkeypatch.setenv("INPUT_INSTALLER", "apt")
    (tmp_path / "hs-harness.yaml").write_text("grace_period: 0.2\n")
    server = subprocess.Popen(
        [sys.executable, "-c", "import time; time.sleep(30)"], start_new_session=True
    )
    store = FileHandoffStore(".hs-harness/state.yaml")
    ServerHandoff(pid=server.pid, workdir=str(tmp_path / "synapse")).write_to(store)

    try:
        result = runner.invoke(app, ["stop", "--no-color", "--no-upload"])
        assert wait_for_exit(server.pid)
    finally:
        kill_quietly(server.pid)

    assert result.exit_code == 0
    assert not store.is_available()


def test_start_readiness_timeout_exits_1(tmp_path, monkeypatch, refused_url):
    monkeypatch.setitem(INSTALLERS, "sleeping", SleepingInstaller)
    port = int(refused_url.rsplit(":", 1)[1].rstrip("/"))
    (tmp_path / "hs-harness.yaml").write_text(
        "installer: sleeping\n"
        "skip_install: true\n"
        "host: 127.0.0.1\n"
        f"http_port: {port}\n"
        "max_attempts: 1\n"
        "grace_period: 0.2\n"
    )

    result = runner.invoke(app, ["start", "--no-color"])

    handoff = ServerHandoff.read_from(FileHandoffStore(".hs-harness/state.yaml"))
    kill_quietly(handoff.pid)
    assert result.exit_code == 1
    assert "Unable to start synapse in 0s" in result.output


def test_start_with_unknown_installer_exits_1():
    result = runner.invoke(app, ["start", "--installer", "conda", "--no-color"])
    assert result.exit_code == 1


def test_start_with_invalid_port_exits_1():
    result = runner.invoke(app, ["start", "--port", "0", "--no-color"])
    assert result.exit_code == 1


def test_pid_alive():
    assert pid_alive(os.getpid())
    assert not pid_alive(0)
    assert not pid_alive(-5)
