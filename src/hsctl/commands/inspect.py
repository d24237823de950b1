"""Probe and status commands for hsctl."""

import asyncio
from typing import Annotated

import psutil
import typer

from hs_harness.config import load_settings
from hs_harness.errors import HarnessError
from hs_harness.management.handoff import FileHandoffStore, ServerHandoff, create_handoff_store
from hs_harness.readiness.probe import DEFAULT_PROBE_TIMEOUT, ReadinessProber
from hsctl.display import display_probe_result, display_status


def pid_alive(pid: int) -> bool:
    """True if a process with this pid exists; 0 and below name process groups."""
    return pid > 0 and psutil.pid_exists(pid)


def probe_cmd(
    url: Annotated[str, typer.Argument(help="URL to probe, e.g. http://localhost:8008/_matrix/client/versions")],
    timeout: Annotated[float, typer.Option("--timeout", "-t", help="Probe timeout in seconds")] = DEFAULT_PROBE_TIMEOUT,
):
    """Probe URL once and report whether it is ready (HTTP 200).

    Exits with status 1 when not ready.
    """
    result = asyncio.run(ReadinessProber(timeout=timeout).probe(url))
    display_probe_result(url, result)
    if not result.is_ready:
        raise typer.Exit(1)


def status_cmd(
    config: Annotated[str | None, typer.Option("--config", "-c", help="Path to harness YAML config")] = None,
):
    """Show the server recorded by the last start and whether it is running."""
    try:
        settings = load_settings(config)
    except HarnessError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    store = create_handoff_store(settings.state_file)
    source = str(store.path) if isinstance(store, FileHandoffStore) else "workflow state"
    try:
        handoff = ServerHandoff.read_from(store)
    except HarnessError:
        display_status(None, None, None, source)
        return

    display_status(handoff.pid, handoff.workdir, pid_alive(handoff.pid), source)
