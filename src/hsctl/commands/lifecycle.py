"""Start and stop commands for hsctl.

These are the two halves of a workflow run: ``start`` in the main step,
``stop`` in the post step (which runs even when the job failed).
"""

import asyncio
import logging
from typing import Annotated

import typer

from hs_harness.config import HarnessSettings, load_settings
from hs_harness.errors import ConfigError, HarnessError
from hs_harness.launchers.harness import HomeserverHarness
from hs_harness.management.environment import load_dotenv_if_available
from hs_harness.management.handoff import create_handoff_store

ConfigOption = Annotated[str | None, typer.Option("--config", "-c", help="Path to harness YAML config (default: hs-harness.yaml if present)")]
NoColorOption = Annotated[bool, typer.Option("--no-color", help="Disable colored logging (use plain text)")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")]


def _prepare(config: str | None, overrides: dict, no_color: bool, verbose: bool,
             teardown: bool = False) -> HomeserverHarness:
    env_loaded, env_file_path = load_dotenv_if_available()
    HomeserverHarness.setup_logging(use_color=not no_color, verbose=verbose)
    logger = logging.getLogger("launch")
    if env_loaded:
        logger.info(f"Loaded environment from {env_file_path}")

    try:
        settings = load_settings(config, overrides)
    except ConfigError as e:
        if not teardown:
            raise
        # Teardown must still find and stop the recorded server
        logger.error(f"{e}, tearing down with default settings")
        settings = HarnessSettings()
    store = create_handoff_store(settings.state_file)
    return HomeserverHarness(settings, store)


def start_cmd(
    config: ConfigOption = None,
    installer: Annotated[str | None, typer.Option("--installer", help="pip or poetry")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="HTTP listener port")] = None,
    public_baseurl: Annotated[str | None, typer.Option("--public-baseurl", help="Advertised base URL")] = None,
    disable_rate_limiting: Annotated[bool, typer.Option("--disable-rate-limiting", help="Raise all rate limits")] = False,
    workdir: Annotated[str | None, typer.Option("--workdir", help="Directory to install and run the server in")] = None,
    skip_install: Annotated[bool, typer.Option("--skip-install", help="Reuse an existing installation in workdir")] = False,
    no_color: NoColorOption = False,
    verbose: VerboseOption = False,
):
    """Install, start and wait for the homeserver.

    Exits with status 1 if the server did not become ready in time.
    """
    overrides = {
        "installer": installer,
        "http_port": port,
        "public_baseurl": public_baseurl,
        "disable_rate_limiting": True if disable_rate_limiting else None,
        "workdir": workdir,
        "skip_install": True if skip_install else None,
    }
    logger = logging.getLogger("launch")
    try:
        harness = _prepare(config, overrides, no_color, verbose)
        asyncio.run(harness.start())
    except HarnessError as e:
        logger.error(str(e))
        raise typer.Exit(1)


def stop_cmd(
    config: ConfigOption = None,
    no_upload: Annotated[bool, typer.Option("--no-upload", help="Do not collect logs as an artifact")] = False,
    no_color: NoColorOption = False,
    verbose: VerboseOption = False,
):
    """Stop the homeserver and collect its logs.

    Always exits with status 0, teardown must not mask the job's result.
    """
    logger = logging.getLogger("launch")
    try:
        harness = _prepare(config, {}, no_color, verbose, teardown=True)
    except HarnessError as e:
        logger.error(str(e))
        return

    result = asyncio.run(harness.stop(upload_logs=False if no_upload else None))
    if result.errors:
        logger.warning(f"Teardown finished with {result.errors} error(s)")
