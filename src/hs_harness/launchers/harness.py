"""Start and stop phases of an ephemeral homeserver.

According to the workflow:
- start: provision, spawn detached, record handoff, poll readiness
- stop: read handoff, SIGTERM/grace/SIGKILL, collect logs

The phases run in different processes. Failures in start are fatal and
propagate; stop is best effort, logs what goes wrong and never raises.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from hs_harness.artifacts import ArtifactUploader, DirectoryArtifactUploader, artifact_destination
from hs_harness.config import HarnessSettings
from hs_harness.errors import HandoffError, HarnessError
from hs_harness.launchers.process import (
    ProcessLauncher,
    ShutdownController,
    ShutdownReport,
    SupervisedProcess,
)
from hs_harness.management.handoff import HandoffStore, ServerHandoff
from hs_harness.management.workflow import WorkflowCommandHandler, running_in_ci, set_output
from hs_harness.provisioning.homeserver_config import (
    CONFIG_FILES,
    build_additional_config,
    write_config_files,
)
from hs_harness.provisioning.installer import Installer, get_installer
from hs_harness.provisioning.log_sinks import LogSinkSet
from hs_harness.readiness.probe import ReadinessProber
from hs_harness.readiness.scheduler import ReadinessReport, ReadinessTimeout, RetryScheduler

SERVICE_URL_OUTPUT = "synapse-url"


@dataclass
class StartResult:
    process: SupervisedProcess
    readiness: ReadinessReport
    service_url: str


@dataclass
class StopResult:
    handoff: ServerHandoff | None = None
    shutdown: ShutdownReport | None = None
    artifact: Path | None = None
    errors: int = 0


class HomeserverHarness:
    """Runs one homeserver through its start and stop phases.

    Collaborators default to the real implementations and can be replaced,
    which is how the tests run the phases without installing anything.

    Args:
        settings: Resolved harness settings
        store: Handoff store shared by the two phases
        installer: Installer (default: chosen by settings.installer)
        prober: Readiness prober (default: settings.probe_timeout)
        uploader: Artifact uploader (default: directory based)
        controller: Shutdown controller (default: settings.grace_period)
        sleep: Awaitable sleep used between readiness attempts
        environ: Environment mapping for outputs (default: os.environ)
    """

    def __init__(
        self,
        settings: HarnessSettings,
        store: HandoffStore,
        installer: Installer | None = None,
        prober: ReadinessProber | None = None,
        uploader: ArtifactUploader | None = None,
        controller: ShutdownController | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        environ: Mapping[str, str] | None = None
    ):
        self.settings = settings
        self.store = store
        self.workdir = Path(os.path.abspath(settings.workdir))
        self._installer = installer
        self.prober = prober or ReadinessProber(timeout=settings.probe_timeout)
        self.environ = os.environ if environ is None else environ
        self.uploader = uploader or DirectoryArtifactUploader(
            artifact_destination(settings.artifact_dir, settings.state_file, self.environ)
        )
        self.controller = controller or ShutdownController(grace_period=settings.grace_period)
        self._sleep = sleep
        self.logger = logging.getLogger("lch")

    @property
    def installer(self) -> Installer:
        """Installer named by settings, resolved on first use (stop never needs one).

        Raises:
            ConfigError: For an unknown installer name
        """
        if self._installer is None:
            self._installer = get_installer(self.settings.installer, self.workdir)
        return self._installer

    @staticmethod
    def setup_logging(use_color: bool, verbose: bool = False):
        """Setup logging based on color preference.

        Args:
            use_color: If True, use Rich colored logging; if False, use plain text
            verbose: Log at DEBUG instead of INFO
        """
        level = logging.DEBUG if verbose else logging.INFO
        handlers: list[logging.Handler] = []

        if use_color:
            from rich.logging import RichHandler
            handlers.append(RichHandler(
                show_time=True,
                show_level=True,
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                log_time_format='%Y-%m-%d %H:%M:%S'
            ))
            fmt = '%(message)s'
        else:
            handlers.append(logging.StreamHandler())
            fmt = '%(asctime)s.%(msecs)03d [%(levelname)-5s] [%(name)-8s] %(message)s'

        for handler in handlers:
            handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))

        if running_in_ci():
            handlers.append(WorkflowCommandHandler())

        logging.basicConfig(level=level, handlers=handlers, force=True)

    # -- start phase ---------------------------------------------------

    async def provision(self) -> None:
        """Install the server and write its configuration into workdir."""
        settings = self.settings
        self.logger.info("Installing synapse")
        self.installer.prepare_workdir()
        await self.installer.install()
        if settings.custom_modules:
            await self.installer.add_modules(settings.custom_modules)

        self.logger.info("Generating config...")
        await self.installer.generate_config()

        additional = build_additional_config(
            settings.http_port,
            settings.public_baseurl,
            settings.disable_rate_limiting,
        )
        write_config_files(self.workdir, additional, settings.custom_config)

    async def start(self) -> StartResult:
        """Provision, launch and wait for the server.

        Raises:
            ReadinessTimeout: If the server did not answer 200 within the budget
            HarnessError: On any provisioning or launch failure
        """
        settings = self.settings
        installer = self.installer
        if self.store.is_available():
            # Left behind by a run whose stop phase never happened
            self.logger.warning("Discarding stale handoff from an earlier run")
            self.store.clear()

        if settings.skip_install:
            self.logger.info(f"Skipping installation, reusing {self.workdir}")
            self.workdir.mkdir(parents=True, exist_ok=True)
        else:
            await self.provision()

        sinks = LogSinkSet(self.workdir)
        sinks.ensure_exist()

        self.logger.info("Starting synapse")
        launcher = ProcessLauncher(self.workdir)
        process = launcher.spawn(
            installer.server_command(CONFIG_FILES),
            stdout_log=sinks.stdout_log,
            stderr_log=sinks.stderr_log,
        )
        try:
            # Persist identity before waiting, so stop can clean up a failed start
            try:
                ServerHandoff(pid=process.pid, workdir=process.workdir).write_to(self.store)
            except (HarnessError, OSError):
                self.logger.error(f"Could not record server pid {process.pid}, stopping it")
                await self.controller.terminate(process.pid)
                raise

            self.logger.info("Waiting until C-S api is available")
            scheduler = RetryScheduler(
                self.prober,
                max_attempts=settings.max_attempts,
                delay=settings.retry_delay,
                sleep=self._sleep,
            )
            async with self.prober:
                report = await scheduler.wait_until_ready(settings.readiness_url)
        finally:
            launcher.release()

        if not report.is_ready:
            raise ReadinessTimeout(report, scheduler.budget)

        set_output(SERVICE_URL_OUTPUT, settings.service_url, self.environ)
        self.logger.info(f"Synapse is ready at {settings.service_url}")
        return StartResult(process=process, readiness=report, service_url=settings.service_url)

    # -- stop phase ----------------------------------------------------

    async def stop(self, upload_logs: bool | None = None) -> StopResult:
        """Tear the server down and collect its logs. Never raises."""
        result = StopResult()
        upload = self.settings.upload_logs if upload_logs is None else upload_logs
        self.logger.info("Destroying synapse")

        try:
            result.handoff = ServerHandoff.read_from(self.store)
        except HandoffError as e:
            self.logger.warning(f"No server recorded for teardown: {e}")

        if result.handoff is not None:
            try:
                result.shutdown = await self.controller.terminate(result.handoff.pid)
            except Exception as e:
                self.logger.error(f"Failed to stop server: {e}")
                result.errors += 1

        if upload:
            workdir = Path(result.handoff.workdir) if result.handoff else self.workdir
            try:
                sinks = LogSinkSet(workdir)
                if sinks.workdir.exists():
                    sinks.ensure_exist()
                result.artifact = await self.uploader.upload(
                    self.settings.artifact_name,
                    [str(p) for p in sinks.paths()],
                    str(sinks.workdir),
                    self.settings.artifact_retention_days,
                )
            except Exception as e:
                self.logger.error(str(e))
                result.errors += 1

        try:
            self.store.clear()
        except OSError as e:
            self.logger.error(f"Failed to clear handoff: {e}")
            result.errors += 1

        return result
