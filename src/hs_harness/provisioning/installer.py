"""Installing the homeserver and building its command lines.

Two flavours are supported:

- pip: latest ``matrix-synapse`` release from PyPI in a virtualenv
- poetry: git checkout of the server, installed with poetry (``--extras all``)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from hs_harness.errors import ConfigError, InstallError

SYNAPSE_REPO = "https://github.com/element-hq/synapse.git"
SYNAPSE_MODULE = "synapse.app.homeserver"
POETRY_VERSION = "2.1.1"

CommandRunner = Callable[[Sequence[str], Path], Awaitable[None]]


async def run_command(args: Sequence[str], cwd: Path) -> None:
    """Run a command to completion, streaming its output to ours.

    Raises:
        InstallError: If the command exits with a non-zero status
    """
    logging.getLogger("inst").info(f"[command] {' '.join(args)}")
    try:
        proc = await asyncio.create_subprocess_exec(*args, cwd=cwd)
    except OSError as e:
        raise InstallError(list(args), 127) from e
    returncode = await proc.wait()
    if returncode != 0:
        raise InstallError(list(args), returncode)


class Installer(ABC):
    """Base class for homeserver installers.

    Args:
        workdir: Directory the server is installed into and runs from
        runner: Coroutine used to run commands (replaceable in tests)
    """

    name: str = ""

    def __init__(self, workdir: str | Path, runner: CommandRunner = run_command):
        self.workdir = Path(workdir)
        self._run = runner
        self.logger = logging.getLogger("inst")

    async def run(self, *args: str) -> None:
        await self._run(list(args), self.workdir)

    def prepare_workdir(self) -> None:
        """Create the working directory. Overridden where the checkout creates it."""
        self.workdir.mkdir(parents=True, exist_ok=True)

    @abstractmethod
    async def install(self) -> None:
        """Install the server and its dependencies into workdir."""

    @abstractmethod
    async def add_modules(self, modules: Sequence[str]) -> None:
        """Install extra Python packages next to the server."""

    @abstractmethod
    def python_command(self) -> list[str]:
        """Command prefix that runs the server's Python interpreter."""

    async def generate_config(self, server_name: str = "localhost") -> None:
        """Let the server write its default homeserver.yaml."""
        await self.run(
            *self.python_command(),
            "-m", SYNAPSE_MODULE,
            "--server-name", server_name,
            "--config-path", "homeserver.yaml",
            "--generate-config",
            "--report-stats=no",
        )

    def server_command(self, config_paths: Sequence[str]) -> list[str]:
        """Command line that runs the server with the given config files."""
        args = [*self.python_command(), "-m", SYNAPSE_MODULE]
        for path in config_paths:
            args.extend(["--config-path", path])
        return args


class PipInstaller(Installer):
    """Installs the PyPI release into ``workdir/env``."""

    name = "pip"

    async def install(self) -> None:
        await self.run("python", "-m", "venv", "env")
        await self.run("env/bin/pip", "install", "-q", "--upgrade", "pip")
        await self.run("env/bin/pip", "install", "-q", "--upgrade", "setuptools")
        await self.run("env/bin/pip", "install", "-q", "matrix-synapse")

    async def add_modules(self, modules: Sequence[str]) -> None:
        for module in modules:
            await self.run("env/bin/pip", "install", "-q", module)

    def python_command(self) -> list[str]:
        return ["env/bin/python3"]


class PoetryInstaller(Installer):
    """Installs a git checkout of the server with poetry."""

    name = "poetry"

    def prepare_workdir(self) -> None:
        # git clone creates workdir itself
        self.workdir.parent.mkdir(parents=True, exist_ok=True)

    async def install(self) -> None:
        await self._run(
            ["git", "clone", SYNAPSE_REPO, self.workdir.name], self.workdir.parent
        )
        await self.run("python", "-m", "pip", "install", "pipx")
        await self.run("python", "-m", "pipx", "ensurepath")
        await self.run("pipx", "install", f"poetry=={POETRY_VERSION}")
        await self.run("pipx", "list", "--verbose", "--include-injected")
        await self.run("poetry", "install", "-vv", "--extras", "all")

    async def add_modules(self, modules: Sequence[str]) -> None:
        for module in modules:
            await self.run("poetry", "add", module)

    def python_command(self) -> list[str]:
        return ["poetry", "run", "python"]


INSTALLERS: dict[str, type[Installer]] = {
    PipInstaller.name: PipInstaller,
    PoetryInstaller.name: PoetryInstaller,
}


def get_installer(name: str, workdir: str | Path, runner: CommandRunner = run_command) -> Installer:
    """Create the installer registered under ``name``.

    Raises:
        ConfigError: For an unknown installer name
    """
    try:
        installer_class = INSTALLERS[name]
    except KeyError:
        raise ConfigError(
            f"Valid installer option: {', '.join(sorted(INSTALLERS, reverse=True))}"
        ) from None
    return installer_class(workdir, runner=runner)
