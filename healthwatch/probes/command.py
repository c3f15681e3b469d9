"""Command execution for probes — runs an external tool under a timeout."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Sequence

import structlog
from pydantic import BaseModel

from healthwatch.core.exceptions import FetchTimeoutError, MetricUnavailableError

logger = structlog.get_logger(__name__)


class CommandResult(BaseModel):
    """Captured output of one probe command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(abc.ABC):
    """Runs probe commands. Injected into sources so tests can fake it."""

    @abc.abstractmethod
    async def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        """Run *argv* and return its output.

        Raises:
            MetricUnavailableError: The tool is missing or not executable.
            FetchTimeoutError: The command did not finish within *timeout*.
        """


class SubprocessRunner(CommandRunner):
    """Runs commands as asyncio subprocesses."""

    async def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        argv = tuple(argv)
        tool = argv[0]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise MetricUnavailableError(tool, "command not found") from None
        except PermissionError:
            raise MetricUnavailableError(tool, "permission denied") from None

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except TimeoutError:
            await _kill(proc)
            raise FetchTimeoutError(tool, f"timed out after {timeout:g}s") from None
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        result = CommandResult(
            argv=argv,
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        logger.debug("probe_command_finished", argv=argv, returncode=result.returncode)
        return result


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()
