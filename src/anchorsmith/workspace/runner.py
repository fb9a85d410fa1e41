"""Command runner, the only place the builder touches ``subprocess``.

Runs one toolchain command to completion inside a given working directory,
captures stdout / stderr / exit code, and enforces a timeout.  On timeout
or task cancellation the child is killed; whatever it already wrote to
disk stays in place so the caller can still probe for artifacts.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_POSIX = os.name == "posix"


@dataclass
class CommandOutcome:
    """Raw output captured from a single toolchain command."""

    argv: list[str]
    stdout: str = ""
    stderr: str = ""
    exit_code: int = -1
    duration_ms: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def failure_message(self) -> str:
        """One-line description used as ``BuildResult.error_message``."""
        cmd = " ".join(self.argv)
        if self.timed_out:
            return f"Command timed out: {cmd}"
        return f"Command failed: {cmd} (exit code {self.exit_code})"


class CommandRunner:
    """Execute toolchain commands as asyncio subprocesses.

    Parameters
    ----------
    extra_env:
        Variables layered over the inherited process environment.
    """

    def __init__(self, extra_env: Mapping[str, str] | None = None) -> None:
        self._extra_env = dict(extra_env or {})

    def environment(self) -> dict[str, str]:
        return {**os.environ, **self._extra_env}

    async def run(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path,
        timeout: float | None = None,
    ) -> CommandOutcome:
        """Run *argv* in *cwd* and return the captured outcome.

        ``FileNotFoundError`` propagates when the executable does not exist;
        ``asyncio.CancelledError`` propagates after the child is killed.
        """
        args = [str(a) for a in argv]
        logger.debug("Running %s in %s (timeout=%s).", args, cwd, timeout)

        t0 = time.perf_counter()
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd),
            env=self.environment(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=_POSIX,
        )

        # Drain both pipes concurrently; partial output survives a kill.
        assert proc.stdout is not None and proc.stderr is not None
        out_task = asyncio.create_task(proc.stdout.read())
        err_task = asyncio.create_task(proc.stderr.read())

        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %ss, killing.", args[0], timeout)
            timed_out = True
            await self._kill(proc)
        except asyncio.CancelledError:
            logger.warning("%s cancelled, killing.", args[0])
            await self._kill(proc)
            out_task.cancel()
            err_task.cancel()
            raise

        raw_out, raw_err = await asyncio.gather(out_task, err_task)
        duration_ms = (time.perf_counter() - t0) * 1000
        outcome = CommandOutcome(
            argv=args,
            stdout=raw_out.decode(errors="replace"),
            stderr=raw_err.decode(errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
            duration_ms=round(duration_ms, 2),
            timed_out=timed_out,
        )
        logger.info(
            "%s finished: exit=%d  duration=%.1fms",
            " ".join(args[:2]),
            outcome.exit_code,
            duration_ms,
        )
        return outcome

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        # The child leads its own session, so cargo / rustc grandchildren go too.
        if proc.returncode is None:
            try:
                if _POSIX:
                    os.killpg(proc.pid, signal.SIGKILL)
                else:
                    proc.kill()
            except ProcessLookupError:
                logger.debug("Process %s already gone.", proc.pid)
        await proc.wait()
