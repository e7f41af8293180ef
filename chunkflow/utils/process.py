"""
External process execution for ffmpeg and ffprobe.

Commands are always passed as argument lists, never through a shell. Each
run suspends only the awaiting request: concurrency is bounded by a
semaphore and each invocation by a timeout.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from chunkflow.configs import settings
from chunkflow.exceptions import ProcessLaunchError, ProcessTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Run external tools with bounded concurrency and a per-run timeout."""

    def __init__(self, max_concurrency: int, timeout: Optional[float] = None):
        self.max_concurrency = max_concurrency
        self.timeout = timeout or None
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
        return self._semaphore

    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ProcessResult:
        """
        Run a command to completion and capture its output.

        Args:
            args: The program followed by its arguments.
            timeout: Overrides the runner's default timeout for this invocation.

        Returns:
            ProcessResult: Exit code and decoded stdout/stderr. A non-zero exit is
            not an error here; callers decide what it means.

        Raises:
            ProcessLaunchError: If the program cannot be started.
            ProcessTimeoutError: If the program outlives the timeout; it is killed.
        """
        args = [str(arg) for arg in args]
        timeout = timeout or self.timeout

        async with self.semaphore:
            logger.debug(f"Running command: {args}")
            try:
                proc = await asyncio.create_subprocess_exec(
                    *args,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                logger.error(f"Failed to launch {args[0]}: {e}")
                raise ProcessLaunchError(f"Failed to start {args[0]}", details=str(e))

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.error(f"{args[0]} timed out after {timeout} seconds, killing it")
                proc.kill()
                await proc.wait()
                raise ProcessTimeoutError(f"{args[0]} timed out after {timeout} seconds")

        return ProcessResult(
            args=args,
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )


process_runner = ProcessRunner(settings.max_concurrent_processes, settings.process_timeout)


def get_process_runner() -> ProcessRunner:
    return process_runner
