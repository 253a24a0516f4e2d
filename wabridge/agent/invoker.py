"""Run the Claude Code CLI as a one-shot subprocess."""

from __future__ import annotations

import asyncio
import os
import shlex
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

NO_OUTPUT = "(No output)"
DEFAULT_TIMEOUT_S = 5 * 60
DEFAULT_MAX_TURNS = 3
KILL_GRACE_S = 5.0
READ_CHUNK_BYTES = 4096


class InvocationError(RuntimeError):
    """The assistant run produced no usable output."""


class SpawnError(InvocationError):
    """The assistant executable could not be started."""


class InvocationTimeoutError(InvocationError):
    """The assistant run exceeded its deadline and was terminated."""


@dataclass
class InvocationResult:
    """Raw outcome of one assistant run."""

    stdout: str
    stderr: str
    exit_code: int | None
    timed_out: bool = False


def _format_duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    if float(seconds).is_integer():
        return f"{int(seconds)} seconds"
    return f"{seconds:g} seconds"


async def _drain(stream: asyncio.StreamReader | None, sink: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        sink.append(chunk)


class ClaudeInvoker:
    """
    Launch ``claude --print --max-turns N <prompt>`` in the working directory.

    Each call spawns a fresh process; nothing is shared between runs.
    """

    def __init__(
        self,
        work_dir: Path | str,
        *,
        command: str = "claude",
        max_turns: int = DEFAULT_MAX_TURNS,
        timeout_seconds: float = DEFAULT_TIMEOUT_S,
        kill_grace_seconds: float = KILL_GRACE_S,
    ):
        self.work_dir = Path(work_dir)
        self.command = command
        self.max_turns = max(1, int(max_turns))
        self.timeout_seconds = float(timeout_seconds)
        self.kill_grace_seconds = max(0.0, float(kill_grace_seconds))

    @classmethod
    def from_config(cls, config) -> "ClaudeInvoker":
        return cls(
            config.work_path,
            command=config.assistant.command,
            max_turns=config.assistant.max_turns,
            timeout_seconds=config.assistant.timeout_seconds,
        )

    def build_argv(self, prompt: str) -> list[str]:
        return [*shlex.split(self.command), "--print", "--max-turns", str(self.max_turns), prompt]

    async def invoke(self, prompt: str) -> str:
        """
        Run the assistant and return its trimmed output.

        A non-zero exit still counts as success when stdout is non-empty;
        partial assistant output is more useful to the sender than the exit
        code.

        Raises:
            SpawnError: the executable could not be started.
            InvocationTimeoutError: the run hit the deadline.
            InvocationError: non-zero exit with empty stdout.
        """
        result = await self.run(prompt)
        if result.timed_out:
            raise InvocationTimeoutError(f"Command timed out after {_format_duration(self.timeout_seconds)}")
        if result.exit_code == 0 or result.stdout:
            return result.stdout.strip() or NO_OUTPUT
        raise InvocationError(result.stderr.strip() or f"Claude exited with code {result.exit_code}")

    async def run(self, prompt: str) -> InvocationResult:
        """Run the assistant once and collect its output, enforcing the timeout."""
        argv = self.build_argv(prompt)
        env = {**os.environ, "NO_COLOR": "1"}
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(self.work_dir),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            raise SpawnError(f"Failed to run Claude: {exc}") from exc

        logger.debug(f"Started {argv[0]} (pid {process.pid}) in {self.work_dir}")
        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        readers = [
            asyncio.create_task(_drain(process.stdout, stdout_chunks)),
            asyncio.create_task(_drain(process.stderr, stderr_chunks)),
        ]

        timed_out = False
        try:
            await asyncio.wait_for(process.wait(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning(f"Claude run exceeded {self.timeout_seconds}s, terminating pid {process.pid}")
            await self._terminate(process)
        except asyncio.CancelledError:
            await self._terminate(process)
            await self._finish_readers(readers)
            raise

        await self._finish_readers(readers)
        return InvocationResult(
            stdout=b"".join(stdout_chunks).decode("utf-8", errors="replace"),
            stderr=b"".join(stderr_chunks).decode("utf-8", errors="replace"),
            exit_code=process.returncode,
            timed_out=timed_out,
        )

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass
        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
            return
        except asyncio.TimeoutError:
            pass
        logger.warning(f"pid {process.pid} ignored SIGTERM, killing")
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()

    async def _finish_readers(self, readers: list[asyncio.Task]) -> None:
        # Grandchildren can keep a pipe open after the child is gone.
        done, pending = await asyncio.wait(readers, timeout=max(self.kill_grace_seconds, 1.0))
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"Output reader failed: {task.exception()}")
