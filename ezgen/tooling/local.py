"""
Local child-process tool runner built on asyncio subprocesses.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import signal
import time
from pathlib import Path
from typing import Mapping, Sequence

from ..core.exceptions import ToolTimeoutError
from ..core.logging import get_logger
from .interface import OutputCallback, ToolResult, ToolRunner, describe_command

logger = get_logger(__name__)

# Grace period for pipe readers after the process itself has exited.
_READER_GRACE_SECONDS = 5.0


class LocalToolRunner(ToolRunner):
    """Runs tools as asyncio child processes.

    On POSIX each child starts its own session so a timeout can kill the whole
    process group, including grandchildren spawned by npx or the Gradle wrapper.
    """

    def _resolve(self, command: str, env: Mapping[str, str] | None) -> str | None:
        if "/" in command or os.sep in command:
            return command
        path = env.get("PATH") if env else None
        return shutil.which(command, path=path)

    @staticmethod
    def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            if os.name == "posix":
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass

    @staticmethod
    async def _drain(
        stream: asyncio.StreamReader | None,
        sink: list[str],
        on_output: OutputCallback | None,
    ) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            text = chunk.decode("utf-8", errors="replace")
            sink.append(text)
            if on_output is not None:
                on_output(text)

    @staticmethod
    async def _settle(readers: list[asyncio.Task[None]]) -> None:
        _, pending = await asyncio.wait(readers, timeout=_READER_GRACE_SECONDS)
        for task in pending:
            task.cancel()

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        command_line = describe_command(command, args)
        executable = self._resolve(command, env)
        if executable is None:
            logger.warning("Tool not found on PATH", command=command)
            return ToolResult(
                command=command,
                args=list(args),
                exit_code=127,
                stderr=f"{command}: command not found",
            )

        logger.debug("Running tool", command=command_line, cwd=str(cwd) if cwd else None, timeout=timeout)
        start = time.perf_counter()

        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.warning("Tool could not be started", command=command_line, error=str(e))
            return ToolResult(command=command, args=list(args), exit_code=127, stderr=str(e))

        stdout_chunks: list[str] = []
        stderr_chunks: list[str] = []
        readers = [
            asyncio.create_task(self._drain(proc.stdout, stdout_chunks, on_output)),
            asyncio.create_task(self._drain(proc.stderr, stderr_chunks, on_output)),
        ]

        try:
            await asyncio.wait_for(proc.wait(), timeout)
        except asyncio.TimeoutError:
            self._kill(proc)
            await proc.wait()
            await self._settle(readers)
            logger.warning("Tool timed out and was killed", command=command_line, timeout=timeout, pid=proc.pid)
            raise ToolTimeoutError(
                message=f"{command_line} did not finish",
                tool=command,
                output="".join(stdout_chunks) + "".join(stderr_chunks),
                timeout_seconds=timeout or 0.0,
                pid=proc.pid,
            )
        except asyncio.CancelledError:
            self._kill(proc)
            raise

        await self._settle(readers)
        duration = time.perf_counter() - start
        result = ToolResult(
            command=command,
            args=list(args),
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout="".join(stdout_chunks),
            stderr="".join(stderr_chunks),
            duration_seconds=duration,
        )
        logger.debug("Tool finished", command=command_line, exit_code=result.exit_code, duration_s=round(duration, 2))
        return result
