"""
Tool runner interface.

Every external toolchain (npm, Capacitor CLI, keytool, the Gradle wrapper) is
invoked through a ToolRunner so pipeline logic can be exercised with scripted
fakes that hang, fail or print malformed output.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Mapping, Sequence

from pydantic import BaseModel, Field

OutputCallback = Callable[[str], None]

# Flags whose value is a credential and never appears in logs or errors.
SECRET_FLAGS = frozenset({"-storepass", "-keypass", "-srcstorepass", "-deststorepass", "-srckeypass", "-destkeypass"})


def describe_command(command: str, args: Sequence[str]) -> str:
    """Command line for logs and error messages, with credential values masked."""
    shown = [command]
    masked = False
    for arg in args:
        shown.append("***" if masked else arg)
        masked = arg in SECRET_FLAGS
    return " ".join(shown)


class ToolResult(BaseModel):
    """Completed tool invocation. The exit code is the only success signal."""

    command: str
    args: list[str] = Field(default_factory=list)
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    @property
    def command_line(self) -> str:
        return describe_command(self.command, self.args)


class ToolRunner(ABC):
    """Abstract child-process runner."""

    @abstractmethod
    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        """Run a tool to completion.

        Args:
            command: Executable name or path
            args: Arguments passed to the executable
            cwd: Working directory
            timeout: Wall-clock bound in seconds, None for unbounded
            env: Full environment for the child, None to inherit
            on_output: Called with every chunk of output as it arrives

        Returns:
            ToolResult with exit code and captured output. A missing executable
            is reported as exit code 127 rather than raised.

        Raises:
            ToolTimeoutError: If the bound elapsed. The process (and its process
                group) has been killed by the time this is raised, and the
                output captured so far is attached.
        """
        ...
