"""
Custom exception hierarchy for EZ-GEN.

All exceptions inherit from EZGenError so the HTTP layer and the orchestrator can
tell generator failures apart from programming errors. Each exception carries
context for debugging and logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class EZGenError(Exception):
    """Base exception for all EZ-GEN errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ValidationError(EZGenError):
    """Raised when user input fails a syntactic or policy rule.

    The message is the human-readable reason shown to the user; it is never
    decorated so the HTTP layer can return it verbatim.
    """

    field_name: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class MaterializationError(EZGenError):
    """Raised when the template cannot be copied into a workspace."""

    workspace: str = ""

    def __str__(self) -> str:
        return f"Materialization failed for workspace '{self.workspace}': {super().__str__()}"


@dataclass
class ToolError(EZGenError):
    """Base class for failures of an external tool invocation."""

    tool: str = ""
    exit_code: int | None = None
    output: str = ""

    def output_tail(self, limit: int = 2000) -> str:
        """Return the last `limit` characters of the captured output."""
        return self.output[-limit:]


@dataclass
class ToolTimeoutError(ToolError):
    """Raised when a tool exceeds its wall-clock bound and was killed."""

    timeout_seconds: float = 0.0
    pid: int | None = None

    def __str__(self) -> str:
        return f"Tool '{self.tool}' timed out after {self.timeout_seconds:g}s: {self.message}"


@dataclass
class ToolExitError(ToolError):
    """Raised when a tool exits with a nonzero status."""

    def __str__(self) -> str:
        return f"Tool '{self.tool}' exited with code {self.exit_code}: {self.message}"


@dataclass
class SyncError(EZGenError):
    """Raised when both the sync tool and the manual fallback failed."""


@dataclass
class FatalBuildError(EZGenError):
    """Raised when release signing or release assembly cannot proceed."""

    stage: str = ""
    key_lines: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}" if self.stage else super().__str__()


@dataclass
class BuildEnvironmentError(EZGenError):
    """Raised when the pre-flight check finds a missing SDK, JDK or tool."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        details = "; ".join(self.errors)
        return f"{self.message}: {details}" if details else self.message
