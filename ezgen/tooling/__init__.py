"""External tool invocation for EZ-GEN."""

from .interface import ToolResult, ToolRunner, describe_command
from .local import LocalToolRunner

__all__ = ["ToolResult", "ToolRunner", "LocalToolRunner", "describe_command"]
