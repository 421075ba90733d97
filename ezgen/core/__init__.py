"""Core infrastructure components for EZ-GEN."""

from .config import Config, get_config
from .exceptions import (
    BuildEnvironmentError,
    EZGenError,
    FatalBuildError,
    MaterializationError,
    SyncError,
    ToolError,
    ToolExitError,
    ToolTimeoutError,
    ValidationError,
)
from .logging import get_logger, setup_logging
from .types import PipelineState, ServiceResult, StageResult, StageStatus

__all__ = [
    "Config",
    "get_config",
    "BuildEnvironmentError",
    "EZGenError",
    "FatalBuildError",
    "MaterializationError",
    "SyncError",
    "ToolError",
    "ToolExitError",
    "ToolTimeoutError",
    "ValidationError",
    "get_logger",
    "setup_logging",
    "PipelineState",
    "ServiceResult",
    "StageResult",
    "StageStatus",
]
