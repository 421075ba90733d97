"""
Core type definitions for EZ-GEN.

Provides result types shared by the services and the pipeline orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class PipelineState(str, Enum):
    """States of a generation run, in the order they are entered."""

    VALIDATING = "Validating"
    MATERIALIZING = "Materializing"
    INSTALLING_DEPENDENCIES = "InstallingDependencies"
    BUILDING_WEB = "BuildingWeb"
    GENERATING_ASSETS = "GeneratingAssets"
    SYNCING = "Syncing"
    SMOKE_TESTING = "SmokeTesting"
    ENVIRONMENT_VALIDATING = "EnvironmentValidating"
    GENERATING_KEYSTORE = "GeneratingKeystore"
    CONFIGURING_RELEASE = "ConfiguringRelease"
    BUILDING_ARTIFACTS = "BuildingArtifacts"
    GENERATING_GUIDE = "GeneratingGuide"
    DONE = "Done"
    PARTIALLY_DONE = "PartiallyDone"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.PARTIALLY_DONE)


T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """Result wrapper for service operations.

    Provides a consistent return type that carries the result data together
    with any warnings raised while producing it.
    """

    success: bool
    data: T | None = None
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T, **metadata: Any) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def with_warnings(cls, data: T, warnings: list[str], **metadata: Any) -> ServiceResult[T]:
        """Create a successful result with warnings."""
        return cls(success=True, data=data, warnings=warnings, metadata=metadata)


class StageResult(BaseModel):
    """Result of a pipeline stage execution."""

    stage: PipelineState = Field(description="Pipeline state this stage ran in")
    status: StageStatus = Field(default=StageStatus.RUNNING, description="Execution status")
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = Field(default=None)
    duration_seconds: float = Field(default=0.0)
    error_message: str | None = Field(default=None)
    warnings: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def _finish(self, status: StageStatus) -> None:
        self.status = status
        self.completed_at = datetime.utcnow()
        self.duration_seconds = (self.completed_at - self.started_at).total_seconds()

    def mark_completed(self, **metadata: Any) -> None:
        """Mark stage as successfully completed."""
        self.metadata.update(metadata)
        self._finish(StageStatus.COMPLETED)

    def mark_failed(self, error: str) -> None:
        """Mark stage as failed."""
        self.error_message = error
        self._finish(StageStatus.FAILED)

    def mark_skipped(self, reason: str) -> None:
        """Mark stage as skipped."""
        self.error_message = reason
        self._finish(StageStatus.SKIPPED)
