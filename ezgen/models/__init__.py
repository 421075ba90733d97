"""Data models for EZ-GEN."""

from .build import ArtifactKind, ArtifactRecord, BuildResult, KeystoreInfo, VersionInfo
from .generation import GenerationRequest, UploadedAsset, Workspace, slugify
from .session import LogEntry, LogLevel

__all__ = [
    # Build
    "ArtifactKind",
    "ArtifactRecord",
    "BuildResult",
    "KeystoreInfo",
    "VersionInfo",
    # Generation
    "GenerationRequest",
    "UploadedAsset",
    "Workspace",
    "slugify",
    # Session
    "LogEntry",
    "LogLevel",
]
