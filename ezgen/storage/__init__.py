"""Artifact storage for EZ-GEN."""

from .interface import ArtifactStore
from .local import LocalArtifactStore

__all__ = ["ArtifactStore", "LocalArtifactStore"]
