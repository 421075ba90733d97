"""
Artifact store interface.

Built APKs and bundles are copied out of the workspace build tree into an
artifact store keyed by workspace id, so two requests that share an app name
never overwrite each other's outputs.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from pathlib import Path

from ..models.build import ArtifactKind, ArtifactRecord


class ArtifactStore(ABC):
    """Abstract artifact store interface."""

    @abstractmethod
    async def store_artifact(
        self,
        app_id: str,
        kind: ArtifactKind,
        source: Path,
        file_name: str,
    ) -> ArtifactRecord:
        """Copy a build output into the store.

        Args:
            app_id: Workspace identifier the artifact belongs to
            kind: Artifact kind
            source: Build output to copy
            file_name: Stable file name to store it under

        Returns:
            Record describing the stored artifact
        """
        ...

    @abstractmethod
    async def find_artifact(self, app_id: str, kind: ArtifactKind) -> ArtifactRecord | None:
        """Look up the stored artifact of a kind for a workspace.

        Args:
            app_id: Workspace identifier.
            kind: Artifact kind to look for.

        Returns:
            The record, or None if nothing of that kind was stored.
        """
        ...

    @abstractmethod
    async def list_artifacts(self, app_id: str) -> list[ArtifactRecord]:
        """List every artifact stored for a workspace."""
        ...

    @staticmethod
    def compute_hash(data: bytes) -> str:
        """Compute SHA-256 hash of data."""
        return hashlib.sha256(data).hexdigest()
