"""
Local filesystem artifact store.

Layout: `<base>/<app_id>/<file_name>` with a `<file_name>.meta.json` sidecar
recording kind, hash and provenance.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles

from ..core.logging import get_logger
from ..models.build import ArtifactKind, ArtifactRecord
from .interface import ArtifactStore

logger = get_logger(__name__)

_CHUNK_SIZE = 1024 * 1024


class LocalArtifactStore(ArtifactStore):
    """Local filesystem artifact store."""

    def __init__(self, base_path: Path) -> None:
        """Initialize local storage.

        Args:
            base_path: Base directory for all stored artifacts
        """
        self.base_path = base_path.resolve()
        self._metadata_suffix = ".meta.json"

    def _app_dir(self, app_id: str) -> Path:
        """Directory of one workspace's artifacts.

        The identifier comes from request paths, so it is normalized and
        confined to the base directory.
        """
        clean_id = app_id.strip("/\\").replace("..", "").replace(":", "")
        clean_id = clean_id.replace("/", "_").replace("\\", "_") or "_"
        full_path = (self.base_path / clean_id).resolve()
        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            full_path = self.base_path / "_"
        return full_path

    async def _copy_with_hash(self, source: Path, target: Path) -> tuple[int, str]:
        sha256 = hashlib.sha256()
        size = 0
        async with aiofiles.open(source, "rb") as src, aiofiles.open(target, "wb") as dst:
            while chunk := await src.read(_CHUNK_SIZE):
                sha256.update(chunk)
                size += len(chunk)
                await dst.write(chunk)
        return size, sha256.hexdigest()

    async def store_artifact(
        self,
        app_id: str,
        kind: ArtifactKind,
        source: Path,
        file_name: str,
    ) -> ArtifactRecord:
        app_dir = self._app_dir(app_id)
        app_dir.mkdir(parents=True, exist_ok=True)
        target = app_dir / Path(file_name).name

        size, digest = await self._copy_with_hash(source, target)
        record = ArtifactRecord(kind=kind, file_name=target.name, path=target, size_bytes=size, sha256=digest)

        metadata: dict[str, Any] = record.model_dump(mode="json")
        metadata["_stored_at"] = datetime.utcnow().isoformat()
        metadata["_app_id"] = app_id
        metadata["_source"] = str(source)
        meta_path = target.with_name(target.name + self._metadata_suffix)
        async with aiofiles.open(meta_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(metadata, indent=2, default=str))

        logger.info("Artifact stored", app_id=app_id, kind=kind.value, file=target.name, size=size)
        return record

    async def list_artifacts(self, app_id: str) -> list[ArtifactRecord]:
        app_dir = self._app_dir(app_id)
        if not app_dir.is_dir():
            return []

        records = []
        for meta_path in sorted(app_dir.glob(f"*{self._metadata_suffix}")):
            async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
                metadata = json.loads(await f.read())
            record = ArtifactRecord.model_validate(
                {k: v for k, v in metadata.items() if not k.startswith("_")}
            )
            if record.path.exists():
                records.append(record)
        return records

    async def find_artifact(self, app_id: str, kind: ArtifactKind) -> ArtifactRecord | None:
        for record in await self.list_artifacts(app_id):
            if record.kind == kind:
                return record
        return None
