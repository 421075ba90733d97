"""
Upload handling: persisting multipart files and pruning stale ones.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import time
from pathlib import Path

import aiofiles
from litestar.datastructures import UploadFile

from ..core.logging import get_logger
from ..models.generation import UploadedAsset

logger = get_logger(__name__)


def _safe_name(filename: str) -> str:
    name = Path(filename or "upload").name
    return re.sub(r"[^A-Za-z0-9._-]", "_", name) or "upload"


async def save_upload(upload: UploadFile, uploads_dir: Path) -> UploadedAsset:
    """Write an uploaded file to the uploads directory."""
    uploads_dir.mkdir(parents=True, exist_ok=True)
    target = uploads_dir / f"{int(time.time() * 1000)}-{_safe_name(upload.filename)}"
    content = await upload.read()
    async with aiofiles.open(target, "wb") as f:
        await f.write(content)
    return UploadedAsset(path=target, filename=upload.filename or target.name)


def cleanup_old_uploads(uploads_dir: Path, max_age_hours: float = 24) -> list[str]:
    """Delete uploads older than `max_age_hours`.

    Returns:
        Names of the removed entries
    """
    if not uploads_dir.is_dir():
        return []

    cutoff = time.time() - max_age_hours * 3600
    removed = []
    for entry in uploads_dir.iterdir():
        try:
            if entry.stat().st_mtime >= cutoff:
                continue
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            logger.warning("Failed to clean up upload", path=str(entry), error=str(e))
            continue
        removed.append(entry.name)
        logger.info("Cleaned up old upload", name=entry.name)
    return removed


async def prune_uploads_periodically(uploads_dir: Path, max_age_hours: float, interval_seconds: float) -> None:
    """Prune stale uploads now and then every `interval_seconds`, until cancelled."""
    while True:
        await asyncio.to_thread(cleanup_old_uploads, uploads_dir, max_age_hours)
        await asyncio.sleep(interval_seconds)
