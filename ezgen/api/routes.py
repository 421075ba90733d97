"""
HTTP route handlers for EZ-GEN.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import uuid
from pathlib import Path
from typing import Annotated, Any, AsyncIterator

from litestar import Response, get, post
from litestar.background_tasks import BackgroundTask
from litestar.datastructures import State, UploadFile
from litestar.enums import RequestEncodingType
from litestar.params import Body
from litestar.response import File, Stream
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from ..core.exceptions import ValidationError
from ..core.logging import get_logger
from ..models.build import ArtifactKind
from ..models.generation import UploadedAsset, Workspace
from ..models.session import LogEntry
from ..orchestration.pipeline import GenerationPipeline
from ..services.release import locate_build_output
from .uploads import save_upload

logger = get_logger(__name__)

_APP_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")


def _pipeline(state: State) -> GenerationPipeline:
    return state.pipeline


def _workspace(state: State, app_id: str) -> Workspace | None:
    if not _APP_ID_PATTERN.match(app_id):
        return None
    root = _pipeline(state).config.storage.generated_apps_dir / app_id
    return Workspace(app_id=app_id, root=root) if root.is_dir() else None


def _not_found(message: str) -> Response[dict[str, Any]]:
    return Response({"success": False, "message": message}, status_code=HTTP_404_NOT_FOUND)


def download_urls(app_id: str) -> dict[str, str]:
    return {
        "downloadUrl": f"/api/download/{app_id}",
        "apkDownloadUrl": f"/api/download-apk/{app_id}",
        "releaseApkDownloadUrl": f"/api/download-release-apk/{app_id}",
        "aabDownloadUrl": f"/api/download-aab/{app_id}",
        "guideUrl": f"/api/download-guide/{app_id}",
    }


@get("/api/health")
async def health(state: State) -> dict[str, Any]:
    return {
        "status": "OK",
        "message": "EZ-GEN App Generator is running!",
        "activeSessions": _pipeline(state).reporter.session_count,
    }


@post("/api/generate-app", status_code=HTTP_200_OK)
async def generate_app(
    data: Annotated[dict[str, Any], Body(media_type=RequestEncodingType.MULTI_PART)],
    state: State,
) -> Response[dict[str, Any]]:
    """Run the whole pipeline for one multipart request and report the result."""
    pipeline = _pipeline(state)
    session_id = data.get("sessionId") or str(uuid.uuid4())
    uploads_dir = pipeline.config.storage.uploads_dir

    try:
        assets: dict[str, UploadedAsset | None] = {}
        for field in ("logo", "splash"):
            upload = data.get(field)
            assets[field] = await save_upload(upload, uploads_dir) if isinstance(upload, UploadFile) else None

        result = await pipeline.run(
            app_name=data.get("appName", ""),
            website_url=data.get("websiteUrl", ""),
            package_name=data.get("packageName", ""),
            logo=assets["logo"],
            splash=assets["splash"],
            session_id=session_id,
        )
    except ValidationError as e:
        return Response(
            {
                "success": False,
                "message": e.message,
                "error": e.context.get("error", "Invalid input"),
                "sessionId": session_id,
            },
            status_code=HTTP_400_BAD_REQUEST,
        )
    except Exception as e:
        logger.exception("Error generating app", session_id=session_id)
        return Response(
            {"success": False, "message": "Failed to generate app", "error": str(e)},
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        )

    message = (
        "Play Store-ready app generated successfully!"
        if result.completed
        else "App generated; some build stages did not complete"
    )
    return Response(
        {
            "success": True,
            "appId": result.app_id,
            "sessionId": session_id,
            "message": message,
            "state": result.state.value,
            "artifacts": result.build.file_names,
            "warnings": result.warnings,
            "diagnostics": result.diagnostics,
            **download_urls(result.app_id),
        }
    )


def _remove(path: Path) -> None:
    path.unlink(missing_ok=True)


@get("/api/download/{app_id:str}")
async def download_workspace(app_id: str, state: State) -> Response:
    """Zip the whole workspace."""
    workspace = _workspace(state, app_id)
    if workspace is None:
        return _not_found("App not found")

    base_name = workspace.root.parent / f"{app_id}-{uuid.uuid4().hex[:8]}"
    archive = await asyncio.to_thread(
        shutil.make_archive, str(base_name), "zip", root_dir=str(workspace.root)
    )
    return File(
        path=Path(archive),
        filename=f"generated-app-{app_id}.zip",
        media_type="application/zip",
        background=BackgroundTask(_remove, Path(archive)),
    )


async def _artifact_response(state: State, app_id: str, kind: ArtifactKind, label: str) -> Response:
    if not _APP_ID_PATTERN.match(app_id):
        return _not_found(f"{label} not found")

    record = await _pipeline(state).store.find_artifact(app_id, kind)
    if record is not None:
        return File(path=record.path, filename=record.file_name, media_type=kind.media_type)

    workspace = _workspace(state, app_id)
    source = locate_build_output(workspace, kind) if workspace is not None else None
    if source is not None:
        return File(path=source, filename=source.name, media_type=kind.media_type)
    return _not_found(f"{label} not found")


@get("/api/download-apk/{app_id:str}")
async def download_apk(app_id: str, state: State) -> Response:
    return await _artifact_response(state, app_id, ArtifactKind.DEBUG_APK, "APK")


@get("/api/download-release-apk/{app_id:str}")
async def download_release_apk(app_id: str, state: State) -> Response:
    return await _artifact_response(state, app_id, ArtifactKind.RELEASE_APK, "Release APK")


@get("/api/download-aab/{app_id:str}")
async def download_aab(app_id: str, state: State) -> Response:
    return await _artifact_response(state, app_id, ArtifactKind.RELEASE_AAB, "AAB file")


@get("/api/download-guide/{app_id:str}")
async def download_guide(app_id: str, state: State) -> Response:
    workspace = _workspace(state, app_id)
    if workspace is None or not workspace.guide_path.is_file():
        return _not_found("Play Store guide not found")
    return File(path=workspace.guide_path, filename="Play-Store-Guide.md", media_type="text/markdown")


def _sse(entry: LogEntry) -> str:
    return f"event: log\nid: {entry.id}\ndata: {entry.model_dump_json()}\n\n"


@get("/api/sessions/{session_id:str}/logs")
async def stream_session_logs(session_id: str, state: State, follow: bool = True) -> Response:
    """Server-Sent Events: buffered session log entries, then live ones.

    With `follow=false` the stream closes after the buffered entries, and an
    unknown session is a 404. A followed stream may open before its session
    logs anything.
    """
    reporter = _pipeline(state).reporter
    if not follow and not reporter.has_session(session_id):
        return _not_found("Session not found")

    async def generator() -> AsyncIterator[str]:
        if not follow:
            for entry in reporter.get_logs(session_id):
                yield _sse(entry)
            return
        entries = reporter.stream(session_id)
        try:
            async for entry in entries:
                yield _sse(entry)
        finally:
            await entries.aclose()
            logger.debug(
                "Log stream closed",
                session_id=session_id,
                remaining_subscribers=reporter.subscriber_count(session_id),
            )

    return Stream(
        generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


route_handlers = [
    health,
    generate_app,
    download_workspace,
    download_apk,
    download_release_apk,
    download_aab,
    download_guide,
    stream_session_logs,
]
