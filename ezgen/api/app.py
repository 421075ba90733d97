"""
Litestar application factory for EZ-GEN.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from litestar import Litestar
from litestar.config.cors import CORSConfig
from litestar.datastructures import State

from ..core.config import Config, get_config
from ..core.logging import get_logger
from ..orchestration.pipeline import GenerationPipeline
from .routes import route_handlers
from .uploads import prune_uploads_periodically

logger = get_logger(__name__)


@asynccontextmanager
async def upload_pruner(app: Litestar) -> AsyncIterator[None]:
    """Prune stale uploads at startup and then on a fixed interval."""
    config: Config = app.state.config
    task = asyncio.create_task(
        prune_uploads_periodically(
            config.storage.uploads_dir,
            config.server.upload_max_age_hours,
            config.server.upload_cleanup_interval_seconds,
        )
    )
    try:
        yield
    finally:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


def create_app(config: Config | None = None, pipeline: GenerationPipeline | None = None) -> Litestar:
    """Build the HTTP application.

    Args:
        config: Application configuration, defaults to the environment's
        pipeline: Pipeline instance shared by all requests

    Returns:
        Configured Litestar app
    """
    config = config or get_config()
    pipeline = pipeline or GenerationPipeline(config)

    for directory in (
        config.storage.generated_apps_dir,
        config.storage.artifacts_dir,
        config.storage.uploads_dir,
    ):
        directory.mkdir(parents=True, exist_ok=True)

    logger.info("Creating app", host=config.server.host, port=config.server.port)
    return Litestar(
        route_handlers=route_handlers,
        cors_config=CORSConfig(allow_origins=config.server.cors_origins),
        state=State({"config": config, "pipeline": pipeline}),
        lifespan=[upload_pruner],
    )
