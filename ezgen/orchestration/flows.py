"""
Prefect flow wrapping the generation pipeline for CLI batch runs.
"""

from __future__ import annotations

from pathlib import Path

from prefect import flow, get_run_logger, task

from .. import __version__
from ..core.config import get_config
from ..core.logging import setup_logging
from ..models.generation import UploadedAsset
from .pipeline import GenerationPipeline, PipelineResult


def _asset(path: Path | None) -> UploadedAsset | None:
    return UploadedAsset(path=path, filename=path.name) if path else None


@task(
    name="generate_app",
    description="Materialize a workspace and drive its builds",
    retries=0,
)
async def generate_app_task(
    app_name: str,
    website_url: str,
    package_name: str,
    logo: Path | None = None,
    splash: Path | None = None,
    session_id: str | None = None,
) -> PipelineResult:
    """Run one generation request through the pipeline."""
    pipeline = GenerationPipeline(get_config())
    return await pipeline.run(
        app_name=app_name,
        website_url=website_url,
        package_name=package_name,
        logo=_asset(logo),
        splash=_asset(splash),
        session_id=session_id,
    )


@flow(
    name="ez-gen",
    description="Wrap a website in an Ionic WebView shell and build its Android artifacts",
    version=__version__,
    retries=0,
)
async def generate_app_flow(
    app_name: str,
    website_url: str,
    package_name: str,
    logo: Path | None = None,
    splash: Path | None = None,
    session_id: str | None = None,
) -> PipelineResult:
    """Generate one app.

    Args:
        app_name: Display name of the app
        website_url: Website loaded by the shell
        package_name: Reverse-domain application identifier
        logo: Optional launcher icon image
        splash: Optional splash screen image
        session_id: Session identifier for progress logs

    Returns:
        PipelineResult describing the workspace and produced artifacts
    """
    setup_logging(get_config())
    logger = get_run_logger()
    logger.info(f"Generating {app_name} ({package_name}) for {website_url}")

    result = await generate_app_task(
        app_name=app_name,
        website_url=website_url,
        package_name=package_name,
        logo=logo,
        splash=splash,
        session_id=session_id,
    )

    logger.info(f"Workspace {result.app_id} finished in state {result.state.value}")
    for name in result.build.file_names:
        logger.info(f"Artifact: {name}")
    for diagnostic in result.diagnostics:
        logger.warning(diagnostic)
    return result
