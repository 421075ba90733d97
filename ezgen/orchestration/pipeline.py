"""
Generation pipeline orchestration for EZ-GEN.

Sequences every stage of one generation request and decides what is fatal and
what degrades. Only validation and materialization errors propagate; once a
workspace exists, every later failure is logged to the session and turned into
a `PartiallyDone` result.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from ..core.config import Config, get_config
from ..core.exceptions import BuildEnvironmentError, EZGenError, FatalBuildError, ValidationError
from ..core.logging import get_logger, request_context
from ..core.types import PipelineState, StageResult, StageStatus
from ..models.build import BuildResult, KeystoreInfo, VersionInfo
from ..models.generation import GenerationRequest, UploadedAsset, Workspace
from ..services.environment import BuildEnvironmentChecker
from ..services.guide import GuideWriter
from ..services.keystore import KeystoreManager
from ..services.materializer import TemplateMaterializer
from ..services.progress import ProgressReporter, SessionLogger
from ..services.release import ReleaseBuildDriver
from ..services.sync import SyncEngine
from ..services.validation import validate_generation_request
from ..services.web_build import WebBuildService
from ..storage import ArtifactStore, LocalArtifactStore
from ..tooling import LocalToolRunner, ToolRunner

logger = get_logger(__name__)


class PipelineResult(BaseModel):
    """Outcome of one generation request that produced a workspace."""

    app_id: str
    session_id: str
    state: PipelineState = Field(default=PipelineState.VALIDATING)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    workspace_root: Path
    build: BuildResult = Field(default_factory=BuildResult)
    keystore_ready: bool = False
    sync_method: str | None = None
    guide_path: Path | None = None

    stages: list[StageResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    diagnostics: list[str] = Field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def failed_stage(self) -> PipelineState | None:
        for stage in self.stages:
            if stage.status is StageStatus.FAILED:
                return stage.stage
        return None

    def enter(self, state: PipelineState) -> StageResult:
        """Advance to `state` and open its stage record."""
        self.state = state
        stage = StageResult(stage=state)
        self.stages.append(stage)
        return stage

    def finish(self, state: PipelineState) -> PipelineResult:
        self.state = state
        self.completed_at = datetime.utcnow()
        return self


class GenerationPipeline:
    """Runs generation requests end to end.

    Collaborators are injectable so the state machine can be driven with fake
    tool runners in tests.
    """

    def __init__(
        self,
        config: Config | None = None,
        runner: ToolRunner | None = None,
        reporter: ProgressReporter | None = None,
        store: ArtifactStore | None = None,
    ) -> None:
        self.config = config or get_config()
        self.runner = runner or LocalToolRunner()
        self.reporter = reporter or ProgressReporter(
            max_entries=self.config.progress.max_entries_per_session,
            max_sessions=self.config.progress.max_sessions,
        )
        self.store = store or LocalArtifactStore(self.config.storage.artifacts_dir)

        self.materializer = TemplateMaterializer(self.config)
        self.web = WebBuildService(self.runner, self.config)
        self.sync_engine = SyncEngine(self.runner, self.config)
        self.environment = BuildEnvironmentChecker(self.runner, self.config)
        self.keystores = KeystoreManager(self.runner, self.config)
        self.release = ReleaseBuildDriver(self.runner, self.config, self.store)
        self.guide = GuideWriter(target_sdk=self.config.pipeline.target_sdk)

    async def run(
        self,
        app_name: str,
        website_url: str,
        package_name: str,
        logo: UploadedAsset | None = None,
        splash: UploadedAsset | None = None,
        session_id: str | None = None,
    ) -> PipelineResult:
        """Generate one app.

        Raises:
            ValidationError: If any identity field is rejected; nothing is
                written to disk and uploaded assets are discarded
            MaterializationError: If the template could not be copied
        """
        session_id = session_id or str(uuid.uuid4())
        log = self.reporter.bind(session_id)

        with request_context(session_id=session_id):
            log.info(f"🚀 Starting app generation for: {app_name}")
            request = self.validate(app_name, website_url, package_name, logo, splash, log)

            workspace, warnings = await self.materializer.create_workspace(request, log)
            with request_context(app_id=workspace.app_id):
                result = PipelineResult(
                    app_id=workspace.app_id,
                    session_id=session_id,
                    workspace_root=workspace.root,
                    warnings=warnings,
                )
                validating = result.enter(PipelineState.VALIDATING)
                validating.mark_completed()
                materializing = result.enter(PipelineState.MATERIALIZING)
                materializing.warnings.extend(warnings)
                materializing.mark_completed(root=str(workspace.root))

                result = await self._build(request, workspace, result, log)
                logger.info(
                    "Generation finished",
                    state=result.state.value,
                    artifacts=result.build.file_names,
                )
                return result

    def validate(
        self,
        app_name: str,
        website_url: str,
        package_name: str,
        logo: UploadedAsset | None,
        splash: UploadedAsset | None,
        log: SessionLogger,
    ) -> GenerationRequest:
        """Validate the identity fields and build the immutable request."""
        log.info("🔍 Validating input data...")
        try:
            warnings = validate_generation_request(app_name, website_url, package_name)
        except ValidationError as e:
            log.error(f"❌ Validation failed: {e.message}")
            self._discard_uploads(logo, splash)
            raise

        for warning in warnings:
            log.warning(f"⚠️ {warning}")
        log.success("✅ Input validation passed")
        return GenerationRequest(
            app_name=app_name,
            website_url=website_url,
            package_name=package_name,
            logo=logo,
            splash=splash,
        )

    @staticmethod
    def _discard_uploads(*assets: UploadedAsset | None) -> None:
        for asset in assets:
            if asset is None:
                continue
            try:
                asset.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not discard upload", path=str(asset.path), error=str(e))

    async def _build(
        self,
        request: GenerationRequest,
        workspace: Workspace,
        result: PipelineResult,
        log: SessionLogger,
    ) -> PipelineResult:
        if not await self._prepare_web(request, workspace, result, log):
            log.warning("💡 You may need to run the build manually later")
            return result.finish(PipelineState.PARTIALLY_DONE)

        stage = result.enter(PipelineState.ENVIRONMENT_VALIDATING)
        log.info("🔍 Validating build environment...")
        report = await self.environment.check(workspace)
        for warning in report.warnings:
            log.warning(f"⚠️ {warning}")
        stage.warnings.extend(report.warnings)
        try:
            report.raise_for_errors()
        except BuildEnvironmentError as e:
            for error in e.errors:
                log.error(f"❌ {error}")
            log.warning("💡 Fix the build environment to produce Android builds")
            stage.mark_failed(str(e))
            result.diagnostics.extend(e.errors)
            return result.finish(PipelineState.PARTIALLY_DONE)
        stage.mark_completed()
        log.success("✅ Build environment validation passed")

        keystore, degraded = await self._build_native(request, workspace, result, log)

        stage = result.enter(PipelineState.GENERATING_GUIDE)
        log.info("📋 Creating Play Store submission guide...")
        try:
            result.guide_path = await self.guide.write(
                workspace, request, keystore, result.build, notes=result.diagnostics
            )
        except OSError as e:
            log.warning(f"⚠️ Could not write submission guide: {e}")
            stage.mark_failed(str(e))
            return result.finish(PipelineState.PARTIALLY_DONE)
        stage.mark_completed(path=str(result.guide_path))
        log.success("📋 Play Store submission guide created!")

        if degraded:
            log.warning("⚠️ App generated with a degraded build; see Play-Store-Guide.md")
            return result.finish(PipelineState.PARTIALLY_DONE)
        log.success("🎉 App generation completed!")
        return result.finish(PipelineState.DONE)

    async def _prepare_web(
        self,
        request: GenerationRequest,
        workspace: Workspace,
        result: PipelineResult,
        log: SessionLogger,
    ) -> bool:
        """Install, web build, assets, sync and smoke test. False on a fatal stage."""
        stage = result.enter(PipelineState.INSTALLING_DEPENDENCIES)
        try:
            await self.web.install_dependencies(workspace, log)
            stage.mark_completed()

            stage = result.enter(PipelineState.BUILDING_WEB)
            await self.web.build_web(workspace, log)
            stage.mark_completed()

            stage = result.enter(PipelineState.GENERATING_ASSETS)
            assets = await self.web.generate_assets(workspace, log)
            stage.warnings.extend(assets.warnings)
            result.warnings.extend(assets.warnings)
            stage.mark_completed()

            stage = result.enter(PipelineState.SYNCING)
            method = await self.sync_engine.sync(workspace, log)
            result.sync_method = method.value
            stage.mark_completed(method=method.value)
        except (EZGenError, OSError) as e:
            message = getattr(e, "message", str(e))
            stage.mark_failed(message)
            result.diagnostics.append(f"{stage.stage.value}: {message}")
            log.warning(f"⚠️ Build/sync failed, but app was generated: {message}")
            return False

        stage = result.enter(PipelineState.SMOKE_TESTING)
        if not self.config.pipeline.smoke_test_enabled:
            stage.mark_skipped("Smoke test disabled")
            return True
        smoke = await self.web.smoke_test(workspace, log)
        stage.warnings.extend(smoke.warnings)
        result.warnings.extend(smoke.warnings)
        stage.mark_completed(server_started=bool(smoke.data))
        return True

    async def _build_native(
        self,
        request: GenerationRequest,
        workspace: Workspace,
        result: PipelineResult,
        log: SessionLogger,
    ) -> tuple[KeystoreInfo | None, bool]:
        """Keystore, release configuration and Gradle builds.

        Returns:
            The signing credentials (if any) and whether the build degraded
        """
        keystore: KeystoreInfo | None = None
        version: VersionInfo | None = None
        stage = result.enter(PipelineState.GENERATING_KEYSTORE)
        try:
            keystore = await self.keystores.ensure(workspace, request.package_name, request.app_name, log)
            result.keystore_ready = True
            stage.mark_completed()

            stage = result.enter(PipelineState.CONFIGURING_RELEASE)
            self.release.prepare_wrapper(workspace, log)
            version = self.release.configure(workspace, keystore, log)
            stage.mark_completed(version_code=version.version_code)

            stage = result.enter(PipelineState.BUILDING_ARTIFACTS)
            build = await self.release.build(workspace, request, log)
            build.version = version
            result.build = build
            stage.warnings.extend(build.warnings)
            stage.mark_completed(artifacts=build.file_names)
            log.success("🎉 Build process completed!")
            return keystore, False
        except (EZGenError, OSError) as e:
            message = getattr(e, "message", str(e))
            stage.mark_failed(message)
            result.diagnostics.append(f"{stage.stage.value}: {message}")
            if isinstance(e, FatalBuildError):
                result.diagnostics.extend(e.key_lines)
            log.error(f"❌ {message}")

        log.warning("⚠️ Release build unavailable, falling back to a debug-only build")
        if stage.stage is not PipelineState.BUILDING_ARTIFACTS:
            stage = result.enter(PipelineState.BUILDING_ARTIFACTS)
        try:
            self.release.prepare_wrapper(workspace, log)
            build = await self.release.build_debug_only(workspace, request, log)
        except (EZGenError, OSError) as e:
            log.warning(f"⚠️ Debug build failed: {e}")
            build = BuildResult(warnings=[str(e)])
        build.version = version
        result.build = build
        stage.warnings.extend(build.warnings)
        if stage.status is StageStatus.RUNNING:
            stage.mark_completed(artifacts=build.file_names)
        return keystore, True
