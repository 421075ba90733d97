"""
Template Materializer Service.

Copies the WebView template into a fresh workspace and rewrites every file that
embeds the app's identity. The copy is the only fatal step; each patch step
that fails is reported as a warning and skipped.
"""

from __future__ import annotations

import asyncio
import shutil
import uuid
from pathlib import Path
from typing import Callable

from ...core.config import Config
from ...core.exceptions import MaterializationError
from ...core.logging import get_logger
from ...models.generation import GenerationRequest, UploadedAsset, Workspace
from ..progress import SessionLogger
from .patches import (
    FileRole,
    PatchContext,
    build_patch_table,
    insert_cleartext_domain,
    rewrite_java_source,
)

logger = get_logger(__name__)

PatchStep = Callable[[Workspace, GenerationRequest, SessionLogger], None]


class TemplateMaterializer:
    """Produces patched, self-contained workspaces from the template tree."""

    def __init__(self, config: Config) -> None:
        """Initialize the materializer.

        Args:
            config: Application configuration (template and workspace locations,
                toolchain paths, template placeholders)
        """
        self.config = config
        self.template_dir = config.storage.template_dir
        self.generated_apps_dir = config.storage.generated_apps_dir
        self.patch_table: list[FileRole] = build_patch_table(config.template)

    async def create_workspace(
        self,
        request: GenerationRequest,
        log: SessionLogger,
        app_id: str | None = None,
    ) -> tuple[Workspace, list[str]]:
        """Copy the template into a new workspace and patch it for `request`.

        Returns:
            The workspace and the warnings of skipped patch steps

        Raises:
            MaterializationError: If the template could not be copied
        """
        app_id = app_id or str(uuid.uuid4())
        root = (self.generated_apps_dir / app_id).absolute()

        if not self.template_dir.is_dir():
            raise MaterializationError(
                message=f"Template directory not found: {self.template_dir}",
                workspace=app_id,
            )

        log.info("📁 Creating app directory and copying template...")
        try:
            self.generated_apps_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copytree, self.template_dir, root, symlinks=True)
        except (OSError, shutil.Error) as e:
            raise MaterializationError(
                message="Could not copy template",
                workspace=app_id,
                context={"template": str(self.template_dir), "target": str(root)},
                cause=e,
            ) from e

        workspace = Workspace(app_id=app_id, root=root)
        logger.info("Workspace created", app_id=app_id, root=str(root))
        warnings = self.apply_patches(workspace, request, log)
        log.success("✅ App configuration updated")
        return workspace, warnings

    def apply_patches(
        self,
        workspace: Workspace,
        request: GenerationRequest,
        log: SessionLogger,
    ) -> list[str]:
        """Run every patch step against a workspace, collecting warnings."""
        steps: list[tuple[str, PatchStep]] = [
            ("gradlew line endings", self.normalize_gradlew),
            ("Android config paths", self.write_environment_paths),
            ("README", self.copy_readme),
            ("app identity files", self.patch_identity_files),
            ("Java package structure", self.relocate_java_sources),
            ("network security config", self.allow_cleartext_domain),
            ("branding assets", self.copy_branding_assets),
        ]

        warnings: list[str] = []
        for label, step in steps:
            try:
                step(workspace, request, log)
            except (OSError, ValueError) as e:
                message = f"⚠️ Warning: Could not update {label}: {e}"
                log.warning(message)
                warnings.append(message)
        return warnings

    def normalize_gradlew(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        gradlew = workspace.android_dir / "gradlew"
        if not gradlew.is_file():
            return
        log.info("🔧 Fixing gradlew line endings...")
        content = gradlew.read_bytes()
        gradlew.write_bytes(content.replace(b"\r\n", b"\n").replace(b"\r", b"\n"))
        log.success("✅ Gradlew line endings fixed")

    def write_environment_paths(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        sdk_root = self.config.tools.android_sdk_root
        if workspace.local_properties.is_file():
            log.info("🔧 Updating Android SDK paths for environment...")
            workspace.local_properties.write_text(
                "## This file is auto-generated for cross-platform compatibility\n"
                "# Location of the SDK. This is only used by Gradle.\n"
                f"sdk.dir={sdk_root}\n",
                encoding="utf-8",
            )
            log.success(f"✅ Android SDK path set to: {sdk_root}")

        java_home = self.config.tools.java_home
        workspace.gradle_config_properties.parent.mkdir(parents=True, exist_ok=True)
        workspace.gradle_config_properties.write_text(
            f"# Auto-generated for cross-platform compatibility\njava.home={java_home}\n",
            encoding="utf-8",
        )
        log.success(f"✅ Java home set to: {java_home}")

    def copy_readme(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        source = workspace.root / "GENERATED_APP_README.md"
        if source.is_file():
            shutil.copyfile(source, workspace.root / "README.md")

    def patch_identity_files(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        ctx = PatchContext.from_request(request)
        for role in self.patch_table:
            present, missing = role.locate(workspace.root)
            for path in missing:
                logger.debug("Patch target absent", role=role.name, path=str(path))
            for path in present:
                try:
                    original = path.read_text(encoding="utf-8")
                    patched = role.render(original, ctx)
                    if patched != original:
                        path.write_text(patched, encoding="utf-8")
                except (OSError, ValueError) as e:
                    log.warning(f"⚠️ Warning: Could not update {role.name} ({path.name}): {e}")
            if present:
                log.info(f"⚙️ Updated {role.name}")

    def relocate_java_sources(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        source_package = self.config.template.source_package
        old_dir = workspace.java_package_dir(source_package)
        new_dir = workspace.java_package_dir(request.package_name)
        new_dir.mkdir(parents=True, exist_ok=True)

        for name in self.config.template.java_sources:
            old_path = old_dir / name
            if not old_path.is_file():
                log.warning(f"⚠️ Template source not found: {name}")
                continue
            content = rewrite_java_source(old_path.read_text(encoding="utf-8"), request.package_name)
            (new_dir / name).write_text(content, encoding="utf-8")
            if old_dir != new_dir:
                old_path.unlink()

        if old_dir != new_dir and old_dir.is_dir():
            if new_dir.is_relative_to(old_dir):
                self._prune_empty(old_dir, workspace.java_root)
            else:
                shutil.rmtree(old_dir)
                self._prune_empty(old_dir.parent, workspace.java_root)
        log.success(f"📱 Java sources moved to package {request.package_name}")

    @staticmethod
    def _prune_empty(directory: Path, stop: Path) -> None:
        """Remove empty directories from `directory` up to (excluding) `stop`."""
        current = directory
        while current != stop and current.is_relative_to(stop):
            if not current.is_dir() or any(current.iterdir()):
                break
            current.rmdir()
            current = current.parent

    def allow_cleartext_domain(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        path = workspace.network_security_config
        if not path.is_file():
            log.info("Network security config not found, will be created during sync")
            return
        updated = insert_cleartext_domain(path.read_text(encoding="utf-8"), request.hostname)
        if updated is None:
            logger.debug("Domain already allowed", hostname=request.hostname)
            return
        path.write_text(updated, encoding="utf-8")
        log.info(f"🔒 Added {request.hostname} to network security config")

    def copy_branding_assets(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> None:
        uploads: list[tuple[UploadedAsset | None, str]] = [
            (request.logo, "icon.png"),
            (request.splash, "splash.png"),
        ]
        for asset, target_name in uploads:
            if asset is None:
                continue
            workspace.resources_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(asset.path, workspace.resources_dir / target_name)
            log.info(f"🎨 Copied {asset.filename or asset.path.name} to resources/{target_name}")
            try:
                asset.path.unlink()
            except OSError as e:
                logger.warning("Failed to delete uploaded file", path=str(asset.path), error=str(e))
