"""
Release Build Driver Service.

Configures the Gradle build script for signing and versioning, then drives
clean, release APK, release bundle and debug APK builds through the Gradle
wrapper. Only the release APK assembly is fatal; every artifact that was
produced is copied into the artifact store under its stable name.
"""

from __future__ import annotations

import os
import re
import stat
import sys
import time
from pathlib import Path

from ...core.config import Config
from ...core.exceptions import FatalBuildError
from ...core.logging import get_logger
from ...core.types import PipelineState
from ...models.build import ArtifactKind, ArtifactRecord, BuildResult, KeystoreInfo, VersionInfo
from ...models.generation import GenerationRequest, Workspace
from ...storage import ArtifactStore
from ...tooling import ToolResult, ToolRunner
from ..progress import SessionLogger

logger = get_logger(__name__)

RELEASE_SIGNING_LINE = "signingConfig signingConfigs.release"

_RELEASE_BUILD_TYPE = re.compile(r"release\s*\{\s*minifyEnabled\s+false[^}]*\}")
_RELEASE_BUILD_TYPE_OPENING = re.compile(r"(buildTypes\s*\{\s*release\s*\{)")


def extract_key_lines(output: str, limit: int = 10) -> list[str]:
    """Lines of Gradle output that explain a failed build."""
    key_lines = [
        line.strip()
        for line in output.splitlines()
        if "FAILURE:" in line
        or "ERROR" in line
        or "Exception" in line
        or ("Task :" in line and "FAILED" in line)
    ]
    return key_lines[-limit:]


def locate_build_output(workspace: Workspace, kind: ArtifactKind) -> Path | None:
    """Find an artifact inside the workspace's Gradle output tree."""
    directory, extension = {
        ArtifactKind.RELEASE_APK: (workspace.release_apk_dir, ".apk"),
        ArtifactKind.DEBUG_APK: (workspace.debug_apk_dir, ".apk"),
        ArtifactKind.RELEASE_AAB: (workspace.release_aab_dir, ".aab"),
    }[kind]
    if not directory.is_dir():
        return None
    candidates = sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix == extension),
        key=lambda p: ("unsigned" in p.name, p.name),
    )
    return candidates[0] if candidates else None


class ReleaseBuildDriver:
    """Drives Gradle builds of a configured workspace."""

    def __init__(self, runner: ToolRunner, config: Config, store: ArtifactStore) -> None:
        """Initialize the driver.

        Args:
            runner: Tool runner for the Gradle wrapper
            config: Application configuration
            store: Artifact store receiving the produced outputs
        """
        self.runner = runner
        self.config = config
        self.store = store

    def configure(self, workspace: Workspace, keystore: KeystoreInfo, log: SessionLogger) -> VersionInfo:
        """Write signing and version metadata into `app/build.gradle`.

        Raises:
            FatalBuildError: If the build script is missing or unwritable
        """
        log.info("⚙️ Configuring release build settings...")
        path = workspace.build_gradle
        stage = PipelineState.CONFIGURING_RELEASE.value
        if not path.is_file():
            raise FatalBuildError(message="build.gradle not found", stage=stage)

        pipeline = self.config.pipeline
        version = VersionInfo(version_code=int(time.time()), version_name=pipeline.version_name)

        try:
            script = path.read_text(encoding="utf-8")
            script = re.sub(r"versionCode\s+\d+", f"versionCode {version.version_code}", script, count=1)
            script = re.sub(
                r"versionName\s+[\"'][^\"']*[\"']",
                f'versionName "{version.version_name}"',
                script,
                count=1,
            )
            script = re.sub(
                r"targetSdkVersion\s+rootProject\.ext\.targetSdkVersion",
                f"targetSdkVersion {pipeline.target_sdk}",
                script,
                count=1,
            )
            script = re.sub(
                r"minSdkVersion\s+rootProject\.ext\.minSdkVersion",
                f"minSdkVersion {pipeline.min_sdk}",
                script,
                count=1,
            )
            script = self._add_signing_config(script, keystore)
            path.write_text(script, encoding="utf-8")
        except OSError as e:
            raise FatalBuildError(message="Could not update build.gradle", stage=stage, cause=e) from e

        log.success("✅ Release build configuration updated!")
        return version

    @staticmethod
    def _add_signing_config(script: str, keystore: KeystoreInfo) -> str:
        if "signingConfigs" not in script:
            block = (
                "signingConfigs {\n"
                "        release {\n"
                f"            storeFile file('{keystore.keystore_file}')\n"
                f"            storePassword '{keystore.keystore_password}'\n"
                f"            keyAlias '{keystore.key_alias}'\n"
                f"            keyPassword '{keystore.key_password}'\n"
                "        }\n"
                "    }\n"
                "    "
            )
            script = re.sub(r"(buildTypes\s*\{)", lambda m: block + m.group(1), script, count=1)

        if RELEASE_SIGNING_LINE in script:
            return script

        release_type = (
            "release {\n"
            f"            {RELEASE_SIGNING_LINE}\n"
            "            minifyEnabled true\n"
            "            proguardFiles getDefaultProguardFile('proguard-android-optimize.txt'), 'proguard-rules.pro'\n"
            "        }"
        )
        patched = _RELEASE_BUILD_TYPE.sub(lambda _: release_type, script, count=1)
        if patched == script:
            patched = _RELEASE_BUILD_TYPE_OPENING.sub(
                lambda m: f"{m.group(1)}\n            {RELEASE_SIGNING_LINE}",
                script,
                count=1,
            )
        return patched

    def prepare_wrapper(self, workspace: Workspace, log: SessionLogger) -> None:
        """Strip carriage returns from gradlew and make it executable."""
        if sys.platform == "win32":
            return
        gradlew = workspace.gradlew
        try:
            gradlew.write_bytes(gradlew.read_bytes().replace(b"\r\n", b"\n").replace(b"\r", b"\n"))
            gradlew.chmod(gradlew.stat().st_mode | stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
            log.info("🔧 Made gradlew executable and fixed line endings")
        except OSError as e:
            log.warning(f"⚠️ Could not make gradlew executable: {e}")

    def gradle_env(self) -> dict[str, str]:
        """Process environment with the Android SDK variables filled in."""
        env = dict(os.environ)
        fallback = str(self.config.tools.android_sdk_root)
        env["ANDROID_HOME"] = env.get("ANDROID_HOME") or env.get("ANDROID_SDK_ROOT") or fallback
        env["ANDROID_SDK_ROOT"] = env.get("ANDROID_SDK_ROOT") or env.get("ANDROID_HOME") or fallback
        return env

    async def _gradle(self, workspace: Workspace, *args: str) -> ToolResult:
        return await self.runner.run(
            workspace.gradlew_command,
            list(args),
            cwd=workspace.android_dir,
            env=self.gradle_env(),
        )

    async def _collect(
        self,
        workspace: Workspace,
        request: GenerationRequest,
        kind: ArtifactKind,
        log: SessionLogger,
    ) -> ArtifactRecord | None:
        source = locate_build_output(workspace, kind)
        if source is None:
            log.warning(f"⚠️ Build succeeded but no {kind.value.replace('_', ' ')} output was found")
            return None
        record = await self.store.store_artifact(
            workspace.app_id, kind, source, kind.file_name(request.slug)
        )
        log.success(f"📦 {record.file_name} ready")
        return record

    async def build(self, workspace: Workspace, request: GenerationRequest, log: SessionLogger) -> BuildResult:
        """Run clean, release APK, release bundle and debug APK builds.

        Raises:
            FatalBuildError: If the release APK could not be assembled
        """
        result = BuildResult()

        log.info("🧹 Cleaning previous builds...")
        clean = await self._gradle(workspace, "clean")
        if clean.ok:
            log.success("✅ Clean completed successfully")
        else:
            warning = "⚠️ Clean failed, but continuing with build..."
            log.warning(warning)
            result.warnings.append(warning)

        log.info("📱 Building release APK...")
        release = await self._gradle(workspace, "assembleRelease", "--stacktrace", "--info")
        if not release.ok:
            key_lines = extract_key_lines(release.output)
            for line in key_lines:
                log.error(f"   {line}")
            logger.error(
                "Release build failed",
                app_id=workspace.app_id,
                exit_code=release.exit_code,
                output_tail=release.output[-2000:],
            )
            raise FatalBuildError(
                message=f"Release build failed with exit code: {release.exit_code}",
                stage=PipelineState.BUILDING_ARTIFACTS.value,
                key_lines=key_lines,
            )
        log.success("✅ Release APK build completed successfully!")
        result.release_apk = await self._collect(workspace, request, ArtifactKind.RELEASE_APK, log)

        log.info("📦 Building Android App Bundle (AAB)...")
        bundle = await self._gradle(workspace, "bundleRelease", "--stacktrace")
        if bundle.ok:
            log.success("✅ AAB build completed successfully!")
            result.release_aab = await self._collect(workspace, request, ArtifactKind.RELEASE_AAB, log)
        else:
            warning = "⚠️ AAB build failed, but APK succeeded. Continuing..."
            log.warning(warning)
            logger.warning("Bundle build failed", app_id=workspace.app_id, output_tail=bundle.output[-1000:])
            result.warnings.append(warning)

        debug = await self.build_debug_only(workspace, request, log)
        result.debug_apk = debug.debug_apk
        result.warnings.extend(debug.warnings)
        return result

    async def build_debug_only(
        self,
        workspace: Workspace,
        request: GenerationRequest,
        log: SessionLogger,
    ) -> BuildResult:
        """Best-effort debug APK build."""
        result = BuildResult()
        log.info("🔧 Building debug APK for testing...")
        debug = await self._gradle(workspace, "assembleDebug")
        if debug.ok:
            result.debug_apk = await self._collect(workspace, request, ArtifactKind.DEBUG_APK, log)
        else:
            warning = f"⚠️ Debug APK build failed with exit code {debug.exit_code}"
            log.warning(warning)
            result.warnings.append(warning)
        return result
