"""
Build Environment Service.

Pre-flight check run before any signing or Gradle work, so a missing SDK or
JDK is reported plainly instead of failing deep inside build output.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field

from ...core.config import Config
from ...core.exceptions import BuildEnvironmentError, ToolTimeoutError
from ...core.logging import get_logger
from ...models.generation import Workspace
from ...tooling import ToolRunner

logger = get_logger(__name__)


class EnvironmentReport(BaseModel):
    """Outcome of a build environment check."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def raise_for_errors(self) -> None:
        """Raise BuildEnvironmentError when the check found blocking problems."""
        if not self.valid:
            raise BuildEnvironmentError(
                message="Build environment is not ready",
                errors=list(self.errors),
                warnings=list(self.warnings),
            )


class ToolVersion(BaseModel):
    """Installed version of one toolchain command."""

    name: str
    available: bool
    version: str | None = None


# (display name, command, args) probed by `doctor`
VERSION_PROBES: list[tuple[str, str, list[str]]] = [
    ("Node.js", "node", ["--version"]),
    ("npm", "npm", ["--version"]),
    ("Java", "java", ["-version"]),
    ("keytool", "keytool", ["-help"]),
    ("Gradle", "gradle", ["--version"]),
]

_VERSION_PATTERN = re.compile(r"\d+(\.\d+)+")


class BuildEnvironmentChecker:
    """Checks the Android SDK, JDK, keytool and the workspace's Gradle project."""

    def __init__(
        self,
        runner: ToolRunner,
        config: Config,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.runner = runner
        self.config = config
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    def check_sdk(self) -> tuple[list[str], list[str]]:
        """Environment-variable checks shared by `check` and `doctor`."""
        errors: list[str] = []
        warnings: list[str] = []

        android_home = self.environ.get("ANDROID_HOME") or self.environ.get("ANDROID_SDK_ROOT")
        if not android_home:
            errors.append("ANDROID_HOME or ANDROID_SDK_ROOT environment variable not set")
        elif not Path(android_home).exists():
            errors.append(f"Android SDK path does not exist: {android_home}")

        java_home = self.environ.get("JAVA_HOME")
        if not java_home:
            warnings.append("JAVA_HOME environment variable not set")
        elif not Path(java_home).exists():
            warnings.append(f"Java path does not exist: {java_home}")

        return errors, warnings

    async def keytool_available(self) -> bool:
        result = await self.runner.run(self.config.tools.keytool, ["-help"])
        return result.ok

    async def check(self, workspace: Workspace) -> EnvironmentReport:
        """Check everything a signed release build needs."""
        errors, warnings = self.check_sdk()

        if not workspace.build_gradle.is_file():
            errors.append("Android build.gradle not found")
        if not workspace.gradlew.is_file():
            errors.append("Gradle wrapper not found")
        if not await self.keytool_available():
            errors.append("keytool not available (required for keystore generation)")

        report = EnvironmentReport(valid=not errors, errors=errors, warnings=warnings)
        logger.info(
            "Build environment checked",
            app_id=workspace.app_id,
            valid=report.valid,
            errors=len(errors),
            warnings=len(warnings),
        )
        return report

    async def tool_versions(self) -> list[ToolVersion]:
        """Probe the installed toolchain for `doctor`."""
        versions = []
        for name, command, args in VERSION_PROBES:
            try:
                result = await self.runner.run(command, args, timeout=30)
            except ToolTimeoutError:
                versions.append(ToolVersion(name=name, available=False))
                continue
            match = _VERSION_PATTERN.search(result.output) if result.ok else None
            versions.append(
                ToolVersion(
                    name=name,
                    available=result.ok,
                    version=match.group(0) if match else None,
                )
            )
        return versions
