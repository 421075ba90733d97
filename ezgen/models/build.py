"""
Signing and build output models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class KeystoreInfo(BaseModel):
    """Signing credential record persisted as keystore-info.json.

    Store and key password are the same value unless the keystore was generated
    with a separate key password.
    """

    model_config = {"populate_by_name": True}

    keystore_file: str = Field(alias="keystoreFile", description="Keystore file name inside android/app")
    keystore_password: str = Field(alias="keystorePassword")
    key_alias: str = Field(alias="keyAlias")
    key_password: str = Field(alias="keyPassword")
    package_name: str = Field(alias="packageName")
    app_name: str = Field(alias="appName")
    generated_at: datetime = Field(alias="generatedAt", default_factory=datetime.utcnow)
    keystore_path: Path | None = Field(default=None, exclude=True, description="Absolute keystore path")

    def to_sidecar_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class VersionInfo(BaseModel):
    """Version metadata written into the release build script."""

    version_code: int = Field(description="Monotonic version code (Unix seconds)")
    version_name: str = Field(default="1.0.0")


class ArtifactKind(str, Enum):
    """Installable outputs of the native build."""

    DEBUG_APK = "debug_apk"
    RELEASE_APK = "release_apk"
    RELEASE_AAB = "release_aab"

    @property
    def suffix(self) -> str:
        return {
            ArtifactKind.DEBUG_APK: "-debug.apk",
            ArtifactKind.RELEASE_APK: "-release.apk",
            ArtifactKind.RELEASE_AAB: "-release.aab",
        }[self]

    @property
    def media_type(self) -> str:
        if self is ArtifactKind.RELEASE_AAB:
            return "application/octet-stream"
        return "application/vnd.android.package-archive"

    def file_name(self, slug: str) -> str:
        """Stable, app-name-prefixed file name of this artifact."""
        return f"{slug}{self.suffix}"


class ArtifactRecord(BaseModel):
    """A build output copied into the artifact store."""

    kind: ArtifactKind
    file_name: str = Field(description="Stable file name shown to users")
    path: Path = Field(description="Location inside the artifact store")
    size_bytes: int = Field(default=0)
    sha256: str = Field(default="")


class BuildResult(BaseModel):
    """Outcome of the native build stages; any artifact may be absent."""

    debug_apk: ArtifactRecord | None = None
    release_apk: ArtifactRecord | None = None
    release_aab: ArtifactRecord | None = None
    version: VersionInfo | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def artifacts(self) -> list[ArtifactRecord]:
        return [a for a in (self.debug_apk, self.release_apk, self.release_aab) if a is not None]

    @property
    def file_names(self) -> list[str]:
        return [a.file_name for a in self.artifacts]
