"""
Generation request and workspace models.

A request is built only after its three identity fields pass validation; the
workspace it produces is the deliverable of the whole pipeline and knows where
every well-known file of the template lives.
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, Field


def slugify(app_name: str) -> str:
    """Lower-case the name and replace every non [a-z0-9] character with '-'."""
    return re.sub(r"[^a-z0-9]", "-", app_name.lower())


class UploadedAsset(BaseModel):
    """A logo or splash image uploaded with the request."""

    path: Path = Field(description="Location of the uploaded file on disk")
    filename: str = Field(default="", description="Original client-side file name")


class GenerationRequest(BaseModel):
    """Validated input of one generation run."""

    model_config = {"frozen": True}

    app_name: str = Field(description="Display name of the generated app")
    website_url: str = Field(description="Website loaded by the WebView shell")
    package_name: str = Field(description="Reverse-domain application identifier")
    logo: UploadedAsset | None = Field(default=None, description="Optional launcher icon source")
    splash: UploadedAsset | None = Field(default=None, description="Optional splash screen source")

    @property
    def slug(self) -> str:
        return slugify(self.app_name)

    @property
    def hostname(self) -> str:
        return urlsplit(self.website_url).hostname or ""

    @property
    def has_branding_assets(self) -> bool:
        return self.logo is not None or self.splash is not None


class Workspace(BaseModel):
    """A materialized copy of the template owned by one generation run."""

    app_id: str = Field(description="Unique workspace identifier (UUID4)")
    root: Path = Field(description="Workspace directory")

    @property
    def android_dir(self) -> Path:
        return self.root / "android"

    @property
    def app_module_dir(self) -> Path:
        return self.android_dir / "app"

    @property
    def build_gradle(self) -> Path:
        return self.app_module_dir / "build.gradle"

    @property
    def gradlew(self) -> Path:
        name = "gradlew.bat" if sys.platform == "win32" else "gradlew"
        return self.android_dir / name

    @property
    def gradlew_command(self) -> str:
        return str(self.gradlew) if sys.platform == "win32" else "./gradlew"

    @property
    def local_properties(self) -> Path:
        return self.android_dir / "local.properties"

    @property
    def gradle_config_properties(self) -> Path:
        return self.android_dir / ".gradle" / "config.properties"

    @property
    def java_root(self) -> Path:
        return self.app_module_dir / "src" / "main" / "java"

    @property
    def network_security_config(self) -> Path:
        return self.app_module_dir / "src" / "main" / "res" / "xml" / "network_security_config.xml"

    @property
    def www_dir(self) -> Path:
        return self.root / "www"

    @property
    def android_assets_dir(self) -> Path:
        return self.app_module_dir / "src" / "main" / "assets" / "public"

    @property
    def ios_dir(self) -> Path:
        return self.root / "ios"

    @property
    def ios_assets_dir(self) -> Path:
        return self.ios_dir / "App" / "App" / "public"

    @property
    def resources_dir(self) -> Path:
        return self.root / "resources"

    @property
    def keystore_info_path(self) -> Path:
        return self.root / "keystore-info.json"

    @property
    def guide_path(self) -> Path:
        return self.root / "Play-Store-Guide.md"

    @property
    def outputs_dir(self) -> Path:
        return self.app_module_dir / "build" / "outputs"

    @property
    def release_apk_dir(self) -> Path:
        return self.outputs_dir / "apk" / "release"

    @property
    def debug_apk_dir(self) -> Path:
        return self.outputs_dir / "apk" / "debug"

    @property
    def release_aab_dir(self) -> Path:
        return self.outputs_dir / "bundle" / "release"

    def java_package_dir(self, package_name: str) -> Path:
        """Directory holding the Java sources of `package_name`."""
        return self.java_root.joinpath(*package_name.split("."))
