"""
Configuration management for EZ-GEN.

Provides centralized, type-safe configuration with environment variable overrides
and sensible defaults for the server, the build pipeline and the toolchain.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()


def _env_path(*names: str, default: str) -> Path:
    for name in names:
        value = os.environ.get(name)
        if value:
            return Path(value)
    return Path(default)


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Listen port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    upload_max_age_hours: int = Field(default=24, ge=1, description="Age after which uploads are pruned")
    upload_cleanup_interval_seconds: int = Field(default=3600, ge=60, description="Upload pruning interval")


class StorageConfig(BaseModel):
    """Filesystem locations used by the generator."""

    generated_apps_dir: Path = Field(
        default=Path("./generated-apps"), description="Root for per-request workspaces"
    )
    artifacts_dir: Path = Field(default=Path("./apks"), description="Root for built artifacts")
    uploads_dir: Path = Field(default=Path("./uploads"), description="Temporary upload location")
    template_dir: Path = Field(
        default=Path("./templates/ionic-webview-template"),
        description="Ionic WebView template copied into every workspace",
    )


class ToolsConfig(BaseModel):
    """External tools configuration."""

    android_sdk_root: Path = Field(
        default_factory=lambda: _env_path("ANDROID_SDK_ROOT", "ANDROID_HOME", default="/opt/android-sdk"),
        description="Android SDK root path",
    )
    java_home: Path = Field(
        default_factory=lambda: _env_path("JAVA_HOME", default="/usr/lib/jvm/java-21-openjdk-amd64"),
        description="Java installation used by Gradle",
    )
    npm: str = Field(default="npm", description="npm executable")
    npx: str = Field(default="npx", description="npx executable")
    keytool: str = Field(default="keytool", description="keytool executable")
    sync_command: list[str] = Field(
        default_factory=lambda: ["npx", "cap", "sync"],
        description="Platform sync command",
    )


class PipelineConfig(BaseModel):
    """Pipeline execution configuration."""

    sync_timeout_seconds: float = Field(default=30.0, gt=0, description="Bound on the platform sync tool")
    smoke_test_timeout_seconds: float = Field(default=30.0, gt=0, description="Bound on the dev-server smoke test")
    smoke_test_enabled: bool = Field(default=True, description="Serve the web build briefly before native builds")
    target_sdk: int = Field(default=34, description="Target SDK written into the release build script")
    min_sdk: int = Field(default=24, description="Minimum SDK written into the release build script")
    version_name: str = Field(default="1.0.0", description="Version name of generated builds")


class KeystoreConfig(BaseModel):
    """Release signing configuration."""

    file_name: str = Field(default="release-key.keystore", description="Keystore file inside android/app")
    alias: str = Field(default="release-key", description="Key alias")
    key_algorithm: str = Field(default="RSA")
    key_size: int = Field(default=2048, ge=1024)
    validity_days: int = Field(default=10000, ge=1)
    separate_key_password: bool = Field(
        default=False,
        description="Use a distinct key password (JKS store) instead of reusing the store password",
    )


class ProgressConfig(BaseModel):
    """Session log retention."""

    max_entries_per_session: int = Field(default=1000, ge=1)
    max_sessions: int = Field(default=500, ge=1)


class TemplateConfig(BaseModel):
    """Identity placeholders baked into the template tree."""

    source_package: str = Field(default="io.ionic.starter", description="Java package of the template sources")
    brand_name: str = Field(default="Timeless", description="Display name used by the template")
    brand_slug: str = Field(default="timeless", description="Slug used for caches and topics")
    brand_host: str = Field(default="timeless.ezassist.me", description="Origin host used by the service worker")
    java_sources: list[str] = Field(
        default_factory=lambda: [
            "MainActivity.java",
            "MyFirebaseMessagingService.java",
            "NotificationPermissionHelper.java",
        ]
    )


class Config(BaseModel):
    """Root configuration for EZ-GEN."""

    project_name: str = Field(default="EZ-GEN", description="Project identifier")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    keystore: KeystoreConfig = Field(default_factory=KeystoreConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    template: TemplateConfig = Field(default_factory=TemplateConfig)

    model_config = {"extra": "ignore"}

    @classmethod
    def from_env(cls) -> Config:
        """Create configuration from environment variables."""
        return cls(
            log_level=os.environ.get("EZGEN_LOG_LEVEL", "INFO"),  # type: ignore
            server=ServerConfig(
                host=os.environ.get("EZGEN_HOST", "0.0.0.0"),
                port=int(os.environ.get("PORT", os.environ.get("EZGEN_PORT", "3000"))),
            ),
            storage=StorageConfig(
                generated_apps_dir=Path(os.environ.get("EZGEN_GENERATED_APPS_DIR", "./generated-apps")),
                artifacts_dir=Path(os.environ.get("EZGEN_ARTIFACTS_DIR", "./apks")),
                uploads_dir=Path(os.environ.get("EZGEN_UPLOADS_DIR", "./uploads")),
                template_dir=Path(
                    os.environ.get("EZGEN_TEMPLATE_DIR", "./templates/ionic-webview-template")
                ),
            ),
            pipeline=PipelineConfig(
                sync_timeout_seconds=float(os.environ.get("EZGEN_SYNC_TIMEOUT", "30")),
                smoke_test_timeout_seconds=float(os.environ.get("EZGEN_SMOKE_TEST_TIMEOUT", "30")),
                smoke_test_enabled=os.environ.get("EZGEN_SMOKE_TEST", "true").lower() == "true",
            ),
            keystore=KeystoreConfig(
                separate_key_password=os.environ.get("EZGEN_SEPARATE_KEY_PASSWORD", "false").lower() == "true",
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()
