"""
Guide Writer Service.

Writes `Play-Store-Guide.md` at the workspace root: produced artifacts, signing
credentials, version metadata, submission steps and degradation notes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiofiles

from ...core.logging import get_logger
from ...models.build import ArtifactRecord, BuildResult, KeystoreInfo
from ...models.generation import GenerationRequest, Workspace

logger = get_logger(__name__)

NOT_PRODUCED = "not produced"


def _name(record: ArtifactRecord | None) -> str:
    return f"`{record.file_name}`" if record is not None else f"_{NOT_PRODUCED}_"


def render_guide(
    request: GenerationRequest,
    keystore: KeystoreInfo | None,
    build: BuildResult,
    notes: list[str],
    target_sdk: int = 34,
) -> str:
    """Render the submission guide as Markdown."""
    debug_cmd = build.debug_apk.file_name if build.debug_apk else "<debug apk>"
    submit = build.release_aab or build.release_apk

    sections = [
        f"# Play Store Submission Guide for {request.app_name}",
        "",
        "## 📦 Generated Files",
        "",
        "#### For Testing:",
        f"- **Debug APK**: {_name(build.debug_apk)}",
        "  - Install this on your Android device for testing",
        "  - This version is for development/testing only",
        "",
        "#### For Play Store Submission:",
        f"- **Release AAB**: {_name(build.release_aab)} ⭐ **SUBMIT THIS TO PLAY STORE**",
        "  - Android App Bundle optimized for Play Store",
        f"- **Release APK**: {_name(build.release_apk)}",
        "  - Alternative format for sideloading and testing",
        "",
    ]

    if keystore is not None:
        sections += [
            "## 🔑 Important Security Information",
            "",
            "**⚠️ SENSITIVE: Keep these credentials and the keystore safe!**",
            "",
            f"- **Keystore File**: `android/app/{keystore.keystore_file}`",
            f"- **Keystore Password**: `{keystore.keystore_password}`",
            f"- **Key Alias**: `{keystore.key_alias}`",
            f"- **Key Password**: `{keystore.key_password}`",
            "",
            "- Store these credentials securely; every future update must be signed with them",
            "- If you lose the keystore, you cannot update your app on Play Store",
            "- Consider using Google Play App Signing for additional security",
            "",
        ]
    else:
        sections += [
            "## 🔑 Signing",
            "",
            "No release keystore was produced for this app; only unsigned or debug builds are available.",
            "",
        ]

    sections += [
        "## 📋 Play Store Submission Steps",
        "",
        f"- App name: {request.app_name}",
        f"- Package name: {request.package_name}",
        f"- Website: {request.website_url}",
        "",
        "1. Go to [Google Play Console](https://play.google.com/console)",
        "2. Create a new app",
        f"3. Upload {_name(submit)}",
        "4. Fill in store listing details (description, screenshots, 1024x500 feature graphic)",
        "5. Set up pricing & distribution",
        "6. Submit for review",
        "",
        "## ✅ Build Metadata",
        "",
        f"- **Target API**: {target_sdk}",
    ]

    if build.version is not None:
        sections += [
            f"- **Version Code**: {build.version.version_code}",
            f"- **Version Name**: {build.version.version_name}",
        ]

    sections += [
        "",
        "## 🚀 Testing Before Submission",
        "",
        "```bash",
        f"adb install {debug_cmd}",
        "```",
        "",
    ]

    if notes or build.warnings:
        sections += ["## ⚠️ Build Notes", ""]
        sections += [f"- {note}" for note in [*notes, *build.warnings]]
        sections.append("")

    sections += [
        "---",
        "",
        f"**Generated on**: {datetime.now(timezone.utc).isoformat()}",
        f"**Package**: {request.package_name}",
        "",
    ]
    return "\n".join(sections)


class GuideWriter:
    """Writes the submission guide into a workspace."""

    def __init__(self, target_sdk: int = 34) -> None:
        self.target_sdk = target_sdk

    async def write(
        self,
        workspace: Workspace,
        request: GenerationRequest,
        keystore: KeystoreInfo | None,
        build: BuildResult,
        notes: list[str] | None = None,
    ) -> Path:
        content = render_guide(request, keystore, build, notes or [], self.target_sdk)
        async with aiofiles.open(workspace.guide_path, "w", encoding="utf-8") as f:
            await f.write(content)
        logger.info("Submission guide written", app_id=workspace.app_id, path=str(workspace.guide_path))
        return workspace.guide_path
