"""
Sync Engine Service.

Makes the built web output available to each native platform. The platform
sync tool is preferred; when it hangs or fails, the web output is copied into
the platform asset directories directly.
"""

from __future__ import annotations

import asyncio
import shutil
from enum import Enum

from ...core.config import Config
from ...core.exceptions import SyncError, ToolTimeoutError
from ...core.logging import get_logger
from ...models.generation import Workspace
from ...tooling import ToolRunner
from ..progress import SessionLogger

logger = get_logger(__name__)


class SyncMethod(str, Enum):
    """How the web output reached the native projects."""

    CLI = "cli"
    MANUAL = "manual"


class SyncEngine:
    """Platform sync with a bounded timeout and a manual-copy fallback."""

    def __init__(self, runner: ToolRunner, config: Config) -> None:
        self.runner = runner
        self.command = list(config.tools.sync_command)
        self.timeout = config.pipeline.sync_timeout_seconds

    async def sync(self, workspace: Workspace, log: SessionLogger) -> SyncMethod:
        """Sync web assets into the native platforms.

        A timeout or nonzero exit of the sync tool triggers the fallback once.

        Raises:
            SyncError: If the fallback copy itself failed
        """
        log.info("🔄 Attempting Capacitor sync...")
        command, *args = self.command

        try:
            result = await self.runner.run(command, args, cwd=workspace.root, timeout=self.timeout)
        except ToolTimeoutError as e:
            logger.warning("Sync tool killed after timeout", pid=e.pid, timeout=e.timeout_seconds)
            log.warning("⏰ Capacitor sync timed out, trying manual fallback...")
        else:
            if result.ok:
                log.success("✅ Capacitor sync completed successfully!")
                return SyncMethod.CLI
            log.warning(f"⚠️ Capacitor sync failed with code {result.exit_code}, trying manual fallback...")

        await self.manual_sync(workspace, log)
        return SyncMethod.MANUAL

    async def manual_sync(self, workspace: Workspace, log: SessionLogger) -> list[str]:
        """Copy `www/` into every platform whose project directory exists.

        Returns:
            Names of the platforms that received the web output

        Raises:
            SyncError: If the web output is missing or could not be copied
        """
        log.info("🔧 Performing manual Capacitor sync...")
        if not workspace.www_dir.is_dir():
            message = f"Manual Capacitor sync failed: web output not found at {workspace.www_dir}"
            log.error(f"❌ {message}")
            raise SyncError(message=message, context={"app_id": workspace.app_id})

        targets = [
            ("Android", workspace.android_dir, workspace.android_assets_dir, "📱"),
            ("iOS", workspace.ios_dir, workspace.ios_assets_dir, "🍎"),
        ]
        copied: list[str] = []
        for platform, platform_dir, assets_dir, icon in targets:
            if not platform_dir.is_dir():
                logger.debug("Platform absent, skipping", platform=platform)
                continue
            try:
                await asyncio.to_thread(
                    shutil.copytree, workspace.www_dir, assets_dir, dirs_exist_ok=True
                )
            except (OSError, shutil.Error) as e:
                log.error(f"❌ Manual sync failed: {e}")
                raise SyncError(
                    message=f"Manual Capacitor sync failed for {platform}",
                    context={"target": str(assets_dir)},
                    cause=e,
                ) from e
            copied.append(platform)
            log.success(f"{icon} Web assets copied to {platform} platform")

        log.success("✅ Manual Capacitor sync completed successfully!")
        return copied
