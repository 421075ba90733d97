"""
Web Build Service.

Drives the npm toolchain inside a workspace: dependency install, production web
build, icon/splash generation and a short dev-server smoke test.
"""

from __future__ import annotations

from ...core.config import Config
from ...core.exceptions import ToolExitError, ToolTimeoutError
from ...core.logging import get_logger
from ...core.types import ServiceResult
from ...models.generation import Workspace
from ...tooling import ToolResult, ToolRunner
from ..progress import SessionLogger

logger = get_logger(__name__)

SERVER_STARTED_MARKERS = ("Local:", "localhost:", "Application bundle generation complete")


def server_started(output: str) -> bool:
    """Whether dev-server output shows it is serving."""
    return any(marker in output for marker in SERVER_STARTED_MARKERS)


class WebBuildService:
    """npm-driven stages that turn the template sources into `www/`."""

    def __init__(self, runner: ToolRunner, config: Config) -> None:
        self.runner = runner
        self.config = config

    def _raise_for_exit(self, result: ToolResult, message: str) -> None:
        if result.ok:
            return
        logger.error(message, command=result.command_line, exit_code=result.exit_code)
        raise ToolExitError(
            message=message,
            tool=result.command,
            exit_code=result.exit_code,
            output=result.output,
        )

    async def install_dependencies(self, workspace: Workspace, log: SessionLogger) -> ToolResult:
        """Run `npm install`.

        Raises:
            ToolExitError: If npm exits nonzero
        """
        log.info("📦 Installing dependencies...")
        result = await self.runner.run(self.config.tools.npm, ["install"], cwd=workspace.root)
        self._raise_for_exit(result, "Failed to install dependencies")
        log.success("✅ Dependencies installed")
        return result

    async def build_web(self, workspace: Workspace, log: SessionLogger) -> ToolResult:
        """Run `npm run build`.

        Raises:
            ToolExitError: If the build exits nonzero
        """
        log.info("🔨 Building web app...")
        result = await self.runner.run(self.config.tools.npm, ["run", "build"], cwd=workspace.root)
        self._raise_for_exit(result, "Failed to build app")
        log.success("✅ App built successfully")
        return result

    async def generate_assets(self, workspace: Workspace, log: SessionLogger) -> ServiceResult[None]:
        """Generate launcher icons and splash screens. Failure is only a warning."""
        log.info("🎨 Generating app icons and splash screens...")
        result = await self.runner.run(
            self.config.tools.npx,
            ["capacitor-assets", "generate"],
            cwd=workspace.root,
        )
        if not result.ok:
            warning = "⚠️ Asset generation failed, continuing with sync..."
            log.warning(warning)
            return ServiceResult.with_warnings(None, [warning], exit_code=result.exit_code)
        log.success("✅ Assets generated successfully")
        return ServiceResult.ok(None)

    async def smoke_test(self, workspace: Workspace, log: SessionLogger) -> ServiceResult[bool]:
        """Serve the web build briefly and watch for the dev server to come up.

        The server is killed when the bound elapses whether or not it started.
        Never fails the pipeline; the result data says whether the server
        started.
        """
        timeout = self.config.pipeline.smoke_test_timeout_seconds
        log.info("🧪 Testing app functionality...")

        seen: list[str] = []
        started = False

        def watch(chunk: str) -> None:
            nonlocal started
            seen.append(chunk)
            if not started and server_started("".join(seen)):
                started = True

        try:
            result = await self.runner.run(
                self.config.tools.npm,
                ["start"],
                cwd=workspace.root,
                timeout=timeout,
                on_output=watch,
            )
        except ToolTimeoutError as e:
            started = started or server_started(e.output)
            if started:
                log.success("✅ App test passed - server started successfully")
                return ServiceResult.ok(True)
            warning = "⚠️ App test inconclusive - server may need more time to start"
            log.warning(warning)
            logger.info("Smoke test output tail", output=e.output_tail(500))
            return ServiceResult.with_warnings(False, [warning])

        started = started or server_started(result.output)
        if started:
            log.success("✅ App test passed - server started and stopped cleanly")
            return ServiceResult.ok(True)

        warning = f"⚠️ App test failed - server exited with code {result.exit_code} before starting"
        log.warning(warning)
        return ServiceResult.with_warnings(False, [warning], exit_code=result.exit_code)
