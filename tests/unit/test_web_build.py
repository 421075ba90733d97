"""Tests for the npm-driven web build stages."""

import pytest

from ezgen.core.exceptions import ToolExitError
from ezgen.models.generation import Workspace
from ezgen.services.web_build import WebBuildService, server_started


@pytest.fixture
def workspace(temp_dir):
    root = temp_dir / "ws"
    root.mkdir()
    return Workspace(app_id="ws", root=root)


@pytest.mark.asyncio
class TestWebBuildService:
    """Tests for WebBuildService."""

    async def test_install_and_build(self, runner, config, workspace, log):
        """npm install and npm run build run in the workspace."""
        service = WebBuildService(runner, config)

        await service.install_dependencies(workspace, log)
        await service.build_web(workspace, log)

        assert [c.argv for c in runner.calls] == [["npm", "install"], ["npm", "run", "build"]]
        assert all(c.cwd == workspace.root for c in runner.calls)

    async def test_install_failure_raises(self, runner, config, workspace, log):
        """A failed install is a tool error carrying the output."""
        runner.on("npm", "install", exit_code=1, stderr="npm ERR! network")
        service = WebBuildService(runner, config)

        with pytest.raises(ToolExitError) as exc_info:
            await service.install_dependencies(workspace, log)

        assert exc_info.value.message == "Failed to install dependencies"
        assert exc_info.value.exit_code == 1
        assert "npm ERR!" in exc_info.value.output

    async def test_build_failure_raises(self, runner, config, workspace, log):
        """A failed web build is a tool error."""
        runner.on("npm", "run", "build", exit_code=2)
        service = WebBuildService(runner, config)

        with pytest.raises(ToolExitError, match="Failed to build app"):
            await service.build_web(workspace, log)

    async def test_asset_generation_failure_is_warning(self, runner, config, workspace, log):
        """Icon generation failing does not stop the build."""
        runner.on("npx", "capacitor-assets", exit_code=1)
        service = WebBuildService(runner, config)

        result = await service.generate_assets(workspace, log)

        assert result.success
        assert result.warnings == ["⚠️ Asset generation failed, continuing with sync..."]

    async def test_smoke_test_server_started(self, runner, config, workspace, log):
        """Server output seen before the bound elapses is a pass."""
        runner.on("npm", "start", hang=True, stdout="➜  Local:   http://localhost:4200/")
        service = WebBuildService(runner, config)

        result = await service.smoke_test(workspace, log)

        assert result.data is True
        assert runner.calls[0].timeout == config.pipeline.smoke_test_timeout_seconds

    async def test_smoke_test_silent_server_is_inconclusive(self, runner, config, workspace, log):
        """A server that prints nothing is a warning, never an error."""
        runner.on("npm", "start", hang=True)
        service = WebBuildService(runner, config)

        result = await service.smoke_test(workspace, log)

        assert result.success
        assert result.data is False
        assert "inconclusive" in result.warnings[0]

    async def test_smoke_test_early_exit(self, runner, config, workspace, log):
        """A server that exits before starting is reported with its code."""
        runner.on("npm", "start", exit_code=1, stderr="Error: port in use")
        service = WebBuildService(runner, config)

        result = await service.smoke_test(workspace, log)

        assert result.data is False
        assert "exited with code 1" in result.warnings[0]


class TestServerStarted:
    """Tests for dev-server output detection."""

    @pytest.mark.parametrize(
        "output",
        ["Local: http://localhost:8100", "listening on localhost:4200", "Application bundle generation complete."],
    )
    def test_markers(self, output):
        assert server_started(output)

    def test_no_marker(self):
        assert not server_started("Compiling...")
