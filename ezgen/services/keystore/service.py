"""
Keystore Manager Service.

Creates the release signing keystore of a workspace with keytool, persists its
credentials next to the workspace and proves the keystore opens with them
before any release build uses it.
"""

from __future__ import annotations

import re
import secrets
from pathlib import Path

from ...core.config import Config
from ...core.exceptions import FatalBuildError
from ...core.logging import get_logger
from ...core.types import PipelineState
from ...models.build import KeystoreInfo
from ...models.generation import Workspace
from ...tooling import ToolResult, ToolRunner
from ..progress import SessionLogger

logger = get_logger(__name__)


def distinguished_name(app_name: str) -> str:
    """Certificate subject derived from the app name."""
    clean = re.sub(r"[^a-zA-Z0-9\s]", "", app_name)
    clean = re.sub(r"\s+", " ", clean).strip() or "MyApp"
    return f"CN={clean}, OU=Mobile Development, O={clean}, L=City, S=State, C=US"


class KeystoreManager:
    """Generates, verifies and reuses workspace signing keystores."""

    def __init__(self, runner: ToolRunner, config: Config) -> None:
        self.runner = runner
        self.keytool = config.tools.keytool
        self.settings = config.keystore

    def keystore_path(self, workspace: Workspace) -> Path:
        return (workspace.app_module_dir / self.settings.file_name).absolute()

    def load_existing(self, workspace: Workspace) -> KeystoreInfo | None:
        """Credentials of a keystore already generated in this workspace.

        Raises:
            FatalBuildError: If a keystore exists but its credentials record is
                unreadable; the keystore is never overwritten in that case.
        """
        path = self.keystore_path(workspace)
        sidecar = workspace.keystore_info_path
        if not (path.is_file() and sidecar.is_file()):
            return None
        try:
            info = KeystoreInfo.model_validate_json(sidecar.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise FatalBuildError(
                message="Existing keystore credentials could not be read; refusing to overwrite the keystore",
                stage=PipelineState.GENERATING_KEYSTORE.value,
                context={"sidecar": str(sidecar)},
                cause=e,
            ) from e
        info.keystore_path = (workspace.app_module_dir / info.keystore_file).absolute()
        return info

    async def ensure(
        self,
        workspace: Workspace,
        package_name: str,
        app_name: str,
        log: SessionLogger,
    ) -> KeystoreInfo:
        """Reuse this workspace's verified keystore, or generate a new one."""
        existing = self.load_existing(workspace)
        if existing is not None and existing.keystore_path is not None:
            log.info("🔑 Reusing existing release keystore...")
            await self.verify(existing.keystore_path, existing.keystore_password)
            log.success("✅ Existing keystore verified")
            return existing
        return await self.generate(workspace, package_name, app_name, log)

    async def generate(
        self,
        workspace: Workspace,
        package_name: str,
        app_name: str,
        log: SessionLogger,
    ) -> KeystoreInfo:
        """Generate a keystore with a random credential, persist and verify it.

        Raises:
            FatalBuildError: If keytool fails to generate or to open the keystore
        """
        log.info("🔑 Generating release keystore...")
        path = self.keystore_path(workspace)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            logger.warning("Discarding keystore without credentials record", path=str(path))
            path.unlink()

        store_password = secrets.token_hex(16)
        if self.settings.separate_key_password:
            key_password = secrets.token_hex(16)
            store_type = "JKS"
        else:
            key_password = store_password
            store_type = "PKCS12"

        args = [
            "-genkeypair",
            "-v",
            "-keystore", str(path),
            "-alias", self.settings.alias,
            "-keyalg", self.settings.key_algorithm,
            "-keysize", str(self.settings.key_size),
            "-validity", str(self.settings.validity_days),
            "-storepass", store_password,
            "-keypass", key_password,
            "-storetype", store_type,
            "-dname", distinguished_name(app_name),
        ]
        result = await self.runner.run(self.keytool, args, cwd=workspace.app_module_dir)
        if not result.ok:
            log.error("❌ Keystore generation failed")
            raise FatalBuildError(
                message=f"Keystore generation failed: {result.output[-1000:]}",
                stage=PipelineState.GENERATING_KEYSTORE.value,
                context={"exit_code": result.exit_code},
            )

        info = KeystoreInfo(
            keystore_file=self.settings.file_name,
            keystore_password=store_password,
            key_alias=self.settings.alias,
            key_password=key_password,
            package_name=package_name,
            app_name=app_name,
            keystore_path=path,
        )
        workspace.keystore_info_path.write_text(info.to_sidecar_json(), encoding="utf-8")

        log.info("🔍 Verifying keystore accessibility...")
        await self.verify(path, store_password)
        log.success("✅ Keystore generated and verified successfully!")
        logger.info("Keystore ready", app_id=workspace.app_id, store_type=store_type)
        return info

    async def verify(self, path: Path, password: str) -> ToolResult:
        """List the keystore with `password`.

        Raises:
            FatalBuildError: If keytool cannot open the keystore
        """
        result = await self.runner.run(
            self.keytool,
            ["-list", "-v", "-keystore", str(path), "-storepass", password],
        )
        if not result.ok:
            raise FatalBuildError(
                message=f"Keystore verification failed: {result.output[-1000:]}",
                stage=PipelineState.GENERATING_KEYSTORE.value,
                context={"keystore": str(path), "exit_code": result.exit_code},
            )
        return result
