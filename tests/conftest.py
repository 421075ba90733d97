"""Test configuration for EZ-GEN."""

import json
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

import pytest
import structlog

from ezgen.core.config import Config, PipelineConfig, StorageConfig, ToolsConfig
from ezgen.core.exceptions import ToolTimeoutError
from ezgen.orchestration import GenerationPipeline
from ezgen.services.progress import ProgressReporter
from ezgen.storage import LocalArtifactStore
from ezgen.tooling import ToolResult, ToolRunner

GRADLEW = "./gradlew"

TEMPLATE_FILES = {
    "capacitor.config.ts": (
        "import { CapacitorConfig } from '@capacitor/cli';\n\n"
        "const config: CapacitorConfig = {\n"
        "  appId: 'io.ionic.starter',\n"
        "  appName: 'Timeless',\n"
        "  webDir: 'www'\n"
        "};\n\n"
        "export default config;\n"
    ),
    "package.json": json.dumps({"name": "timeless", "version": "0.0.1"}, indent=2) + "\n",
    "ionic.config.json": json.dumps({"name": "timeless", "type": "angular"}, indent=2) + "\n",
    "GENERATED_APP_README.md": "# Generated App\n",
    "src/index.html": "<html><head><title>Timeless</title></head><body></body></html>\n",
    "src/app/app.component.ts": (
        "export class AppComponent {\n"
        "  websiteUrl = 'https://timeless.ezassist.me';\n"
        "  title = 'Timeless app';\n"
        "  topic = 'timeless-updates';\n"
        "}\n"
    ),
    "src/app/services/push-notification.service.ts": (
        "const user = 'timeless-user';\n"
        "const meta = { appName: 'Timeless' };\n"
    ),
    "src/sw.js": (
        "const CACHE_NAME = 'timeless-cache-v1';\n"
        "const ORIGIN = 'http://timeless.ezassist.me';\n"
        "const HOST = 'timeless.ezassist.me';\n"
    ),
    "android/local.properties": "sdk.dir=C\\:\\\\Users\\\\dev\\\\Android\n",
    "android/app/build.gradle": (
        "android {\n"
        '    namespace "io.ionic.starter"\n'
        "    defaultConfig {\n"
        '        applicationId "io.ionic.starter"\n'
        "        minSdkVersion rootProject.ext.minSdkVersion\n"
        "        targetSdkVersion rootProject.ext.targetSdkVersion\n"
        "        versionCode 1\n"
        '        versionName "1.0"\n'
        "    }\n"
        "    buildTypes {\n"
        "        release {\n"
        "            minifyEnabled false\n"
        "            proguardFiles getDefaultProguardFile('proguard-android.txt'), 'proguard-rules.pro'\n"
        "        }\n"
        "    }\n"
        "}\n"
    ),
    "android/app/google-services.json": (
        '{\n  "client": [\n    {"client_info": {"android_client_info": {"package_name": "com.ezassist.timeless"}}}\n  ]\n}\n'
    ),
    "android/app/src/main/res/values/strings.xml": (
        "<?xml version='1.0' encoding='utf-8'?>\n"
        "<resources>\n"
        '    <string name="app_name">Timeless</string>\n'
        '    <string name="title_activity_main">Timeless</string>\n'
        '    <string name="package_name">io.ionic.starter</string>\n'
        '    <string name="custom_url_scheme">io.ionic.starter</string>\n'
        '    <string name="channel">{{APP_NAME}} updates</string>\n'
        "</resources>\n"
    ),
    "android/app/src/main/res/xml/network_security_config.xml": (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<network-security-config>\n"
        '    <domain-config cleartextTrafficPermitted="true">\n'
        '        <domain includeSubdomains="true">localhost</domain>\n'
        "    </domain-config>\n"
        "</network-security-config>\n"
    ),
    "android/app/src/main/java/io/ionic/starter/MainActivity.java": (
        "package io.ionic.starter;\n\npublic class MainActivity {}\n"
    ),
    "android/app/src/main/java/io/ionic/starter/MyFirebaseMessagingService.java": (
        "package io.ionic.starter;\n\n// channel {{PACKAGE_NAME}}\npublic class MyFirebaseMessagingService {}\n"
    ),
    "android/app/src/main/java/io/ionic/starter/NotificationPermissionHelper.java": (
        "package io.ionic.starter;\n\npublic class NotificationPermissionHelper {}\n"
    ),
    "ios/App/App/Info.plist": "<plist/>\n",
}


def make_template(root: Path) -> Path:
    """Write a minimal Ionic WebView template tree under `root`."""
    for relative, content in TEMPLATE_FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    gradlew = root / "android" / "gradlew"
    gradlew.write_bytes(b"#!/bin/sh\r\necho gradle\r\n")
    return root


Effect = Callable[[Optional[Path], list], None]


@dataclass
class ScriptedCall:
    """Scripted behaviour of one tool invocation."""

    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    hang: bool = False
    effect: Optional[Effect] = None


@dataclass
class RecordedCall:
    command: str
    args: list
    cwd: Optional[Path]
    timeout: Optional[float]
    env: Optional[Mapping[str, str]]

    @property
    def argv(self) -> list:
        return [self.command, *self.args]


@dataclass
class FakeToolRunner(ToolRunner):
    """ToolRunner that replays scripted results instead of spawning processes.

    A hanging call with a timeout raises ToolTimeoutError the way the local
    runner does after killing the process.
    """

    rules: list = field(default_factory=list)
    calls: list = field(default_factory=list)

    def on(self, *prefix: str, **behaviour) -> "FakeToolRunner":
        self.rules.append((list(prefix), ScriptedCall(**behaviour)))
        return self

    def _match(self, argv: list) -> ScriptedCall:
        for prefix, script in reversed(self.rules):
            if argv[: len(prefix)] == prefix:
                return script
        return ScriptedCall()

    def invocations(self, *prefix: str) -> list:
        return [c for c in self.calls if c.argv[: len(prefix)] == list(prefix)]

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        env: Optional[Mapping[str, str]] = None,
        on_output=None,
    ) -> ToolResult:
        call = RecordedCall(command, list(args), cwd, timeout, env)
        self.calls.append(call)
        script = self._match(call.argv)

        if script.effect is not None:
            script.effect(cwd, list(args))
        if on_output is not None and script.stdout:
            on_output(script.stdout)

        if script.hang:
            if timeout is None:
                raise AssertionError(f"{command} would hang forever without a timeout")
            raise ToolTimeoutError(
                message=f"{command} did not finish",
                tool=command,
                output=script.stdout,
                timeout_seconds=timeout,
                pid=4242,
            )

        return ToolResult(
            command=command,
            args=list(args),
            exit_code=script.exit_code,
            stdout=script.stdout,
            stderr=script.stderr,
        )


def write_web_output(cwd: Optional[Path], args: list) -> None:
    """Effect of `npm run build`: produce www/."""
    www = cwd / "www"
    www.mkdir(parents=True, exist_ok=True)
    (www / "index.html").write_text("<html>built</html>", encoding="utf-8")


def write_keystore(cwd: Optional[Path], args: list) -> None:
    """Effect of `keytool -genkeypair`: create the keystore file.

    Relative paths resolve against the working directory, as keytool does.
    """
    path = Path(args[args.index("-keystore") + 1])
    if cwd is not None:
        path = Path(cwd) / path
    path.write_bytes(b"keystore:" + args[args.index("-storepass") + 1].encode())


def gradle_output(kind: str, name: str) -> Effect:
    """Effect of a Gradle task that drops an artifact under build/outputs."""

    def effect(cwd: Optional[Path], args: list) -> None:
        target = cwd / "app" / "build" / "outputs" / kind / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"PK\x03\x04" + name.encode())

    return effect


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo logging configuration done by a test (e.g. CLI commands calling
    setup_logging against a runner's temporary stderr)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def template_dir(temp_dir):
    """A minimal copy of the WebView template."""
    return make_template(temp_dir / "template")


@pytest.fixture
def config(temp_dir, template_dir):
    """Configuration rooted in the temporary directory with short timeouts."""
    return Config(
        storage=StorageConfig(
            generated_apps_dir=temp_dir / "generated-apps",
            artifacts_dir=temp_dir / "apks",
            uploads_dir=temp_dir / "uploads",
            template_dir=template_dir,
        ),
        tools=ToolsConfig(android_sdk_root=temp_dir / "sdk", java_home=temp_dir / "jdk"),
        pipeline=PipelineConfig(sync_timeout_seconds=1.0, smoke_test_timeout_seconds=1.0),
    )


@pytest.fixture
def android_env(temp_dir, monkeypatch):
    """Point the Android/Java environment variables at existing directories."""
    sdk = temp_dir / "sdk"
    jdk = temp_dir / "jdk"
    sdk.mkdir(exist_ok=True)
    jdk.mkdir(exist_ok=True)
    monkeypatch.setenv("ANDROID_HOME", str(sdk))
    monkeypatch.setenv("ANDROID_SDK_ROOT", str(sdk))
    monkeypatch.setenv("JAVA_HOME", str(jdk))
    return sdk


@pytest.fixture
def runner():
    """Scripted tool runner where every tool succeeds unless told otherwise."""
    return FakeToolRunner()


@pytest.fixture
def toolchain(runner):
    """A toolchain where every tool works and produces its outputs."""
    runner.on("npm", "run", "build", effect=write_web_output)
    runner.on("npm", "start", hang=True, stdout="Local: http://localhost:4200/")
    runner.on("keytool", "-genkeypair", effect=write_keystore)
    runner.on(GRADLEW, "assembleRelease", effect=gradle_output("apk/release", "app-release.apk"))
    runner.on(GRADLEW, "bundleRelease", effect=gradle_output("bundle/release", "app-release.aab"))
    runner.on(GRADLEW, "assembleDebug", effect=gradle_output("apk/debug", "app-debug.apk"))
    return runner


@pytest.fixture
def reporter():
    return ProgressReporter(max_entries=1000, max_sessions=50)


@pytest.fixture
def pipeline(config, toolchain, reporter, android_env):
    """Pipeline wired to the scripted toolchain and temporary storage."""
    return GenerationPipeline(
        config=config,
        runner=toolchain,
        reporter=reporter,
        store=LocalArtifactStore(config.storage.artifacts_dir),
    )


@pytest.fixture
def log(reporter):
    """Session logger bound to a fixed test session."""
    return reporter.bind("test-session")
