"""Tests for template materialization and the identity patch table."""

import json

import pytest

from ezgen.core.config import TemplateConfig
from ezgen.core.exceptions import MaterializationError
from ezgen.models.generation import GenerationRequest, UploadedAsset
from ezgen.services.materializer import (
    FileRole,
    PatchContext,
    Substitution,
    TemplateMaterializer,
    build_patch_table,
)
from ezgen.services.materializer.patches import insert_cleartext_domain, rewrite_java_source


def snapshot(root):
    """Map every file under `root` to its bytes."""
    return {p.relative_to(root): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture
def request_a():
    return GenerationRequest(
        app_name="MyStore",
        website_url="https://mystoreapp.com",
        package_name="com.mystore.app",
    )


@pytest.fixture
def materializer(config):
    return TemplateMaterializer(config)


@pytest.mark.asyncio
class TestTemplateMaterializer:
    """Tests for TemplateMaterializer."""

    async def test_scenario_a_patches_identity(self, materializer, request_a, log):
        """The workspace carries the requested name and package everywhere."""
        workspace, warnings = await materializer.create_workspace(request_a, log)

        assert warnings == []
        assert workspace.root.is_dir()

        strings = (workspace.app_module_dir / "src/main/res/values/strings.xml").read_text()
        assert '<string name="app_name">MyStore</string>' in strings
        assert '<string name="title_activity_main">MyStore</string>' in strings
        assert '<string name="package_name">com.mystore.app</string>' in strings
        assert "{{APP_NAME}}" not in strings

        capacitor = (workspace.root / "capacitor.config.ts").read_text()
        assert "appId: 'com.mystore.app'" in capacitor
        assert "appName: 'MyStore'" in capacitor
        assert "CapacitorAssets" not in capacitor

        gradle = workspace.build_gradle.read_text()
        assert 'namespace "com.mystore.app"' in gradle
        assert 'applicationId "com.mystore.app"' in gradle

        assert json.loads((workspace.root / "package.json").read_text())["name"] == "mystore"
        assert json.loads((workspace.root / "ionic.config.json").read_text())["name"] == "mystore"
        assert "<title>MyStore</title>" in (workspace.root / "src/index.html").read_text()
        assert '"package_name": "com.mystore.app"' in (
            workspace.app_module_dir / "google-services.json"
        ).read_text()

    async def test_web_sources_are_rebranded(self, materializer, request_a, log):
        """Component, push service and service worker lose the template brand."""
        workspace, _ = await materializer.create_workspace(request_a, log)

        component = (workspace.root / "src/app/app.component.ts").read_text()
        assert "websiteUrl = 'https://mystoreapp.com'" in component
        assert "MyStore app" in component
        assert "mystore-updates" in component

        push = (workspace.root / "src/app/services/push-notification.service.ts").read_text()
        assert "mystore-user" in push
        assert "appName: 'MyStore'" in push

        worker = (workspace.root / "src/sw.js").read_text()
        assert "mystore-cache-v1" in worker
        assert "const ORIGIN = 'https://mystoreapp.com';" in worker
        assert "const HOST = 'mystoreapp.com';" in worker
        assert "timeless" not in worker

    async def test_java_sources_relocated(self, materializer, request_a, log):
        """Java sources move to the new package and the template package is removed."""
        workspace, _ = await materializer.create_workspace(request_a, log)

        new_dir = workspace.java_package_dir("com.mystore.app")
        for name in ("MainActivity.java", "MyFirebaseMessagingService.java", "NotificationPermissionHelper.java"):
            source = (new_dir / name).read_text()
            assert source.startswith("package com.mystore.app;")
        assert "{{PACKAGE_NAME}}" not in (new_dir / "MyFirebaseMessagingService.java").read_text()
        assert not (workspace.java_root / "io").exists()

    async def test_nested_package_keeps_new_sources(self, materializer, log):
        """A package nested under the template package is not deleted with it."""
        request = GenerationRequest(
            app_name="Shop",
            website_url="https://shop.example.com",
            package_name="io.ionic.starter.shop",
        )
        workspace, _ = await materializer.create_workspace(request, log)

        new_dir = workspace.java_package_dir("io.ionic.starter.shop")
        assert (new_dir / "MainActivity.java").is_file()
        assert not (workspace.java_package_dir("io.ionic.starter") / "MainActivity.java").exists()

    async def test_environment_files(self, materializer, request_a, log, config):
        """gradlew loses CRLF, SDK and Java paths point at this machine."""
        workspace, _ = await materializer.create_workspace(request_a, log)

        assert b"\r" not in workspace.gradlew.read_bytes()
        assert f"sdk.dir={config.tools.android_sdk_root}" in workspace.local_properties.read_text()
        assert f"java.home={config.tools.java_home}" in workspace.gradle_config_properties.read_text()
        assert (workspace.root / "README.md").read_text() == "# Generated App\n"

    async def test_cleartext_domain_added(self, materializer, request_a, log):
        """The website host is allowed in the network security config."""
        workspace, _ = await materializer.create_workspace(request_a, log)

        config_xml = workspace.network_security_config.read_text()
        assert '<domain includeSubdomains="true">mystoreapp.com</domain>' in config_xml
        assert '<domain includeSubdomains="true">localhost</domain>' in config_xml

    async def test_patches_are_idempotent(self, materializer, request_a, log):
        """Applying the patches a second time changes nothing."""
        workspace, _ = await materializer.create_workspace(request_a, log)
        before = snapshot(workspace.root)

        materializer.apply_patches(workspace, request_a, log)

        assert snapshot(workspace.root) == before

    async def test_branding_assets_copied(self, materializer, log, temp_dir):
        """Uploaded images land in resources/ and the uploads are removed."""
        logo = temp_dir / "uploads" / "123-logo.png"
        logo.parent.mkdir(parents=True)
        logo.write_bytes(b"\x89PNG logo")
        request = GenerationRequest(
            app_name="MyStore",
            website_url="https://mystoreapp.com",
            package_name="com.mystore.app",
            logo=UploadedAsset(path=logo, filename="logo.png"),
        )

        workspace, _ = await materializer.create_workspace(request, log)

        assert (workspace.resources_dir / "icon.png").read_bytes() == b"\x89PNG logo"
        assert not (workspace.resources_dir / "splash.png").exists()
        assert not logo.exists()
        capacitor = (workspace.root / "capacitor.config.ts").read_text()
        assert "iconPath: 'resources/icon.png'" in capacitor

    async def test_missing_template_raises(self, config, request_a, log, temp_dir):
        """Without a template no workspace is created."""
        config.storage.template_dir = temp_dir / "missing"
        materializer = TemplateMaterializer(config)

        with pytest.raises(MaterializationError):
            await materializer.create_workspace(request_a, log, app_id="abc")

        assert not (config.storage.generated_apps_dir / "abc").exists()

    async def test_failed_step_becomes_warning(self, materializer, request_a, log, template_dir):
        """A patch step that fails is skipped with a warning; the rest still run."""
        (template_dir / "android" / ".gradle").write_text("not a directory")

        workspace, warnings = await materializer.create_workspace(request_a, log)

        assert len(warnings) == 1
        assert "Could not update Android config paths" in warnings[0]
        assert "appId: 'com.mystore.app'" in (workspace.root / "capacitor.config.ts").read_text()

    async def test_progress_is_reported(self, materializer, request_a, log, reporter):
        """Materialization steps are logged to the session."""
        await materializer.create_workspace(request_a, log)

        messages = [entry.message for entry in reporter.get_logs("test-session")]
        assert messages[0] == "📁 Creating app directory and copying template..."
        assert messages[-1] == "✅ App configuration updated"


class TestPatchTable:
    """Tests for the declarative patch primitives."""

    @pytest.fixture
    def ctx(self):
        return PatchContext(
            app_name="My App",
            package_name="com.example.my_app",
            website_url="https://example.com",
            slug="my-app",
            hostname="example.com",
        )

    def test_substitution_first_match_only(self, ctx):
        """count=1 replaces only the first occurrence."""
        rule = Substitution(pattern="X", render=lambda c: c.slug, count=1)
        assert rule.apply("X X", ctx) == "my-app X"

    def test_substitution_inserts_literal_text(self, ctx):
        """Backslashes in rendered values are not treated as group references."""
        rule = Substitution(pattern="PATH", render=lambda c: r"C:\new\1")
        assert rule.apply("sdk=PATH", ctx) == r"sdk=C:\new\1"

    def test_substitution_condition(self, ctx):
        """A rule with a false condition leaves the text alone."""
        rule = Substitution(pattern="a", render=lambda c: "b", when=lambda c, text: c.has_branding_assets)
        assert rule.apply("a", ctx) == "a"

    def test_json_role_sets_fields(self, ctx):
        """JSON roles rewrite keys and keep the rest of the document."""
        role = FileRole(name="manifest", paths=("package.json",), json_fields={"name": lambda c: c.slug})
        rendered = role.render('{"name": "old", "version": "1.0.0"}', ctx)
        assert json.loads(rendered) == {"name": "my-app", "version": "1.0.0"}
        assert rendered.endswith("}\n")

    def test_locate_splits_present_and_missing(self, ctx, temp_dir):
        """Roles report which of their files exist."""
        (temp_dir / "src").mkdir()
        (temp_dir / "src" / "sw.js").write_text("")
        role = FileRole(name="workers", paths=("src/sw.js", "src/assets/sw.js"))

        present, missing = role.locate(temp_dir)

        assert present == [temp_dir / "src" / "sw.js"]
        assert missing == [temp_dir / "src" / "assets" / "sw.js"]

    def test_table_covers_template_roles(self):
        """Every identity-bearing file of the template has a role."""
        names = {role.name for role in build_patch_table(TemplateConfig())}
        assert {
            "capacitor config",
            "web package manifests",
            "index page title",
            "Android strings",
            "app build script",
            "Firebase config",
            "service workers",
        } <= names

    def test_rewrite_java_source(self):
        """The package declaration and placeholders are rewritten."""
        text = "package io.ionic.starter;\n// {{PACKAGE_NAME}}\nimport io.ionic.starter.R;\n"
        rewritten = rewrite_java_source(text, "com.example.app")
        assert rewritten.startswith("package com.example.app;")
        assert "// com.example.app" in rewritten

    def test_cleartext_domain_creates_block(self):
        """A config without a cleartext block gets one."""
        text = "<network-security-config>\n</network-security-config>\n"
        updated = insert_cleartext_domain(text, "example.com")
        assert '<domain-config cleartextTrafficPermitted="true">' in updated
        assert '<domain includeSubdomains="true">example.com</domain>' in updated

    def test_cleartext_domain_already_present(self):
        """An already listed domain is left alone."""
        text = '<domain includeSubdomains="true">example.com</domain>'
        assert insert_cleartext_domain(text, "example.com") is None
