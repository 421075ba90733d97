"""
Declarative identity patch table.

Each FileRole names the template files that embed the app's identity and the
substitutions applied to them. Adding a new template file role means adding an
entry to `build_patch_table`, not writing new patching code.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ...core.config import TemplateConfig
from ...models.generation import GenerationRequest

CAPACITOR_ASSETS_BLOCK = """webDir: 'www',
  plugins: {
    CapacitorAssets: {
      iconPath: 'resources/icon.png',
      splashPath: 'resources/splash.png',
    }
  }"""


@dataclass(frozen=True)
class PatchContext:
    """Values substituted into template files."""

    app_name: str
    package_name: str
    website_url: str
    slug: str
    hostname: str
    has_branding_assets: bool = False

    @classmethod
    def from_request(cls, request: GenerationRequest) -> PatchContext:
        return cls(
            app_name=request.app_name,
            package_name=request.package_name,
            website_url=request.website_url,
            slug=request.slug,
            hostname=request.hostname,
            has_branding_assets=request.has_branding_assets,
        )


Render = Callable[[PatchContext], str]
Condition = Callable[[PatchContext, str], bool]


@dataclass(frozen=True)
class Substitution:
    """Replace matches of `pattern` with `render(ctx)`.

    The rendered text is inserted literally. `count=0` replaces every match,
    `count=1` only the first one.
    """

    pattern: str
    render: Render
    count: int = 0
    when: Condition | None = None

    def apply(self, text: str, ctx: PatchContext) -> str:
        if self.when is not None and not self.when(ctx, text):
            return text
        replacement = self.render(ctx)
        return re.sub(self.pattern, lambda _: replacement, text, count=self.count)


@dataclass(frozen=True)
class FileRole:
    """A set of files sharing one list of substitutions.

    JSON roles set top-level keys instead of running regex substitutions.
    """

    name: str
    paths: tuple[str, ...]
    rules: tuple[Substitution, ...] = ()
    json_fields: dict[str, Render] = field(default_factory=dict)

    def render(self, text: str, ctx: PatchContext) -> str:
        if self.json_fields:
            document = json.loads(text)
            for key, render in self.json_fields.items():
                document[key] = render(ctx)
            return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        for rule in self.rules:
            text = rule.apply(text, ctx)
        return text

    def locate(self, root: Path) -> tuple[list[Path], list[Path]]:
        """Split the role's paths into (present, missing) under a workspace root."""
        present, missing = [], []
        for relative in self.paths:
            path = root / relative
            (present if path.is_file() else missing).append(path)
        return present, missing


def _first(pattern: str, render: Render, when: Condition | None = None) -> Substitution:
    return Substitution(pattern=pattern, render=render, count=1, when=when)


def _all(pattern: str, render: Render) -> Substitution:
    return Substitution(pattern=pattern, render=render)


def _string_resource(name: str, render: Render) -> Substitution:
    return _first(
        rf'<string name="{name}">.*?</string>',
        lambda ctx: f'<string name="{name}">{render(ctx)}</string>',
    )


def build_patch_table(template: TemplateConfig) -> list[FileRole]:
    """Identity patch table for the Ionic WebView template."""
    brand_name = re.escape(template.brand_name)
    brand_slug = re.escape(template.brand_slug)
    brand_host = re.escape(template.brand_host)

    return [
        FileRole(
            name="capacitor config",
            paths=("capacitor.config.ts",),
            rules=(
                _first(r"appId: '.*?'", lambda ctx: f"appId: '{ctx.package_name}'"),
                _first(r"appName: '.*?'", lambda ctx: f"appName: '{ctx.app_name}'"),
                _first(
                    r"webDir: '[^']*'",
                    lambda ctx: CAPACITOR_ASSETS_BLOCK,
                    when=lambda ctx, text: ctx.has_branding_assets and "CapacitorAssets" not in text,
                ),
            ),
        ),
        FileRole(
            name="web package manifests",
            paths=("package.json", "ionic.config.json"),
            json_fields={"name": lambda ctx: ctx.slug},
        ),
        FileRole(
            name="index page title",
            paths=("src/index.html",),
            rules=(_first(r"<title>.*?</title>", lambda ctx: f"<title>{ctx.app_name}</title>"),),
        ),
        FileRole(
            name="Android strings",
            paths=("android/app/src/main/res/values/strings.xml",),
            rules=(
                _string_resource("app_name", lambda ctx: ctx.app_name),
                _string_resource("title_activity_main", lambda ctx: ctx.app_name),
                _string_resource("package_name", lambda ctx: ctx.package_name),
                _string_resource("custom_url_scheme", lambda ctx: ctx.package_name),
                _all(r"\{\{APP_NAME\}\}", lambda ctx: ctx.app_name),
                _all(r"\{\{PACKAGE_NAME\}\}", lambda ctx: ctx.package_name),
            ),
        ),
        FileRole(
            name="app build script",
            paths=("android/app/build.gradle",),
            rules=(
                _first(r'namespace ".*?"', lambda ctx: f'namespace "{ctx.package_name}"'),
                _first(r'applicationId ".*?"', lambda ctx: f'applicationId "{ctx.package_name}"'),
                _all(r"\{\{PACKAGE_NAME\}\}", lambda ctx: ctx.package_name),
            ),
        ),
        FileRole(
            name="Firebase config",
            paths=("android/app/google-services.json",),
            rules=(
                _all(r'"package_name":\s*"[^"]*"', lambda ctx: f'"package_name": "{ctx.package_name}"'),
            ),
        ),
        FileRole(
            name="app component",
            paths=("src/app/app.component.ts",),
            rules=(
                _first(r"websiteUrl = '.*?'", lambda ctx: f"websiteUrl = '{ctx.website_url}'"),
                _all(rf"{brand_name} app", lambda ctx: f"{ctx.app_name} app"),
                _all(rf"{brand_slug}-updates", lambda ctx: f"{ctx.slug}-updates"),
            ),
        ),
        FileRole(
            name="push notification service",
            paths=("src/app/services/push-notification.service.ts",),
            rules=(
                _all(rf"{brand_slug}-user", lambda ctx: f"{ctx.slug}-user"),
                _all(rf"appName: '{brand_name}'", lambda ctx: f"appName: '{ctx.app_name}'"),
            ),
        ),
        FileRole(
            name="service workers",
            paths=("src/sw.js", "src/assets/sw.js"),
            rules=(
                _all(rf"{brand_slug}-cache", lambda ctx: f"{ctx.slug}-cache"),
                _all(rf"http://{brand_host}", lambda ctx: ctx.website_url),
                _all(brand_host, lambda ctx: ctx.hostname),
            ),
        ),
    ]


def rewrite_java_source(text: str, package_name: str) -> str:
    """Point a relocated Java source at its new package."""
    text = re.sub(r"package .*?;", lambda _: f"package {package_name};", text, count=1)
    return text.replace("{{PACKAGE_NAME}}", package_name)


def insert_cleartext_domain(text: str, hostname: str) -> str | None:
    """Allow cleartext traffic to `hostname` in a network security config.

    Returns:
        The updated document, or None when the domain is already listed.
    """
    domain = f'<domain includeSubdomains="true">{hostname}</domain>'
    if domain in text:
        return None

    entry = f"        {domain}"
    opening = '<domain-config cleartextTrafficPermitted="true">'
    if opening in text:
        return text.replace(opening, f"{opening}\n{entry}", 1)

    block = f"\n    {opening}\n{entry}\n    </domain-config>"
    return text.replace("</network-security-config>", f"{block}\n</network-security-config>", 1)
