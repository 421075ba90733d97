"""
EZ-GEN CLI.

Command-line interface for serving the generator and running generations.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.config import get_config
from .core.logging import setup_logging

app = typer.Typer(
    name="ezgen",
    help="Wrap websites in Ionic WebView app shells and build Android artifacts",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"EZ-GEN v{__version__}")
        raise typer.Exit()


@app.callback()
def cli(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """EZ-GEN: website to Android app generator."""
    pass


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: EZGEN_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port (default: PORT)"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Run the HTTP generator service."""
    import uvicorn

    from .api import create_app

    config = get_config()
    if verbose:
        config.log_level = "DEBUG"
    setup_logging(config)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    console.print(f"🚀 EZ-GEN App Generator running on http://{bind_host}:{bind_port}")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_config=None)


@app.command()
def generate(
    app_name: str = typer.Option(..., "--name", "-n", help="Display name of the app"),
    website_url: str = typer.Option(..., "--url", "-u", help="Website loaded by the app"),
    package_name: str = typer.Option(
        ...,
        "--package",
        "-p",
        help="Package name (e.g., com.example.myapp)",
    ),
    logo: Optional[Path] = typer.Option(
        None, "--logo", exists=True, dir_okay=False, resolve_path=True, help="Launcher icon image"
    ),
    splash: Optional[Path] = typer.Option(
        None, "--splash", exists=True, dir_okay=False, resolve_path=True, help="Splash screen image"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging"),
) -> None:
    """Generate an app and its Android builds."""
    from .core.exceptions import EZGenError, ValidationError

    config = get_config()
    if verbose:
        config.log_level = "DEBUG"
    setup_logging(config)

    console.print(Panel.fit(
        "[bold blue]EZ-GEN[/bold blue]\n"
        "Website → Ionic WebView shell → APK / AAB",
        border_style="blue",
    ))
    console.print(f"\n[bold]App Name:[/bold] {app_name}")
    console.print(f"[bold]Website:[/bold] {website_url}")
    console.print(f"[bold]Package:[/bold] {package_name}\n")

    async def run_async() -> None:
        from .orchestration.flows import generate_app_flow

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Generating app...", total=None)
            result = await generate_app_flow(
                app_name=app_name,
                website_url=website_url,
                package_name=package_name,
                logo=logo,
                splash=splash,
            )
            progress.update(task, completed=True)

        colour = "green" if result.completed else "yellow"
        console.print(f"\n[bold {colour}]Finished: {result.state.value}[/bold {colour}]\n")

        table = Table(title="Generation Results")
        table.add_column("Item", style="cyan")
        table.add_column("Value")
        table.add_row("App ID", result.app_id)
        table.add_row("Workspace", str(result.workspace_root))
        table.add_row("Sync", result.sync_method or "-")
        for record in result.build.artifacts:
            table.add_row(record.kind.value, str(record.path))
        if result.guide_path:
            table.add_row("Guide", str(result.guide_path))
        console.print(table)

        for diagnostic in result.diagnostics:
            console.print(f"[yellow]• {diagnostic}[/yellow]")

    try:
        asyncio.run(run_async())
    except ValidationError as e:
        console.print(f"[red]Invalid {e.field_name}: {e.message}[/red]")
        raise typer.Exit(2)
    except EZGenError as e:
        console.print(f"[bold red]✗ Generation failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def validate(
    app_name: str = typer.Option(..., "--name", "-n", help="Display name of the app"),
    website_url: str = typer.Option(..., "--url", "-u", help="Website loaded by the app"),
    package_name: str = typer.Option(..., "--package", "-p", help="Package name"),
) -> None:
    """Check generation inputs without creating a workspace."""
    from .services.validation import validate_app_name, validate_package_name, validate_website_url

    table = Table(title="Input Validation")
    table.add_column("Field", style="cyan")
    table.add_column("Result")

    failed = False
    for label, outcome in (
        ("App name", validate_app_name(app_name)),
        ("Website URL", validate_website_url(website_url)),
        ("Package name", validate_package_name(package_name)),
    ):
        if not outcome.is_valid:
            failed = True
            table.add_row(label, f"[red]{outcome.message}[/red]")
        elif outcome.warning:
            table.add_row(label, f"[yellow]{outcome.warning}[/yellow]")
        else:
            table.add_row(label, "[green]OK[/green]")

    console.print(table)
    if failed:
        raise typer.Exit(1)


@app.command()
def doctor() -> None:
    """Check the local Android build environment."""
    from .services.environment import BuildEnvironmentChecker
    from .tooling import LocalToolRunner

    config = get_config()
    setup_logging(config)
    checker = BuildEnvironmentChecker(LocalToolRunner(), config)

    errors, warnings = checker.check_sdk()
    versions = asyncio.run(checker.tool_versions())

    table = Table(title="Build Environment")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Version")
    for tool in versions:
        status = "[green]✓ available[/green]" if tool.available else "[red]✗ missing[/red]"
        table.add_row(tool.name, status, tool.version or "-")
    console.print(table)

    for warning in warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    for error in errors:
        console.print(f"[red]✗ {error}[/red]")

    if errors or not all(t.available for t in versions if t.name in ("keytool", "Java")):
        raise typer.Exit(1)
    console.print("\n[bold green]✓ Environment ready for Android builds[/bold green]")


@app.command()
def config() -> None:
    """Show current configuration."""
    cfg = get_config()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Log Level", cfg.log_level)
    table.add_row("Server", f"{cfg.server.host}:{cfg.server.port}")
    table.add_row("Template", str(cfg.storage.template_dir))
    table.add_row("Generated Apps", str(cfg.storage.generated_apps_dir))
    table.add_row("Artifacts", str(cfg.storage.artifacts_dir))
    table.add_row("Uploads", str(cfg.storage.uploads_dir))
    table.add_row("Android SDK", str(cfg.tools.android_sdk_root))
    table.add_row("Java Home", str(cfg.tools.java_home))
    table.add_row("Sync Command", " ".join(cfg.tools.sync_command))
    table.add_row("Sync Timeout", f"{cfg.pipeline.sync_timeout_seconds:g}s")
    table.add_row("Smoke Test", "on" if cfg.pipeline.smoke_test_enabled else "off")
    table.add_row("Separate Key Password", str(cfg.keystore.separate_key_password))

    console.print(table)

    console.print("\n[dim]Configure via environment variables or .env:[/dim]")
    console.print("  EZGEN_LOG_LEVEL, EZGEN_HOST, PORT, EZGEN_TEMPLATE_DIR")
    console.print("  EZGEN_GENERATED_APPS_DIR, EZGEN_ARTIFACTS_DIR, EZGEN_UPLOADS_DIR")
    console.print("  EZGEN_SYNC_TIMEOUT, EZGEN_SMOKE_TEST, EZGEN_SEPARATE_KEY_PASSWORD")
    console.print("  ANDROID_HOME, ANDROID_SDK_ROOT, JAVA_HOME")


@app.command("cleanup-uploads")
def cleanup_uploads(
    max_age_hours: float = typer.Option(24, "--max-age-hours", help="Remove uploads older than this"),
) -> None:
    """Delete stale uploaded files."""
    from .api.uploads import cleanup_old_uploads

    cfg = get_config()
    removed = cleanup_old_uploads(cfg.storage.uploads_dir, max_age_hours)
    console.print(f"Removed {len(removed)} upload(s) from {cfg.storage.uploads_dir}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
