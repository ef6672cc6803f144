"""
Action Recorder - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--dedup-window, --browser, etc.)
    2. Environment variables (ACTION_RECORDER__CAPTURE__DEDUP_WINDOW_MS, etc.)
    3. Config file (action-recorder.yaml)

Usage:
    action-recorder capture page.yaml steps.yaml -o recording.json
    action-recorder export recording.json --format playwright -o replay.py
    action-recorder snapshot https://example.com -o page.yaml
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from action_recorder import __version__
from action_recorder.browsers.playwright_loader import capture_url, save_bundle
from action_recorder.config import load_config
from action_recorder.dom.builder import load_window
from action_recorder.exceptions import ActionRecorderError
from action_recorder.export import JSONExporter, PlaywrightScriptGenerator
from action_recorder.recorder.models import Recording
from action_recorder.scenario import load_scenario, run_scenario
from action_recorder.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="action-recorder",
    help="Record page interactions as replayable actions across frames and shadow DOM",
    add_completion=False,
)

console = Console(stderr=True)


def _settings(config: Optional[Path], verbose: bool, **overrides):
    try:
        settings = load_config(config_path=config, **overrides)
    except ActionRecorderError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)
    setup_logging(
        "DEBUG" if verbose else settings.logging.level,
        log_file=settings.logging.file,
        json_format=settings.logging.json_format,
        fmt=settings.logging.format,
    )
    return settings


def _write(text: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓ Wrote {output}[/green]")


def _action_table(recording: Recording) -> Table:
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("#", width=3)
    table.add_column("Type", width=10)
    table.add_column("Description", style="dim")
    table.add_column("Locator")
    table.add_column("Context", width=12)

    for i, action in enumerate(recording.actions, 1):
        context = []
        if action.in_iframe:
            context.append(f"iframe×{len(action.frame_context)}")
        if action.in_shadow_dom:
            context.append(f"shadow×{len(action.shadow_context)}")
        locator = action.locator.best if action.locator else ""
        table.add_row(str(i), action.kind.value, action.description, locator, " ".join(context))
    return table


@app.command()
def capture(
    page: Path = typer.Argument(..., help="Page bundle (.yaml or .json)"),
    scenario: Path = typer.Argument(..., help="Scenario file with user steps (.yaml)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the recording JSON here"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Recording name (default: from scenario)"),
    dedup_window: Optional[int] = typer.Option(None, "--dedup-window", help="Deduplication window in ms"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Record a scripted scenario against a page bundle.

    Examples:
        action-recorder capture page.yaml steps.yaml
        action-recorder capture page.yaml steps.yaml -o recording.json --name Checkout
    """
    overrides = {}
    if dedup_window is not None:
        overrides["capture"] = {"dedup_window_ms": dedup_window}
    settings = _settings(config, verbose, **overrides)

    for path in (page, scenario):
        if not path.exists():
            console.print(f"[red]✗ File not found: {path}[/red]")
            raise typer.Exit(1)

    try:
        window = load_window(page)
        steps = load_scenario(scenario)
        if name:
            steps["name"] = name
        recording = run_scenario(window, steps, settings=settings)
    except ActionRecorderError as e:
        console.print(f"[red]✗ Capture failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold blue]Recording[/bold blue] {recording.name}\n"
        f"[dim]Page:[/dim] {recording.url}\n"
        f"[dim]Actions:[/dim] {len(recording)}",
        border_style="blue",
    ))
    console.print(_action_table(recording))
    _write(recording.to_json(), output)


@app.command()
def export(
    recording_file: Path = typer.Argument(..., help="Recording JSON produced by capture"),
    format: str = typer.Option("json", "--format", "-f", help="Export format: json, playwright"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: stdout)"),
    sync: bool = typer.Option(False, "--sync", help="Generate a sync Playwright script"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Export a recording as annotated JSON or as a Playwright script.
    """
    settings = _settings(config, verbose)

    if not recording_file.exists():
        console.print(f"[red]✗ File not found: {recording_file}[/red]")
        raise typer.Exit(1)
    try:
        recording = Recording.from_json(recording_file.read_text(encoding="utf-8"))
    except (ValueError, KeyError) as e:
        console.print(f"[red]✗ Not a recording: {e}[/red]")
        raise typer.Exit(1)

    if format == "json":
        _write(JSONExporter().export(recording), output)
    elif format == "playwright":
        generator = PlaywrightScriptGenerator.from_settings(settings.export)
        if sync:
            generator = PlaywrightScriptGenerator(
                async_mode=False,
                include_comments=settings.export.include_comments,
                browser_type=settings.export.browser_type,
                headless=settings.export.headless,
                parametrize_inputs=settings.export.parametrize_inputs,
            )
        _write(generator.generate(recording), output)
    else:
        console.print(f"[red]✗ Unknown format: {format}[/red]")
        raise typer.Exit(1)


@app.command()
def snapshot(
    url: str = typer.Argument(..., help="Page to snapshot"),
    output: Path = typer.Option(Path("page.yaml"), "--output", "-o", help="Page bundle file"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    browser: Optional[str] = typer.Option(None, "--browser", "-b", help="Browser: chromium, firefox, webkit"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Snapshot a live page (all frames, open shadow roots) into a page bundle.
    """
    overrides = {"browser": {"headless": not visible}}
    if browser:
        overrides["browser"]["browser_type"] = browser
    settings = _settings(config, verbose, **overrides)

    try:
        bundle = asyncio.run(capture_url(url, settings.browser))
    except ActionRecorderError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    if output.suffix.lower() == ".json":
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(bundle, indent=2), encoding="utf-8")
    else:
        save_bundle(bundle, output)
    console.print(f"[green]✓ Saved snapshot of {url} to {output}[/green]")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Action Recorder[/bold] v{__version__}")


if __name__ == "__main__":
    app()
