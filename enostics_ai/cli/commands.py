"""CLI commands for enostics."""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from enostics_ai import __brand__, __logo__, __version__

app = typer.Typer(
    name="enostics",
    help=f"{__logo__} {__brand__} - Data endpoint intelligence pipeline",
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to a camelCase JSON config file")
EnvOption = typer.Option(None, "--env", "-e", help="Environment preset (development, production)")


def _cli_fail(cause: str, fix: str | None = None, *, exit_code: int = 1) -> None:
    """Print a consistent CLI error block and exit."""
    console.print(f"[red]{cause}[/red]")
    if fix:
        console.print(f"[dim]Fix: {fix}[/dim]")
    raise typer.Exit(exit_code)


def _load(config_path: Path | None, env: str | None):
    from enostics_ai.config.loader import load_config
    from enostics_ai.config.presets import apply_environment
    from enostics_ai.utils.logging import configure_logging

    config = load_config(config_path)
    if env:
        try:
            config = apply_environment(config, env)
        except ValueError as e:
            _cli_fail(str(e), "Use --env development or --env production")
    configure_logging(config)
    return config


def _read_payload(file: Path) -> Any:
    if not file.exists():
        _cli_fail(f"File not found: {file}")
    try:
        return json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _cli_fail(f"Invalid JSON in {file}: {e}", "Pass a file containing one JSON document")


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, ensure_ascii=False, default=str))


def _status_style(status: str) -> str:
    return {
        "healthy": "[green]healthy[/green]",
        "degraded": "[yellow]degraded[/yellow]",
        "unhealthy": "[red]unhealthy[/red]",
    }.get(status, status)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__brand__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """enostics - Data endpoint intelligence pipeline."""
    pass


@app.command()
def version():
    """Show version."""
    console.print(f"{__logo__} {__brand__} v{__version__}")


@app.command()
def status(
    config_path: Path | None = ConfigOption,
    env: str | None = EnvOption,
):
    """Probe providers and show pipeline health."""
    from enostics_ai.api import build_engine

    config = _load(config_path, env)
    engine = build_engine(config)

    async def _run() -> dict[str, Any]:
        await engine.initialize()
        try:
            return engine.get_health_status()
        finally:
            await engine.shutdown()

    health = asyncio.run(_run())
    console.print(f"{__logo__} {__brand__} Status\n")

    table = Table(title="Providers & Models")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Detail", style="dim")
    for name, record in sorted(health["models"].items()):
        latency = record.get("latency_ms")
        meta = record.get("metadata", {})
        table.add_row(
            name,
            _status_style(record.get("status", "")),
            f"{latency:.1f}" if isinstance(latency, (int, float)) else "-",
            str(record.get("error_count", 0)),
            str(meta.get("error") or meta.get("provider") or ""),
        )
    console.print(table)

    caps = Table(title="Capabilities")
    caps.add_column("Capability", style="cyan")
    caps.add_column("Enabled")
    caps.add_column("Confidence", justify="right")
    for cap in health["capabilities"]:
        caps.add_row(
            cap["name"],
            "[green]✓[/green]" if cap["enabled"] else "[dim]off[/dim]",
            f"{cap['confidence']:.2f}",
        )
    console.print(caps)


@app.command()
def process(
    file: Path = typer.Argument(..., help="JSON payload file"),
    config_path: Path | None = ConfigOption,
    env: str | None = EnvOption,
):
    """Run the analysis engine over a JSON payload."""
    from enostics_ai.api import build_engine
    from enostics_ai.errors import EnosticsError

    payload = _read_payload(file)
    config = _load(config_path, env)
    engine = build_engine(config)

    async def _run():
        await engine.initialize()
        try:
            return await engine.process_data(payload, {"source": "cli", "file": str(file)})
        finally:
            await engine.shutdown()

    try:
        result = asyncio.run(_run())
    except EnosticsError as e:
        _cli_fail(str(e))
    _print_json(result.to_dict())


@app.command()
def review(
    file: Path = typer.Argument(..., help="JSON payload file"),
    source_ip: str | None = typer.Option(None, "--source-ip", help="Sender IP for geolocation enrichment"),
    config_path: Path | None = ConfigOption,
    env: str | None = EnvOption,
):
    """Run the inbox review over a JSON payload."""
    from enostics_ai.api import build_reviewer

    payload = _read_payload(file)
    config = _load(config_path, env)
    reviewer = build_reviewer(config)
    metadata = {"source_ip": source_ip} if source_ip else {}
    result = asyncio.run(reviewer.review_payload(payload, metadata))
    _print_json(result.to_dict())


tools_app = typer.Typer(help="Inspect and call registered capabilities")
app.add_typer(tools_app, name="tools")


@tools_app.command("list")
def tools_list(config_path: Path | None = ConfigOption):
    """List registered capabilities."""
    from enostics_ai.tools.builtin import build_function_registry

    config = _load(config_path, None)
    registry = build_function_registry(config.tools)

    table = Table(title="Capabilities")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Required")
    table.add_column("Description")
    for definition in registry.get_definitions():
        table.add_row(definition.name, ", ".join(definition.required) or "-", definition.description)
    console.print(table)


@tools_app.command("call")
def tools_call(
    name: str = typer.Argument(..., help="Capability name"),
    args: str = typer.Option("{}", "--args", "-a", help="JSON object of arguments"),
    config_path: Path | None = ConfigOption,
):
    """Invoke a capability by name."""
    from enostics_ai.errors import CapabilityNotFound, MissingArgumentsError
    from enostics_ai.tools.builtin import build_function_registry

    try:
        parsed = json.loads(args)
    except json.JSONDecodeError as e:
        _cli_fail(f"Invalid --args JSON: {e}", "Pass a JSON object, e.g. --args '{\"payload\": {}}'")
    if not isinstance(parsed, dict):
        _cli_fail("--args must be a JSON object")

    config = _load(config_path, None)
    registry = build_function_registry(config.tools)
    try:
        result = asyncio.run(registry.execute(name, parsed))
    except CapabilityNotFound as e:
        _cli_fail(str(e), "Run `enostics tools list` to see registered capabilities")
    except MissingArgumentsError as e:
        _cli_fail(str(e))
    _print_json(result)


if __name__ == "__main__":
    app()
