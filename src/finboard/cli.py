"""Command-line interface for finboard."""

import asyncio
import json
from datetime import date
from pathlib import Path

import click
from rich.console import Console
from rich.live import Live

from finboard import __version__
from finboard.config import Settings, get_settings, load_settings
from finboard.dashboard.runtime import DashboardRuntime
from finboard.dashboard.store import DashboardStore
from finboard.dashboard.validation import build_widget
from finboard.data.client import PROVIDER_CLASSES
from finboard.data.storage import SQLiteStorage
from finboard.errors import ConfigImportError, WidgetValidationError
from finboard.models.widget import CardType, SeriesInterval, WidgetType
from finboard.output.formatters import format_widgets_table, render_dashboard, render_widget
from finboard.utils.formatting import validate_api_key
from finboard.utils.logging import setup_logging

console = Console()

PROVIDER_CHOICES = list(PROVIDER_CLASSES)


def create_store(settings: Settings, db_path: str | None = None) -> DashboardStore:
    """
    Open the persisted dashboard.

    Args:
        settings: Application settings
        db_path: Overrides the storage path from settings

    Returns:
        DashboardStore seeded with credentials from the environment
    """
    storage = SQLiteStorage(db_path or settings.storage.path)
    return DashboardStore(
        storage,
        key=settings.storage.key,
        min_refresh_interval=settings.scheduler.min_refresh_interval,
        providers=PROVIDER_CHOICES,
        seed_api_keys=settings.env_api_keys(),
    )


def _store(ctx: click.Context) -> DashboardStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = create_store(ctx.obj["settings"], ctx.obj.get("db_path"))
    return ctx.obj["store"]


def _fail(ctx: click.Context, message: str) -> None:
    console.print(f"[red]{message}[/red]")
    ctx.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.option("--config", type=click.Path(exists=True), help="Path to config file")
@click.option("--db-path", type=click.Path(), default=None, help="Path to dashboard database (default: from config)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None, db_path: str | None) -> None:
    """Finboard - Financial dashboard widgets in the terminal."""
    ctx.ensure_object(dict)

    # Load settings
    settings = load_settings(config) if config else get_settings()
    ctx.obj["settings"] = settings
    ctx.obj["db_path"] = db_path

    # Setup logging
    log_level = "DEBUG" if verbose else settings.logging.level
    setup_logging(log_level)


@cli.command("list")
@click.pass_context
def list_widgets(ctx: click.Context) -> None:
    """List widgets in dashboard order."""
    store = _store(ctx)
    widgets = store.widgets
    if not widgets:
        console.print("[yellow]No widgets configured[/yellow]")
        return
    console.print(format_widgets_table(widgets))

    keys = store.state.api_keys
    configured = ", ".join(sorted(keys)) if keys else "none"
    console.print(f"[dim]API keys: {configured}[/dim]")


@cli.command()
@click.option(
    "--type",
    "widget_type",
    type=click.Choice([t.value for t in WidgetType]),
    default=WidgetType.CARD.value,
    help="Widget type",
)
@click.option("--title", required=True, help="Widget title")
@click.option("--symbols", required=True, help="Comma-separated symbols, e.g. AAPL,MSFT")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Refresh interval in seconds (default: from config)",
)
@click.option("--description", default=None, help="Optional subtitle")
@click.option("--api-key", default=None, help="Key for this widget only")
@click.option("--provider", type=click.Choice(PROVIDER_CHOICES), default=None, help="Data provider (default: from config)")
@click.option(
    "--card-type",
    type=click.Choice([c.value for c in CardType]),
    default=None,
    help="What a card shows",
)
@click.option(
    "--time-interval",
    type=click.Choice([i.value for i in SeriesInterval]),
    default=None,
    help="Chart series interval",
)
@click.pass_context
def add(
    ctx: click.Context,
    widget_type: str,
    title: str,
    symbols: str,
    interval: float | None,
    description: str | None,
    api_key: str | None,
    provider: str | None,
    card_type: str | None,
    time_interval: str | None,
) -> None:
    """Add a widget to the end of the dashboard."""
    settings = ctx.obj["settings"]
    store = _store(ctx)

    config = {}
    if card_type:
        config["cardType"] = card_type
    if time_interval:
        config["timeInterval"] = time_interval

    widget = build_widget(
        widget_type,
        title=title,
        api_endpoint=symbols,
        refresh_interval=interval if interval is not None else settings.scheduler.default_refresh_interval,
        description=description,
        api_key=api_key,
        provider=provider or settings.default_provider,
        config=config,
    )

    try:
        stored = store.add_widget(widget)
    except WidgetValidationError as e:
        _fail(ctx, str(e))
        return

    console.print(f"[green]Added {stored.type.value} widget '{stored.title}' ({stored.id})[/green]")


@cli.command()
@click.argument("widget_id")
@click.pass_context
def remove(ctx: click.Context, widget_id: str) -> None:
    """Remove a widget."""
    if _store(ctx).remove_widget(widget_id):
        console.print(f"[green]Removed widget {widget_id}[/green]")
    else:
        console.print(f"[yellow]No widget with id {widget_id}[/yellow]")


@cli.command()
@click.argument("widget_id")
@click.option("--title", default=None)
@click.option("--symbols", default=None, help="Comma-separated symbols")
@click.option("--interval", type=float, default=None, help="Refresh interval in seconds")
@click.option("--description", default=None)
@click.option("--api-key", default=None, help="Key for this widget only; empty string clears it")
@click.option("--provider", type=click.Choice(PROVIDER_CHOICES), default=None)
@click.option("--card-type", type=click.Choice([c.value for c in CardType]), default=None)
@click.option("--time-interval", type=click.Choice([i.value for i in SeriesInterval]), default=None)
@click.pass_context
def update(
    ctx: click.Context,
    widget_id: str,
    title: str | None,
    symbols: str | None,
    interval: float | None,
    description: str | None,
    api_key: str | None,
    provider: str | None,
    card_type: str | None,
    time_interval: str | None,
) -> None:
    """Edit a widget."""
    store = _store(ctx)
    current = store.get_widget(widget_id)
    if current is None:
        _fail(ctx, f"No widget with id {widget_id}")
        return

    patch = {}
    if title is not None:
        patch["title"] = title
    if symbols is not None:
        patch["api_endpoint"] = symbols
    if interval is not None:
        patch["refresh_interval"] = interval
    if description is not None:
        patch["description"] = description
    if api_key is not None:
        patch["api_key"] = api_key
    if provider is not None:
        patch["provider"] = provider
    if card_type or time_interval:
        config = dict(current.config)
        if card_type:
            config["cardType"] = card_type
        if time_interval:
            config["timeInterval"] = time_interval
        patch["config"] = config

    if not patch:
        console.print("[yellow]Nothing to update[/yellow]")
        return

    try:
        store.update_widget(widget_id, patch)
    except WidgetValidationError as e:
        _fail(ctx, str(e))
        return

    console.print(f"[green]Updated widget {widget_id}: {', '.join(sorted(patch))}[/green]")


@cli.command()
@click.argument("widget_ids", nargs=-1, required=True)
@click.pass_context
def reorder(ctx: click.Context, widget_ids: tuple[str, ...]) -> None:
    """Reorder widgets; list every widget id in the new order."""
    try:
        _store(ctx).reorder_widgets(widget_ids)
    except WidgetValidationError as e:
        _fail(ctx, str(e))
        return
    console.print("[green]Widgets reordered[/green]")


@cli.command("set-key")
@click.argument("provider", type=click.Choice(PROVIDER_CHOICES))
@click.argument("key", required=False, default="")
@click.pass_context
def set_key(ctx: click.Context, provider: str, key: str) -> None:
    """Set the API key for a provider; omit KEY to remove it."""
    store = _store(ctx)
    key = key.strip()
    if key and not validate_api_key(key, provider):
        console.print(f"[yellow]Warning: key does not look like a {provider} key[/yellow]")

    store.set_api_key(provider, key)
    if key:
        console.print(f"[green]API key saved for {provider}[/green]")
    else:
        console.print(f"[green]API key removed for {provider}[/green]")


@cli.command()
@click.option(
    "--output",
    "output_path",
    type=click.Path(),
    default=None,
    help="File to write; '-' for stdout (default: finboard-config-<date>.json)",
)
@click.pass_context
def export(ctx: click.Context, output_path: str | None) -> None:
    """Export widgets and API keys as JSON."""
    document = _store(ctx).export_config()

    if output_path == "-":
        click.echo(document)
        return

    path = Path(output_path or f"finboard-config-{date.today().isoformat()}.json")
    path.write_text(document)
    console.print(f"[green]Configuration exported to: {path}[/green]")


@cli.command("import")
@click.argument("config_file", type=click.Path(exists=True))
@click.pass_context
def import_config(ctx: click.Context, config_file: str) -> None:
    """Replace widgets and API keys with an exported configuration."""
    store = _store(ctx)
    try:
        store.import_config(Path(config_file).read_text())
    except ConfigImportError as e:
        _fail(ctx, f"Failed to import configuration: {e}")
        return

    console.print(
        f"[green]Imported {len(store.state.widgets)} widgets and "
        f"{len(store.state.api_keys)} API keys from {config_file}[/green]"
    )


@cli.command()
@click.argument("widget_id")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def refresh(ctx: click.Context, widget_id: str, as_json: bool) -> None:
    """Fetch one widget now and show the result."""
    store = _store(ctx)
    if store.get_widget(widget_id) is None:
        _fail(ctx, f"No widget with id {widget_id}")
        return

    runtime = DashboardRuntime(store, settings=ctx.obj["settings"])
    result = asyncio.run(runtime.refresh(widget_id))

    if as_json:
        if result.ok:
            payload = {"ok": True, "data": [item.to_dict() for item in result.data]}
            payload["warnings"] = getattr(result, "warnings", [])
        else:
            payload = {"ok": False, "code": result.reason.code.value, "error": result.message}
        click.echo(json.dumps(payload, indent=2))
    else:
        console.print(render_widget(store.get_widget(widget_id), runtime.display.get(widget_id)))

    if not result.ok:
        ctx.exit(1)


async def _watch(runtime: DashboardRuntime, duration: float | None) -> None:
    store = runtime.store

    with Live(render_dashboard(store.widgets, runtime.display), console=console, refresh_per_second=4) as live:
        runtime.add_listener(lambda widget_id, display: live.update(render_dashboard(store.widgets, runtime.display)))
        runtime.start()
        try:
            if duration:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            await runtime.stop()


@cli.command()
@click.option("--duration", type=float, default=None, help="Stop after this many seconds (default: until Ctrl-C)")
@click.pass_context
def watch(ctx: click.Context, duration: float | None) -> None:
    """Poll every widget on its schedule and keep the view updated."""
    store = _store(ctx)
    if not store.widgets:
        console.print("[yellow]No widgets configured[/yellow]")
        return

    runtime = DashboardRuntime(store, settings=ctx.obj["settings"])
    console.print(f"[cyan]Watching {len(store.widgets)} widgets. Press Ctrl-C to stop.[/cyan]")
    try:
        asyncio.run(_watch(runtime, duration))
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
