"""Rich renderables for widgets and their data."""

from __future__ import annotations

from typing import Any

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.widget import CardType, Widget, WidgetType
from finboard.utils.formatting import (
    change_style,
    format_currency,
    format_number,
    format_percentage,
)


def format_widgets_table(widgets: list[Widget]) -> Table:
    """Table of widget definitions in dashboard order."""
    table = Table(title=f"Widgets ({len(widgets)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Symbols")
    table.add_column("Provider")
    table.add_column("Every", justify="right")
    table.add_column("Last Updated")

    for index, widget in enumerate(widgets, start=1):
        kind = widget.type.value
        if widget.type is WidgetType.CARD:
            kind = f"card/{widget.config.get('cardType', CardType.WATCHLIST.value)}"
        elif widget.type is WidgetType.CHART:
            kind = f"chart/{widget.config.get('timeInterval', 'daily')}"

        table.add_row(
            str(index),
            widget.id,
            kind,
            widget.title,
            ", ".join(widget.symbols),
            widget.provider + (" [dim](own key)[/dim]" if widget.api_key else ""),
            f"{widget.refresh_interval:g}s" if widget.refresh_interval > 0 else "off",
            widget.last_updated.strftime("%Y-%m-%d %H:%M:%S") if widget.last_updated else "-",
        )
    return table


def format_quotes_table(quotes: list[FinancialQuote], title: str | None = None, show_volume: bool = False) -> Table:
    table = Table(title=title)
    table.add_column("Symbol", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Change %", justify="right")
    if show_volume:
        table.add_column("Volume", justify="right")

    for quote in quotes:
        style = change_style(quote.change)
        row = [
            quote.symbol,
            format_currency(quote.price),
            Text(f"{'+' if quote.change >= 0 else ''}{quote.change:.2f}", style=style),
            Text(format_percentage(quote.change_percent), style=style),
        ]
        if show_volume:
            row.append(format_number(quote.volume) if quote.volume is not None else "-")
        table.add_row(*row)
    return table


def format_series_table(points: list[SeriesPoint], title: str | None = None, limit: int = 10) -> Table:
    """Most recent ``limit`` points, newest last."""
    table = Table(title=title, caption=f"{len(points)} points" if points else None)
    table.add_column("Date")
    table.add_column("Open", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Close", justify="right", style="bold")
    table.add_column("Volume", justify="right")

    for point in points[-limit:]:
        table.add_row(
            point.timestamp.strftime("%Y-%m-%d"),
            f"{point.open:,.2f}",
            f"{point.high:,.2f}",
            f"{point.low:,.2f}",
            f"{point.close:,.2f}",
            format_number(point.volume) if point.volume is not None else "-",
        )
    return table


def _render_data(widget: Widget, data: Any) -> RenderableType:
    if not data:
        return Text("No data", style="dim")
    if isinstance(data[0], SeriesPoint):
        return format_series_table(data)
    show_volume = widget.type is WidgetType.TABLE or (
        widget.type is WidgetType.CARD and widget.card_type is CardType.PERFORMANCE
    )
    return format_quotes_table(data, show_volume=show_volume)


def render_widget(widget: Widget, display: Any | None = None) -> Panel:
    """
    Panel showing a widget's current data, warnings and error.

    ``display`` is anything with ``data``, ``warnings`` and ``error``
    attributes; None renders a waiting placeholder.
    """
    parts: list[RenderableType] = []
    if display is None:
        parts.append(Text("Waiting for data...", style="dim"))
    else:
        if display.data is not None:
            parts.append(_render_data(widget, display.data))
        for warning in display.warnings:
            parts.append(Text(f"! {warning}", style="yellow"))
        if display.error:
            parts.append(Text(display.error, style="red"))

    subtitle = None
    if widget.last_updated:
        subtitle = f"updated {widget.last_updated.strftime('%H:%M:%S')}"

    return Panel(
        Group(*parts),
        title=f"[bold]{widget.title}[/bold] [dim]{widget.id}[/dim]",
        subtitle=subtitle,
    )


def render_dashboard(widgets: list[Widget], displays: dict[str, Any]) -> Group:
    if not widgets:
        return Group(Text("No widgets configured. Add one with 'finboard add'.", style="yellow"))
    return Group(*(render_widget(w, displays.get(w.id)) for w in widgets))
