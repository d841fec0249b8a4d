"""Widget and dashboard state models."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

# Per-type configuration, kept as the plain dict the dashboard persists
WidgetConfig = dict[str, Any]

GRID_COLUMNS = 3

WIDGET_SIZES: dict[str, dict[str, int]] = {
    "card": {"width": 300, "height": 200},
    "table": {"width": 600, "height": 400},
    "chart": {"width": 500, "height": 350},
}


class WidgetType(str, Enum):
    """Rendering mode of a widget."""

    CARD = "card"
    TABLE = "table"
    CHART = "chart"


class CardType(str, Enum):
    """What a card widget shows."""

    WATCHLIST = "watchlist"
    GAINERS = "gainers"
    PERFORMANCE = "performance"
    FINANCIAL = "financial"


class SeriesInterval(str, Enum):
    """Supported series granularities."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def generate_id() -> str:
    """Return a new opaque widget id."""
    return uuid.uuid4().hex[:12]


def grid_position(index: int, cols: int = GRID_COLUMNS) -> dict[str, int]:
    """Grid slot for the widget at ``index``."""
    return {"x": index % cols, "y": index // cols}


def widget_size(widget_type: WidgetType | str) -> dict[str, int]:
    """Default pixel size for a widget type."""
    return dict(WIDGET_SIZES[WidgetType(widget_type).value])


def default_config(widget_type: WidgetType | str) -> WidgetConfig:
    """Default variant options for a widget type."""
    widget_type = WidgetType(widget_type)
    if widget_type is WidgetType.TABLE:
        return {
            "showSearch": True,
            "showPagination": True,
            "itemsPerPage": 10,
            "columns": [
                {"key": "symbol", "label": "Symbol", "sortable": True},
                {"key": "price", "label": "Price", "format": "currency", "sortable": True},
                {"key": "change", "label": "Change", "format": "currency", "sortable": True},
                {"key": "changePercent", "label": "Change %", "format": "percentage", "sortable": True},
            ],
        }
    if widget_type is WidgetType.CARD:
        return {"cardType": CardType.WATCHLIST.value, "showTrend": True}
    return {
        "chartType": "line",
        "timeInterval": SeriesInterval.DAILY.value,
        "showVolume": False,
    }


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class Widget:
    """A user-configured dashboard unit bound to one or more symbols.

    Attributes:
        id: Opaque identity, stable across edits and reorders.
        type: Rendering mode.
        title: Display title.
        api_endpoint: Comma-separated symbol list.
        refresh_interval: Polling period in seconds (0 disables polling).
        description: Optional subtitle.
        api_key: Per-widget credential override.
        provider: Provider the widget queries.
        config: Variant options keyed by type.
        position: Grid slot, opaque to the core.
        size: Pixel size, opaque to the core.
        data_mapping: Opaque field mapping carried through persistence.
        last_updated: Completion time of the last non-failed fetch.
    """

    id: str
    type: WidgetType
    title: str
    api_endpoint: str
    refresh_interval: float
    description: str | None = None
    api_key: str | None = None
    provider: str = "alphavantage"
    config: WidgetConfig = field(default_factory=dict)
    position: dict[str, int] = field(default_factory=lambda: {"x": 0, "y": 0})
    size: dict[str, int] = field(default_factory=lambda: widget_size(WidgetType.CARD))
    data_mapping: dict[str, str] = field(default_factory=dict)
    last_updated: datetime | None = None

    @property
    def symbols(self) -> list[str]:
        """Symbols listed in ``api_endpoint``, in order, blanks dropped."""
        return [s.strip().upper() for s in self.api_endpoint.split(",") if s.strip()]

    @property
    def card_type(self) -> CardType:
        return CardType(self.config.get("cardType", CardType.WATCHLIST.value))

    @property
    def time_interval(self) -> SeriesInterval:
        return SeriesInterval(self.config.get("timeInterval", SeriesInterval.DAILY.value))

    def copy(self) -> "Widget":
        """Deep copy, so callers never share mutable config with the store."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "apiEndpoint": self.api_endpoint,
            "apiKey": self.api_key,
            "provider": self.provider,
            "refreshInterval": self.refresh_interval,
            "config": copy.deepcopy(self.config),
            "position": dict(self.position),
            "size": dict(self.size),
            "dataMapping": dict(self.data_mapping),
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Widget":
        """Create from dictionary.

        Raises:
            KeyError: A required field is missing.
            ValueError: A field has an unusable value.
        """
        widget_type = WidgetType(data["type"])
        return cls(
            id=str(data["id"]),
            type=widget_type,
            title=data["title"],
            api_endpoint=data["apiEndpoint"],
            refresh_interval=data.get("refreshInterval", 0) or 0,
            description=data.get("description"),
            api_key=data.get("apiKey") or None,
            provider=data.get("provider") or "alphavantage",
            config=copy.deepcopy(data.get("config") or {}),
            position=dict(data.get("position") or {"x": 0, "y": 0}),
            size=dict(data.get("size") or widget_size(widget_type)),
            data_mapping=dict(data.get("dataMapping") or {}),
            last_updated=_parse_datetime(data.get("lastUpdated")),
        )


@dataclass
class DashboardState:
    """Everything the dashboard store owns.

    ``selected_widget``, ``is_loading`` and ``error`` are UI-only and never
    persisted.
    """

    widgets: list[Widget] = field(default_factory=list)
    api_keys: dict[str, str] = field(default_factory=dict)
    selected_widget: str | None = None
    is_loading: bool = False
    error: str | None = None

    def find(self, widget_id: str) -> Widget | None:
        for widget in self.widgets:
            if widget.id == widget_id:
                return widget
        return None

    def snapshot(self) -> dict:
        """The persisted record: widget sequence and credential map."""
        return {
            "widgets": [w.to_dict() for w in self.widgets],
            "apiKeys": dict(self.api_keys),
        }
