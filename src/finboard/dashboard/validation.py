"""Widget construction and validation rules."""

from __future__ import annotations

from typing import Any

from finboard.errors import WidgetValidationError
from finboard.models.widget import (
    CardType,
    SeriesInterval,
    Widget,
    WidgetType,
    default_config,
    generate_id,
    widget_size,
)

MIN_REFRESH_INTERVAL = 5

# Fields an edit may touch; id and last_updated are owned by the store
PATCHABLE_FIELDS = frozenset(
    {
        "type",
        "title",
        "description",
        "api_endpoint",
        "api_key",
        "provider",
        "refresh_interval",
        "config",
        "position",
        "size",
        "data_mapping",
    }
)


def _check_config(widget_type: Any, config: Any, errors: dict[str, str]) -> None:
    if not isinstance(config, dict):
        errors["config"] = "must be a mapping"
        return
    try:
        widget_type = WidgetType(widget_type)
    except ValueError:
        return
    if widget_type is WidgetType.CARD and "cardType" in config:
        try:
            CardType(config["cardType"])
        except ValueError:
            errors["config"] = f"unknown cardType '{config['cardType']}'"
    if widget_type is WidgetType.CHART and "timeInterval" in config:
        try:
            SeriesInterval(config["timeInterval"])
        except ValueError:
            errors["config"] = f"unknown timeInterval '{config['timeInterval']}'"


def _check_fields(
    values: dict[str, Any],
    min_interval: float,
    providers: list[str] | None,
    errors: dict[str, str],
    allow_disabled: bool = False,
) -> None:
    if "type" in values:
        try:
            WidgetType(values["type"])
        except ValueError:
            errors["type"] = f"must be one of {', '.join(t.value for t in WidgetType)}"

    if "title" in values:
        title = values["title"]
        if not isinstance(title, str):
            errors["title"] = "must be a string"
        elif not title.strip():
            errors["title"] = "must not be empty"

    if "api_endpoint" in values:
        endpoint = values["api_endpoint"]
        if not isinstance(endpoint, str):
            errors["api_endpoint"] = "must be a comma-separated string of symbols"
        elif not [s for s in endpoint.split(",") if s.strip()]:
            errors["api_endpoint"] = "must list at least one symbol"

    if "api_key" in values and values["api_key"] is not None and not isinstance(values["api_key"], str):
        errors["api_key"] = "must be a string"

    if "refresh_interval" in values:
        interval = values["refresh_interval"]
        if isinstance(interval, bool) or not isinstance(interval, (int, float)):
            errors["refresh_interval"] = "must be a number of seconds"
        elif allow_disabled and interval == 0:
            pass
        elif interval < min_interval:
            errors["refresh_interval"] = f"must be at least {min_interval:g} seconds"

    if providers is not None and "provider" in values and values["provider"] not in providers:
        errors["provider"] = f"unsupported provider '{values['provider']}'"


def validate_widget(
    widget: Widget,
    min_interval: float = MIN_REFRESH_INTERVAL,
    providers: list[str] | None = None,
    allow_disabled: bool = False,
) -> None:
    """
    Check a complete widget.

    ``allow_disabled`` accepts a refresh interval of 0, which older saved
    dashboards use to turn polling off.

    Raises:
        WidgetValidationError: One or more fields are invalid
    """
    errors: dict[str, str] = {}
    if not widget.id:
        errors["id"] = "must not be empty"
    _check_fields(
        {
            "type": widget.type,
            "title": widget.title,
            "api_endpoint": widget.api_endpoint,
            "api_key": widget.api_key,
            "refresh_interval": widget.refresh_interval,
            "provider": widget.provider,
        },
        min_interval,
        providers,
        errors,
        allow_disabled,
    )
    _check_config(widget.type, widget.config, errors)
    if errors:
        raise WidgetValidationError(errors)


def validate_patch(
    patch: dict[str, Any],
    current: Widget | None = None,
    min_interval: float = MIN_REFRESH_INTERVAL,
    providers: list[str] | None = None,
) -> None:
    """
    Check a partial update.

    Only fields present in ``patch`` are checked. When ``current`` is given,
    a replacement ``config`` is checked against the resulting widget type.

    Raises:
        WidgetValidationError: Unknown field, id change, or invalid value
    """
    errors: dict[str, str] = {}
    for name in patch:
        if name == "id":
            if current is None or patch["id"] != current.id:
                errors["id"] = "is immutable"
        elif name not in PATCHABLE_FIELDS:
            errors[name] = "unknown field"

    _check_fields(patch, min_interval, providers, errors)

    if "config" in patch:
        widget_type = patch.get("type", current.type if current else None)
        _check_config(widget_type, patch["config"], errors)

    if errors:
        raise WidgetValidationError(errors)


def build_widget(
    widget_type: WidgetType | str,
    title: str,
    api_endpoint: str,
    refresh_interval: float = 30,
    description: str | None = None,
    api_key: str | None = None,
    provider: str = "alphavantage",
    config: dict[str, Any] | None = None,
) -> Widget:
    """
    Create a new widget with a fresh id, type defaults and derived size.

    Values in ``config`` override the type's default options. Position is
    assigned when the widget is added to a store.

    Raises:
        WidgetValidationError: ``widget_type`` is not card, table or chart
    """
    try:
        widget_type = WidgetType(widget_type)
    except ValueError:
        raise WidgetValidationError(
            {"type": f"must be one of {', '.join(t.value for t in WidgetType)}"}
        ) from None

    return Widget(
        id=generate_id(),
        type=widget_type,
        title=title.strip(),
        api_endpoint=api_endpoint.strip(),
        refresh_interval=refresh_interval,
        description=description or None,
        api_key=api_key or None,
        provider=provider,
        config={**default_config(widget_type), **(config or {})},
        size=widget_size(widget_type),
    )
