"""Dashboard state store with synchronous best-effort persistence."""

from __future__ import annotations

import copy
import json
from datetime import datetime
from typing import Any, Callable, Iterable

import structlog

from finboard.dashboard.validation import (
    MIN_REFRESH_INTERVAL,
    validate_patch,
    validate_widget,
)
from finboard.data.rate_limit import utc_now
from finboard.data.storage import KeyValueStorage
from finboard.errors import ConfigImportError, WidgetValidationError
from finboard.models.widget import DashboardState, Widget, WidgetType, grid_position

logger = structlog.get_logger()

STORAGE_KEY = "finboard-dashboard"

Listener = Callable[[DashboardState], None]


def parse_dashboard(data: Any) -> tuple[list[Widget], dict[str, str]]:
    """
    Turn a ``{widgets, apiKeys}`` document into widgets and credentials.

    Widgets saved with a refresh interval of 0 are accepted and stay
    unpolled. Blank credentials are dropped.

    Raises:
        ConfigImportError: The document has the wrong shape or a widget is invalid
    """
    if not isinstance(data, dict):
        raise ConfigImportError("Configuration must be a JSON object")

    raw_widgets = data.get("widgets", [])
    raw_keys = data.get("apiKeys") or {}
    if not isinstance(raw_widgets, list):
        raise ConfigImportError("'widgets' must be a list")
    if not isinstance(raw_keys, dict):
        raise ConfigImportError("'apiKeys' must be an object")

    widgets: list[Widget] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_widgets):
        if not isinstance(raw, dict):
            raise ConfigImportError(f"Widget #{index} must be an object")
        try:
            widget = Widget.from_dict(raw)
            validate_widget(widget, allow_disabled=True)
        except KeyError as e:
            raise ConfigImportError(f"Widget #{index} is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise ConfigImportError(f"Widget #{index} is invalid: {e}") from e
        if widget.id in seen:
            raise ConfigImportError(f"Duplicate widget id '{widget.id}'")
        seen.add(widget.id)
        widgets.append(widget)

    api_keys = {
        str(provider): str(key).strip()
        for provider, key in raw_keys.items()
        if isinstance(key, str) and key.strip()
    }
    return widgets, api_keys


class DashboardStore:
    """
    Single source of truth for the widget list and provider credentials.

    Every mutation is applied in memory first, then written to storage and
    finally announced to subscribers. A failed write is logged and ignored;
    memory stays authoritative for the session.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        min_refresh_interval: float = MIN_REFRESH_INTERVAL,
        providers: list[str] | None = None,
        seed_api_keys: dict[str, str] | None = None,
    ):
        """
        Initialize the store and rehydrate saved state.

        Args:
            storage: Key-value backend holding the snapshot
            key: Storage key of the snapshot
            min_refresh_interval: Smallest refresh interval accepted on add/edit
            providers: Known provider names; None accepts any
            seed_api_keys: Credentials used for providers with no saved key.
                They are held in memory and written only with the next save.
        """
        self.storage = storage
        self.key = key
        self.min_refresh_interval = min_refresh_interval
        self.providers = providers
        self._listeners: list[Listener] = []
        self._state = self._rehydrate()

        for provider, api_key in (seed_api_keys or {}).items():
            if api_key and provider not in self._state.api_keys:
                self._state.api_keys[provider] = api_key

    @property
    def state(self) -> DashboardState:
        """Live state; treat as read-only and mutate through the store."""
        return self._state

    @property
    def widgets(self) -> list[Widget]:
        return [w.copy() for w in self._state.widgets]

    def get_widget(self, widget_id: str) -> Widget | None:
        widget = self._state.find(widget_id)
        return widget.copy() if widget else None

    def api_key(self, provider: str) -> str | None:
        """Process-wide credential for ``provider``, if any."""
        return self._state.api_keys.get(provider)

    # Persistence

    def _rehydrate(self) -> DashboardState:
        try:
            raw = self.storage.get(self.key)
        except Exception as e:
            logger.warning("Failed to read saved dashboard, using defaults", key=self.key, error=str(e))
            return DashboardState()

        if raw is None:
            return DashboardState()

        try:
            widgets, api_keys = parse_dashboard(json.loads(raw))
        except (ValueError, ConfigImportError) as e:
            logger.warning("Saved dashboard is unreadable, using defaults", key=self.key, error=str(e))
            return DashboardState()

        logger.debug("Dashboard rehydrated", widgets=len(widgets), providers=sorted(api_keys))
        return DashboardState(widgets=widgets, api_keys=api_keys)

    def _save(self) -> None:
        try:
            self.storage.set(self.key, json.dumps(self._state.snapshot()))
        except Exception as e:
            logger.error("Failed to save dashboard", key=self.key, error=str(e))

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    def _commit(self, persist: bool = True) -> None:
        if persist:
            self._save()
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener`` with the state after every mutation.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Widget mutations

    def add_widget(self, widget: Widget) -> Widget:
        """
        Append a widget at the next grid slot.

        Returns:
            Copy of the stored widget

        Raises:
            WidgetValidationError: Invalid fields or duplicate id
        """
        validate_widget(widget, self.min_refresh_interval, self.providers)
        if self._state.find(widget.id) is not None:
            raise WidgetValidationError({"id": f"'{widget.id}' already exists"})

        stored = widget.copy()
        stored.position = grid_position(len(self._state.widgets))
        self._state.widgets.append(stored)
        logger.info("Widget added", widget_id=stored.id, type=stored.type.value, symbols=stored.symbols)
        self._commit()
        return stored.copy()

    def remove_widget(self, widget_id: str) -> bool:
        """Remove a widget. Returns False when no widget has that id."""
        widget = self._state.find(widget_id)
        if widget is None:
            return False

        self._state.widgets.remove(widget)
        if self._state.selected_widget == widget_id:
            self._state.selected_widget = None
        logger.info("Widget removed", widget_id=widget_id)
        self._commit()
        return True

    def update_widget(self, widget_id: str, patch: dict[str, Any]) -> Widget | None:
        """
        Shallow-merge ``patch`` into a widget.

        ``config`` is replaced as a whole when present. Unknown ids are
        ignored.

        Returns:
            Copy of the updated widget, or None if absent

        Raises:
            WidgetValidationError: Invalid patch; nothing is changed
        """
        widget = self._state.find(widget_id)
        if widget is None:
            logger.debug("Update for unknown widget ignored", widget_id=widget_id)
            return None

        validate_patch(patch, widget, self.min_refresh_interval, self.providers)

        for name, value in patch.items():
            if name == "id":
                continue
            if name == "type":
                value = WidgetType(value)
            elif name in ("api_key", "description"):
                value = value or None
            elif isinstance(value, (dict, list)):
                value = copy.deepcopy(value)
            setattr(widget, name, value)

        if patch:
            logger.info("Widget updated", widget_id=widget_id, fields=sorted(patch))
        self._commit()
        return widget.copy()

    def reorder_widgets(self, order: Iterable[Widget | str]) -> None:
        """
        Put widgets in the given order.

        ``order`` holds widgets or ids and must name every current widget
        exactly once. Widgets keep all their fields, including position.

        Raises:
            WidgetValidationError: ``order`` is not a permutation of the current ids
        """
        ids = [item.id if isinstance(item, Widget) else str(item) for item in order]
        current = {w.id: w for w in self._state.widgets}
        if len(ids) != len(current) or set(ids) != set(current):
            raise WidgetValidationError({"order": "must list every current widget id exactly once"})

        self._state.widgets = [current[widget_id] for widget_id in ids]
        logger.info("Widgets reordered", order=ids)
        self._commit()

    def mark_updated(self, widget_id: str, when: datetime | None = None) -> bool:
        """Record a completed non-failed fetch. Returns False for unknown ids."""
        widget = self._state.find(widget_id)
        if widget is None:
            return False
        widget.last_updated = when or utc_now()
        self._commit()
        return True

    # Credentials

    def set_api_key(self, provider: str, key: str | None) -> None:
        """Set the process-wide credential; a blank key removes it."""
        key = (key or "").strip()
        if key:
            self._state.api_keys[provider] = key
            logger.info("API key set", provider=provider)
        else:
            self._state.api_keys.pop(provider, None)
            logger.info("API key removed", provider=provider)
        self._commit()

    # UI-only state, never persisted

    def select_widget(self, widget_id: str | None) -> None:
        self._state.selected_widget = widget_id
        self._commit(persist=False)

    def set_loading(self, is_loading: bool) -> None:
        self._state.is_loading = is_loading
        self._commit(persist=False)

    def set_error(self, error: str | None) -> None:
        self._state.error = error
        self._commit(persist=False)

    # Export / import

    def export_config(self) -> str:
        """Serialize widgets and credentials as an indented JSON document."""
        document = self._state.snapshot()
        document["exportDate"] = utc_now().isoformat()
        return json.dumps(document, indent=2)

    def import_config(self, text: str) -> None:
        """
        Replace widgets and credentials with those in an exported document.

        Raises:
            ConfigImportError: Malformed document; the store is left untouched
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigImportError(f"Configuration is not valid JSON: {e}") from e

        widgets, api_keys = parse_dashboard(data)

        self._state.widgets = widgets
        self._state.api_keys = api_keys
        if self._state.selected_widget and self._state.find(self._state.selected_widget) is None:
            self._state.selected_widget = None
        logger.info("Configuration imported", widgets=len(widgets), providers=sorted(api_keys))
        self._commit()
