"""Wire the store, scheduler and fetcher into a running dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import structlog

from finboard.config import Settings
from finboard.dashboard.fetcher import WidgetFetcher
from finboard.dashboard.scheduler import PollingScheduler
from finboard.dashboard.store import DashboardStore
from finboard.data.client import ProviderClient
from finboard.data.rate_limit import utc_now
from finboard.models.results import Failure, PartialSuccess, WidgetResult
from finboard.models.widget import DashboardState, Widget

logger = structlog.get_logger()


@dataclass
class WidgetDisplay:
    """What a widget currently shows.

    A failed fetch sets ``error`` but keeps the last good ``data``.
    """

    data: Any = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    updated_at: datetime | None = None


DisplayListener = Callable[[str, WidgetDisplay], None]


class DashboardRuntime:
    """
    Runs a dashboard: polls every widget and tracks what each one shows.

    Store changes re-reconcile the scheduler. Fetch results go into
    ``display``; only the completion time of a non-failed fetch is written
    back to the store.
    """

    def __init__(
        self,
        store: DashboardStore,
        client: ProviderClient | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        settings = settings or Settings()
        self.client = client or ProviderClient(settings.providers)
        self.fetcher = WidgetFetcher(self.client, store.api_key)
        self.scheduler = PollingScheduler(self.fetcher, self._on_result, self.fetcher.resolve_api_key)
        self.display: dict[str, WidgetDisplay] = {}
        self._listeners: list[DisplayListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def add_listener(self, listener: DisplayListener) -> None:
        """Call ``listener(widget_id, display)`` after every delivered result."""
        self._listeners.append(listener)

    def start(self) -> None:
        """Start polling. Must be called from a running event loop."""
        if self.running:
            return
        self._unsubscribe = self.store.subscribe(self._on_store_change)
        self.scheduler.reconcile(self.store.state.widgets)
        logger.info("Dashboard started", widgets=len(self.store.state.widgets))

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.scheduler.shutdown()
        logger.info("Dashboard stopped")

    async def refresh(self, widget_id: str) -> WidgetResult:
        """
        Refresh one widget now.

        Works whether or not the runtime is polling.

        Raises:
            KeyError: No widget with that id
        """
        if widget_id in self.scheduler.widget_ids:
            return await self.scheduler.refresh_now(widget_id)

        widget = self.store.get_widget(widget_id)
        if widget is None:
            raise KeyError(widget_id)
        result = await self.fetcher.refresh(widget)
        self._on_result(widget, result)
        return result

    def _on_store_change(self, state: DashboardState) -> None:
        self.scheduler.reconcile(state.widgets)
        live = {w.id for w in state.widgets}
        for widget_id in list(self.display):
            if widget_id not in live:
                del self.display[widget_id]

    def _on_result(self, widget: Widget, result: WidgetResult) -> None:
        display = self.display.setdefault(widget.id, WidgetDisplay())

        if isinstance(result, Failure):
            display.error = result.message
        else:
            display.data = result.data
            display.warnings = list(result.warnings) if isinstance(result, PartialSuccess) else []
            display.error = None
            display.updated_at = utc_now()
            self.store.mark_updated(widget.id, display.updated_at)

        for listener in list(self._listeners):
            listener(widget.id, display)
