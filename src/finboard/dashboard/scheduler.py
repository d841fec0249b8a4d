"""Per-widget polling timers on the asyncio event loop."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

import structlog

from finboard.dashboard.fetcher import WidgetFetcher
from finboard.models.results import WidgetResult
from finboard.models.widget import Widget

logger = structlog.get_logger()

ResultHandler = Callable[[Widget, WidgetResult], None]
KeyResolver = Callable[[Widget], "str | None"]


class TimerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


def query_signature(widget: Widget, api_key: str | None = None) -> tuple:
    """
    Fields that change what or how often a widget fetches.

    ``api_key`` is the credential the widget actually fetches with; it
    defaults to the widget's own key.
    """
    return (
        api_key if api_key is not None else widget.api_key,
        widget.api_endpoint,
        widget.refresh_interval,
        widget.provider,
        widget.type.value,
        widget.config.get("cardType"),
        widget.config.get("timeInterval"),
    )


@dataclass
class _Timer:
    widget: Widget
    signature: tuple
    state: TimerState = TimerState.STOPPED
    task: asyncio.Task | None = None
    # Bumped by every tick start and by stop; a tick delivers only if it still matches
    token: int = 0
    in_flight: set[asyncio.Task] = field(default_factory=set)

    def tasks(self) -> list[asyncio.Task]:
        return ([self.task] if self.task else []) + list(self.in_flight)


class PollingScheduler:
    """
    Keeps one polling timer per widget in step with the widget list.

    Each running timer ticks immediately and then every
    ``refresh_interval`` seconds. A tick runs as its own task, so a slow
    fetch never delays the next tick, and only the newest tick of a widget
    may deliver its result. Stopping or restarting a timer cancels its
    in-flight ticks.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        fetcher: WidgetFetcher,
        on_result: ResultHandler | None = None,
        resolve_key: KeyResolver | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            fetcher: Performs the fetch for each tick
            on_result: Called with (widget, result) for every delivered tick
            resolve_key: Returns the credential a widget fetches with, so a
                change to a shared key restarts the widgets using it.
                Defaults to the widget's own key.
        """
        self.fetcher = fetcher
        self.on_result = on_result
        self.resolve_key = resolve_key or (lambda widget: widget.api_key)
        self._timers: dict[str, _Timer] = {}

    def signature(self, widget: Widget) -> tuple:
        return query_signature(widget, self.resolve_key(widget))

    @property
    def widget_ids(self) -> list[str]:
        return list(self._timers)

    def state(self, widget_id: str) -> TimerState | None:
        """Timer state, or None if the widget is not registered."""
        timer = self._timers.get(widget_id)
        return timer.state if timer else None

    def reconcile(self, widgets: Iterable[Widget]) -> None:
        """
        Bring timers in line with ``widgets``.

        Timers of removed widgets stop, new widgets start, and widgets whose
        query signature changed restart. The signature uses the resolved
        credential, so calling this after a shared key changes restarts
        every widget that fetches with it. Any other edit only refreshes
        the widget the timer fetches with.
        """
        desired = {w.id: w for w in widgets}

        for widget_id in list(self._timers):
            if widget_id not in desired:
                self._stop(widget_id)

        for widget in desired.values():
            timer = self._timers.get(widget.id)
            if timer is None:
                self._start(widget)
            elif timer.signature != self.signature(widget):
                logger.debug("Query changed, restarting timer", widget_id=widget.id)
                self._stop(widget.id)
                self._start(widget)
            else:
                timer.widget = widget.copy()

    async def refresh_now(self, widget_id: str) -> WidgetResult:
        """
        Fetch a widget immediately, outside its cadence.

        The result is delivered like a tick and also returned.

        Raises:
            KeyError: Widget is not registered
        """
        timer = self._timers.get(widget_id)
        if timer is None:
            raise KeyError(widget_id)
        return await self._spawn_tick(timer)

    def stop_all(self) -> list[asyncio.Task]:
        """Stop every timer. Returns the cancelled tasks."""
        cancelled: list[asyncio.Task] = []
        for widget_id in list(self._timers):
            cancelled.extend(self._stop(widget_id))
        return cancelled

    async def shutdown(self) -> None:
        """Stop every timer and wait until all their tasks have finished."""
        cancelled = self.stop_all()
        if cancelled:
            await asyncio.gather(*cancelled, return_exceptions=True)
        logger.debug("Scheduler shut down", tasks=len(cancelled))

    def _start(self, widget: Widget) -> None:
        timer = _Timer(widget=widget.copy(), signature=self.signature(widget))
        self._timers[widget.id] = timer

        if widget.refresh_interval > 0:
            timer.task = asyncio.get_running_loop().create_task(self._poll(timer))
            timer.state = TimerState.RUNNING
            logger.debug("Timer started", widget_id=widget.id, interval=widget.refresh_interval)
        else:
            logger.debug("Polling disabled for widget", widget_id=widget.id)

    def _stop(self, widget_id: str) -> list[asyncio.Task]:
        timer = self._timers.pop(widget_id, None)
        if timer is None:
            return []

        timer.token += 1
        timer.state = TimerState.STOPPED
        tasks = timer.tasks()
        for task in tasks:
            task.cancel()
        timer.task = None
        logger.debug("Timer stopped", widget_id=widget_id, cancelled=len(tasks))
        return tasks

    async def _poll(self, timer: _Timer) -> None:
        while True:
            self._spawn_tick(timer)
            await asyncio.sleep(timer.widget.refresh_interval)

    def _spawn_tick(self, timer: _Timer) -> asyncio.Task:
        timer.token += 1
        task = asyncio.get_running_loop().create_task(self._tick(timer, timer.token))
        timer.in_flight.add(task)
        task.add_done_callback(timer.in_flight.discard)
        return task

    async def _tick(self, timer: _Timer, token: int) -> WidgetResult:
        widget = timer.widget
        logger.debug("Tick", widget_id=widget.id, token=token)
        result = await self.fetcher.refresh(widget)

        if self._timers.get(widget.id) is not timer or timer.token != token:
            logger.debug("Discarding superseded result", widget_id=widget.id, token=token)
            return result

        if self.on_result is not None:
            try:
                self.on_result(widget, result)
            except Exception:
                logger.exception("Result handler failed", widget_id=widget.id)
        return result
