"""Dashboard state, polling and widget fetching."""

from finboard.dashboard.fetcher import WidgetFetcher
from finboard.dashboard.runtime import DashboardRuntime, WidgetDisplay
from finboard.dashboard.scheduler import PollingScheduler, TimerState
from finboard.dashboard.store import DashboardStore
from finboard.dashboard.validation import build_widget, validate_patch, validate_widget

__all__ = [
    "DashboardRuntime",
    "DashboardStore",
    "PollingScheduler",
    "TimerState",
    "WidgetDisplay",
    "WidgetFetcher",
    "build_widget",
    "validate_patch",
    "validate_widget",
]
