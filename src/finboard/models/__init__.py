"""Data models for finboard."""

from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.results import Failure, PartialSuccess, Success, WidgetResult
from finboard.models.widget import CardType, DashboardState, SeriesInterval, Widget, WidgetType

__all__ = [
    "CardType",
    "DashboardState",
    "Failure",
    "FinancialQuote",
    "PartialSuccess",
    "SeriesInterval",
    "SeriesPoint",
    "Success",
    "Widget",
    "WidgetResult",
    "WidgetType",
]
