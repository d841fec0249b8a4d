"""Shared test fixtures."""

import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from finboard.config import ProviderConfig
from finboard.dashboard.store import DashboardStore
from finboard.data.rate_limit import RateLimitTracker
from finboard.data.storage import MemoryStorage
from finboard.errors import NoDataError
from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.widget import Widget, WidgetType, default_config, widget_size

FIXED_NOW = datetime(2024, 3, 15, 14, 30, tzinfo=timezone.utc)


class FakeProviderClient:
    """In-memory stand-in for ProviderClient."""

    def __init__(self, quotes=None, series=None, movers=None, delays=None):
        """
        Initialize with canned responses.

        Args:
            quotes: Dict mapping symbol -> FinancialQuote or exception to raise
            series: List of SeriesPoint or exception to raise
            movers: List of FinancialQuote or exception to raise
            delays: Dict mapping symbol -> seconds to sleep before answering
        """
        self.quotes = quotes or {}
        self.series = series if series is not None else []
        self.movers = movers if movers is not None else []
        self.delays = delays or {}
        self.calls = []

    def _answer(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def fetch_quote(self, api_key, symbol, provider="alphavantage"):
        self.calls.append(("quote", api_key, symbol, provider))
        time.sleep(self.delays.get(symbol, 0))
        if symbol not in self.quotes:
            raise NoDataError(f"No valid data received for symbol {symbol}")
        return self._answer(self.quotes[symbol])

    def fetch_series(self, api_key, symbol, interval, provider="alphavantage"):
        self.calls.append(("series", api_key, symbol, interval, provider))
        return self._answer(self.series)

    def fetch_top_movers(self, api_key, provider="alphavantage"):
        self.calls.append(("movers", api_key, provider))
        return self._answer(self.movers)


def _make_quote(symbol: str, price: float = 100.0, change: float = 1.0, change_percent: float = 1.0, volume=None):
    return FinancialQuote(
        symbol=symbol,
        price=price,
        change=change,
        change_percent=change_percent,
        timestamp=FIXED_NOW,
        volume=volume,
    )


@pytest.fixture
def make_quote():
    """Factory for FinancialQuote objects."""
    return _make_quote


@pytest.fixture
def sample_series() -> list[SeriesPoint]:
    """Three daily points, oldest first."""
    return [
        SeriesPoint(
            timestamp=datetime(2024, 3, day, tzinfo=timezone.utc),
            open=100.0 + day,
            high=102.0 + day,
            low=99.0 + day,
            close=101.0 + day,
            volume=1_000_000,
        )
        for day in (12, 13, 14)
    ]


@pytest.fixture
def make_widget():
    """Factory for widgets with sensible defaults."""
    counter = {"n": 0}

    def factory(**overrides) -> Widget:
        counter["n"] += 1
        widget_type = WidgetType(overrides.pop("type", WidgetType.CARD))
        config = {**default_config(widget_type), **overrides.pop("config", {})}
        values = {
            "id": f"w{counter['n']}",
            "type": widget_type,
            "title": f"Widget {counter['n']}",
            "api_endpoint": "AAPL",
            "refresh_interval": 30,
            "config": config,
            "size": widget_size(widget_type),
        }
        values.update(overrides)
        return Widget(**values)

    return factory


@pytest.fixture
def make_response():
    """Factory for mocked ``requests`` responses."""

    def factory(payload=None, status_code: int = 200, headers: dict | None = None, json_error: bool = False):
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        if json_error:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        else:
            response.json.return_value = payload
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
        else:
            response.raise_for_status.return_value = None
        return response

    return factory


@pytest.fixture
def fake_client_factory():
    return FakeProviderClient


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(timeout=5)


@pytest.fixture
def rate_limits() -> RateLimitTracker:
    """Tracker frozen at FIXED_NOW."""
    return RateLimitTracker(clock=lambda: FIXED_NOW)


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(memory_storage) -> DashboardStore:
    return DashboardStore(memory_storage)
