"""Data layer for fetching quotes and persisting dashboard state."""

from finboard.data.alphavantage_provider import AlphaVantageProvider
from finboard.data.base import DataProvider
from finboard.data.client import ProviderClient
from finboard.data.finnhub_provider import FinnhubProvider
from finboard.data.rate_limit import ProviderRateLimit, RateLimitTracker
from finboard.data.storage import KeyValueStorage, MemoryStorage, SQLiteStorage

__all__ = [
    "AlphaVantageProvider",
    "DataProvider",
    "FinnhubProvider",
    "KeyValueStorage",
    "MemoryStorage",
    "ProviderClient",
    "ProviderRateLimit",
    "RateLimitTracker",
    "SQLiteStorage",
]
