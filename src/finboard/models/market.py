"""Market data models produced by the provider client."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class FinancialQuote:
    """Latest observation for one symbol.

    Attributes:
        symbol: Ticker symbol.
        price: Last traded price.
        change: Absolute change from previous close.
        change_percent: Percent change from previous close.
        volume: Trading volume, when the provider reports it.
        market_cap: Market capitalization, when the provider reports it.
        timestamp: Time of observation.
    """

    symbol: str
    price: float
    change: float
    change_percent: float
    timestamp: datetime
    volume: int | None = None
    market_cap: float | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "volume": self.volume,
            "marketCap": self.market_cap,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SeriesPoint:
    """Single OHLC(V) point of a price series."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
