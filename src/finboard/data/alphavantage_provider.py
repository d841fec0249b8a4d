"""Alpha Vantage data provider implementation."""

from datetime import timedelta
from typing import Any

import pandas as pd
import structlog

from finboard.data.base import DataProvider
from finboard.errors import NoDataError, ProviderError, TransportError
from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.widget import SeriesInterval

logger = structlog.get_logger()

SERIES_FUNCTIONS: dict[SeriesInterval, str] = {
    SeriesInterval.DAILY: "TIME_SERIES_DAILY",
    SeriesInterval.WEEKLY: "TIME_SERIES_WEEKLY",
    SeriesInterval.MONTHLY: "TIME_SERIES_MONTHLY",
}

SERIES_COLUMNS = {
    "1. open": "open",
    "2. high": "high",
    "3. low": "low",
    "4. close": "close",
    "5. volume": "volume",
}


def _percent(value: str) -> float:
    return float(str(value).replace("%", "").strip())


class AlphaVantageProvider(DataProvider):
    """Data provider using the Alpha Vantage query API."""

    name = "alphavantage"
    display_name = "Alpha Vantage"

    def _query(self, api_key: str, function: str, **params: str) -> dict[str, Any]:
        """
        Run one ``function`` query and screen the payload for embedded errors.

        Alpha Vantage reports problems inside a 200 response rather than
        through the status code.
        """
        payload = self._request(
            self.config.alphavantage_base_url,
            {"function": function, "apikey": api_key, **params},
        )
        if not isinstance(payload, dict):
            raise TransportError(f"Malformed response from {self.display_name}")

        if payload.get("Error Message"):
            raise ProviderError(f"Alpha Vantage Error: {payload['Error Message']}")

        if payload.get("Note"):
            # Frequency-limit notice: nothing more will succeed until the window passes
            self.rate_limits.mark_exhausted(
                self.name,
                self.rate_limits.now() + timedelta(seconds=self.config.rate_limit_cooldown_seconds),
            )
            raise ProviderError("API call frequency limit reached. Please wait and try again later.")

        if payload.get("Information"):
            raise ProviderError(f"Alpha Vantage: {payload['Information']}")

        return payload

    def get_quote(self, api_key: str, symbol: str) -> FinancialQuote:
        payload = self._query(api_key, "GLOBAL_QUOTE", symbol=symbol)
        quote = payload.get("Global Quote")
        if not quote:
            raise NoDataError(
                f"No valid data received for symbol {symbol}. Please check the symbol or try again later."
            )
        return self._parse_quote(quote)

    def _parse_quote(self, data: dict[str, str]) -> FinancialQuote:
        """Parse a ``Global Quote`` block into a FinancialQuote."""
        try:
            volume = data.get("06. volume")
            return FinancialQuote(
                symbol=data["01. symbol"],
                price=float(data["05. price"]),
                change=float(data["09. change"]),
                change_percent=_percent(data["10. change percent"]),
                volume=int(volume) if volume else None,
                timestamp=self.rate_limits.now(),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to parse quote", provider=self.name, error=str(e))
            raise TransportError(f"Malformed quote from {self.display_name}") from e

    def get_series(self, api_key: str, symbol: str, interval: SeriesInterval) -> list[SeriesPoint]:
        payload = self._query(api_key, SERIES_FUNCTIONS[interval], symbol=symbol)

        series_key = next((key for key in payload if "Time Series" in key), None)
        if series_key is None or not payload[series_key]:
            raise NoDataError(
                f"No chart data available for {symbol}. Please check the symbol or try again later."
            )

        try:
            # Upstream is keyed by date, newest first
            df = pd.DataFrame.from_dict(payload[series_key], orient="index")
            df.index = pd.to_datetime(df.index)
            df = df.sort_index()
            df = df.rename(columns=SERIES_COLUMNS)
            df = df.tail(self.config.series_limit)

            points = [
                SeriesPoint(
                    timestamp=ts.to_pydatetime(),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=int(row["volume"]) if pd.notna(row.get("volume")) else None,
                )
                for ts, row in df.iterrows()
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to parse series", provider=self.name, symbol=symbol, error=str(e))
            raise TransportError(f"Malformed series from {self.display_name}") from e

        logger.debug("Fetched series", provider=self.name, symbol=symbol, interval=interval.value, points=len(points))
        return points

    def get_top_movers(self, api_key: str) -> list[FinancialQuote]:
        payload = self._query(api_key, "TOP_GAINERS_LOSERS")
        gainers = payload.get("top_gainers")
        if not gainers:
            raise NoDataError("No market gainer data available. Please try again later.")

        now = self.rate_limits.now()
        try:
            return [
                FinancialQuote(
                    symbol=item["ticker"],
                    price=float(item["price"]),
                    change=float(item["change_amount"]),
                    change_percent=_percent(item["change_percentage"]),
                    volume=int(item["volume"]) if item.get("volume") else None,
                    timestamp=now,
                )
                for item in gainers[: self.config.top_movers_limit]
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to parse top movers", provider=self.name, error=str(e))
            raise TransportError(f"Malformed top movers from {self.display_name}") from e

