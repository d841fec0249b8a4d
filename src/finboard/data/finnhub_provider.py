"""Finnhub data provider implementation."""

from datetime import datetime, timedelta, timezone
from typing import Any

import pandas as pd
import structlog

from finboard.data.base import DataProvider
from finboard.errors import NoDataError, ProviderError, TransportError
from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.widget import SeriesInterval

logger = structlog.get_logger()

# Candle resolution and how far back to ask for enough points
CANDLE_RESOLUTIONS: dict[SeriesInterval, tuple[str, timedelta]] = {
    SeriesInterval.DAILY: ("D", timedelta(days=180)),
    SeriesInterval.WEEKLY: ("W", timedelta(weeks=120)),
    SeriesInterval.MONTHLY: ("M", timedelta(days=31 * 120)),
}


class FinnhubProvider(DataProvider):
    """Data provider using the Finnhub REST API."""

    name = "finnhub"
    display_name = "Finnhub"

    def _get(self, api_key: str, endpoint: str, **params: Any) -> dict[str, Any]:
        payload = self._request(
            f"{self.config.finnhub_base_url}/{endpoint}",
            {**params, "token": api_key},
        )
        if not isinstance(payload, dict):
            raise TransportError(f"Malformed response from {self.display_name}")
        if payload.get("error"):
            raise ProviderError(f"Finnhub: {payload['error']}")
        return payload

    def get_quote(self, api_key: str, symbol: str) -> FinancialQuote:
        data = self._get(api_key, "quote", symbol=symbol)

        # Unknown symbols come back as all-zero quotes
        if not data.get("c"):
            raise NoDataError(
                f"No valid data received for symbol {symbol}. Please check the symbol or try again later."
            )

        try:
            observed = data.get("t")
            return FinancialQuote(
                symbol=symbol,
                price=float(data["c"]),
                change=float(data.get("d") or 0.0),
                change_percent=float(data.get("dp") or 0.0),
                timestamp=(
                    datetime.fromtimestamp(int(observed), tz=timezone.utc)
                    if observed
                    else self.rate_limits.now()
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to parse quote", provider=self.name, error=str(e))
            raise TransportError(f"Malformed quote from {self.display_name}") from e

    def get_series(self, api_key: str, symbol: str, interval: SeriesInterval) -> list[SeriesPoint]:
        resolution, lookback = CANDLE_RESOLUTIONS[interval]
        end = self.rate_limits.now()
        start = end - lookback

        data = self._get(
            api_key,
            "stock/candle",
            symbol=symbol,
            resolution=resolution,
            **{"from": int(start.timestamp()), "to": int(end.timestamp())},
        )

        if data.get("s") != "ok" or not data.get("t"):
            raise NoDataError(
                f"No chart data available for {symbol}. Please check the symbol or try again later."
            )

        try:
            df = pd.DataFrame(
                {
                    "timestamp": data["t"],
                    "open": data["o"],
                    "high": data["h"],
                    "low": data["l"],
                    "close": data["c"],
                    "volume": data.get("v") or [None] * len(data["t"]),
                }
            )
            df = df.sort_values("timestamp").tail(self.config.series_limit)

            points = [
                SeriesPoint(
                    timestamp=datetime.fromtimestamp(int(row.timestamp), tz=timezone.utc),
                    open=float(row.open),
                    high=float(row.high),
                    low=float(row.low),
                    close=float(row.close),
                    volume=int(row.volume) if pd.notna(row.volume) else None,
                )
                for row in df.itertuples(index=False)
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to parse series", provider=self.name, symbol=symbol, error=str(e))
            raise TransportError(f"Malformed series from {self.display_name}") from e

        logger.debug("Fetched series", provider=self.name, symbol=symbol, interval=interval.value, points=len(points))
        return points

    def get_top_movers(self, api_key: str) -> list[FinancialQuote]:
        raise ProviderError("Top movers are not available from Finnhub. Use Alpha Vantage instead.")
