"""Abstract base class for quote/series providers."""

from abc import ABC, abstractmethod
from typing import Any

import requests
import structlog

from finboard.config import ProviderConfig
from finboard.data.rate_limit import RateLimitTracker
from finboard.errors import RateLimitedError, TransportError
from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.widget import SeriesInterval

logger = structlog.get_logger()


class DataProvider(ABC):
    """
    Abstract base class for financial data providers.

    Subclasses translate one provider's HTTP API into ``FinancialQuote`` and
    ``SeriesPoint`` objects. The API key is passed per call since widgets
    may override the process-wide credential.
    """

    name: str = ""
    display_name: str = ""

    def __init__(self, config: ProviderConfig, rate_limits: RateLimitTracker):
        """
        Initialize the provider.

        Args:
            config: Provider configuration (timeouts, base URLs, limits)
            rate_limits: Shared rate-limit state for this session
        """
        self.config = config
        self.rate_limits = rate_limits

    def _request(self, url: str, params: dict[str, Any]) -> Any:
        """
        GET ``url`` and return the decoded JSON payload.

        Raises:
            RateLimitedError: HTTP 429
            TransportError: Network failure, timeout, HTTP error or non-JSON body
        """
        try:
            response = requests.get(url, params=params, timeout=self.config.timeout)
        except requests.exceptions.Timeout as e:
            logger.error("Provider request timed out", provider=self.name, timeout=self.config.timeout)
            raise TransportError(
                f"{self.display_name} request timed out after {self.config.timeout:g}s"
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error("Provider request failed", provider=self.name, error=str(e))
            raise TransportError(f"Failed to fetch data from {self.display_name}: {e}") from e

        headers = response.headers or {}

        if response.status_code == 429:
            reset_time = self.rate_limits.reset_time_from_headers(
                headers, self.config.rate_limit_cooldown_seconds
            )
            self.rate_limits.mark_exhausted(self.name, reset_time)
            raise RateLimitedError(
                self.name,
                reset_time,
                "Rate limit exceeded. Please wait before making more requests.",
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.error("Provider returned HTTP error", provider=self.name, status=response.status_code)
            raise TransportError(f"{self.display_name} returned HTTP {response.status_code}") from e

        self.rate_limits.update_from_headers(self.name, headers)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Malformed response from {self.display_name}") from e

    @abstractmethod
    def get_quote(self, api_key: str, symbol: str) -> FinancialQuote:
        """
        Fetch the latest quote for a symbol.

        Args:
            api_key: Credential for this call
            symbol: Ticker symbol

        Returns:
            FinancialQuote for the symbol
        """
        pass

    @abstractmethod
    def get_series(self, api_key: str, symbol: str, interval: SeriesInterval) -> list[SeriesPoint]:
        """
        Fetch a price series, oldest point first.

        Args:
            api_key: Credential for this call
            symbol: Ticker symbol
            interval: Series granularity

        Returns:
            At most ``config.series_limit`` points in chronological order
        """
        pass

    @abstractmethod
    def get_top_movers(self, api_key: str) -> list[FinancialQuote]:
        """
        Fetch today's top gainers in provider rank order.

        Args:
            api_key: Credential for this call

        Returns:
            At most ``config.top_movers_limit`` quotes
        """
        pass
