"""Uniform entry point over all configured providers."""

import structlog

from finboard.config import ProviderConfig
from finboard.data.alphavantage_provider import AlphaVantageProvider
from finboard.data.base import DataProvider
from finboard.data.finnhub_provider import FinnhubProvider
from finboard.data.rate_limit import RateLimitTracker
from finboard.errors import MissingCredentialError, ProviderError
from finboard.models.market import FinancialQuote, SeriesPoint
from finboard.models.widget import SeriesInterval

logger = structlog.get_logger()

PROVIDER_CLASSES: dict[str, type[DataProvider]] = {
    AlphaVantageProvider.name: AlphaVantageProvider,
    FinnhubProvider.name: FinnhubProvider,
}


class ProviderClient:
    """
    Normalizes calls to any supported provider.

    Every call checks, in order and before touching the network: that a
    credential is present, that the provider is known, and that the
    provider's tracked rate limit is not exhausted.
    """

    def __init__(
        self,
        config: ProviderConfig | None = None,
        rate_limits: RateLimitTracker | None = None,
        providers: dict[str, DataProvider] | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: Provider configuration. If None, uses defaults.
            rate_limits: Session rate-limit state. If None, a fresh tracker is created.
            providers: Provider instances by name. If None, all built-in providers.
        """
        self.config = config or ProviderConfig()
        self.rate_limits = rate_limits or RateLimitTracker()
        if providers is None:
            providers = {
                name: cls(self.config, self.rate_limits) for name, cls in PROVIDER_CLASSES.items()
            }
        self.providers = providers

    @property
    def provider_names(self) -> list[str]:
        return list(self.providers)

    def _resolve(self, api_key: str | None, provider: str) -> DataProvider:
        if not api_key or not api_key.strip():
            raise MissingCredentialError()

        instance = self.providers.get(provider)
        if instance is None:
            raise ProviderError(
                f"Unsupported provider '{provider}'. Supported: {', '.join(self.providers)}"
            )

        self.rate_limits.check(provider)
        return instance

    def fetch_quote(self, api_key: str | None, symbol: str, provider: str = "alphavantage") -> FinancialQuote:
        """
        Fetch the latest quote for one symbol.

        Raises:
            MissingCredentialError, RateLimitedError, ProviderError,
            TransportError, NoDataError
        """
        instance = self._resolve(api_key, provider)
        quote = instance.get_quote(api_key.strip(), symbol.strip().upper())
        logger.debug("Fetched quote", provider=provider, symbol=quote.symbol, price=quote.price)
        return quote

    def fetch_series(
        self,
        api_key: str | None,
        symbol: str,
        interval: SeriesInterval | str,
        provider: str = "alphavantage",
    ) -> list[SeriesPoint]:
        """
        Fetch up to the most recent 100 points, oldest first.

        Raises:
            ValueError: ``interval`` is not daily, weekly or monthly
        """
        interval = SeriesInterval(interval)
        instance = self._resolve(api_key, provider)
        return instance.get_series(api_key.strip(), symbol.strip().upper(), interval)

    def fetch_top_movers(self, api_key: str | None, provider: str = "alphavantage") -> list[FinancialQuote]:
        """Fetch up to 10 top gainers in provider rank order."""
        instance = self._resolve(api_key, provider)
        movers = instance.get_top_movers(api_key.strip())
        logger.debug("Fetched top movers", provider=provider, count=len(movers))
        return movers
