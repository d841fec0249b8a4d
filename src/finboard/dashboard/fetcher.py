"""Turn a widget definition into provider calls and a WidgetResult."""

from __future__ import annotations

import asyncio
from typing import Callable

import structlog

from finboard.data.client import ProviderClient
from finboard.errors import FetchError, MissingCredentialError, NoDataError, TransportError
from finboard.models.results import Failure, PartialSuccess, Success, WidgetResult
from finboard.models.widget import CardType, Widget, WidgetType
from finboard.utils.parallel import settle_all

logger = structlog.get_logger()

CredentialLookup = Callable[[str], "str | None"]

NO_SYMBOL_DATA = "No data could be retrieved for the specified symbols"


class WidgetFetcher:
    """
    Fetches the data one widget displays.

    Card and table widgets fan out one quote call per symbol and keep
    whatever succeeded. Gainer cards and charts make a single call. No
    call is retried; errors come back as ``Failure`` rather than raising.
    """

    def __init__(self, client: ProviderClient, credentials: CredentialLookup | None = None):
        """
        Initialize the fetcher.

        Args:
            client: Provider client used for every call
            credentials: Returns the process-wide key for a provider name,
                used when a widget has no key of its own
        """
        self.client = client
        self.credentials = credentials or (lambda provider: None)

    def resolve_api_key(self, widget: Widget) -> str | None:
        """Widget's own key, else the process-wide key for its provider."""
        if widget.api_key and widget.api_key.strip():
            return widget.api_key.strip()
        return self.credentials(widget.provider)

    async def refresh(self, widget: Widget) -> WidgetResult:
        """
        Fetch fresh data for ``widget``.

        Returns:
            Success, PartialSuccess (multi-symbol widgets only) or Failure
        """
        api_key = self.resolve_api_key(widget)
        if not api_key:
            return Failure(MissingCredentialError())

        log = logger.bind(widget_id=widget.id, type=widget.type.value, provider=widget.provider)
        try:
            if widget.type is WidgetType.CHART:
                return await self._fetch_chart(widget, api_key)
            if widget.type is WidgetType.CARD and widget.card_type is CardType.GAINERS:
                movers = await asyncio.to_thread(self.client.fetch_top_movers, api_key, widget.provider)
                return Success(movers)
            return await self._fetch_quotes(widget, api_key)
        except FetchError as e:
            log.info("Widget fetch failed", code=e.code.value, error=e.message)
            return Failure(e)
        except Exception as e:
            log.exception("Unexpected error during widget fetch")
            return Failure(TransportError(str(e) or type(e).__name__))

    async def _fetch_chart(self, widget: Widget, api_key: str) -> WidgetResult:
        symbols = widget.symbols
        if not symbols:
            return Failure(NoDataError("No symbol configured for this chart"))
        points = await asyncio.to_thread(
            self.client.fetch_series, api_key, symbols[0], widget.time_interval, widget.provider
        )
        return Success(points)

    async def _fetch_quotes(self, widget: Widget, api_key: str) -> WidgetResult:
        symbols = widget.symbols
        if not symbols:
            return Failure(NoDataError(NO_SYMBOL_DATA))

        results = await settle_all(
            lambda symbol: self.client.fetch_quote(api_key, symbol, widget.provider),
            symbols,
        )

        quotes = [r.result for r in results if r.success]
        warnings = []
        for r in results:
            if r.success:
                continue
            message = r.exception.message if isinstance(r.exception, FetchError) else r.error
            logger.warning("Failed to fetch quote", widget_id=widget.id, symbol=r.item, error=message)
            warnings.append(f"{r.item}: {message}")

        if not quotes:
            return Failure(NoDataError(NO_SYMBOL_DATA))
        if warnings:
            return PartialSuccess(quotes, warnings)
        return Success(quotes)
