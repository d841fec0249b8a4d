"""Tests for WidgetFetcher."""

import asyncio

import pytest

from finboard.dashboard.fetcher import WidgetFetcher
from finboard.errors import (
    FetchErrorCode,
    MissingCredentialError,
    NoDataError,
    ProviderError,
    RateLimitedError,
    TransportError,
)
from finboard.models.results import Failure, PartialSuccess, Success
from finboard.models.widget import SeriesInterval, WidgetType


def _run(fetcher, widget):
    return asyncio.run(fetcher.refresh(widget))


class TestCredentialResolution:
    """Which key a widget fetches with."""

    def test_widget_key_wins(self, fake_client_factory, make_widget, make_quote):
        """Test that a widget's own key beats the shared key."""
        client = fake_client_factory(quotes={"AAPL": make_quote("AAPL")})
        fetcher = WidgetFetcher(client, {"alphavantage": "STOREKEY"}.get)

        _run(fetcher, make_widget(api_key="WIDGETKEY"))

        assert client.calls[0][1] == "WIDGETKEY"

    def test_falls_back_to_store_key(self, fake_client_factory, make_widget, make_quote):
        """Test falling back to the shared provider key."""
        client = fake_client_factory(quotes={"AAPL": make_quote("AAPL")})
        fetcher = WidgetFetcher(client, {"alphavantage": "STOREKEY"}.get)

        _run(fetcher, make_widget())

        assert client.calls[0][1] == "STOREKEY"

    def test_store_key_is_per_provider(self, fake_client_factory, make_widget):
        """Test that shared keys are looked up by the widget's provider."""
        client = fake_client_factory()
        fetcher = WidgetFetcher(client, {"alphavantage": "STOREKEY"}.get)

        result = _run(fetcher, make_widget(provider="finnhub"))

        assert isinstance(result, Failure)
        assert isinstance(result.reason, MissingCredentialError)

    def test_missing_credential_makes_no_call(self, fake_client_factory, make_widget):
        """Test that a widget without any key makes no provider call."""
        client = fake_client_factory()
        fetcher = WidgetFetcher(client)

        result = _run(fetcher, make_widget(api_endpoint="AAPL,MSFT"))

        assert isinstance(result, Failure)
        assert result.reason.code is FetchErrorCode.MISSING_CREDENTIAL
        assert result.message == "API key is required. Please add your API key in Settings."
        assert client.calls == []


class TestMultiSymbolWidgets:
    """Card and table widgets fan out one quote per symbol."""

    def test_all_succeed(self, fake_client_factory, make_widget, make_quote):
        """Test a multi-symbol widget where every quote loads."""
        client = fake_client_factory(
            quotes={s: make_quote(s) for s in ("AAPL", "GOOGL", "MSFT")},
            delays={"AAPL": 0.05},
        )
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(api_endpoint="AAPL, GOOGL, MSFT"))

        assert isinstance(result, Success)
        assert [q.symbol for q in result.data] == ["AAPL", "GOOGL", "MSFT"]

    def test_partial_success_keeps_successes_in_order(self, fake_client_factory, make_widget, make_quote):
        """Test a partial result in requested order when only GOOGL fails."""
        client = fake_client_factory(
            quotes={
                "AAPL": make_quote("AAPL", price=172.5),
                "GOOGL": TransportError("Failed to fetch data from Alpha Vantage: timeout"),
                "MSFT": make_quote("MSFT", price=415.0),
            },
            delays={"AAPL": 0.05},
        )
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(api_endpoint="AAPL,GOOGL,MSFT"))

        assert isinstance(result, PartialSuccess)
        assert result.ok is True
        assert [q.symbol for q in result.data] == ["AAPL", "MSFT"]
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("GOOGL:")
        assert "timeout" in result.warnings[0]

    def test_all_fail_is_no_data(self, fake_client_factory, make_widget):
        """Test that a widget whose quotes all fail gets NoDataError."""
        client = fake_client_factory(
            quotes={
                "AAPL": ProviderError("Alpha Vantage Error: Invalid API call."),
                "MSFT": TransportError("boom"),
            }
        )
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(type=WidgetType.TABLE, api_endpoint="AAPL,MSFT"))

        assert isinstance(result, Failure)
        assert isinstance(result.reason, NoDataError)
        assert result.message == "No data could be retrieved for the specified symbols"

    def test_unexpected_error_becomes_warning(self, fake_client_factory, make_widget, make_quote):
        """Test that a non-fetch exception for one symbol becomes a warning."""
        client = fake_client_factory(quotes={"AAPL": make_quote("AAPL"), "MSFT": RuntimeError("kaboom")})
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(api_endpoint="AAPL,MSFT"))

        assert isinstance(result, PartialSuccess)
        assert result.warnings == ["MSFT: kaboom"]

    @pytest.mark.parametrize("card_type", ["watchlist", "performance", "financial"])
    def test_quote_card_types(self, card_type, fake_client_factory, make_widget, make_quote):
        """Test that watchlist and performance cards fetch quotes."""
        client = fake_client_factory(quotes={"AAPL": make_quote("AAPL")})
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(config={"cardType": card_type}))

        assert isinstance(result, Success)
        assert client.calls[0][0] == "quote"

    def test_widget_provider_passed_through(self, fake_client_factory, make_widget, make_quote):
        """Test that the widget's provider reaches the client."""
        client = fake_client_factory(quotes={"AAPL": make_quote("AAPL")})
        fetcher = WidgetFetcher(client, lambda provider: "KEY1234567")

        _run(fetcher, make_widget(provider="finnhub"))

        assert client.calls[0] == ("quote", "KEY1234567", "AAPL", "finnhub")


class TestSingleCallWidgets:
    """Gainer cards and charts make exactly one call."""

    def test_gainers_card(self, fake_client_factory, make_widget, make_quote):
        """Test that a gainers card fetches top movers."""
        movers = [make_quote("NVDA"), make_quote("SMCI")]
        client = fake_client_factory(movers=movers)
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(api_endpoint="IGNORED", config={"cardType": "gainers"}))

        assert isinstance(result, Success)
        assert result.data == movers
        assert client.calls == [("movers", "KEY12345", "alphavantage")]

    def test_gainers_error_propagates(self, fake_client_factory, make_widget):
        """Test that a top movers error becomes a Failure."""
        error = RateLimitedError("alphavantage")
        client = fake_client_factory(movers=error)
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(config={"cardType": "gainers"}))

        assert isinstance(result, Failure)
        assert result.reason is error

    def test_chart_uses_first_symbol_and_interval(self, fake_client_factory, make_widget, sample_series):
        """Test that a chart fetches its first symbol at its interval."""
        client = fake_client_factory(series=sample_series)
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(
            fetcher,
            make_widget(type=WidgetType.CHART, api_endpoint="msft, AAPL", config={"timeInterval": "weekly"}),
        )

        assert isinstance(result, Success)
        assert result.data == sample_series
        assert client.calls == [("series", "KEY12345", "MSFT", SeriesInterval.WEEKLY, "alphavantage")]

    def test_chart_defaults_to_daily(self, fake_client_factory, make_widget, sample_series):
        """Test that a chart without an interval fetches daily data."""
        client = fake_client_factory(series=sample_series)
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        widget = make_widget(type=WidgetType.CHART)
        del widget.config["timeInterval"]

        _run(fetcher, widget)

        assert client.calls[0][3] is SeriesInterval.DAILY

    def test_chart_error_propagates(self, fake_client_factory, make_widget):
        """Test that a series error becomes a Failure."""
        error = NoDataError("No chart data available for AAPL.")
        client = fake_client_factory(series=error)
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(type=WidgetType.CHART))

        assert isinstance(result, Failure)
        assert result.reason is error

    def test_unexpected_error_wrapped_as_transport(self, fake_client_factory, make_widget):
        """Test that an unexpected exception becomes a TransportError failure."""
        client = fake_client_factory(series=KeyError("close"))
        fetcher = WidgetFetcher(client, lambda provider: "KEY12345")

        result = _run(fetcher, make_widget(type=WidgetType.CHART))

        assert isinstance(result, Failure)
        assert isinstance(result.reason, TransportError)
