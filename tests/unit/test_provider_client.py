"""Tests for ProviderClient."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from finboard.data.client import ProviderClient
from finboard.errors import MissingCredentialError, ProviderError, RateLimitedError
from finboard.models.widget import SeriesInterval


class TestProviderClient:
    """Tests for ProviderClient class."""

    @pytest.fixture
    def client(self, provider_config, rate_limits):
        return ProviderClient(provider_config, rate_limits)

    def test_builds_all_providers(self, client):
        """Test that the client knows every provider."""
        assert client.provider_names == ["alphavantage", "finnhub"]

    @pytest.mark.parametrize("api_key", [None, "", "   "])
    @patch("requests.get")
    def test_missing_credential_makes_no_call(self, mock_get, api_key, client):
        """Test that a blank key raises before any request."""
        with pytest.raises(MissingCredentialError, match="API key is required"):
            client.fetch_quote(api_key, "AAPL")

        with pytest.raises(MissingCredentialError):
            client.fetch_series(api_key, "AAPL", "daily")

        with pytest.raises(MissingCredentialError):
            client.fetch_top_movers(api_key)

        mock_get.assert_not_called()

    @patch("requests.get")
    def test_exhausted_budget_makes_no_call(self, mock_get, client, rate_limits):
        """Test that an exhausted provider raises before any request."""
        reset = rate_limits.now() + timedelta(seconds=30)
        rate_limits.mark_exhausted("alphavantage", reset)

        with pytest.raises(RateLimitedError) as exc_info:
            client.fetch_quote("DEMOKEY1", "AAPL")

        assert exc_info.value.reset_time == reset
        mock_get.assert_not_called()

    @patch("requests.get")
    def test_exhausted_budget_is_per_provider(self, mock_get, client, rate_limits, make_response):
        """Test that exhausting one provider leaves the others usable."""
        rate_limits.mark_exhausted("alphavantage", rate_limits.now() + timedelta(seconds=30))
        mock_get.return_value = make_response({"c": 10.0, "d": 0.1, "dp": 1.0, "t": 1710513000})

        quote = client.fetch_quote("abcdef123456", "AAPL", provider="finnhub")

        assert quote.price == 10.0

    @patch("requests.get")
    def test_unknown_provider(self, mock_get, client):
        """Test that an unknown provider raises ProviderError."""
        with pytest.raises(ProviderError, match="Unsupported provider 'polygon'"):
            client.fetch_quote("DEMOKEY1", "AAPL", provider="polygon")

        mock_get.assert_not_called()

    @patch("requests.get")
    def test_unknown_interval_rejected_before_call(self, mock_get, client):
        """Test that a bad series interval raises before any request."""
        with pytest.raises(ValueError):
            client.fetch_series("DEMOKEY1", "AAPL", "hourly")

        mock_get.assert_not_called()

    def test_symbol_normalized(self, provider_config, rate_limits, make_quote):
        """Test that symbols are trimmed and upper-cased."""
        provider = MagicMock()
        provider.get_quote.return_value = make_quote("AAPL")
        client = ProviderClient(provider_config, rate_limits, providers={"alphavantage": provider})

        client.fetch_quote(" DEMOKEY1 ", " aapl ")

        provider.get_quote.assert_called_once_with("DEMOKEY1", "AAPL")

    def test_series_interval_accepts_strings(self, provider_config, rate_limits, sample_series):
        """Test passing the series interval as a string."""
        provider = MagicMock()
        provider.get_series.return_value = sample_series
        client = ProviderClient(provider_config, rate_limits, providers={"alphavantage": provider})

        points = client.fetch_series("DEMOKEY1", "msft", "weekly")

        assert points == sample_series
        provider.get_series.assert_called_once_with("DEMOKEY1", "MSFT", SeriesInterval.WEEKLY)

    @patch("requests.get")
    def test_finnhub_top_movers_unsupported(self, mock_get, client):
        """Test that Finnhub top movers raise ProviderError."""
        with pytest.raises(ProviderError, match="not available from Finnhub"):
            client.fetch_top_movers("abcdef123456", provider="finnhub")

        mock_get.assert_not_called()
