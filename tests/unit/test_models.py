"""Tests for widget, market and result models."""

from datetime import datetime, timezone

import pytest

from finboard.errors import NoDataError
from finboard.models.results import Failure, PartialSuccess, Success
from finboard.models.widget import (
    CardType,
    DashboardState,
    SeriesInterval,
    Widget,
    WidgetType,
    grid_position,
    widget_size,
)


class TestWidget:
    """Tests for Widget dataclass."""

    def test_symbols_parsed(self, make_widget):
        """Test parsing symbols from the endpoint string."""
        widget = make_widget(api_endpoint=" aapl, ,GOOGL ,msft,")

        assert widget.symbols == ["AAPL", "GOOGL", "MSFT"]

    def test_card_type_and_interval(self, make_widget):
        """Test card type and series interval lookups."""
        assert make_widget(config={"cardType": "gainers"}).card_type is CardType.GAINERS
        assert make_widget(type=WidgetType.CHART).time_interval is SeriesInterval.DAILY

    def test_to_dict_uses_camel_case(self, make_widget):
        """Test that serialization uses camelCase keys."""
        widget = make_widget(api_key="DEMOKEY1", data_mapping={"price": "05. price"})
        widget.last_updated = datetime(2024, 3, 15, 14, 30, tzinfo=timezone.utc)

        data = widget.to_dict()

        assert data["apiEndpoint"] == "AAPL"
        assert data["apiKey"] == "DEMOKEY1"
        assert data["refreshInterval"] == 30
        assert data["dataMapping"] == {"price": "05. price"}
        assert data["lastUpdated"] == "2024-03-15T14:30:00+00:00"
        assert data["type"] == "card"

    def test_from_dict(self, make_widget):
        """Test restoring a widget from its dictionary."""
        widget = make_widget(type=WidgetType.TABLE)
        widget.last_updated = datetime(2024, 3, 15, tzinfo=timezone.utc)

        restored = Widget.from_dict(widget.to_dict())

        assert restored == widget

    def test_from_dict_accepts_zulu_timestamps(self):
        """Test parsing timestamps that end in Z."""
        widget = Widget.from_dict(
            {
                "id": "abc",
                "type": "chart",
                "title": "MSFT",
                "apiEndpoint": "MSFT",
                "refreshInterval": 60,
                "lastUpdated": "2024-03-15T14:30:00.000Z",
            }
        )

        assert widget.last_updated == datetime(2024, 3, 15, 14, 30, tzinfo=timezone.utc)
        assert widget.size == {"width": 500, "height": 350}
        assert widget.provider == "alphavantage"

    def test_from_dict_missing_field(self):
        """Test that a missing required field raises KeyError."""
        with pytest.raises(KeyError):
            Widget.from_dict({"id": "abc", "type": "card"})

    def test_copy_is_deep(self, make_widget):
        """Test that copies do not share config."""
        widget = make_widget()
        clone = widget.copy()

        clone.config["cardType"] = "gainers"

        assert widget.config["cardType"] == "watchlist"


class TestLayoutHelpers:
    def test_grid_position(self):
        """Test grid slot calculation."""
        assert grid_position(0) == {"x": 0, "y": 0}
        assert grid_position(4) == {"x": 1, "y": 1}
        assert grid_position(5, cols=2) == {"x": 1, "y": 2}

    def test_widget_size_returns_copy(self):
        """Test that default sizes cannot be mutated."""
        size = widget_size("card")
        size["width"] = 1

        assert widget_size(WidgetType.CARD) == {"width": 300, "height": 200}


class TestDashboardState:
    def test_snapshot_excludes_ui_state(self, make_widget):
        """Test that the snapshot holds only widgets and keys."""
        state = DashboardState(
            widgets=[make_widget()],
            api_keys={"alphavantage": "DEMOKEY1"},
            selected_widget="w1",
            is_loading=True,
            error="boom",
        )

        snapshot = state.snapshot()

        assert set(snapshot) == {"widgets", "apiKeys"}
        assert snapshot["apiKeys"] == {"alphavantage": "DEMOKEY1"}

    def test_find(self, make_widget):
        """Test finding a widget by id."""
        widget = make_widget()
        state = DashboardState(widgets=[widget])

        assert state.find(widget.id) is widget
        assert state.find("missing") is None


class TestResults:
    def test_ok_flags(self):
        """Test the ok flag of each result type."""
        assert Success([]).ok is True
        assert PartialSuccess([], ["AAPL: timeout"]).ok is True
        assert Failure(NoDataError("none")).ok is False

    def test_failure_message(self):
        """Test that a failure exposes its error message."""
        assert Failure(NoDataError("No data")).message == "No data"
