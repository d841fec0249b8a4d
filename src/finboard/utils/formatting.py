"""Display formatting and credential format checks."""

import re

_ALPHAVANTAGE_KEY = re.compile(r"^[A-Z0-9]+$")
_ALPHANUMERIC_KEY = re.compile(r"^[a-zA-Z0-9]+$")


def format_currency(value: float, currency: str = "USD") -> str:
    """Format as dollars with thousands separators, e.g. ``$1,234.50``."""
    symbol = "$" if currency == "USD" else f"{currency} "
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percentage(value: float) -> str:
    """Signed percentage with two decimals, e.g. ``+1.25%``."""
    return f"{'+' if value >= 0 else ''}{value:.2f}%"


def format_number(value: float) -> str:
    """Abbreviate large numbers: 1.2B, 3.4M, 5.6K."""
    if value >= 1e9:
        return f"{value / 1e9:.1f}B"
    if value >= 1e6:
        return f"{value / 1e6:.1f}M"
    if value >= 1e3:
        return f"{value / 1e3:.1f}K"
    return f"{value:,}"


def change_style(change: float) -> str:
    """Rich style for a price change."""
    if change > 0:
        return "green"
    if change < 0:
        return "red"
    return "dim"


def validate_api_key(key: str | None, provider: str) -> bool:
    """
    Check that a key has the shape the provider issues.

    This is a format check only; it never contacts the provider.
    """
    if not key or not key.strip():
        return False

    if provider == "alphavantage":
        return len(key) >= 8 and bool(_ALPHAVANTAGE_KEY.match(key))
    if provider == "finnhub":
        return len(key) >= 10 and bool(_ALPHANUMERIC_KEY.match(key))
    return len(key) >= 8
