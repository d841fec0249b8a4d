"""Error types for provider fetches, widget validation and config import."""

from __future__ import annotations

from datetime import datetime
from enum import Enum


class FetchErrorCode(Enum):
    """Error classification codes."""

    MISSING_CREDENTIAL = "missing_credential"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"
    TRANSPORT_ERROR = "transport_error"
    NO_DATA = "no_data"


class FetchError(Exception):
    """Base class for everything a provider fetch can fail with.

    Attributes:
        message: Human-readable description, safe to show to the user.
        code: Structured error code for programmatic handling.
    """

    code: FetchErrorCode = FetchErrorCode.PROVIDER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingCredentialError(FetchError):
    """No API key was available for the call."""

    code = FetchErrorCode.MISSING_CREDENTIAL

    def __init__(
        self,
        message: str = "API key is required. Please add your API key in Settings.",
    ) -> None:
        super().__init__(message)


class RateLimitedError(FetchError):
    """The provider's call budget is exhausted until ``reset_time``."""

    code = FetchErrorCode.RATE_LIMITED

    def __init__(self, provider: str, reset_time: datetime | None = None, message: str | None = None) -> None:
        if message is None:
            if reset_time is not None:
                message = f"Rate limit exceeded for {provider}. Resets at {reset_time.strftime('%H:%M:%S')}"
            else:
                message = f"Rate limit exceeded for {provider}. Please wait before making more requests."
        super().__init__(message)
        self.provider = provider
        self.reset_time = reset_time


class ProviderError(FetchError):
    """The provider answered, but the payload reports an application error."""

    code = FetchErrorCode.PROVIDER_ERROR


class TransportError(FetchError):
    """Network failure, timeout, bad HTTP status or unparseable payload."""

    code = FetchErrorCode.TRANSPORT_ERROR


class NoDataError(FetchError):
    """Nothing usable came back for the request."""

    code = FetchErrorCode.NO_DATA


class WidgetValidationError(ValueError):
    """A widget definition or patch broke an invariant.

    Attributes:
        errors: Mapping of field name to message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{name}: {msg}" for name, msg in self.errors.items())
        super().__init__(f"Invalid widget: {detail}")


class ConfigImportError(ValueError):
    """An imported dashboard document could not be applied."""


__all__ = [
    "FetchErrorCode",
    "FetchError",
    "MissingCredentialError",
    "RateLimitedError",
    "ProviderError",
    "TransportError",
    "NoDataError",
    "WidgetValidationError",
    "ConfigImportError",
]
