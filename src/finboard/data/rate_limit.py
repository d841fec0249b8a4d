"""Per-provider rate-limit tracking."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

import structlog

from finboard.errors import RateLimitedError

logger = structlog.get_logger()

Clock = Callable[[], datetime]

REMAINING_HEADER = "X-Ratelimit-Remaining"
RESET_HEADER = "X-Ratelimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProviderRateLimit:
    """Known call budget for one provider."""

    remaining: int | None = None
    reset_time: datetime | None = None

    def is_exhausted(self, now: datetime) -> bool:
        """True while the budget is spent and the reset is still ahead."""
        if self.remaining is None or self.remaining > 0:
            return False
        return self.reset_time is not None and now < self.reset_time


class RateLimitTracker:
    """
    Process-wide rate-limit state, keyed by provider name.

    One instance is created per application session and handed to the
    provider client. Nothing is persisted: a new tracker treats every
    provider as unlimited until a response says otherwise.
    """

    def __init__(self, clock: Clock | None = None):
        """
        Initialize the tracker.

        Args:
            clock: Returns the current time. Defaults to timezone-aware UTC now.
        """
        self._clock = clock or utc_now
        self._limits: dict[str, ProviderRateLimit] = {}
        # Updated from worker threads running provider calls
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    def get(self, provider: str) -> ProviderRateLimit | None:
        with self._lock:
            limit = self._limits.get(provider)
            return ProviderRateLimit(limit.remaining, limit.reset_time) if limit else None

    def check(self, provider: str) -> None:
        """
        Raise if the provider's budget is known to be spent.

        Raises:
            RateLimitedError: Remaining budget <= 0 and the reset is in the future.
        """
        limit = self.get(provider)
        if limit and limit.is_exhausted(self.now()):
            raise RateLimitedError(provider, limit.reset_time)

    def update(self, provider: str, remaining: int, reset_time: datetime | None) -> None:
        with self._lock:
            self._limits[provider] = ProviderRateLimit(remaining=remaining, reset_time=reset_time)
        logger.debug("Rate limit updated", provider=provider, remaining=remaining, reset_time=reset_time)

    def mark_exhausted(self, provider: str, reset_time: datetime) -> None:
        """Record that the provider refused further calls until ``reset_time``."""
        self.update(provider, 0, reset_time)
        logger.warning("Provider rate limit reached", provider=provider, reset_time=reset_time.isoformat())

    def update_from_headers(self, provider: str, headers: Mapping[str, str]) -> bool:
        """
        Update from ``X-Ratelimit-*`` response headers when both are present.

        Returns:
            True if the state was updated
        """
        remaining = _parse_int(headers.get(REMAINING_HEADER))
        reset_epoch = _parse_int(headers.get(RESET_HEADER))
        if remaining is None or reset_epoch is None:
            return False
        self.update(provider, remaining, datetime.fromtimestamp(reset_epoch, tz=timezone.utc))
        return True

    def reset_time_from_headers(self, headers: Mapping[str, str], cooldown_seconds: int) -> datetime:
        """Best reset time a 429 response tells us, else ``now + cooldown``."""
        retry_after = _parse_int(headers.get(RETRY_AFTER_HEADER))
        if retry_after is not None:
            return self.now() + timedelta(seconds=retry_after)
        reset_epoch = _parse_int(headers.get(RESET_HEADER))
        if reset_epoch is not None:
            return datetime.fromtimestamp(reset_epoch, tz=timezone.utc)
        return self.now() + timedelta(seconds=cooldown_seconds)

    def clear(self) -> None:
        with self._lock:
            self._limits.clear()


def _parse_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
