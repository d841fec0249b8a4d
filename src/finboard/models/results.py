"""Widget-level fetch outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from finboard.errors import FetchError


@dataclass(frozen=True)
class Success:
    """Every requested item came back."""

    data: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class PartialSuccess:
    """Some items came back; ``warnings`` name the ones that did not."""

    data: Any
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Nothing usable came back."""

    reason: FetchError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.reason.message


WidgetResult = Union[Success, PartialSuccess, Failure]
