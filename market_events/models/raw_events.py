"""Source-shaped records produced by the collectors.

Each feed has its own record type carrying only that feed's fields.
Records are transient: the normalizer turns them into Event objects.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class MacroRecord:
    """One economic-calendar row (live API or local file)."""
    source: str             # "api" or "file"
    currency: str           # Currency code the release affects, e.g. "USD"
    date: datetime          # Already parsed with the source's date format
    title: str | None
    impact: str | None = None       # Source-provided label, if any
    importance: float | None = None # Numeric importance, if any
    country: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class DividendRecord:
    symbol: str
    date: str | None
    dividend: float | None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class EarningsRecord:
    symbol: str
    date: str | None
    eps: float | None
    eps_estimated: float | None
    revenue: float | None = None
    revenue_estimated: float | None = None


@dataclass
class SplitRecord:
    symbol: str
    date: str | None
    numerator: float | None
    denominator: float | None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class MergerRecord:
    symbol: str
    date: str | None
    title: str | None
    raw: dict[str, Any] = field(default_factory=dict)


RawEvent = MacroRecord | DividendRecord | EarningsRecord | SplitRecord | MergerRecord


@dataclass
class CorporateActions:
    """Corporate-action records collected for one instrument."""
    dividends: list[DividendRecord] = field(default_factory=list)
    earnings: list[EarningsRecord] = field(default_factory=list)
    splits: list[SplitRecord] = field(default_factory=list)
    mergers: list[MergerRecord] = field(default_factory=list)

    def records(self) -> list[RawEvent]:
        return [*self.dividends, *self.earnings, *self.splits, *self.mergers]

    def __len__(self) -> int:
        return len(self.dividends) + len(self.earnings) + len(self.splits) + len(self.mergers)


@dataclass
class MacroFetchResult:
    """Macro records plus the count of rows skipped as malformed."""
    records: list[MacroRecord] = field(default_factory=list)
    malformed: int = 0
