"""Canonical event model for the market events tracker."""
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class EventType(Enum):
    """Kinds of market-moving events."""
    ECONOMIC = "Economic"
    DIVIDEND = "Dividend"
    EARNINGS = "Earnings"
    SPLIT = "Split"
    MERGER = "M&A"


class Impact(Enum):
    """Coarse market impact classification."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    UNKNOWN = "Unknown"


# Wire name -> attribute name for analyst-entered numeric overlays
OVERLAY_FIELDS: dict[str, str] = {
    "cleanImpliedVol": "clean_implied_vol",
    "dirtyVolume": "dirty_volume",
    "totalImpliedVol": "total_implied_vol",
    "vol": "vol",
}


@dataclass
class Event:
    """A market event attached to one instrument.

    (ticker, event_date) is the natural key; id is assigned by the store.
    """
    ticker: str
    event_date: datetime   # UTC
    event_name: str
    event_type: EventType
    impact: Impact
    details: dict[str, Any] = field(default_factory=dict)

    # Analyst overlays, None when never set
    clean_implied_vol: float | None = None
    dirty_volume: float | None = None
    total_implied_vol: float | None = None
    vol: float | None = None

    id: int | None = None

    @property
    def natural_key(self) -> tuple[str, datetime]:
        return (self.ticker, self.event_date)

    def overlays(self) -> dict[str, float | None]:
        """Overlay values keyed by attribute name."""
        return {attr: getattr(self, attr) for attr in OVERLAY_FIELDS.values()}

    def copy(self, **changes: Any) -> "Event":
        changes.setdefault("details", dict(self.details))
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the dashboard wire shape."""
        d = asdict(self)
        return {
            "id": self.id,
            "ticker": self.ticker,
            "eventDate": self.event_date.isoformat(),
            "eventName": self.event_name,
            "eventType": self.event_type.value,
            "impact": self.impact.value,
            "details": d["details"],
            "cleanImpliedVol": self.clean_implied_vol,
            "dirtyVolume": self.dirty_volume,
            "totalImpliedVol": self.total_implied_vol,
            "vol": self.vol,
        }
