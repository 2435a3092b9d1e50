"""Data models for the market events tracker."""

from market_events.models.events import Event, EventType, Impact, OVERLAY_FIELDS
from market_events.models.instruments import Instrument
from market_events.models.raw_events import (
    CorporateActions,
    DividendRecord,
    EarningsRecord,
    MacroFetchResult,
    MacroRecord,
    MergerRecord,
    RawEvent,
    SplitRecord,
)
from market_events.models.results import ErrorKind, Failure, Result, ValidationReason

__all__ = [
    "Event",
    "EventType",
    "Impact",
    "OVERLAY_FIELDS",
    "Instrument",
    "CorporateActions",
    "DividendRecord",
    "EarningsRecord",
    "MacroFetchResult",
    "MacroRecord",
    "MergerRecord",
    "RawEvent",
    "SplitRecord",
    "ErrorKind",
    "Failure",
    "Result",
    "ValidationReason",
]
