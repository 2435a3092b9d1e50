"""Normalization of source records into canonical events.

Every function here is pure: a raw record plus its instrument goes in,
zero or one Event comes out. Records with an unparseable date or an empty
label are dropped and logged, never stored with placeholder values.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any

from market_events.core.impact import classify, impact_from_label
from market_events.models import (
    DividendRecord,
    EarningsRecord,
    Event,
    EventType,
    Impact,
    Instrument,
    MacroRecord,
    MergerRecord,
    RawEvent,
    SplitRecord,
    ValidationReason,
)

logger = logging.getLogger(__name__)

UNNAMED_EVENT = "Unnamed Event"


class NormalizationError(Exception):
    """Raised when a raw record cannot become a valid Event."""

    def __init__(self, reason: ValidationReason, message: str):
        super().__init__(message)
        self.reason = reason


def parse_event_date(value: Any) -> datetime:
    """Parse a source date into a UTC datetime.

    Accepts datetime, date and ISO-8601 strings (date-only or with time).
    Naive values are interpreted as UTC.

    Raises:
        NormalizationError: If the value is missing or unparseable
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError:
            raise NormalizationError(
                ValidationReason.INVALID_DATE, f"Unparseable date: {value!r}"
            ) from None
    else:
        raise NormalizationError(ValidationReason.INVALID_DATE, f"Missing date: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _economic(record: MacroRecord, instrument: Instrument) -> Event:
    title = (record.title or "").strip() or UNNAMED_EVENT
    impact = impact_from_label(record.impact)
    if impact is None:
        impact = classify(record.importance)

    details: dict[str, Any] = {"currency": instrument.currency, "event": title}
    if record.country:
        details["country"] = record.country
    details.update(record.extra)

    return Event(
        ticker=instrument.symbol,
        event_date=parse_event_date(record.date),
        event_name=title,
        event_type=EventType.ECONOMIC,
        impact=impact,
        details=details,
    )


def _dividend(record: DividendRecord, instrument: Instrument) -> Event:
    if record.dividend is None:
        raise NormalizationError(ValidationReason.MISSING_FIELD, "Dividend amount missing")
    return Event(
        ticker=instrument.symbol,
        event_date=parse_event_date(record.date),
        event_name=f"Dividend Payment: {_format_amount(record.dividend)}",
        event_type=EventType.DIVIDEND,
        impact=classify(record.dividend),
        details=dict(record.raw),
    )


def _earnings(record: EarningsRecord, instrument: Instrument) -> Event:
    # A missing side counts as zero so the surprise is always numeric
    surprise = (record.eps or 0.0) - (record.eps_estimated or 0.0)
    return Event(
        ticker=instrument.symbol,
        event_date=parse_event_date(record.date),
        event_name="Earnings Report",
        event_type=EventType.EARNINGS,
        impact=classify(surprise),
        details={
            "eps": record.eps,
            "epsEstimated": record.eps_estimated,
            "revenue": record.revenue,
            "revenueEstimated": record.revenue_estimated,
        },
    )


def _split(record: SplitRecord, instrument: Instrument) -> Event:
    if record.numerator is None or not record.denominator:
        raise NormalizationError(ValidationReason.MISSING_FIELD, "Split ratio missing")
    return Event(
        ticker=instrument.symbol,
        event_date=parse_event_date(record.date),
        event_name=f"Stock Split {_format_amount(record.numerator)}:{_format_amount(record.denominator)}",
        event_type=EventType.SPLIT,
        impact=classify(record.numerator / record.denominator),
        details=dict(record.raw),
    )


def _merger(record: MergerRecord, instrument: Instrument) -> Event:
    title = (record.title or "").strip()
    if not title:
        raise NormalizationError(ValidationReason.MISSING_FIELD, "Deal title missing")
    return Event(
        ticker=instrument.symbol,
        event_date=parse_event_date(record.date),
        event_name=title,
        event_type=EventType.MERGER,
        impact=Impact.HIGH,
        details=dict(record.raw),
    )


def normalize(record: RawEvent, instrument: Instrument) -> Event | None:
    """Turn one raw record into a canonical Event, or None if invalid."""
    try:
        if not instrument.symbol:
            raise NormalizationError(ValidationReason.MISSING_FIELD, "Ticker missing")
        if isinstance(record, MacroRecord):
            return _economic(record, instrument)
        if isinstance(record, DividendRecord):
            return _dividend(record, instrument)
        if isinstance(record, EarningsRecord):
            return _earnings(record, instrument)
        if isinstance(record, SplitRecord):
            return _split(record, instrument)
        if isinstance(record, MergerRecord):
            return _merger(record, instrument)
        raise TypeError(f"Unsupported record type: {type(record).__name__}")
    except NormalizationError as e:
        logger.warning(
            f"Dropped {type(record).__name__} for {instrument.symbol}: "
            f"{e.reason.value} ({e})"
        )
        return None


def normalize_batch(instrument: Instrument, records: list[RawEvent]) -> tuple[list[Event], int]:
    """Normalize records for one instrument.

    Returns:
        (events, dropped) where dropped counts records that failed validation
    """
    events = []
    dropped = 0
    for record in records:
        event = normalize(record, instrument)
        if event is None:
            dropped += 1
        else:
            events.append(event)
    return events, dropped
