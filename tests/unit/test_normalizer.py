"""Tests for record normalization."""
from datetime import datetime, timezone
import pytest


@pytest.fixture
def tsla():
    from market_events.models import Instrument

    return Instrument(symbol="TSLA", currency="USD")


def macro(**overrides):
    from market_events.models import MacroRecord

    fields = {
        "source": "file",
        "currency": "USD",
        "date": datetime(2025, 3, 14, tzinfo=timezone.utc),
        "title": "CPI Release",
        "impact": "High",
    }
    fields.update(overrides)
    return MacroRecord(**fields)


# =============================================================================
# Economic Events
# =============================================================================

def test_economic_event_scenario(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import EventType, Impact

    event = normalize(macro(country="USD"), tsla)

    assert event.ticker == "TSLA"
    assert event.event_date == datetime(2025, 3, 14, tzinfo=timezone.utc)
    assert event.event_name == "CPI Release"
    assert event.event_type == EventType.ECONOMIC
    assert event.impact == Impact.HIGH
    assert event.details["currency"] == "USD"
    assert event.details["event"] == "CPI Release"


def test_economic_event_missing_title_is_unnamed(tsla):
    from market_events.core.normalizer import normalize

    event = normalize(macro(title=None), tsla)

    assert event.event_name == "Unnamed Event"


def test_economic_source_label_bypasses_classifier(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import Impact

    event = normalize(macro(impact="Low", importance=3.0), tsla)

    assert event.impact == Impact.LOW


def test_economic_importance_used_without_label(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import Impact

    event = normalize(macro(impact=None, importance=3.0), tsla)

    assert event.impact == Impact.HIGH


def test_economic_unrecognised_label_is_unknown(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import Impact

    event = normalize(macro(impact="Holiday"), tsla)

    assert event.impact == Impact.UNKNOWN


def test_economic_extra_fields_kept_in_details(tsla):
    from market_events.core.normalizer import normalize

    event = normalize(macro(extra={"forecast": "0.3%"}), tsla)

    assert event.details["forecast"] == "0.3%"


# =============================================================================
# Corporate Actions
# =============================================================================

def test_dividend(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import DividendRecord, EventType, Impact

    raw = {"date": "2025-02-10", "dividend": 0.25}
    event = normalize(DividendRecord(symbol="TSLA", date="2025-02-10", dividend=0.25, raw=raw), tsla)

    assert event.event_name == "Dividend Payment: 0.25"
    assert event.event_type == EventType.DIVIDEND
    assert event.impact == Impact.LOW
    assert event.details == raw
    assert event.event_date == datetime(2025, 2, 10, tzinfo=timezone.utc)


def test_dividend_whole_amount_formatting(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import DividendRecord, Impact

    event = normalize(DividendRecord(symbol="TSLA", date="2025-02-10", dividend=2.0), tsla)

    assert event.event_name == "Dividend Payment: 2"
    assert event.impact == Impact.HIGH


def test_dividend_without_amount_is_dropped(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import DividendRecord

    assert normalize(DividendRecord(symbol="TSLA", date="2025-02-10", dividend=None), tsla) is None


def test_earnings_impact_from_surprise(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import EarningsRecord, EventType, Impact

    record = EarningsRecord(symbol="TSLA", date="2025-01-29", eps=1.5, eps_estimated=0.8,
                            revenue=100.0, revenue_estimated=90.0)
    event = normalize(record, tsla)

    assert event.event_name == "Earnings Report"
    assert event.event_type == EventType.EARNINGS
    assert event.impact == Impact.MEDIUM  # surprise 0.7
    assert event.details == {"eps": 1.5, "epsEstimated": 0.8, "revenue": 100.0, "revenueEstimated": 90.0}


@pytest.mark.parametrize("eps, eps_estimated, expected", [
    (None, 0.41, "Low"),
    (1.5, None, "High"),
    (0.8, None, "Medium"),
    (None, None, "Low"),
])
def test_earnings_missing_side_counts_as_zero(tsla, eps, eps_estimated, expected):
    from market_events.core.normalizer import normalize
    from market_events.models import EarningsRecord, Impact

    record = EarningsRecord(symbol="TSLA", date="2025-01-29", eps=eps, eps_estimated=eps_estimated)

    assert normalize(record, tsla).impact == Impact(expected)


def test_split(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import EventType, Impact, SplitRecord

    record = SplitRecord(symbol="TSLA", date="2022-08-25", numerator=3.0, denominator=1.0)
    event = normalize(record, tsla)

    assert event.event_name == "Stock Split 3:1"
    assert event.event_type == EventType.SPLIT
    assert event.impact == Impact.HIGH


def test_split_zero_denominator_is_dropped(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import SplitRecord

    record = SplitRecord(symbol="TSLA", date="2022-08-25", numerator=3.0, denominator=0.0)

    assert normalize(record, tsla) is None


def test_merger_is_always_high(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import EventType, Impact, MergerRecord

    record = MergerRecord(symbol="TSLA", date="2016-11-21", title="Tesla acquires SolarCity")
    event = normalize(record, tsla)

    assert event.event_name == "Tesla acquires SolarCity"
    assert event.event_type == EventType.MERGER
    assert event.impact == Impact.HIGH


def test_merger_without_title_is_dropped(tsla):
    from market_events.core.normalizer import normalize
    from market_events.models import MergerRecord

    assert normalize(MergerRecord(symbol="TSLA", date="2016-11-21", title="  "), tsla) is None


# =============================================================================
# Dates and Batches
# =============================================================================

@pytest.mark.parametrize("bad_date", [None, "", "not-a-date", "2025-13-45"])
def test_unparseable_dates_are_dropped(tsla, bad_date):
    from market_events.core.normalizer import normalize
    from market_events.models import DividendRecord

    assert normalize(DividendRecord(symbol="TSLA", date=bad_date, dividend=0.25), tsla) is None


def test_parse_event_date_converts_to_utc():
    from market_events.core.normalizer import parse_event_date

    dt = parse_event_date("2025-03-14T08:30:00-04:00")

    assert dt == datetime(2025, 3, 14, 12, 30, tzinfo=timezone.utc)
    assert dt.utcoffset().total_seconds() == 0


def test_parse_event_date_rejects_garbage():
    from market_events.core.normalizer import NormalizationError, parse_event_date
    from market_events.models import ValidationReason

    with pytest.raises(NormalizationError) as exc_info:
        parse_event_date("03/14/2025")

    assert exc_info.value.reason is ValidationReason.INVALID_DATE


def test_empty_ticker_is_dropped():
    from market_events.core.normalizer import normalize
    from market_events.models import Instrument

    assert normalize(macro(), Instrument(symbol="", currency="USD")) is None


def test_normalize_batch_counts_dropped(tsla):
    from market_events.core.normalizer import normalize_batch
    from market_events.models import DividendRecord

    records = [
        macro(),
        DividendRecord(symbol="TSLA", date="bad", dividend=0.25),
        DividendRecord(symbol="TSLA", date="2025-02-10", dividend=0.25),
    ]

    events, dropped = normalize_batch(tsla, records)

    assert len(events) == 2
    assert dropped == 1
