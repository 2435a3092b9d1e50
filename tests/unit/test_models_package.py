"""Tests for models package exports."""
import pytest


def test_all_models_importable():
    from market_events.models import (
        Event,
        EventType,
        Impact,
        Instrument,
        CorporateActions,
        DividendRecord,
        EarningsRecord,
        MacroFetchResult,
        MacroRecord,
        MergerRecord,
        SplitRecord,
        ErrorKind,
        Failure,
        Result,
        ValidationReason,
    )

    assert Event is not None
    assert EventType is not None
    assert Impact is not None
    assert Instrument is not None
    assert CorporateActions is not None
    assert DividendRecord is not None
    assert EarningsRecord is not None
    assert MacroFetchResult is not None
    assert MacroRecord is not None
    assert MergerRecord is not None
    assert SplitRecord is not None
    assert ErrorKind is not None
    assert Failure is not None
    assert Result is not None
    assert ValidationReason is not None


def test_result_success_and_failure():
    from market_events.models import ErrorKind, Result, ValidationReason

    ok = Result.success(42)
    failed = Result.fail(ErrorKind.INVALID_INPUT, "nope", ValidationReason.NO_VALID_FIELDS)

    assert ok.ok and ok.value == 42
    assert not failed.ok
    assert failed.error.kind is ErrorKind.INVALID_INPUT
    assert failed.error.reason is ValidationReason.NO_VALID_FIELDS


def test_corporate_actions_records_and_len():
    from market_events.models import CorporateActions, DividendRecord, MergerRecord

    actions = CorporateActions(
        dividends=[DividendRecord(symbol="AAPL", date="2025-02-10", dividend=0.25)],
        mergers=[MergerRecord(symbol="AAPL", date="2025-01-01", title="Deal")],
    )

    assert len(actions) == 2
    assert [type(r).__name__ for r in actions.records()] == ["DividendRecord", "MergerRecord"]
