"""Tests for economic calendar sources."""
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

CALENDAR_CSV = """Country,Date,Title,Impact
USD,03-14-2025,CPI Release,High
USD,03-15-2025,Retail Sales,Medium
EUR,03-16-2025,ECB Rate Decision,High
USD,2025-03-17,Bad ISO Date,High
JPY,03-18-2025,BoJ Minutes,Low
USD,03-19-2025,FOMC Statement,High
,,,
GBP,03-20-2025,GDP q/q,Medium
USD,not a date,Broken Row,High
USD,03-21-2025,Jobless Claims,Low
CAD,03-22-2025,Employment Change,High
"""


def write_csv(tmpdir: str, content: str) -> Path:
    path = Path(tmpdir) / "calendar.csv"
    path.write_text(content)
    return path


# =============================================================================
# CSV Source
# =============================================================================

@pytest.mark.asyncio
async def test_csv_skips_and_counts_malformed_rows():
    from market_events.collectors.macro_calendar import CsvMacroCalendar

    with tempfile.TemporaryDirectory() as tmpdir:
        result = await CsvMacroCalendar(write_csv(tmpdir, CALENDAR_CSV)).fetch()

    assert len(result.records) == 8
    assert result.malformed == 2
    titles = [r.title for r in result.records]
    assert "Bad ISO Date" not in titles
    assert "Broken Row" not in titles


@pytest.mark.asyncio
async def test_csv_malformed_rows_never_reach_normalizer():
    from market_events.collectors.macro_calendar import CsvMacroCalendar
    from market_events.core.normalizer import normalize_batch
    from market_events.models import Instrument

    with tempfile.TemporaryDirectory() as tmpdir:
        result = await CsvMacroCalendar(write_csv(tmpdir, CALENDAR_CSV)).fetch()

    events, dropped = normalize_batch(Instrument(symbol="TSLA", currency="USD"), result.records)

    assert len(events) == 8
    assert dropped == 0


@pytest.mark.asyncio
async def test_csv_row_fields():
    from market_events.collectors.macro_calendar import CsvMacroCalendar

    with tempfile.TemporaryDirectory() as tmpdir:
        result = await CsvMacroCalendar(write_csv(tmpdir, CALENDAR_CSV)).fetch()

    first = result.records[0]
    assert first.source == "file"
    assert first.currency == "USD"
    assert first.country == "USD"
    assert first.date == datetime(2025, 3, 14, tzinfo=timezone.utc)
    assert first.title == "CPI Release"
    assert first.impact == "High"


@pytest.mark.asyncio
async def test_csv_optional_columns():
    from market_events.collectors.macro_calendar import CsvMacroCalendar

    content = "Country,Date,Time,Title,Impact,Forecast,Previous\nusd,03-14-2025,8:30am,CPI m/m,High,0.3%,0.5%\n"
    with tempfile.TemporaryDirectory() as tmpdir:
        result = await CsvMacroCalendar(write_csv(tmpdir, content)).fetch()

    record = result.records[0]
    assert record.currency == "USD"
    assert record.date == datetime(2025, 3, 14, 8, 30, tzinfo=timezone.utc)
    assert record.extra == {"forecast": "0.3%", "previous": "0.5%"}


@pytest.mark.asyncio
async def test_csv_custom_date_format():
    from market_events.collectors.macro_calendar import CsvMacroCalendar

    content = "Country,Date,Title,Impact\nUSD,2025-03-14,CPI Release,High\n"
    with tempfile.TemporaryDirectory() as tmpdir:
        result = await CsvMacroCalendar(write_csv(tmpdir, content), date_format="%Y-%m-%d").fetch()

    assert len(result.records) == 1
    assert result.malformed == 0


@pytest.mark.asyncio
async def test_csv_missing_file_returns_empty():
    from market_events.collectors.macro_calendar import CsvMacroCalendar

    result = await CsvMacroCalendar("/nonexistent/calendar.csv").fetch()

    assert result.records == []
    assert result.malformed == 0


# =============================================================================
# Live Source
# =============================================================================

@pytest.fixture
def mock_client():
    from market_events.collectors.fmp.connection import FMPClient

    client = Mock(spec=FMPClient)
    client.get_json = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_live_parses_rows_and_counts_malformed(mock_client):
    from market_events.collectors.macro_calendar import LiveMacroCalendar

    mock_client.get_json.return_value = [
        {"date": "2025-03-14 12:30:00", "country": "US", "currency": "USD", "event": "CPI",
         "impact": "High", "actual": 0.4, "estimate": 0.3, "previous": 0.5},
        {"date": "2025-03-15", "country": "JP", "currency": "jpy", "event": "BoJ", "impact": None},
        {"date": "14/03/2025", "currency": "USD", "event": "Bad"},
        {"currency": "USD", "event": "No date"},
    ]

    result = await LiveMacroCalendar(mock_client).fetch()

    assert len(result.records) == 2
    assert result.malformed == 2
    cpi, boj = result.records
    assert cpi.source == "api"
    assert cpi.date == datetime(2025, 3, 14, 12, 30, tzinfo=timezone.utc)
    assert cpi.extra == {"actual": 0.4, "estimate": 0.3, "previous": 0.5}
    assert boj.currency == "JPY"
    assert boj.impact is None


@pytest.mark.asyncio
async def test_live_queries_date_window(mock_client):
    from market_events.collectors.macro_calendar import LiveMacroCalendar

    mock_client.get_json.return_value = []

    await LiveMacroCalendar(mock_client, lookback_days=1, lookahead_days=2).fetch()

    path, params = mock_client.get_json.call_args[0]
    assert path == "/economic_calendar"
    start = datetime.fromisoformat(params["from"])
    end = datetime.fromisoformat(params["to"])
    assert (end - start).days == 3


@pytest.mark.asyncio
async def test_live_unavailable_returns_empty(mock_client):
    from market_events.collectors.macro_calendar import LiveMacroCalendar

    mock_client.get_json.return_value = None

    result = await LiveMacroCalendar(mock_client).fetch()

    assert result.records == []
    assert result.malformed == 0
