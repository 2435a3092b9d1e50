"""Shared fixtures for unit and integration tests."""
import tempfile
from datetime import datetime, timezone

import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def store():
    """Provide an open FileEventStore in a temporary directory."""
    from market_events.core.event_store import FileEventStore

    with tempfile.TemporaryDirectory() as tmpdir:
        event_store = FileEventStore(base_path=tmpdir)
        await event_store.open()
        yield event_store
        await event_store.close()


@pytest.fixture
def make_event():
    """Factory for canonical events with sensible defaults."""
    from market_events.models import Event, EventType, Impact

    def _make(
        ticker: str = "TSLA",
        event_date: datetime = datetime(2025, 3, 14, tzinfo=timezone.utc),
        **overrides,
    ) -> Event:
        fields = {
            "event_name": "CPI Release",
            "event_type": EventType.ECONOMIC,
            "impact": Impact.HIGH,
            "details": {"currency": "USD", "event": "CPI Release"},
        }
        fields.update(overrides)
        return Event(ticker=ticker, event_date=event_date, **fields)

    return _make
