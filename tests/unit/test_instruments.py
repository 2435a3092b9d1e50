"""Tests for instrument directories."""
from unittest.mock import AsyncMock, Mock

import pytest


@pytest.fixture
def mock_client():
    """Create a mock FMP client."""
    from market_events.collectors.fmp.connection import FMPClient

    client = Mock(spec=FMPClient)
    client.get_json = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_live_directory_filters_incomplete_entries(mock_client):
    from market_events.collectors.instruments import LiveInstrumentDirectory
    from market_events.models import Instrument

    mock_client.get_json.return_value = [
        {"symbol": "AAPL", "currency": "usd"},
        {"symbol": "NOCCY", "currency": None},
        {"symbol": "", "currency": "USD"},
        {"symbol": "SAP.DE", "currency": "EUR"},
        {"symbol": "AAPL", "currency": "USD"},
        "garbage",
    ]

    instruments = await LiveInstrumentDirectory(mock_client).fetch_instruments()

    assert instruments == [
        Instrument(symbol="AAPL", currency="USD"),
        Instrument(symbol="SAP.DE", currency="EUR"),
    ]
    mock_client.get_json.assert_awaited_once_with("/stock/list")


@pytest.mark.asyncio
async def test_live_directory_respects_max_symbols(mock_client):
    from market_events.collectors.instruments import LiveInstrumentDirectory

    mock_client.get_json.return_value = [
        {"symbol": f"S{i}", "currency": "USD"} for i in range(10)
    ]

    instruments = await LiveInstrumentDirectory(mock_client, max_symbols=3).fetch_instruments()

    assert [i.symbol for i in instruments] == ["S0", "S1", "S2"]


@pytest.mark.asyncio
async def test_live_directory_failure_returns_empty(mock_client):
    from market_events.collectors.instruments import LiveInstrumentDirectory

    mock_client.get_json.return_value = None

    assert await LiveInstrumentDirectory(mock_client).fetch_instruments() == []


@pytest.mark.asyncio
async def test_live_directory_lookup_uses_profile(mock_client):
    from market_events.collectors.instruments import LiveInstrumentDirectory
    from market_events.models import Instrument

    mock_client.get_json.return_value = [{"symbol": "TSLA", "currency": "USD"}]

    instrument = await LiveInstrumentDirectory(mock_client).lookup("TSLA")

    assert instrument == Instrument(symbol="TSLA", currency="USD")
    mock_client.get_json.assert_awaited_once_with("/profile/TSLA")


@pytest.mark.asyncio
async def test_live_directory_lookup_unknown(mock_client):
    from market_events.collectors.instruments import LiveInstrumentDirectory

    mock_client.get_json.return_value = []

    assert await LiveInstrumentDirectory(mock_client).lookup("NOPE") is None


@pytest.mark.asyncio
async def test_static_directory():
    from market_events.collectors.instruments import StaticInstrumentDirectory
    from market_events.models import Instrument

    tsla = Instrument(symbol="TSLA", currency="USD")
    directory = StaticInstrumentDirectory([tsla])

    assert await directory.fetch_instruments() == [tsla]
    assert await directory.lookup("TSLA") == tsla
    assert await directory.lookup("AAPL") is None
