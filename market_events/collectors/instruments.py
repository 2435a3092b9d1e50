"""Instrument directories mapping symbols to their quote currency."""
import logging
from typing import Protocol

from market_events.collectors.fmp.connection import FMPClient
from market_events.models import Instrument

logger = logging.getLogger(__name__)


class InstrumentDirectory(Protocol):
    """Protocol for instrument directory providers."""

    async def fetch_instruments(self) -> list[Instrument]:
        """Get the instrument universe. Empty means "try later"."""
        ...

    async def lookup(self, symbol: str) -> Instrument | None:
        """Resolve a single symbol, or None if unknown."""
        ...


class LiveInstrumentDirectory:
    """Fetches the instrument universe from the FMP stock list.

    Entries without a symbol or currency are skipped. A failed fetch
    yields an empty list, which callers treat as "try later".
    """

    STOCK_LIST_PATH = "/stock/list"
    PROFILE_PATH = "/profile/{symbol}"

    def __init__(self, client: FMPClient, max_symbols: int | None = None):
        self.client = client
        self.max_symbols = max_symbols

    async def fetch_instruments(self) -> list[Instrument]:
        data = await self.client.get_json(self.STOCK_LIST_PATH)
        if not isinstance(data, list):
            logger.warning("Instrument directory unavailable; no instruments fetched")
            return []

        instruments = []
        seen = set()
        for entry in data:
            if not isinstance(entry, dict):
                continue
            instrument = Instrument.create(entry.get("symbol"), entry.get("currency"))
            if instrument is None or instrument.symbol in seen:
                continue
            seen.add(instrument.symbol)
            instruments.append(instrument)
            if self.max_symbols and len(instruments) >= self.max_symbols:
                break

        logger.info(f"Fetched {len(instruments)} instruments from FMP ({len(data)} listed)")
        return instruments

    async def lookup(self, symbol: str) -> Instrument | None:
        data = await self.client.get_json(self.PROFILE_PATH.format(symbol=symbol))
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return Instrument.create(data[0].get("symbol") or symbol, data[0].get("currency"))
        logger.warning(f"No profile found for {symbol}")
        return None


class StaticInstrumentDirectory:
    """Serves a configured list of popular instruments."""

    def __init__(self, instruments: list[Instrument]):
        self._instruments = list(instruments)

    async def fetch_instruments(self) -> list[Instrument]:
        return list(self._instruments)

    async def lookup(self, symbol: str) -> Instrument | None:
        for instrument in self._instruments:
            if instrument.symbol == symbol:
                return instrument
        return None
