"""Corporate action collector: dividends, earnings, splits and mergers."""
import asyncio
import logging

from market_events.collectors.fmp.connection import FMPClient
from market_events.collectors.parsers import response_rows, to_float
from market_events.models import (
    CorporateActions,
    DividendRecord,
    EarningsRecord,
    Instrument,
    MergerRecord,
    SplitRecord,
)

logger = logging.getLogger(__name__)


class CorporateActionsCollector:
    """Collects corporate actions per instrument from FMP.

    Each instrument issues its dividend, earnings and split requests
    concurrently; the merger feed is global, fetched once per run and
    filtered by symbol. Every sub-fetch fails independently to an empty
    list, so one broken feed never hides the others.
    """

    DIVIDENDS_PATH = "/historical-price-full/stock_dividend/{symbol}"
    EARNINGS_PATH = "/historical/earnings_calendar/{symbol}"
    SPLITS_PATH = "/historical-price-full/stock_split/{symbol}"
    MERGERS_PATH = "/merger_acquisition"

    def __init__(self, client: FMPClient):
        self.client = client

    async def fetch_all(self, instruments: list[Instrument]) -> dict[str, CorporateActions]:
        """Fetch corporate actions for every instrument concurrently."""
        mergers = await self.fetch_mergers()
        results = await asyncio.gather(
            *(self.fetch_for(instrument, mergers) for instrument in instruments),
            return_exceptions=True,
        )

        actions: dict[str, CorporateActions] = {}
        for instrument, result in zip(instruments, results):
            if isinstance(result, BaseException):
                logger.warning(f"Corporate actions for {instrument.symbol} failed: {result}")
                actions[instrument.symbol] = CorporateActions()
            else:
                actions[instrument.symbol] = result

        total = sum(len(a) for a in actions.values())
        logger.info(f"Fetched {total} corporate actions for {len(instruments)} instruments")
        return actions

    async def fetch_for(
        self, instrument: Instrument, mergers: list[MergerRecord] | None = None
    ) -> CorporateActions:
        """Fetch the four corporate-action feeds for one instrument.

        Args:
            instrument: Instrument to collect for
            mergers: Pre-fetched global merger feed; fetched here when None
        """
        symbol = instrument.symbol
        fetches = [
            self.fetch_dividends(symbol),
            self.fetch_earnings(symbol),
            self.fetch_splits(symbol),
        ]
        if mergers is None:
            fetches.append(self.fetch_mergers())

        results = await asyncio.gather(*fetches, return_exceptions=True)
        labels = ["dividends", "earnings", "splits", "mergers"]
        for i, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.warning(f"Fetching {labels[i]} for {symbol} failed: {result}")
                results[i] = []

        if mergers is None:
            mergers = results[3]

        return CorporateActions(
            dividends=results[0],
            earnings=results[1],
            splits=results[2],
            mergers=[m for m in mergers if m.symbol == symbol],
        )

    async def fetch_dividends(self, symbol: str) -> list[DividendRecord]:
        data = await self.client.get_json(self.DIVIDENDS_PATH.format(symbol=symbol))
        return [
            DividendRecord(
                symbol=symbol,
                date=row.get("date"),
                dividend=to_float(row.get("dividend")),
                raw=row,
            )
            for row in response_rows(data)
        ]

    async def fetch_earnings(self, symbol: str) -> list[EarningsRecord]:
        data = await self.client.get_json(self.EARNINGS_PATH.format(symbol=symbol))
        return [
            EarningsRecord(
                symbol=symbol,
                date=row.get("date"),
                eps=to_float(row.get("eps")),
                eps_estimated=to_float(row.get("epsEstimated")),
                revenue=to_float(row.get("revenue")),
                revenue_estimated=to_float(row.get("revenueEstimated")),
            )
            for row in response_rows(data)
        ]

    async def fetch_splits(self, symbol: str) -> list[SplitRecord]:
        data = await self.client.get_json(self.SPLITS_PATH.format(symbol=symbol))
        return [
            SplitRecord(
                symbol=symbol,
                date=row.get("date"),
                numerator=to_float(row.get("numerator")),
                denominator=to_float(row.get("denominator")),
                raw=row,
            )
            for row in response_rows(data)
            if row.get("symbol") in (None, symbol)
        ]

    async def fetch_mergers(self) -> list[MergerRecord]:
        """Fetch the global merger and acquisition feed."""
        data = await self.client.get_json(self.MERGERS_PATH)
        mergers = []
        for row in response_rows(data):
            title = row.get("title")
            if not title and row.get("companyName") and row.get("targetedCompanyName"):
                title = f"{row['companyName']} acquires {row['targetedCompanyName']}"
            mergers.append(MergerRecord(
                symbol=row.get("symbol") or "",
                date=row.get("date") or row.get("transactionDate"),
                title=title,
                raw=row,
            ))
        return mergers
