"""Reconciliation runs: fetch, normalize and merge events."""
import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from market_events.collectors.corporate_actions import CorporateActionsCollector
from market_events.collectors.instruments import InstrumentDirectory
from market_events.collectors.macro_calendar import MacroCalendar
from market_events.core.normalizer import normalize_batch
from market_events.core.reconciler import ReconcileReport, Reconciler
from market_events.models import CorporateActions, Event, Instrument, MacroFetchResult, MacroRecord

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    """Summary of one reconciliation run."""
    scope: str
    instruments: int = 0
    macro_events: int = 0
    malformed_rows: int = 0
    corporate_actions: int = 0
    candidates: int = 0
    dropped: int = 0
    reconcile: ReconcileReport = field(default_factory=ReconcileReport)
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class IngestionService:
    """Runs fetch -> normalize -> reconcile for all instruments or one ticker.

    Source failures never escape a run: collectors degrade to empty
    results, and an empty universe or empty feeds end the run early with
    a warning.
    """

    def __init__(
        self,
        directory: InstrumentDirectory,
        macro_calendar: MacroCalendar,
        reconciler: Reconciler,
        corporate_actions: CorporateActionsCollector | None = None,
    ):
        self.directory = directory
        self.macro_calendar = macro_calendar
        self.reconciler = reconciler
        self.corporate_actions = corporate_actions

    async def run(self) -> IngestionReport:
        """Run a full-universe reconciliation."""
        report = IngestionReport(scope="all")
        logger.info("Starting full ingestion run")

        instruments = await self.directory.fetch_instruments()
        if not instruments:
            logger.warning("No instruments retrieved. Skipping event fetching.")
            report.skipped_reason = "no instruments"
            return report

        return await self._run(instruments, report)

    async def run_for_ticker(self, ticker: str) -> IngestionReport:
        """Run a reconciliation scoped to a single ticker."""
        report = IngestionReport(scope=ticker)
        logger.info(f"Starting on-demand ingestion for {ticker}")

        instrument = await self.directory.lookup(ticker)
        if instrument is None:
            logger.warning(f"Unknown ticker {ticker}. Skipping event fetching.")
            report.skipped_reason = "unknown ticker"
            return report

        return await self._run([instrument], report)

    async def _run(self, instruments: list[Instrument], report: IngestionReport) -> IngestionReport:
        report.instruments = len(instruments)

        macro, actions = await asyncio.gather(
            self.macro_calendar.fetch(),
            self._fetch_corporate_actions(instruments),
            return_exceptions=True,
        )
        if isinstance(macro, BaseException):
            logger.warning(f"Macro calendar fetch failed: {macro}")
            macro = MacroFetchResult()
        if isinstance(actions, BaseException):
            logger.warning(f"Corporate actions fetch failed: {actions}")
            actions = {}

        report.macro_events = len(macro.records)
        report.malformed_rows = macro.malformed
        report.corporate_actions = sum(len(a) for a in actions.values())

        if not macro.records and not report.corporate_actions:
            logger.warning("No economic events parsed and no corporate actions fetched. Skipping.")
            report.skipped_reason = "no events"
            return report

        candidates = self._build_candidates(instruments, macro.records, actions, report)
        report.candidates = len(candidates)
        report.reconcile = await self.reconciler.reconcile(candidates)

        logger.info(
            f"Ingestion run ({report.scope}) complete: {report.instruments} instruments, "
            f"{report.candidates} candidates, {report.dropped} dropped, "
            f"{report.malformed_rows} malformed rows"
        )
        return report

    async def _fetch_corporate_actions(self, instruments: list[Instrument]) -> dict[str, CorporateActions]:
        if self.corporate_actions is None:
            return {}
        if len(instruments) == 1:
            instrument = instruments[0]
            return {instrument.symbol: await self.corporate_actions.fetch_for(instrument)}
        return await self.corporate_actions.fetch_all(instruments)

    @staticmethod
    def _build_candidates(
        instruments: list[Instrument],
        macro_records: list[MacroRecord],
        actions: dict[str, CorporateActions],
        report: IngestionReport,
    ) -> list[Event]:
        """Normalize every record that applies to each instrument."""
        by_currency: dict[str, list[MacroRecord]] = defaultdict(list)
        for record in macro_records:
            by_currency[record.currency].append(record)

        candidates: list[Event] = []
        for instrument in instruments:
            records = list(by_currency.get(instrument.currency, []))
            instrument_actions = actions.get(instrument.symbol)
            if instrument_actions is not None:
                records.extend(instrument_actions.records())

            events, dropped = normalize_batch(instrument, records)
            candidates.extend(events)
            report.dropped += dropped

        return candidates
