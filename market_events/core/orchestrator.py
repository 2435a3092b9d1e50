"""Orchestrator for wiring and managing all components."""
import asyncio
import logging

from market_events.collectors.corporate_actions import CorporateActionsCollector
from market_events.collectors.fmp.connection import FMPClient
from market_events.collectors.instruments import (
    InstrumentDirectory,
    LiveInstrumentDirectory,
    StaticInstrumentDirectory,
)
from market_events.collectors.macro_calendar import CsvMacroCalendar, LiveMacroCalendar, MacroCalendar
from market_events.core.config import Config
from market_events.core.event_store import FileEventStore
from market_events.core.ingestion import IngestionReport, IngestionService
from market_events.core.query import EventQueryService
from market_events.core.reconciler import Reconciler

logger = logging.getLogger(__name__)


class Orchestrator:
    """Wires all components together and manages lifecycle.

    Responsibilities:
    1. Build the FMP client, event store and source collectors from config
    2. Wire the reconciler, ingestion service and query service
    3. Open the client and store at start, close them at shutdown
    4. Run one-off or periodic ingestion
    """

    def __init__(self, config: Config):
        """Initialize the orchestrator.

        Args:
            config: System configuration
        """
        self.config = config
        self._running = False
        self._stop_event = asyncio.Event()

        self.client = FMPClient(
            api_key=config.fmp.api_key,
            base_url=config.fmp.base_url,
            timeout_seconds=config.fmp.timeout_seconds,
            max_concurrency=config.fmp.max_concurrency,
        )
        self.store = FileEventStore(config.data_store.path)

        self.directory = self._build_directory()
        self.macro_calendar = self._build_macro_calendar()
        self.corporate_actions = (
            CorporateActionsCollector(self.client)
            if config.ingestion.include_corporate_actions
            else None
        )

        self.reconciler = Reconciler(self.store)
        self.ingestion = IngestionService(
            directory=self.directory,
            macro_calendar=self.macro_calendar,
            reconciler=self.reconciler,
            corporate_actions=self.corporate_actions,
        )
        self.query = EventQueryService(self.store, self.ingestion)

        logger.info("Orchestrator initialized")

    @property
    def is_running(self) -> bool:
        """Check if orchestrator is currently running."""
        return self._running

    def _build_directory(self) -> InstrumentDirectory:
        instruments = self.config.instruments
        if instruments.source == "static":
            return StaticInstrumentDirectory(instruments.symbols)
        return LiveInstrumentDirectory(self.client, max_symbols=instruments.max_symbols)

    def _build_macro_calendar(self) -> MacroCalendar:
        macro = self.config.macro
        if macro.source == "file":
            return CsvMacroCalendar(macro.path, date_format=macro.date_format)
        return LiveMacroCalendar(
            self.client,
            lookback_days=macro.lookback_days,
            lookahead_days=macro.lookahead_days,
        )

    async def start(self) -> None:
        """Open the HTTP client and the event store."""
        logger.info("Starting orchestrator...")
        await self.store.open()
        await self.client.connect()
        self._running = True
        self._stop_event.clear()

    async def stop(self) -> None:
        """Close the HTTP client and the event store."""
        logger.info("Stopping orchestrator...")
        self._running = False
        self._stop_event.set()
        await self.client.close()
        await self.store.close()
        logger.info("Orchestrator stopped")

    async def __aenter__(self) -> "Orchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def ingest(self, ticker: str | None = None) -> IngestionReport:
        """Run one reconciliation for the full universe or a single ticker."""
        if ticker:
            return await self.ingestion.run_for_ticker(ticker)
        return await self.ingestion.run()

    async def run_periodic(self, interval_hours: float | None = None) -> None:
        """Run full ingestion every interval until request_stop() is called."""
        interval = (interval_hours or self.config.ingestion.interval_hours) * 3600

        while self._running:
            try:
                await self.ingestion.run()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Ingestion run failed: {e}")

            logger.info(f"Next ingestion run in {interval / 3600:.1f}h")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    def request_stop(self) -> None:
        """Ask a periodic run loop to exit after the current run."""
        self._running = False
        self._stop_event.set()
