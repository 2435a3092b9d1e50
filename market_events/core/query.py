"""Read queries and manual overlay edits for the dashboard."""
import logging
from datetime import datetime
from typing import Any

from market_events.core.event_store import EventNotFoundError, EventStore, EventStoreError
from market_events.core.ingestion import IngestionService
from market_events.models import Event, ErrorKind, OVERLAY_FIELDS, Result, ValidationReason

logger = logging.getLogger(__name__)

# Accept both the dashboard wire names and attribute names
_OVERLAY_ALIASES: dict[str, str] = {
    **OVERLAY_FIELDS,
    **{attr: attr for attr in OVERLAY_FIELDS.values()},
}


def _parse_event_id(event_id: Any) -> int | None:
    if isinstance(event_id, bool):
        return None
    if isinstance(event_id, int):
        return event_id
    if isinstance(event_id, str) and event_id.strip().isdigit():
        return int(event_id.strip())
    return None


class EventQueryService:
    """Answers event queries and applies analyst overlays.

    A ticker query that finds nothing triggers an on-demand ingestion run
    for that ticker, so a never-seen ticker is populated lazily.
    """

    def __init__(self, store: EventStore, ingestion: IngestionService | None = None):
        """Initialize the query service.

        Args:
            store: Event store to read from and write overlays to
            ingestion: Used to populate unseen tickers; None disables it
        """
        self.store = store
        self.ingestion = ingestion

    async def list_events(
        self,
        ticker: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Event]:
        """List stored events, optionally for one ticker and a date window.

        Always returns a list; "no data" is an empty list, not an error.
        """
        events = await self.store.list_events(ticker=ticker, start=start, end=end)
        if events or ticker is None or self.ingestion is None:
            return events

        # Only a ticker that has nothing stored at all is backfilled
        if start is not None or end is not None:
            if await self.store.list_events(ticker=ticker):
                return events

        logger.info(f"No events stored for {ticker}; running on-demand ingestion")
        report = await self.ingestion.run_for_ticker(ticker)
        if report.skipped:
            logger.info(f"On-demand ingestion for {ticker} skipped: {report.skipped_reason}")
        return await self.store.list_events(ticker=ticker, start=start, end=end)

    async def get_event(self, event_id: Any) -> Result:
        """Fetch one event by id."""
        parsed_id = _parse_event_id(event_id)
        if parsed_id is None:
            return Result.fail(ErrorKind.INVALID_INPUT, f"Invalid ID format: {event_id!r}")

        event = await self.store.get(parsed_id)
        if event is None:
            return Result.fail(ErrorKind.NOT_FOUND, f"Event not found: {parsed_id}")
        return Result.success(event)

    async def apply_overlay(self, event_id: Any, fields: dict[str, Any]) -> Result:
        """Apply analyst-entered overlay values to one event.

        Only totalImpliedVol, cleanImpliedVol, dirtyVolume and vol are
        accepted (other keys are ignored). A value of None clears the
        overlay.

        Returns:
            Result with the updated Event, or a failure of kind
            InvalidInput (bad id, no valid fields, non-numeric value),
            NotFound or StorageError
        """
        parsed_id = _parse_event_id(event_id)
        if parsed_id is None:
            return Result.fail(ErrorKind.INVALID_INPUT, f"Invalid ID format: {event_id!r}")

        if not isinstance(fields, dict):
            return Result.fail(ErrorKind.INVALID_INPUT, "Invalid request body")

        updates: dict[str, float | None] = {}
        for key, value in fields.items():
            attr = _OVERLAY_ALIASES.get(key)
            if attr is None:
                continue
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                return Result.fail(
                    ErrorKind.INVALID_INPUT,
                    f"Overlay {key} must be a number, got {value!r}",
                    ValidationReason.INVALID_VALUE,
                )
            updates[attr] = float(value) if value is not None else None

        if not updates:
            return Result.fail(
                ErrorKind.INVALID_INPUT,
                "No valid fields to update",
                ValidationReason.NO_VALID_FIELDS,
            )

        try:
            event = await self.store.update_by_id(parsed_id, updates)
        except EventNotFoundError:
            return Result.fail(ErrorKind.NOT_FOUND, f"Event not found: {parsed_id}")
        except EventStoreError as e:
            logger.error(f"Error updating event {parsed_id}: {e}")
            return Result.fail(ErrorKind.STORAGE_ERROR, str(e))

        logger.info(f"Applied overlay to event {parsed_id}: {sorted(updates)}")
        return Result.success(event)
