"""Merge normalized events into the event store by natural key."""
import logging
from dataclasses import dataclass
from typing import Any

from market_events.core.event_store import EventStore, EventStoreError, UpsertOutcome
from market_events.models import Event, OVERLAY_FIELDS

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Counts from one reconciliation batch."""
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.unchanged + self.failed

    def record(self, outcome: UpsertOutcome) -> None:
        if outcome is UpsertOutcome.CREATED:
            self.created += 1
        elif outcome is UpsertOutcome.UPDATED:
            self.updated += 1
        else:
            self.unchanged += 1


def merge_fields(candidate: Event) -> dict[str, Any]:
    """Fields a candidate writes onto the stored row.

    Source fields are always written. Overlay fields are written only when
    the candidate carries a value, so analyst overlays survive re-ingestion.
    """
    fields: dict[str, Any] = {
        "event_name": candidate.event_name,
        "event_type": candidate.event_type,
        "impact": candidate.impact,
        "details": dict(candidate.details),
    }
    for attr, value in candidate.overlays().items():
        if value is not None:
            fields[attr] = value
    return fields


class Reconciler:
    """Upserts candidate events so each (ticker, event_date) has one row."""

    def __init__(self, store: EventStore):
        self.store = store

    async def reconcile(self, candidates: list[Event]) -> ReconcileReport:
        """Merge every candidate into the store.

        The batch is written in one store call. If that fails, candidates
        are retried one at a time so a single bad row is logged and counted
        while the rest of the batch still runs.
        """
        report = ReconcileReport()
        if not candidates:
            return report

        items = [(c.ticker, c.event_date, merge_fields(c)) for c in candidates]
        try:
            results = await self.store.upsert_many(items)
        except EventStoreError as e:
            logger.warning(f"Batch merge of {len(items)} candidates failed, retrying singly: {e}")
            await self._reconcile_singly(candidates, items, report)
        else:
            for _, outcome in results:
                report.record(outcome)

        logger.info(
            f"Reconciled {report.total} candidates: {report.created} created, "
            f"{report.updated} updated, {report.unchanged} unchanged, {report.failed} failed"
        )
        return report

    async def _reconcile_singly(
        self,
        candidates: list[Event],
        items: list[tuple[Any, ...]],
        report: ReconcileReport,
    ) -> None:
        for candidate, (ticker, event_date, fields) in zip(candidates, items):
            try:
                _, outcome = await self.store.upsert_by_natural_key(ticker, event_date, fields)
            except EventStoreError as e:
                report.failed += 1
                logger.error(
                    f"Failed to merge {candidate.event_type.value} event for "
                    f"{candidate.ticker} at {candidate.event_date.isoformat()}: {e}"
                )
                continue
            report.record(outcome)
