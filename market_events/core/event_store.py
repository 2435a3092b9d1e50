"""Event store protocol and file-backed implementation."""
import asyncio
import json
import logging
import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

import pyarrow as pa
import pyarrow.parquet as pq
from filelock import FileLock, Timeout

from market_events.models import Event, EventType, Impact, ErrorKind, OVERLAY_FIELDS

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"event_name", "event_type", "impact", "details", *OVERLAY_FIELDS.values()}

EVENT_SCHEMA = pa.schema([
    ("id", pa.int64()),
    ("ticker", pa.string()),
    ("event_date", pa.timestamp("us", tz="UTC")),
    ("event_name", pa.string()),
    ("event_type", pa.string()),
    ("impact", pa.string()),
    ("details", pa.string()),
    ("clean_implied_vol", pa.float64()),
    ("dirty_volume", pa.float64()),
    ("total_implied_vol", pa.float64()),
    ("vol", pa.float64()),
])

NaturalKey = tuple[str, datetime]
UpsertItem = tuple[str, datetime, dict[str, Any]]


class EventStoreError(Exception):
    """Base class for event store failures."""

    kind = ErrorKind.STORAGE_ERROR


class StorageError(EventStoreError):
    """Raised when the backend cannot read or write events."""

    pass


class EventNotFoundError(EventStoreError):
    """Raised when an event id does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, event_id: int):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class UpsertOutcome(Enum):
    """What an upsert did to the stored row."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@runtime_checkable
class EventStore(Protocol):
    """Protocol for event persistence backends."""

    async def find_by_natural_key(self, ticker: str, event_date: datetime) -> Event | None:
        """Return the event stored under (ticker, event_date), if any."""
        ...

    async def get(self, event_id: int) -> Event | None:
        """Return the event with this id, if any."""
        ...

    async def insert(self, event: Event) -> Event:
        """Insert a new event and return it with its assigned id."""
        ...

    async def update_by_id(self, event_id: int, fields: dict[str, Any]) -> Event:
        """Apply a partial update. Raises EventNotFoundError for unknown ids."""
        ...

    async def upsert_by_natural_key(
        self, ticker: str, event_date: datetime, fields: dict[str, Any]
    ) -> tuple[Event, UpsertOutcome]:
        """Atomically insert or update the event keyed by (ticker, event_date)."""
        ...

    async def upsert_many(self, items: list[UpsertItem]) -> list[tuple[Event, UpsertOutcome]]:
        """Upsert a batch of (ticker, event_date, fields) as one atomic write."""
        ...

    async def list_events(
        self,
        ticker: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Event]:
        """List events, optionally filtered by ticker and inclusive date bounds."""
        ...


class _Snapshot:
    """Mutable working copy of the index used inside one write."""

    def __init__(self, events: dict[int, Event], keys: dict[NaturalKey, int]):
        self.events = dict(events)
        self.keys = dict(keys)
        self.next_id = max(self.events, default=0) + 1
        self.changed = False

    def put(self, event: Event) -> None:
        self.events[event.id] = event
        self.keys[event.natural_key] = event.id
        self.next_id = max(self.next_id, event.id + 1)
        self.changed = True


class FileEventStore:
    """Parquet-backed EventStore.

    Events live in an in-memory index (by id and by natural key) and are
    written through to a single Parquet file. Every write holds an
    asyncio.Lock for this process and a file lock next to the Parquet file
    for other processes. Under both locks the index is reloaded if the file
    changed on disk, the change is applied, and the file is replaced in one
    write. That keeps (ticker, event_date) unique and keeps other writers'
    changes, including analyst overlays, from being overwritten.
    """

    def __init__(self, base_path: str | Path, lock_timeout: float = 30.0):
        self.base_path = Path(base_path)
        self.file_path = self.base_path / "events" / "events.parquet"
        self.lock_path = self.file_path.with_name("events.parquet.lock")
        self._file_lock = FileLock(str(self.lock_path), timeout=lock_timeout)
        self._events: dict[int, Event] = {}
        self._keys: dict[NaturalKey, int] = {}
        self._signature: tuple[int, int, int] | None = None
        self._lock = asyncio.Lock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        """Create the directory layout and load persisted events."""
        if self._open:
            return
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(self._reload_if_changed)
        except (OSError, pa.ArrowException) as e:
            raise StorageError(f"Failed to open event store at {self.file_path}: {e}") from e

        self._open = True
        logger.info(f"Opened event store at {self.file_path} ({len(self._events)} events)")

    async def close(self) -> None:
        """Release the store. Every write is already on disk."""
        async with self._lock:
            self._open = False
        logger.debug(f"Closed event store at {self.file_path}")

    async def __aenter__(self) -> "FileEventStore":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_by_natural_key(self, ticker: str, event_date: datetime) -> Event | None:
        await self._refresh()
        event_id = self._keys.get((ticker, event_date))
        if event_id is None:
            return None
        return self._events[event_id].copy()

    async def get(self, event_id: int) -> Event | None:
        await self._refresh()
        event = self._events.get(event_id)
        return event.copy() if event else None

    async def list_events(
        self,
        ticker: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Event]:
        await self._refresh()
        events = [
            e for e in self._events.values()
            if (ticker is None or e.ticker == ticker)
            and (start is None or e.event_date >= start)
            and (end is None or e.event_date <= end)
        ]
        events.sort(key=lambda e: (e.event_date, e.ticker, e.id))
        return [e.copy() for e in events]

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, event: Event) -> Event:
        def apply(snapshot: _Snapshot) -> Event:
            if event.natural_key in snapshot.keys:
                raise StorageError(
                    f"Unique constraint violated for ({event.ticker}, {event.event_date.isoformat()})"
                )
            stored = event.copy(id=snapshot.next_id)
            snapshot.put(stored)
            return stored

        stored = await self._write(apply)
        return stored.copy()

    async def update_by_id(self, event_id: int, fields: dict[str, Any]) -> Event:
        self._check_fields(fields)

        def apply(snapshot: _Snapshot) -> Event:
            current = snapshot.events.get(event_id)
            if current is None:
                raise EventNotFoundError(event_id)
            updated = current.copy(**fields)
            if updated != current:
                snapshot.put(updated)
            return updated

        updated = await self._write(apply)
        return updated.copy()

    async def upsert_by_natural_key(
        self, ticker: str, event_date: datetime, fields: dict[str, Any]
    ) -> tuple[Event, UpsertOutcome]:
        [result] = await self.upsert_many([(ticker, event_date, fields)])
        return result

    async def upsert_many(self, items: list[UpsertItem]) -> list[tuple[Event, UpsertOutcome]]:
        """Insert or update every item, then write the file once.

        Later items see earlier ones, so a key repeated in the batch ends up
        as one row.
        """
        for _, _, fields in items:
            self._check_fields(fields)
        if not items:
            return []

        def apply(snapshot: _Snapshot) -> list[tuple[Event, UpsertOutcome]]:
            results = []
            for ticker, event_date, fields in items:
                event_id = snapshot.keys.get((ticker, event_date))
                if event_id is None:
                    stored = Event(ticker=ticker, event_date=event_date, id=snapshot.next_id, **fields)
                    snapshot.put(stored)
                    results.append((stored, UpsertOutcome.CREATED))
                    continue

                current = snapshot.events[event_id]
                updated = current.copy(**fields)
                if updated == current:
                    results.append((current, UpsertOutcome.UNCHANGED))
                else:
                    snapshot.put(updated)
                    results.append((updated, UpsertOutcome.UPDATED))
            return results

        results = await self._write(apply)
        return [(event.copy(), outcome) for event, outcome in results]

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_open(self) -> None:
        if not self._open:
            raise StorageError("Event store is not open")

    @staticmethod
    def _check_fields(fields: dict[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown event fields: {sorted(unknown)}")

    async def _refresh(self) -> None:
        """Pick up writes made by other processes since the last load."""
        async with self._lock:
            self._ensure_open()
            try:
                await asyncio.to_thread(self._reload_if_changed)
            except (OSError, pa.ArrowException) as e:
                raise StorageError(f"Failed to read event store: {e}") from e

    async def _write(self, apply: Callable[[_Snapshot], Any]) -> Any:
        """Run apply against the latest on-disk state and persist the result.

        If the write fails, the in-memory index is untouched.
        """
        async with self._lock:
            self._ensure_open()
            try:
                return await asyncio.to_thread(self._locked_write, apply)
            except Timeout as e:
                raise StorageError(f"Timed out waiting for lock {self.lock_path}") from e
            except (OSError, TypeError, pa.ArrowException) as e:
                raise StorageError(f"Failed to write event store: {e}") from e

    def _locked_write(self, apply: Callable[[_Snapshot], Any]) -> Any:
        with self._file_lock:
            self._reload_if_changed()
            snapshot = _Snapshot(self._events, self._keys)
            result = apply(snapshot)
            if not snapshot.changed:
                return result

            self._write_table(list(snapshot.events.values()))
            self._events = snapshot.events
            self._keys = snapshot.keys
            self._signature = self._disk_signature()

        logger.debug(
            "WRITE: Events persisted",
            extra={
                "extra_data": {
                    "action": "event_commit",
                    "events": len(snapshot.events),
                    "path": str(self.file_path),
                }
            },
        )
        return result

    def _disk_signature(self) -> tuple[int, int, int] | None:
        try:
            stat = self.file_path.stat()
        except FileNotFoundError:
            return None
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def _reload_if_changed(self) -> None:
        signature = self._disk_signature()
        if signature is not None and signature == self._signature:
            return
        events = self._read_table()
        self._events = {e.id: e for e in events}
        self._keys = {e.natural_key: e.id for e in events}
        self._signature = signature

    def _write_table(self, events: list[Event]) -> None:
        """Write all events to the Parquet file, replacing it atomically."""
        events = sorted(events, key=lambda e: e.id)
        table = pa.table({
            "id": [e.id for e in events],
            "ticker": [e.ticker for e in events],
            "event_date": [e.event_date for e in events],
            "event_name": [e.event_name for e in events],
            "event_type": [e.event_type.value for e in events],
            "impact": [e.impact.value for e in events],
            "details": [json.dumps(e.details, default=str) for e in events],
            "clean_implied_vol": [e.clean_implied_vol for e in events],
            "dirty_volume": [e.dirty_volume for e in events],
            "total_implied_vol": [e.total_implied_vol for e in events],
            "vol": [e.vol for e in events],
        }, schema=EVENT_SCHEMA)

        tmp_path = self.file_path.with_name(f"events.parquet.{os.getpid()}.tmp")
        pq.write_table(table, tmp_path)
        os.replace(tmp_path, self.file_path)

    def _read_table(self) -> list[Event]:
        """Read all events from the Parquet file."""
        if not self.file_path.exists():
            return []

        table = pq.read_table(self.file_path)
        events = []
        for row in table.to_pylist():
            events.append(Event(
                id=row["id"],
                ticker=row["ticker"],
                event_date=row["event_date"],
                event_name=row["event_name"],
                event_type=EventType(row["event_type"]),
                impact=Impact(row["impact"]),
                details=json.loads(row["details"]) if row["details"] else {},
                clean_implied_vol=row["clean_implied_vol"],
                dirty_volume=row["dirty_volume"],
                total_implied_vol=row["total_implied_vol"],
                vol=row["vol"],
            ))
        logger.debug(f"Read {len(events)} events from {self.file_path}")
        return events
