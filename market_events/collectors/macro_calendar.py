"""Economic calendar sources: live FMP API and local CSV extract.

Both sources return a MacroFetchResult. A row whose date does not parse
with the source's date format is skipped and counted as malformed; one
bad row never fails the whole fetch.
"""
import asyncio
import csv
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

from market_events.collectors.fmp.connection import FMPClient
from market_events.collectors.parsers import parse_with_formats, to_float
from market_events.models import MacroFetchResult, MacroRecord

logger = logging.getLogger(__name__)


class MacroCalendar(Protocol):
    """Protocol for economic calendar sources."""

    async def fetch(self) -> MacroFetchResult:
        """Fetch macro events and the malformed-row count."""
        ...


class LiveMacroCalendar:
    """Fetches the FMP economic calendar for a window around today."""

    PATH = "/economic_calendar"
    DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")

    def __init__(self, client: FMPClient, lookback_days: int = 7, lookahead_days: int = 30):
        self.client = client
        self.lookback_days = lookback_days
        self.lookahead_days = lookahead_days

    async def fetch(self) -> MacroFetchResult:
        today = datetime.now(timezone.utc).date()
        params = {
            "from": (today - timedelta(days=self.lookback_days)).isoformat(),
            "to": (today + timedelta(days=self.lookahead_days)).isoformat(),
        }
        data = await self.client.get_json(self.PATH, params)
        if not isinstance(data, list):
            logger.warning("Economic calendar API unavailable; no macro events fetched")
            return MacroFetchResult()

        result = MacroFetchResult()
        for row in data:
            record = self._parse_row(row) if isinstance(row, dict) else None
            if record is None:
                result.malformed += 1
                continue
            result.records.append(record)

        if result.malformed:
            logger.warning(f"Skipped {result.malformed} malformed economic calendar rows")
        logger.info(f"Fetched {len(result.records)} macro events from FMP")
        return result

    def _parse_row(self, row: dict[str, Any]) -> MacroRecord | None:
        date = parse_with_formats(row.get("date"), self.DATE_FORMATS)
        if date is None:
            return None
        extra = {
            key: row[key]
            for key in ("actual", "estimate", "previous", "change", "unit")
            if row.get(key) is not None
        }
        return MacroRecord(
            source="api",
            currency=(row.get("currency") or "").strip().upper(),
            date=date,
            title=row.get("event"),
            impact=row.get("impact"),
            importance=to_float(row.get("importance")),
            country=row.get("country"),
            extra=extra,
        )


class CsvMacroCalendar:
    """Reads a locally cached economic calendar extract.

    Expected columns: Country, Date, Title, Impact. Country holds the
    currency code the release affects. Optional Time, Forecast and
    Previous columns are carried into the event details. Fully blank rows
    are ignored and not counted as malformed.
    """

    def __init__(self, path: str | Path, date_format: str = "%m-%d-%Y"):
        self.path = Path(path)
        self.date_format = date_format

    async def fetch(self) -> MacroFetchResult:
        try:
            result = await asyncio.to_thread(self._read)
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            logger.warning(f"Failed to read economic calendar {self.path}: {e}")
            return MacroFetchResult()

        if result.malformed:
            logger.warning(f"Skipped {result.malformed} malformed rows in {self.path}")
        logger.info(f"Parsed {len(result.records)} macro events from {self.path}")
        return result

    def _read(self) -> MacroFetchResult:
        result = MacroFetchResult()
        with open(self.path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            for row in reader:
                if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                    continue
                record = self._parse_row(row)
                if record is None:
                    result.malformed += 1
                    logger.debug(f"Malformed date on line {reader.line_num}: {row.get('Date')!r}")
                    continue
                result.records.append(record)
        return result

    def _parse_row(self, row: dict[str, Any]) -> MacroRecord | None:
        date = parse_with_formats(row.get("Date"), (self.date_format,))
        if date is None:
            return None

        time_value = (row.get("Time") or "").strip()
        if time_value:
            parsed_time = parse_with_formats(time_value, ("%H:%M", "%I:%M%p", "%I:%M %p"))
            if parsed_time is not None:
                date = date.replace(hour=parsed_time.hour, minute=parsed_time.minute)

        extra = {
            key.lower(): row[key].strip()
            for key in ("Forecast", "Previous")
            if (row.get(key) or "").strip()
        }
        country = (row.get("Country") or "").strip().upper()
        return MacroRecord(
            source="file",
            currency=country,
            date=date,
            title=(row.get("Title") or "").strip() or None,
            impact=(row.get("Impact") or "").strip() or None,
            country=country or None,
            extra=extra,
        )
