"""Parsing helpers shared by the source collectors."""
from datetime import datetime, timezone
from typing import Any


def to_float(value: Any) -> float | None:
    """Convert a JSON or CSV scalar to float.

    Args:
        value: Raw value from a source payload

    Returns:
        The float value, or None for missing, boolean or non-numeric input
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def response_rows(data: Any) -> list[dict[str, Any]]:
    """Extract record rows from a list or {"historical": [...]} response."""
    if isinstance(data, dict):
        data = data.get("historical")
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


def parse_with_formats(value: Any, formats: tuple[str, ...]) -> datetime | None:
    """Parse a date string with the first matching strptime format.

    Args:
        value: Raw date string
        formats: Accepted strptime formats, tried in order

    Returns:
        A UTC datetime, or None if no format matches
    """
    if not isinstance(value, str):
        return None
    value = value.strip()
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None
