"""Heuristic market impact classification."""
from typing import Any

from market_events.models import Impact


def classify(value: Any) -> Impact:
    """Classify a signal into High/Medium/Low.

    Numbers are bucketed: > 1 is High, > 0.5 is Medium, anything else Low.
    The label "High" maps to High. Every other input, including the label
    "Low" and missing values, falls back to Medium.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value > 1:
            return Impact.HIGH
        if value > 0.5:
            return Impact.MEDIUM
        return Impact.LOW
    if value == "High":
        return Impact.HIGH
    return Impact.MEDIUM


def impact_from_label(label: str | None) -> Impact | None:
    """Map a source-provided impact label onto Impact.

    Returns None for a missing or blank label so callers can fall back to
    classify(); unrecognised labels (e.g. "Holiday") become Unknown.
    """
    if label is None:
        return None
    label = str(label).strip()
    if not label:
        return None
    for impact in (Impact.HIGH, Impact.MEDIUM, Impact.LOW):
        if label.lower() == impact.value.lower():
            return impact
    return Impact.UNKNOWN
