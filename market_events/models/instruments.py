"""Instrument model for the market events tracker."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Instrument:
    """A tradable symbol and the currency it is quoted in."""
    symbol: str
    currency: str

    @classmethod
    def create(cls, symbol: str | None, currency: str | None) -> "Instrument | None":
        """Build an instrument from raw directory fields.

        Returns None when either field is missing or blank.
        """
        symbol = (symbol or "").strip()
        currency = (currency or "").strip().upper()
        if not symbol or not currency:
            return None
        return cls(symbol=symbol, currency=currency)
