"""
Numeric normalisation of provider strings.

Required fields raise InvalidResponseError when missing or unparsable.
Optional fields distinguish three cases:
- absent (missing key or a provider placeholder such as "None") → None
- present and zero → 0.0
- present but unparsable → InvalidResponseError
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from stockpulse.schemas.provider import NUMERIC_PATTERN
from stockpulse.services.base import InvalidResponseError

# What Alpha Vantage writes when it has no value for a field
MISSING_PLACEHOLDERS = frozenset(
    {"", "none", "null", "nan", "undefined", "-", "--", "\u2013", "\u2014", "n/a", "na", "n.a."}
)

HUNDRED = Decimal(100)


def _to_decimal(raw: str, field: str) -> Decimal:
    if NUMERIC_PATTERN.fullmatch(raw.strip()) is None:
        raise InvalidResponseError(
            f"Field '{field}' is not numeric: {raw!r}", {"field": field, "value": raw}
        )
    return Decimal(raw.strip())


def is_missing(raw: Optional[str]) -> bool:
    return raw is None or raw.strip().lower() in MISSING_PLACEHOLDERS


def parse_required_number(raw: Optional[str], field: str) -> float:
    if is_missing(raw):
        raise InvalidResponseError(f"Required field '{field}' is missing", {"field": field})
    return float(_to_decimal(raw, field))


def parse_percent(raw: Optional[str], field: str) -> float:
    """'0.7400%' → 0.74 (already in percentage units)."""
    if is_missing(raw):
        raise InvalidResponseError(f"Required field '{field}' is missing", {"field": field})
    return float(_to_decimal(raw.strip().rstrip("%"), field))


def parse_volume(raw: Optional[str], field: str = "volume") -> int:
    """Non-negative whole number."""
    if is_missing(raw):
        raise InvalidResponseError(f"Required field '{field}' is missing", {"field": field})
    value = _to_decimal(raw, field)
    if value < 0 or value != value.to_integral_value():
        raise InvalidResponseError(
            f"Field '{field}' is not a non-negative integer: {raw!r}", {"field": field, "value": raw}
        )
    return int(value)


def parse_optional_number(raw: Optional[str], field: str) -> Optional[float]:
    if is_missing(raw):
        return None
    return float(_to_decimal(raw, field))


def parse_optional_ratio_percent(raw: Optional[str], field: str) -> Optional[float]:
    """Fractional ratio ('0.246') → percentage units (24.6)."""
    if is_missing(raw):
        return None
    return float(_to_decimal(raw, field) * HUNDRED)


def parse_optional_text(raw: Optional[str]) -> Optional[str]:
    if is_missing(raw):
        return None
    return raw.strip()


def parse_optional_date(raw: Optional[str], field: str) -> Optional[date]:
    if is_missing(raw):
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise InvalidResponseError(
            f"Field '{field}' is not a date: {raw!r}", {"field": field, "value": raw}
        ) from None


def timestamp_sort_key(raw: str) -> datetime:
    """Indicator keys are ISO dates, optionally with a time of day."""
    return datetime.fromisoformat(raw)
