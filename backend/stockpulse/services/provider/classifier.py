"""
Error classifier.

Pure mapping from low-level failure signals (HTTP status, provider error
fields, schema mismatches, transport exceptions) to the closed MarketDataError
taxonomy. Raw signals are kept in `details` for diagnostics only.
"""

import asyncio
from typing import Any, Optional

import aiohttp
from pydantic import ValidationError

from stockpulse.core.config import settings
from stockpulse.services.base import (
    MalformedResponseError,
    MarketDataError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
)
from stockpulse.services.provider.endpoints import Endpoint, get_endpoint_spec

ERROR_FIELD = "Error Message"
NOTE_FIELD = "Note"
INFORMATION_FIELD = "Information"

# Phrases Alpha Vantage uses in quota notices
RATE_LIMIT_MARKERS = ("rate limit", "call frequency", "requests per")


def _details(endpoint: Endpoint, symbol: str, **extra: Any) -> dict:
    return {"endpoint": Endpoint(endpoint).value, "symbol": symbol, **extra}


def _cooldown(cooldown_seconds: Optional[int]) -> int:
    return cooldown_seconds if cooldown_seconds is not None else settings.rate_limit_cooldown_seconds


def is_rate_limit_notice(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


def classify_http_status(
    status: int,
    endpoint: Endpoint,
    symbol: str,
    cooldown_seconds: Optional[int] = None,
) -> Optional[MarketDataError]:
    """Non-2xx responses. Returns None for success."""
    if 200 <= status < 300:
        return None
    if status == 429:
        return RateLimitError(
            "API rate limit reached",
            _details(endpoint, symbol, http_status=status),
            retry_after=_cooldown(cooldown_seconds),
        )
    return ProviderError(
        f"HTTP error! status: {status}",
        _details(endpoint, symbol, http_status=status),
    )


def classify_payload(
    payload: Any,
    endpoint: Endpoint,
    symbol: str,
    cooldown_seconds: Optional[int] = None,
) -> Optional[MarketDataError]:
    """
    Inspect a decoded body before schema validation.

    Order: explicit error message, then rate-limit notice, then the
    endpoint's expected top-level key. Returns None when the body may
    proceed to validation.
    """
    if not isinstance(payload, dict):
        return MalformedResponseError(
            f"Expected a JSON object, got {type(payload).__name__}",
            _details(endpoint, symbol),
        )

    if payload.get(ERROR_FIELD):
        return ProviderError(
            str(payload[ERROR_FIELD]),
            _details(endpoint, symbol, provider_message=payload[ERROR_FIELD]),
        )

    note = payload.get(NOTE_FIELD)
    information = payload.get(INFORMATION_FIELD)
    if note or (information and is_rate_limit_notice(str(information))):
        return RateLimitError(
            "API rate limit reached",
            _details(endpoint, symbol, provider_message=note or information),
            retry_after=_cooldown(cooldown_seconds),
        )

    spec = get_endpoint_spec(endpoint)
    if spec.expected_key not in payload:
        if not payload and spec.allow_empty:
            return None
        if information:
            # e.g. premium-only endpoint or invalid key notices
            return ProviderError(
                str(information),
                _details(endpoint, symbol, provider_message=information),
            )
        return MalformedResponseError(
            f"Missing '{spec.expected_key}' in response",
            _details(endpoint, symbol, keys=sorted(payload)[:10]),
        )

    return None


def classify_validation_error(exc: ValidationError, endpoint: Endpoint, symbol: str) -> MalformedResponseError:
    """Schema mismatch. Keeps the first few failing locations."""
    locations = [".".join(str(part) for part in err["loc"]) for err in exc.errors()[:5]]
    return MalformedResponseError(
        f"Response failed schema validation ({exc.error_count()} errors)",
        _details(endpoint, symbol, fields=locations),
    )


def classify_exception(
    exc: BaseException,
    endpoint: Endpoint,
    symbol: str,
    timeout_seconds: Optional[float] = None,
) -> MarketDataError:
    """Transport-level exceptions. Already classified errors pass through."""
    if isinstance(exc, MarketDataError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return ProviderTimeoutError(
            "Request timed out",
            _details(endpoint, symbol, timeout_seconds=timeout_seconds or settings.provider_timeout_seconds),
        )
    if isinstance(exc, ValidationError):
        return classify_validation_error(exc, endpoint, symbol)
    if isinstance(exc, aiohttp.ClientError):
        return ProviderError(
            f"Connection error: {exc}",
            _details(endpoint, symbol, error=type(exc).__name__),
        )
    return ProviderError(
        str(exc) or "Unknown error occurred",
        _details(endpoint, symbol, error=type(exc).__name__),
    )
