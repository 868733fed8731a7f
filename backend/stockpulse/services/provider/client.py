"""
Alpha Vantage Provider Client

Builds authenticated requests, decodes and classifies responses, and
validates each body against its endpoint schema.

Every call either returns a validated envelope or raises a MarketDataError.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from stockpulse.core.config import Settings, get_settings
from stockpulse.services.base import (
    ConfigurationError,
    MalformedResponseError,
    ProviderTimeoutError,
)
from stockpulse.services.provider.classifier import (
    classify_exception,
    classify_http_status,
    classify_payload,
    classify_validation_error,
)
from stockpulse.services.provider.endpoints import Endpoint, build_params, get_endpoint_spec

logger = logging.getLogger(__name__)


class ProviderClient:
    """
    Alpha Vantage HTTP client.

    One aiohttp session is created lazily and reused; call close() on shutdown.
    The API key is resolved on each request so a missing key surfaces as
    ConfigurationError at the first call, not at import time.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._settings = settings or get_settings()
        self._api_key = api_key
        self._base_url = self._settings.alpha_vantage_base_url
        self._timeout_seconds = timeout_seconds or self._settings.provider_timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key or self._settings.alpha_vantage_api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": "stockpulse/0.1"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _send(self, params: dict[str, str]) -> tuple[int, Any]:
        """
        Perform the GET and decode the body.

        Returns (status, payload); payload is None when the status is not 2xx.
        """
        session = await self._ensure_session()
        async with session.get(self._base_url, params=params) as response:
            if not 200 <= response.status < 300:
                return response.status, None
            try:
                payload = await response.json(content_type=None)
            except ValueError as e:
                raise MalformedResponseError(
                    f"Response body is not valid JSON: {e}",
                    {"function": params.get("function"), "symbol": params.get("symbol")},
                )
            return response.status, payload

    async def request(
        self,
        endpoint: Endpoint,
        symbol: str,
        extra_params: Optional[dict[str, str]] = None,
    ) -> BaseModel:
        """
        Fetch one endpoint for one symbol.

        Args:
            endpoint: Endpoint kind (quote, overview, daily, rsi, macd, adx)
            symbol: Ticker, already validated by the caller
            extra_params: Additional query parameters (template values win)

        Returns:
            The endpoint's validated envelope model

        Raises:
            MarketDataError: classified failure
        """
        endpoint = Endpoint(endpoint)
        api_key = self.api_key
        if not api_key:
            raise ConfigurationError(
                "Alpha Vantage API key not configured",
                {"endpoint": endpoint.value, "symbol": symbol},
            )

        spec = get_endpoint_spec(endpoint)
        params = build_params(endpoint, symbol, extra_params)
        params["apikey"] = api_key

        logger.info(f"Alpha Vantage {spec.function} request for {symbol}")

        try:
            # wait_for cancels the in-flight request on expiry
            status, payload = await asyncio.wait_for(self._send(params), self._timeout_seconds)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(
                f"Request timed out after {self._timeout_seconds:g}s",
                {"endpoint": endpoint.value, "symbol": symbol, "timeout_seconds": self._timeout_seconds},
            )
            logger.warning(f"Alpha Vantage {spec.function} for {symbol}: {error.message}")
            raise error from None
        except Exception as e:
            error = classify_exception(e, endpoint, symbol, self._timeout_seconds)
            logger.warning(f"Alpha Vantage {spec.function} for {symbol} failed: {error.message}")
            if error is e:
                raise
            raise error from e

        cooldown = self._settings.rate_limit_cooldown_seconds
        error = classify_http_status(status, endpoint, symbol, cooldown) or classify_payload(
            payload, endpoint, symbol, cooldown
        )
        if error is not None:
            logger.warning(
                f"Alpha Vantage {spec.function} for {symbol}: {error.kind.value} ({error.message})"
            )
            raise error

        try:
            return spec.schema.model_validate(payload)
        except ValidationError as e:
            error = classify_validation_error(e, endpoint, symbol)
            logger.warning(
                f"Alpha Vantage {spec.function} for {symbol}: {error.message} {error.details.get('fields')}"
            )
            raise error from e

    async def health_check(self) -> bool:
        """Client is usable when a key is configured."""
        return self.is_configured


# Singleton instance
_client_instance: Optional[ProviderClient] = None


def get_provider_client() -> ProviderClient:
    """Get or create the provider client instance."""
    global _client_instance
    if _client_instance is None:
        _client_instance = ProviderClient()
    return _client_instance


async def close_provider_client() -> None:
    """Release the shared HTTP session."""
    global _client_instance
    if _client_instance is not None:
        await _client_instance.close()
        _client_instance = None
