"""
Base Service Interface

All services inherit from this base class.
The error taxonomy below is the only failure vocabulary services emit.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Input conforming to InputT

        Returns:
            Output conforming to OutputT

        Raises:
            MarketDataError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


# =============================================================================
# MARKET DATA ERROR TAXONOMY
# =============================================================================


class ErrorKind(str, Enum):
    CONFIGURATION_ERROR = "ConfigurationError"
    INVALID_SYMBOL = "InvalidSymbol"
    RATE_LIMITED = "RateLimited"
    TIMEOUT = "Timeout"
    MALFORMED_RESPONSE = "MalformedResponse"
    INVALID_RESPONSE = "InvalidResponse"
    PROVIDER_ERROR = "ProviderError"


class MarketDataError(ServiceError):
    """
    A classified market-data failure.

    `kind` is the only thing callers need to branch on; `details` keeps
    diagnostic context (endpoint, symbol, HTTP status, raw provider text).
    """

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR
    retryable: bool = False
    service: str = "AlphaVantage"

    def __init__(
        self,
        message: str,
        details: dict = None,
        retry_after: Optional[int] = None,
    ):
        self.retry_after = retry_after
        super().__init__(self.service, message, details)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": user_message(self),
            "retryable": self.retryable,
            "retry_after": self.retry_after,
        }


class ConfigurationError(MarketDataError):
    """API credential missing. Fatal, signals misdeployment."""

    kind = ErrorKind.CONFIGURATION_ERROR
    retryable = False


class InvalidSymbolError(MarketDataError):
    """Ticker failed format validation before any network call."""

    kind = ErrorKind.INVALID_SYMBOL
    retryable = False
    service = "AggregationService"


class RateLimitError(MarketDataError):
    """Upstream quota exhausted."""

    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(self, message: str, details: dict = None, retry_after: Optional[int] = 60):
        super().__init__(message, details, retry_after)


class ProviderTimeoutError(MarketDataError):
    """No response within the request bound."""

    kind = ErrorKind.TIMEOUT
    retryable = True


class MalformedResponseError(MarketDataError):
    """Provider payload did not match the endpoint schema."""

    kind = ErrorKind.MALFORMED_RESPONSE
    retryable = True


class InvalidResponseError(MarketDataError):
    """Payload passed the envelope check but required values are missing or unusable."""

    kind = ErrorKind.INVALID_RESPONSE
    retryable = True
    service = "AggregationService"


class ProviderError(MarketDataError):
    """Explicit upstream error (error message field or HTTP failure)."""

    kind = ErrorKind.PROVIDER_ERROR
    retryable = False


RATE_LIMIT_MESSAGE = "API rate limit reached. Please wait about a minute and try again."
GENERIC_MESSAGE = "Unable to fetch market data right now. Please try again."


def user_message(error: MarketDataError) -> str:
    """Caller-facing text: rate limits get a cooldown hint, everything else a retry prompt."""
    if error.kind == ErrorKind.RATE_LIMITED:
        return RATE_LIMIT_MESSAGE
    if error.kind == ErrorKind.INVALID_SYMBOL:
        return "Invalid stock symbol. Use 1 to 5 uppercase letters (e.g. AAPL)."
    if error.kind == ErrorKind.CONFIGURATION_ERROR:
        return "Market data service is not configured."
    return GENERIC_MESSAGE
