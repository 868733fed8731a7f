"""
Provider Client

CONTRACT:
    Input:  (Endpoint, symbol, extra params)
    Output: validated provider envelope | MarketDataError

RESPONSIBILITIES:
    - Build authenticated Alpha Vantage requests
    - Bound every request by a fixed timeout
    - Classify HTTP, provider-embedded and schema failures
"""

from stockpulse.services.provider.endpoints import (
    Endpoint,
    EndpointSpec,
    ENDPOINTS,
    build_params,
)
from stockpulse.services.provider.client import (
    ProviderClient,
    get_provider_client,
    close_provider_client,
)

__all__ = [
    "Endpoint",
    "EndpointSpec",
    "ENDPOINTS",
    "build_params",
    "ProviderClient",
    "get_provider_client",
    "close_provider_client",
]
