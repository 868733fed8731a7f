"""
Alpha Vantage endpoint registry.

Each endpoint kind maps to one upstream function, a fixed parameter template,
the top-level key a successful body must carry, and its envelope schema.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from stockpulse.schemas.provider import (
    ADXResponse,
    CompanyOverviewResponse,
    DailySeriesResponse,
    GlobalQuoteResponse,
    MACDResponse,
    RSIResponse,
)


class Endpoint(str, Enum):
    QUOTE = "quote"
    OVERVIEW = "overview"
    DAILY = "daily"
    RSI = "rsi"
    MACD = "macd"
    ADX = "adx"


@dataclass(frozen=True)
class EndpointSpec:
    """Static description of one upstream function."""

    function: str
    expected_key: str
    schema: type[BaseModel]
    template: dict[str, str] = field(default_factory=dict)
    # Body the provider sends when it simply has no data for the symbol
    allow_empty: bool = False


ENDPOINTS: dict[Endpoint, EndpointSpec] = {
    Endpoint.QUOTE: EndpointSpec(
        function="GLOBAL_QUOTE",
        expected_key="Global Quote",
        schema=GlobalQuoteResponse,
    ),
    Endpoint.OVERVIEW: EndpointSpec(
        function="OVERVIEW",
        expected_key="Symbol",
        schema=CompanyOverviewResponse,
        allow_empty=True,
    ),
    Endpoint.DAILY: EndpointSpec(
        function="TIME_SERIES_DAILY",
        expected_key="Time Series (Daily)",
        schema=DailySeriesResponse,
        template={"outputsize": "compact"},  # Last 100 sessions
    ),
    Endpoint.RSI: EndpointSpec(
        function="RSI",
        expected_key="Technical Analysis: RSI",
        schema=RSIResponse,
        template={"interval": "daily", "time_period": "14", "series_type": "close"},
    ),
    Endpoint.MACD: EndpointSpec(
        function="MACD",
        expected_key="Technical Analysis: MACD",
        schema=MACDResponse,
        template={"interval": "daily", "series_type": "close"},
    ),
    Endpoint.ADX: EndpointSpec(
        function="ADX",
        expected_key="Technical Analysis: ADX",
        schema=ADXResponse,
        template={"interval": "daily", "time_period": "14"},
    ),
}


def get_endpoint_spec(endpoint: Endpoint) -> EndpointSpec:
    return ENDPOINTS[Endpoint(endpoint)]


def build_params(
    endpoint: Endpoint,
    symbol: str,
    extra_params: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """
    Query parameters for one request, without the API key.
    Template values win over extra parameters.
    """
    spec = get_endpoint_spec(endpoint)
    params = {str(k): str(v) for k, v in (extra_params or {}).items()}
    params.update(spec.template)
    params["function"] = spec.function
    params["symbol"] = symbol
    return params
