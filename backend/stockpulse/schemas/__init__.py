"""
StockPulse Schema Contracts

This module defines all JSON contracts between system components.
Provider envelopes describe what Alpha Vantage sends; market models describe
what the aggregation layer returns.
"""

from stockpulse.schemas.market import (
    SYMBOL_PATTERN,
    Quote,
    HistoricalBar,
    HistoricalSeries,
    MACDValue,
    Indicators,
    TechnicalAnalysis,
)
from stockpulse.schemas.provider import (
    GlobalQuoteResponse,
    CompanyOverviewResponse,
    DailySeriesResponse,
    RSIResponse,
    MACDResponse,
    ADXResponse,
)

__all__ = [
    # Market
    "SYMBOL_PATTERN",
    "Quote",
    "HistoricalBar",
    "HistoricalSeries",
    "MACDValue",
    "Indicators",
    "TechnicalAnalysis",
    # Provider
    "GlobalQuoteResponse",
    "CompanyOverviewResponse",
    "DailySeriesResponse",
    "RSIResponse",
    "MACDResponse",
    "ADXResponse",
]
