"""
CONTRACT 2: Aggregated Market Data

Input: ticker symbol
Output: Quote / HistoricalSeries / TechnicalAnalysis

These are the only shapes the aggregation layer returns to callers.
Percentage-like fields are in percentage units (5.2 means 5.2%).
Optional numeric fields are None when the provider omitted them; 0 is a value.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SYMBOL_PATTERN = r"[A-Z]{1,5}"


class MarketModel(BaseModel):
    """Immutable model serialised with camelCase keys for the chat/tool layer."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# =============================================================================
# QUOTE
# =============================================================================


class Quote(MarketModel):
    """
    Per-symbol snapshot merged from GLOBAL_QUOTE and OVERVIEW.
    Sent by: AggregationService.get_quote
    """

    # Company info
    symbol: str = Field(..., pattern=f"^{SYMBOL_PATTERN}$")
    name: str
    description: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None

    # Price & trading info (GLOBAL_QUOTE)
    price: float
    change: float
    change_percent: float
    volume: int = Field(..., ge=0)
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    previous_close: Optional[float] = None
    latest_trading_day: Optional[date] = None

    # Valuation (OVERVIEW)
    market_cap: Optional[float] = None
    week_high_52: Optional[float] = Field(default=None, alias="weekHigh52")
    week_low_52: Optional[float] = Field(default=None, alias="weekLow52")

    # Financial metrics (OVERVIEW)
    pe_ratio: Optional[float] = None
    peg_ratio: Optional[float] = None
    beta: Optional[float] = None
    ebitda: Optional[float] = None
    profit_margin: Optional[float] = None
    operating_margin: Optional[float] = None
    return_on_assets: Optional[float] = None
    return_on_equity: Optional[float] = None
    eps: Optional[float] = None
    dividend_per_share: Optional[float] = None
    dividend_yield: Optional[float] = None

    # Growth & targets (OVERVIEW)
    revenue_growth_yoy: Optional[float] = Field(default=None, alias="revenueGrowthYOY")
    earnings_growth_yoy: Optional[float] = Field(default=None, alias="earningsGrowthYOY")
    analyst_target_price: Optional[float] = None


# =============================================================================
# HISTORICAL SERIES
# =============================================================================


class HistoricalBar(MarketModel):
    """One trading day."""

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(..., ge=0)


# Provider order: most recent session first, compact window (~100 sessions)
HistoricalSeries = list[HistoricalBar]


# =============================================================================
# INDICATORS
# =============================================================================


class MACDValue(MarketModel):
    """MACD(12, 26, 9) on daily closes."""

    macd_line: float
    signal_line: float
    histogram: float


class Indicators(MarketModel):
    """Most recent provider-computed indicator values."""

    rsi: float = Field(..., ge=0, le=100, description="RSI(14) on daily closes")
    macd: MACDValue
    adx: float = Field(..., ge=0, le=100, description="ADX(14) daily")


# =============================================================================
# COMPOSITE
# =============================================================================


class TechnicalAnalysis(MarketModel):
    """
    Complete per-symbol result.
    Returned by: AggregationService.get_technical_analysis
    Consumed by: chat tool layer, API
    """

    symbol: str = Field(..., pattern=f"^{SYMBOL_PATTERN}$")
    quote: Quote
    historical_data: list[HistoricalBar]
    indicators: Indicators
