"""
CONTRACT 1: Provider Envelopes

Raw Alpha Vantage response bodies, one model per endpoint.

Values stay as the provider's strings; numeric fields are only checked to be
numeric-looking here and converted to semantic types by the aggregation layer.
Every record of a series is validated: one bad record rejects the whole body.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


# =============================================================================
# FIELD TYPES
# =============================================================================


# Plain signed decimal with optional exponent; no whitespace, underscores, NaN or Infinity
NUMERIC_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _numeric_string(value: str) -> str:
    if NUMERIC_PATTERN.fullmatch(value) is None:
        raise ValueError(f"not a numeric value: {value!r}")
    return value


def _whole_number(value: str) -> str:
    number = Decimal(value)
    if number < 0 or number != number.to_integral_value():
        raise ValueError(f"not a non-negative integer: {value!r}")
    return value


def _iso_timestamp(value: str) -> str:
    # Daily indicators key by "YYYY-MM-DD", intraday by "YYYY-MM-DD HH:MM"
    try:
        datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"not an ISO date: {value!r}") from None
    return value


def _oscillator_range(value: str) -> str:
    if not Decimal(0) <= Decimal(value) <= Decimal(100):
        raise ValueError(f"outside 0-100: {value!r}")
    return value


NumericStr = Annotated[str, AfterValidator(_numeric_string)]
OscillatorStr = Annotated[str, AfterValidator(_numeric_string), AfterValidator(_oscillator_range)]
VolumeStr = Annotated[str, AfterValidator(_numeric_string), AfterValidator(_whole_number)]
TimestampKey = Annotated[str, AfterValidator(_iso_timestamp)]


class ProviderModel(BaseModel):
    """Immutable, alias-keyed provider record."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# =============================================================================
# GLOBAL_QUOTE
# =============================================================================


class GlobalQuote(ProviderModel):
    """
    Quote block. Fields are optional at the envelope level; the provider
    answers unknown symbols with an empty block and the aggregation layer
    decides which fields are required.
    """

    symbol: Optional[str] = Field(default=None, alias="01. symbol")
    open: Optional[str] = Field(default=None, alias="02. open")
    high: Optional[str] = Field(default=None, alias="03. high")
    low: Optional[str] = Field(default=None, alias="04. low")
    price: Optional[str] = Field(default=None, alias="05. price")
    volume: Optional[str] = Field(default=None, alias="06. volume")
    latest_trading_day: Optional[str] = Field(default=None, alias="07. latest trading day")
    previous_close: Optional[str] = Field(default=None, alias="08. previous close")
    change: Optional[str] = Field(default=None, alias="09. change")
    change_percent: Optional[str] = Field(default=None, alias="10. change percent")


class GlobalQuoteResponse(ProviderModel):
    global_quote: GlobalQuote = Field(..., alias="Global Quote")


# =============================================================================
# OVERVIEW
# =============================================================================


class CompanyOverviewResponse(ProviderModel):
    """
    Company fundamentals. The provider returns "{}" for symbols it has no
    fundamentals for (ETFs, many non-US listings), so every field is optional.
    """

    symbol: Optional[str] = Field(default=None, alias="Symbol")
    asset_type: Optional[str] = Field(default=None, alias="AssetType")
    name: Optional[str] = Field(default=None, alias="Name")
    description: Optional[str] = Field(default=None, alias="Description")
    exchange: Optional[str] = Field(default=None, alias="Exchange")
    currency: Optional[str] = Field(default=None, alias="Currency")
    country: Optional[str] = Field(default=None, alias="Country")
    sector: Optional[str] = Field(default=None, alias="Sector")
    industry: Optional[str] = Field(default=None, alias="Industry")
    market_capitalization: Optional[str] = Field(default=None, alias="MarketCapitalization")
    ebitda: Optional[str] = Field(default=None, alias="EBITDA")
    pe_ratio: Optional[str] = Field(default=None, alias="PERatio")
    peg_ratio: Optional[str] = Field(default=None, alias="PEGRatio")
    book_value: Optional[str] = Field(default=None, alias="BookValue")
    dividend_per_share: Optional[str] = Field(default=None, alias="DividendPerShare")
    dividend_yield: Optional[str] = Field(default=None, alias="DividendYield")
    eps: Optional[str] = Field(default=None, alias="EPS")
    profit_margin: Optional[str] = Field(default=None, alias="ProfitMargin")
    operating_margin_ttm: Optional[str] = Field(default=None, alias="OperatingMarginTTM")
    return_on_assets_ttm: Optional[str] = Field(default=None, alias="ReturnOnAssetsTTM")
    return_on_equity_ttm: Optional[str] = Field(default=None, alias="ReturnOnEquityTTM")
    quarterly_earnings_growth_yoy: Optional[str] = Field(default=None, alias="QuarterlyEarningsGrowthYOY")
    quarterly_revenue_growth_yoy: Optional[str] = Field(default=None, alias="QuarterlyRevenueGrowthYOY")
    analyst_target_price: Optional[str] = Field(default=None, alias="AnalystTargetPrice")
    beta: Optional[str] = Field(default=None, alias="Beta")
    week_high_52: Optional[str] = Field(default=None, alias="52WeekHigh")
    week_low_52: Optional[str] = Field(default=None, alias="52WeekLow")
    moving_average_50: Optional[str] = Field(default=None, alias="50DayMovingAverage")
    moving_average_200: Optional[str] = Field(default=None, alias="200DayMovingAverage")

    @property
    def is_empty(self) -> bool:
        """True when the provider had no fundamentals for the symbol."""
        return self.symbol is None


# =============================================================================
# TIME_SERIES_DAILY
# =============================================================================


class DailyBarRecord(ProviderModel):
    open: NumericStr = Field(..., alias="1. open")
    high: NumericStr = Field(..., alias="2. high")
    low: NumericStr = Field(..., alias="3. low")
    close: NumericStr = Field(..., alias="4. close")
    volume: VolumeStr = Field(..., alias="5. volume")


class DailySeriesResponse(ProviderModel):
    meta_data: Optional[dict[str, Any]] = Field(default=None, alias="Meta Data")
    # Insertion order is the provider's order (most recent first)
    time_series: dict[date, DailyBarRecord] = Field(..., alias="Time Series (Daily)")


# =============================================================================
# TECHNICAL INDICATORS
# =============================================================================


class RSIPoint(ProviderModel):
    rsi: OscillatorStr = Field(..., alias="RSI")


class MACDPoint(ProviderModel):
    macd: NumericStr = Field(..., alias="MACD")
    signal: NumericStr = Field(..., alias="MACD_Signal")
    histogram: NumericStr = Field(..., alias="MACD_Hist")


class ADXPoint(ProviderModel):
    adx: OscillatorStr = Field(..., alias="ADX")


class RSIResponse(ProviderModel):
    meta_data: Optional[dict[str, Any]] = Field(default=None, alias="Meta Data")
    points: dict[TimestampKey, RSIPoint] = Field(..., alias="Technical Analysis: RSI", min_length=1)


class MACDResponse(ProviderModel):
    meta_data: Optional[dict[str, Any]] = Field(default=None, alias="Meta Data")
    points: dict[TimestampKey, MACDPoint] = Field(..., alias="Technical Analysis: MACD", min_length=1)


class ADXResponse(ProviderModel):
    meta_data: Optional[dict[str, Any]] = Field(default=None, alias="Meta Data")
    points: dict[TimestampKey, ADXPoint] = Field(..., alias="Technical Analysis: ADX", min_length=1)
