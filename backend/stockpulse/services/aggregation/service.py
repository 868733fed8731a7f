"""
Aggregation Service Implementation

Fans out to the provider (through the response cache) and merges quote,
company overview, daily history and indicator responses into one model.

Independent fetches run concurrently. Any failed sibling cancels the rest
and fails the whole operation with that sibling's classified error.
"""

import logging
import re
import time
from decimal import Decimal
from typing import Any, Optional

from stockpulse.schemas.market import (
    SYMBOL_PATTERN,
    HistoricalBar,
    HistoricalSeries,
    Indicators,
    MACDValue,
    Quote,
    TechnicalAnalysis,
)
from stockpulse.schemas.provider import (
    ADXResponse,
    CompanyOverviewResponse,
    DailySeriesResponse,
    GlobalQuote,
    MACDResponse,
    RSIResponse,
)
from stockpulse.services.base import InvalidResponseError, InvalidSymbolError
from stockpulse.services.cache.response_cache import CacheKey, ResponseCache, get_response_cache
from stockpulse.services.provider.client import ProviderClient, get_provider_client
from stockpulse.services.provider.endpoints import Endpoint, build_params
from stockpulse.services.aggregation.concurrency import run_all_or_cancel
from stockpulse.services.aggregation.interface import AggregationServiceInterface
from stockpulse.services.aggregation.normalize import (
    parse_optional_date,
    parse_optional_number,
    parse_optional_ratio_percent,
    parse_optional_text,
    parse_percent,
    parse_required_number,
    parse_volume,
    timestamp_sort_key,
)

logger = logging.getLogger(__name__)

_SYMBOL_RE = re.compile(SYMBOL_PATTERN)


def validate_symbol(symbol: Any) -> str:
    """Exact 1-5 uppercase letters. Never corrected, only accepted or rejected."""
    if not isinstance(symbol, str) or _SYMBOL_RE.fullmatch(symbol) is None:
        raise InvalidSymbolError(
            "Invalid stock symbol format",
            {"symbol": symbol if isinstance(symbol, str) else repr(symbol)},
        )
    return symbol


def cache_key_for(endpoint: Endpoint, symbol: str, extra_params: Optional[dict[str, str]] = None) -> CacheKey:
    params = build_params(endpoint, symbol, extra_params)
    params.pop("function")
    params.pop("symbol")
    return CacheKey.build(endpoint, symbol, params)


# =============================================================================
# MERGE / CONVERSION
# =============================================================================


def build_quote(symbol: str, quote: GlobalQuote, overview: CompanyOverviewResponse) -> Quote:
    """
    Merge GLOBAL_QUOTE and OVERVIEW.

    price, change, change percent and volume are required. Every overview
    field is optional; an empty overview leaves them all absent.
    """
    return Quote(
        symbol=symbol,
        name=parse_optional_text(overview.name) or symbol,
        description=parse_optional_text(overview.description),
        sector=parse_optional_text(overview.sector),
        industry=parse_optional_text(overview.industry),
        price=parse_required_number(quote.price, "05. price"),
        change=parse_required_number(quote.change, "09. change"),
        change_percent=parse_percent(quote.change_percent, "10. change percent"),
        volume=parse_volume(quote.volume, "06. volume"),
        open=parse_optional_number(quote.open, "02. open"),
        high=parse_optional_number(quote.high, "03. high"),
        low=parse_optional_number(quote.low, "04. low"),
        previous_close=parse_optional_number(quote.previous_close, "08. previous close"),
        latest_trading_day=parse_optional_date(quote.latest_trading_day, "07. latest trading day"),
        market_cap=parse_optional_number(overview.market_capitalization, "MarketCapitalization"),
        week_high_52=parse_optional_number(overview.week_high_52, "52WeekHigh"),
        week_low_52=parse_optional_number(overview.week_low_52, "52WeekLow"),
        pe_ratio=parse_optional_number(overview.pe_ratio, "PERatio"),
        peg_ratio=parse_optional_number(overview.peg_ratio, "PEGRatio"),
        beta=parse_optional_number(overview.beta, "Beta"),
        ebitda=parse_optional_number(overview.ebitda, "EBITDA"),
        profit_margin=parse_optional_ratio_percent(overview.profit_margin, "ProfitMargin"),
        operating_margin=parse_optional_ratio_percent(overview.operating_margin_ttm, "OperatingMarginTTM"),
        return_on_assets=parse_optional_ratio_percent(overview.return_on_assets_ttm, "ReturnOnAssetsTTM"),
        return_on_equity=parse_optional_ratio_percent(overview.return_on_equity_ttm, "ReturnOnEquityTTM"),
        eps=parse_optional_number(overview.eps, "EPS"),
        dividend_per_share=parse_optional_number(overview.dividend_per_share, "DividendPerShare"),
        dividend_yield=parse_optional_ratio_percent(overview.dividend_yield, "DividendYield"),
        revenue_growth_yoy=parse_optional_ratio_percent(
            overview.quarterly_revenue_growth_yoy, "QuarterlyRevenueGrowthYOY"
        ),
        earnings_growth_yoy=parse_optional_ratio_percent(
            overview.quarterly_earnings_growth_yoy, "QuarterlyEarningsGrowthYOY"
        ),
        analyst_target_price=parse_optional_number(overview.analyst_target_price, "AnalystTargetPrice"),
    )


def build_series(series: DailySeriesResponse) -> HistoricalSeries:
    """Envelope records are already validated; keep provider order."""
    return [
        HistoricalBar(
            date=day,
            open=float(record.open),
            high=float(record.high),
            low=float(record.low),
            close=float(record.close),
            volume=int(Decimal(record.volume)),
        )
        for day, record in series.time_series.items()
    ]


def latest_point(points: dict[str, Any]) -> Any:
    """Most recent entry by date, not by dictionary order."""
    return points[max(points, key=timestamp_sort_key)]


class AggregationService(AggregationServiceInterface):
    """
    Market-data aggregation over Alpha Vantage.

    Every provider call goes through the response cache keyed by
    (endpoint, symbol, params).
    """

    def __init__(
        self,
        client: Optional[ProviderClient] = None,
        cache: Optional[ResponseCache] = None,
    ):
        self._client = client or get_provider_client()
        self._cache = cache or get_response_cache()

    @property
    def name(self) -> str:
        return "AggregationService"

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def _fetch(self, endpoint: Endpoint, symbol: str, extra_params: Optional[dict[str, str]] = None):
        key = cache_key_for(endpoint, symbol, extra_params)
        return await self._cache.get_or_fetch(
            key, lambda: self._client.request(endpoint, symbol, extra_params)
        )

    # ============ Public operations ============

    async def get_quote(self, symbol: str) -> Quote:
        symbol = validate_symbol(symbol)
        return await self._quote(symbol)

    async def get_historical_data(self, symbol: str) -> HistoricalSeries:
        symbol = validate_symbol(symbol)
        return await self._historical(symbol)

    async def get_technical_analysis(self, symbol: str) -> TechnicalAnalysis:
        symbol = validate_symbol(symbol)
        start_time = time.monotonic()

        quote, historical_data, rsi, macd, adx = await run_all_or_cancel(
            self._quote(symbol),
            self._historical(symbol),
            self._rsi(symbol),
            self._macd(symbol),
            self._adx(symbol),
        )

        latency_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(f"Technical analysis for {symbol} assembled in {latency_ms}ms")

        return TechnicalAnalysis(
            symbol=symbol,
            quote=quote,
            historical_data=historical_data,
            indicators=Indicators(rsi=rsi, macd=macd, adx=adx),
        )

    async def health_check(self) -> bool:
        return await self._client.health_check()

    # ============ Per-endpoint fetches (symbol already validated) ============

    async def _quote(self, symbol: str) -> Quote:
        quote_response, overview = await run_all_or_cancel(
            self._fetch(Endpoint.QUOTE, symbol),
            self._fetch(Endpoint.OVERVIEW, symbol),
        )
        if overview.is_empty:
            logger.info(f"No company overview for {symbol}; fundamentals left empty")

        try:
            return build_quote(symbol, quote_response.global_quote, overview)
        except InvalidResponseError as e:
            e.details.setdefault("symbol", symbol)
            logger.warning(f"Quote for {symbol} rejected: {e.message}")
            raise

    async def _historical(self, symbol: str) -> HistoricalSeries:
        series: DailySeriesResponse = await self._fetch(Endpoint.DAILY, symbol)
        return build_series(series)

    async def _rsi(self, symbol: str) -> float:
        response: RSIResponse = await self._fetch(Endpoint.RSI, symbol)
        return float(latest_point(response.points).rsi)

    async def _macd(self, symbol: str) -> MACDValue:
        response: MACDResponse = await self._fetch(Endpoint.MACD, symbol)
        point = latest_point(response.points)
        return MACDValue(
            macd_line=float(point.macd),
            signal_line=float(point.signal),
            histogram=float(point.histogram),
        )

    async def _adx(self, symbol: str) -> float:
        response: ADXResponse = await self._fetch(Endpoint.ADX, symbol)
        return float(latest_point(response.points).adx)


# Singleton instance
_service_instance: Optional[AggregationService] = None


def get_aggregation_service() -> AggregationService:
    """Get or create aggregation service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AggregationService()
    return _service_instance


def reset_aggregation_service() -> None:
    global _service_instance
    _service_instance = None
