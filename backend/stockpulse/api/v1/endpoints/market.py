"""
Market Data API Endpoints

Quote, daily history and technical analysis for one symbol.
Classified errors map to HTTP statuses; bodies carry the error kind.
"""

from fastapi import APIRouter, HTTPException

from stockpulse.schemas.market import HistoricalBar, Quote, TechnicalAnalysis
from stockpulse.services.aggregation import get_aggregation_service
from stockpulse.services.base import ErrorKind, MarketDataError

router = APIRouter()

STATUS_BY_KIND = {
    ErrorKind.INVALID_SYMBOL: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.CONFIGURATION_ERROR: 503,
    ErrorKind.TIMEOUT: 504,
}


def to_http_exception(error: MarketDataError) -> HTTPException:
    """Anything not listed is an upstream failure (502)."""
    headers = None
    if error.kind == ErrorKind.RATE_LIMITED and error.retry_after:
        headers = {"Retry-After": str(error.retry_after)}
    return HTTPException(
        status_code=STATUS_BY_KIND.get(error.kind, 502),
        detail=error.to_dict(),
        headers=headers,
    )


@router.get("/quote/{symbol}", response_model=Quote, response_model_by_alias=True)
async def get_quote(symbol: str):
    """
    Get the quote for a single symbol.

    Returns price, change, volume and company fundamentals.
    """
    service = get_aggregation_service()
    try:
        return await service.get_quote(symbol)
    except MarketDataError as e:
        raise to_http_exception(e)


@router.get("/historical/{symbol}", response_model=list[HistoricalBar], response_model_by_alias=True)
async def get_historical(symbol: str):
    """Daily bars, most recent first (compact window)."""
    service = get_aggregation_service()
    try:
        return await service.get_historical_data(symbol)
    except MarketDataError as e:
        raise to_http_exception(e)


@router.get("/technical/{symbol}", response_model=TechnicalAnalysis, response_model_by_alias=True)
async def get_technical_analysis(symbol: str):
    """Quote, history and latest RSI / MACD / ADX."""
    service = get_aggregation_service()
    try:
        return await service.get_technical_analysis(symbol)
    except MarketDataError as e:
        raise to_http_exception(e)
