"""
API v1 Router

Thin HTTP boundary over the aggregation service.
"""

from fastapi import APIRouter

from stockpulse.api.v1.endpoints import market

router = APIRouter()

router.include_router(market.router, prefix="/market", tags=["Market Data"])
