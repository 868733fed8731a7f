"""
Aggregation Service

CONTRACT:
    Input:  symbol
    Output: Quote | HistoricalSeries | TechnicalAnalysis

RESPONSIBILITIES:
    - Validate the symbol before any network call
    - Fan out provider fetches concurrently through the response cache
    - Merge quote, overview, history and indicators into one model
    - Fail the whole operation on any sibling failure (no partial results)

NO RETRIES - retry and backoff policy belongs to the caller.
"""

from stockpulse.services.aggregation.interface import AggregationServiceInterface
from stockpulse.services.aggregation.service import (
    AggregationService,
    get_aggregation_service,
    reset_aggregation_service,
    validate_symbol,
)

__all__ = [
    "AggregationServiceInterface",
    "AggregationService",
    "get_aggregation_service",
    "reset_aggregation_service",
    "validate_symbol",
]
