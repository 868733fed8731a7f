"""
Aggregation Service Interface

Defines the contract for the market-data aggregation layer.
"""

from abc import abstractmethod

from stockpulse.services.base import BaseService
from stockpulse.schemas.market import HistoricalSeries, Quote, TechnicalAnalysis


class AggregationServiceInterface(BaseService[str, TechnicalAnalysis]):
    """
    Aggregation Service Contract.

    INPUT: symbol
        - 1 to 5 uppercase letters, validated before any network call

    OUTPUT: Quote | HistoricalSeries | TechnicalAnalysis
        - or a MarketDataError of one ErrorKind; nothing else

    No operation retries internally. Retry and backoff belong to the caller.
    """

    @property
    def name(self) -> str:
        return "AggregationService"

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Quote merged with company overview."""
        pass

    @abstractmethod
    async def get_historical_data(self, symbol: str) -> HistoricalSeries:
        """Daily bars, provider order (most recent first)."""
        pass

    @abstractmethod
    async def get_technical_analysis(self, symbol: str) -> TechnicalAnalysis:
        """Quote, history and latest RSI/MACD/ADX. Fails as a whole."""
        pass

    async def execute(self, input_data: str) -> TechnicalAnalysis:
        return await self.get_technical_analysis(input_data)

    @abstractmethod
    async def health_check(self) -> bool:
        """Check the provider is usable."""
        pass
