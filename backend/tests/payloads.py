"""Alpha Vantage response bodies and fakes shared by the test modules."""

import asyncio
import copy
from datetime import date, timedelta

from stockpulse.core.config import Settings
from stockpulse.services.aggregation import AggregationService
from stockpulse.services.cache import MemoryCacheStore, ResponseCache
from stockpulse.services.provider import ProviderClient

RATE_LIMIT_NOTE = {
    "Note": "Thank you for using Alpha Vantage! Our standard API call frequency is "
    "5 calls per minute and 500 calls per day."
}
RATE_LIMIT_INFORMATION = {
    "Information": "We have detected your API key as DEMO and our standard API rate limit "
    "is 25 requests per day."
}
ERROR_MESSAGE = {
    "Error Message": "Invalid API call. Please retry or visit the documentation for GLOBAL_QUOTE."
}


def global_quote(symbol="AAPL", drop=(), **overrides):
    block = {
        "01. symbol": symbol,
        "02. open": "149.0000",
        "03. high": "151.0000",
        "04. low": "148.5000",
        "05. price": "150.2500",
        "06. volume": "52000000",
        "07. latest trading day": "2024-05-31",
        "08. previous close": "149.1500",
        "09. change": "1.1000",
        "10. change percent": "0.7400%",
    }
    block.update(overrides)
    for key in drop:
        block.pop(key, None)
    return {"Global Quote": block}


def overview(symbol="AAPL", drop=(), **overrides):
    body = {
        "Symbol": symbol,
        "AssetType": "Common Stock",
        "Name": "Apple Inc",
        "Description": "Apple Inc. designs, manufactures and markets smartphones.",
        "Exchange": "NASDAQ",
        "Currency": "USD",
        "Country": "USA",
        "Sector": "TECHNOLOGY",
        "Industry": "ELECTRONIC COMPUTERS",
        "MarketCapitalization": "2500000000000",
        "EBITDA": "129629004000",
        "PERatio": "29.5",
        "PEGRatio": "2.1",
        "BookValue": "4.38",
        "DividendPerShare": "0.96",
        "DividendYield": "0.0044",
        "EPS": "6.43",
        "ProfitMargin": "0.246",
        "OperatingMarginTTM": "0.296",
        "ReturnOnAssetsTTM": "0.214",
        "ReturnOnEquityTTM": "1.47",
        "QuarterlyEarningsGrowthYOY": "0.071",
        "QuarterlyRevenueGrowthYOY": "0.061",
        "AnalystTargetPrice": "198.5",
        "Beta": "1.26",
        "52WeekHigh": "199.62",
        "52WeekLow": "164.08",
        "50DayMovingAverage": "174.2",
        "200DayMovingAverage": "181.3",
    }
    body.update(overrides)
    for key in drop:
        body.pop(key, None)
    return body


def daily_series(symbol="MSFT", count=100, latest=date(2024, 5, 31)):
    """Most recent day first, like the provider."""
    series = {}
    for i in range(count):
        day = latest - timedelta(days=i)
        close = 400 + i * 0.5
        series[day.isoformat()] = {
            "1. open": f"{close - 1:.4f}",
            "2. high": f"{close + 2:.4f}",
            "3. low": f"{close - 2:.4f}",
            "4. close": f"{close:.4f}",
            "5. volume": str(20000000 + i),
        }
    return {
        "Meta Data": {
            "1. Information": "Daily Prices (open, high, low, close) and Volumes",
            "2. Symbol": symbol,
            "4. Output Size": "Compact",
        },
        "Time Series (Daily)": series,
    }


def rsi_series(points=None):
    points = points or {"2024-05-31": "61.2345", "2024-05-30": "58.1000"}
    return {
        "Meta Data": {"2: Indicator": "Relative Strength Index (RSI)", "5: Time Period": 14},
        "Technical Analysis: RSI": {day: {"RSI": value} for day, value in points.items()},
    }


def macd_series(points=None):
    points = points or {
        "2024-05-31": ("1.2500", "0.9800", "0.2700"),
        "2024-05-30": ("1.1000", "0.9100", "0.1900"),
    }
    return {
        "Meta Data": {"2: Indicator": "Moving Average Convergence/Divergence (MACD)"},
        "Technical Analysis: MACD": {
            day: {"MACD": m, "MACD_Signal": s, "MACD_Hist": h} for day, (m, s, h) in points.items()
        },
    }


def adx_series(points=None):
    points = points or {"2024-05-31": "27.4100", "2024-05-30": "26.0000"}
    return {
        "Meta Data": {"2: Indicator": "Average Directional Movement Index (ADX)", "5: Time Period": 14},
        "Technical Analysis: ADX": {day: {"ADX": value} for day, value in points.items()},
    }


def healthy_responses(symbol="AAPL"):
    return {
        "GLOBAL_QUOTE": global_quote(symbol),
        "OVERVIEW": overview(symbol),
        "TIME_SERIES_DAILY": daily_series(symbol),
        "RSI": rsi_series(),
        "MACD": macd_series(),
        "ADX": adx_series(),
    }


class FakeTransport:
    """
    Stands in for ProviderClient._send.

    responses maps an upstream function name to a JSON body, a (status, body)
    tuple, an exception to raise, or an async callable taking the params.
    """

    def __init__(self, responses):
        self.responses = dict(responses)
        self.calls = []

    async def __call__(self, params):
        self.calls.append(dict(params))
        response = self.responses[params["function"]]
        if callable(response) and not isinstance(response, type):
            response = await response(params)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, tuple):
            return response
        return 200, copy.deepcopy(response)

    def count(self, function=None):
        if function is None:
            return len(self.calls)
        return sum(1 for call in self.calls if call["function"] == function)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


def make_client(responses, api_key="test-key", timeout_seconds=None):
    client = ProviderClient(api_key=api_key, settings=make_settings(), timeout_seconds=timeout_seconds)
    transport = FakeTransport(responses)
    client._send = transport
    return client, transport


def make_service(responses, clock=None, timeout_seconds=None):
    client, transport = make_client(responses, timeout_seconds=timeout_seconds)
    cache = ResponseCache(MemoryCacheStore(), ttl_seconds=300, clock=clock or FakeClock())
    return AggregationService(client=client, cache=cache), transport


async def never_answers(params):
    await asyncio.sleep(60)
