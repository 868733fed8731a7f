"""
Live provider check against Alpha Vantage.
Run with: python check_provider.py [SYMBOL]

Needs ALPHA_VANTAGE_API_KEY in the environment or backend/.env.
The free tier allows very few calls per minute; expect RateLimited on reruns.
"""

import asyncio
import os
import sys

backend_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, backend_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(backend_dir, ".env"))


async def check_provider(symbol: str):
    """Exercise the three aggregation operations once."""
    print("\n" + "=" * 60)
    print("STOCKPULSE - LIVE PROVIDER CHECK")
    print("=" * 60)

    from stockpulse.services.aggregation import get_aggregation_service
    from stockpulse.services.base import MarketDataError, user_message
    from stockpulse.services.provider import close_provider_client

    service = get_aggregation_service()

    print("\n[1] Health Check...")
    print("-" * 40)
    print(f"Provider configured: {await service.health_check()}")

    print(f"\n[2] Technical Analysis for {symbol}...")
    print("-" * 40)
    try:
        analysis = await service.get_technical_analysis(symbol)
        quote = analysis.quote
        print(f"{quote.name} ({quote.symbol})")
        print(f"  Price: ${quote.price:.2f} ({quote.change:+.2f}, {quote.change_percent:+.2f}%)")
        print(f"  Volume: {quote.volume:,}")
        print(f"  Market Cap: {quote.market_cap}")
        print(f"  Bars: {len(analysis.historical_data)}")
        if analysis.historical_data:
            latest = analysis.historical_data[0]
            print(f"  Latest bar {latest.date}: O={latest.open:.2f} H={latest.high:.2f} L={latest.low:.2f} C={latest.close:.2f}")
        ind = analysis.indicators
        print(f"  RSI: {ind.rsi:.2f}  ADX: {ind.adx:.2f}")
        print(f"  MACD: {ind.macd.macd_line:.4f} / {ind.macd.signal_line:.4f} / {ind.macd.histogram:.4f}")
    except MarketDataError as e:
        print(f"  {e.kind.value}: {e.message}")
        print(f"  User message: {user_message(e)}")
        print(f"  Details: {e.details}")

    print(f"\n[3] Cached quote for {symbol}...")
    print("-" * 40)
    try:
        quote = await service.get_quote(symbol)
        print(f"  Price: ${quote.price:.2f} (served from cache if [2] succeeded)")
    except MarketDataError as e:
        print(f"  {e.kind.value}: {e.message}")

    await close_provider_client()

    print("\n" + "=" * 60)
    print("CHECK COMPLETE")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(check_provider(sys.argv[1] if len(sys.argv) > 1 else "IBM"))
