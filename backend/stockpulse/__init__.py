"""
StockPulse market-data engine.

Aggregates quote, fundamentals, price history and technical indicators
from Alpha Vantage into a single per-symbol model.
"""
