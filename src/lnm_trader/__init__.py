"""RSI and Bollinger band trading agent for LN Markets BTC/USD futures."""

__version__ = "0.3.0"
