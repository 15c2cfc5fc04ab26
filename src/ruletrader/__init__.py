"""ruletrader: rule-based strategy backtesting over daily OHLCV bars."""

__version__ = "0.3.0"
