from ruletrader.strategy.base import Strategy

__all__ = ["Strategy"]
