from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import (
    IndicatorKind,
    IndicatorSeries,
    IndicatorSpec,
    MacdValue,
    ScalarValue,
    StochasticValue,
)
from ruletrader.indicators.moving_average import ema_values


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0.0:
        return 100.0 if avg_gain > 0.0 else 50.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def rsi(bars: Sequence[PriceBar], period: int) -> IndicatorSeries | None:
    """
    Relative Strength Index with Wilder smoothing.

    The first average gain/loss is the simple mean of the first ``period``
    close-to-close changes, so the first valid point is at index ``period``.
    """
    if not bars or period <= 0:
        return None
    values = [ScalarValue() for _ in bars]
    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(1, len(bars)):
        change = bars[i].close - bars[i - 1].close
        gain = max(change, 0.0)
        loss = max(-change, 0.0)
        if i < period:
            avg_gain += gain
            avg_loss += loss
            continue
        if i == period:
            avg_gain = (avg_gain + gain) / period
            avg_loss = (avg_loss + loss) / period
        else:
            avg_gain = (avg_gain * (period - 1) + gain) / period
            avg_loss = (avg_loss * (period - 1) + loss) / period
        values[i] = ScalarValue(True, _rsi_from_averages(avg_gain, avg_loss))
    return IndicatorSeries(IndicatorSpec(IndicatorKind.RSI, (period,)), values)


def roc(bars: Sequence[PriceBar], period: int) -> IndicatorSeries | None:
    """Rate of change in percent against the close ``period`` bars back."""
    if not bars or period <= 0:
        return None
    values = [ScalarValue() for _ in bars]
    for i in range(period, len(bars)):
        base = bars[i - period].close
        change = 0.0 if base == 0.0 else (bars[i].close - base) / base * 100.0
        values[i] = ScalarValue(True, change)
    return IndicatorSeries(IndicatorSpec(IndicatorKind.ROC, (period,)), values)


def macd(
    bars: Sequence[PriceBar], fast: int, slow: int, signal: int
) -> IndicatorSeries | None:
    """
    MACD line, signal and histogram.

    The line exists from ``max(fast, slow) - 1``; the signal is an SMA-seeded
    EMA of the line and exists ``signal - 1`` bars later. Points are flagged
    valid only once all three fields are available.
    """
    if not bars or fast <= 0 or slow <= 0 or signal <= 0:
        return None
    closes = [b.close for b in bars]
    fast_ema = ema_values(closes, fast)
    slow_ema = ema_values(closes, slow)
    start = max(fast, slow) - 1

    values: list[MacdValue] = [MacdValue() for _ in bars]
    if start >= len(bars):
        return IndicatorSeries(IndicatorSpec(IndicatorKind.MACD, (fast, slow, signal)), values)

    line = [fast_ema[i] - slow_ema[i] for i in range(start, len(bars))]
    signal_line = ema_values(line, signal)
    for offset, line_value in enumerate(line):
        sig = signal_line[offset]
        if sig is None:
            values[start + offset] = MacdValue(valid=False, line=line_value)
        else:
            values[start + offset] = MacdValue(True, line_value, sig, line_value - sig)
    return IndicatorSeries(IndicatorSpec(IndicatorKind.MACD, (fast, slow, signal)), values)


def stochastic(bars: Sequence[PriceBar], k_period: int, d_period: int) -> IndicatorSeries | None:
    if not bars or k_period <= 0 or d_period <= 0:
        return None
    values: list[StochasticValue] = [StochasticValue() for _ in bars]
    recent_k: deque[float] = deque(maxlen=d_period)
    for i in range(k_period - 1, len(bars)):
        window = bars[i - k_period + 1 : i + 1]
        lowest = min(b.low for b in window)
        highest = max(b.high for b in window)
        span = highest - lowest
        k = 50.0 if span == 0.0 else 100.0 * (bars[i].close - lowest) / span
        recent_k.append(k)
        if len(recent_k) < d_period:
            values[i] = StochasticValue(valid=False, k=k)
        else:
            values[i] = StochasticValue(True, k, sum(recent_k) / d_period)
    return IndicatorSeries(IndicatorSpec(IndicatorKind.STOCHASTIC, (k_period, d_period)), values)
