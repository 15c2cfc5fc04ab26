from __future__ import annotations

import math
from collections.abc import Sequence

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import (
    BollingerValue,
    IndicatorKind,
    IndicatorSeries,
    IndicatorSpec,
    ScalarValue,
)


def _window_mean_std(closes: Sequence[float], end: int, period: int) -> tuple[float, float]:
    # Population standard deviation (divide by n) over closes[end-period+1 : end+1]
    window = closes[end - period + 1 : end + 1]
    mean = sum(window) / period
    variance = sum((c - mean) ** 2 for c in window) / period
    return mean, math.sqrt(variance)


def bollinger(
    bars: Sequence[PriceBar], period: int, multiplier: float = 2.0
) -> IndicatorSeries | None:
    if not bars or period <= 0 or multiplier < 0:
        return None
    closes = [b.close for b in bars]
    values: list[BollingerValue] = [BollingerValue() for _ in bars]
    for i in range(period - 1, len(closes)):
        middle, std = _window_mean_std(closes, i, period)
        band = multiplier * std
        values[i] = BollingerValue(True, middle + band, middle, middle - band)
    return IndicatorSeries(IndicatorSpec.bollinger(period, multiplier), values)


def stddev(bars: Sequence[PriceBar], period: int) -> IndicatorSeries | None:
    if not bars or period <= 0:
        return None
    closes = [b.close for b in bars]
    values = [ScalarValue() for _ in bars]
    for i in range(period - 1, len(closes)):
        values[i] = ScalarValue(True, _window_mean_std(closes, i, period)[1])
    return IndicatorSeries(IndicatorSpec(IndicatorKind.STDDEV, (period,)), values)


def true_range(bars: Sequence[PriceBar]) -> list[float]:
    ranges = []
    for i, bar in enumerate(bars):
        hl = bar.high - bar.low
        if i == 0:
            ranges.append(hl)
            continue
        prev_close = bars[i - 1].close
        ranges.append(max(hl, abs(bar.high - prev_close), abs(bar.low - prev_close)))
    return ranges


def atr(bars: Sequence[PriceBar], period: int = 14) -> IndicatorSeries | None:
    """
    Average True Range.

    Seeded with the simple mean of the first ``period`` true ranges (valid at
    index ``period - 1``), then Wilder smoothing ``(prev * (n - 1) + tr) / n``.
    """
    if not bars or period <= 0:
        return None
    tr = true_range(bars)
    values = [ScalarValue() for _ in bars]
    if len(tr) < period:
        return IndicatorSeries(IndicatorSpec(IndicatorKind.ATR, (period,)), values)
    current = sum(tr[:period]) / period
    values[period - 1] = ScalarValue(True, current)
    for i in range(period, len(tr)):
        current = (current * (period - 1) + tr[i]) / period
        values[i] = ScalarValue(True, current)
    return IndicatorSeries(IndicatorSpec(IndicatorKind.ATR, (period,)), values)
