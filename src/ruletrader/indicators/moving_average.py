from __future__ import annotations

from collections.abc import Sequence

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import IndicatorKind, IndicatorSeries, IndicatorSpec, ScalarValue


def _closes(bars: Sequence[PriceBar]) -> list[float]:
    return [b.close for b in bars]


def ema_values(values: Sequence[float], period: int) -> list[float | None]:
    """SMA-seeded exponential average; None until ``period`` samples exist."""
    out: list[float | None] = [None] * len(values)
    if period <= 0 or len(values) < period:
        return out
    k = 2.0 / (period + 1)
    prev = sum(values[:period]) / period
    out[period - 1] = prev
    for i in range(period, len(values)):
        prev = values[i] * k + prev * (1.0 - k)
        out[i] = prev
    return out


def _to_series(spec: IndicatorSpec, raw: list[float | None]) -> IndicatorSeries:
    values = [ScalarValue() if v is None else ScalarValue(True, v) for v in raw]
    return IndicatorSeries(spec, values)


def sma(bars: Sequence[PriceBar], period: int) -> IndicatorSeries | None:
    if not bars or period <= 0:
        return None
    closes = _closes(bars)
    raw: list[float | None] = []
    window_sum = 0.0
    for i, close in enumerate(closes):
        window_sum += close
        if i >= period:
            window_sum -= closes[i - period]
        raw.append(window_sum / period if i >= period - 1 else None)
    return _to_series(IndicatorSpec(IndicatorKind.SMA, (period,)), raw)


def ema(bars: Sequence[PriceBar], period: int) -> IndicatorSeries | None:
    if not bars or period <= 0:
        return None
    spec = IndicatorSpec(IndicatorKind.EMA, (period,))
    return _to_series(spec, ema_values(_closes(bars), period))


def wma(bars: Sequence[PriceBar], period: int) -> IndicatorSeries | None:
    """Linearly weighted average, weight 1 on the oldest close up to ``period`` on the newest."""
    if not bars or period <= 0:
        return None
    closes = _closes(bars)
    divisor = period * (period + 1) / 2.0
    raw: list[float | None] = []
    for i in range(len(closes)):
        if i < period - 1:
            raw.append(None)
            continue
        window = closes[i - period + 1 : i + 1]
        raw.append(sum(w * c for w, c in enumerate(window, start=1)) / divisor)
    return _to_series(IndicatorSpec(IndicatorKind.WMA, (period,)), raw)
