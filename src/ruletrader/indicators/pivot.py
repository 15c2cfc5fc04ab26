from __future__ import annotations

from collections.abc import Sequence

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import IndicatorKind, IndicatorSeries, IndicatorSpec, PivotValue


def pivot_levels(high: float, low: float, close: float) -> PivotValue:
    p = (high + low + close) / 3.0
    return PivotValue(
        valid=True,
        pivot=p,
        r1=2.0 * p - low,
        r2=p + (high - low),
        r3=high + 2.0 * (p - low),
        s1=2.0 * p - high,
        s2=p - (high - low),
        s3=low - 2.0 * (high - p),
    )


def pivot(bars: Sequence[PriceBar]) -> IndicatorSeries | None:
    """Classic floor pivots for each bar, computed from the previous bar's H/L/C."""
    if not bars:
        return None
    values = [PivotValue()]
    values.extend(pivot_levels(prev.high, prev.low, prev.close) for prev in bars[:-1])
    return IndicatorSeries(IndicatorSpec(IndicatorKind.PIVOT), values)
