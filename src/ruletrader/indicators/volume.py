from __future__ import annotations

from collections.abc import Sequence

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import IndicatorKind, IndicatorSeries, IndicatorSpec, ScalarValue


def obv(bars: Sequence[PriceBar]) -> IndicatorSeries | None:
    """On-balance volume, seeded with the first bar's volume."""
    if not bars:
        return None
    running = float(bars[0].volume)
    values = [ScalarValue(True, running)]
    for prev, bar in zip(bars, bars[1:]):
        if bar.close > prev.close:
            running += bar.volume
        elif bar.close < prev.close:
            running -= bar.volume
        values.append(ScalarValue(True, running))
    return IndicatorSeries(IndicatorSpec(IndicatorKind.OBV), values)
