from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict

import pandas as pd

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import PARAM_COUNTS, IndicatorKind, IndicatorSeries, IndicatorSpec
from ruletrader.indicators.momentum import macd, roc, rsi, stochastic
from ruletrader.indicators.moving_average import ema, sma, wma
from ruletrader.indicators.pivot import pivot
from ruletrader.indicators.volatility import atr, bollinger, stddev
from ruletrader.indicators.volume import obv
from ruletrader.logging import get_logger

logger = get_logger("indicators")

_CALCULATORS: dict[IndicatorKind, Callable[..., IndicatorSeries | None]] = {
    IndicatorKind.SMA: sma,
    IndicatorKind.EMA: ema,
    IndicatorKind.WMA: wma,
    IndicatorKind.RSI: rsi,
    IndicatorKind.ROC: roc,
    IndicatorKind.ATR: atr,
    IndicatorKind.STDDEV: stddev,
    IndicatorKind.OBV: obv,
    IndicatorKind.MACD: macd,
    IndicatorKind.STOCHASTIC: stochastic,
    IndicatorKind.PIVOT: pivot,
}


def calculate(
    kind: IndicatorKind, bars: Sequence[PriceBar], params: Sequence[int] = ()
) -> IndicatorSeries | None:
    """Compute one indicator series over ``bars``.

    ``params`` are the integer parameters carried by IndicatorSpec, so the
    Bollinger multiplier is passed scaled by 100 (``(20, 200)`` for 2.0).
    Returns None for empty input, a wrong parameter count, or a non-positive
    period.
    """
    kind = IndicatorKind(kind)
    params = tuple(int(p) for p in params)
    if not bars:
        return None
    if len(params) != PARAM_COUNTS[kind]:
        logger.debug(f"{kind.value}: expected {PARAM_COUNTS[kind]} params, got {params}")
        return None
    if kind is IndicatorKind.BOLLINGER:
        return bollinger(bars, params[0], params[1] / 100.0)
    return _CALCULATORS[kind](bars, *params)


def calculate_spec(spec: IndicatorSpec, bars: Sequence[PriceBar]) -> IndicatorSeries | None:
    return calculate(spec.kind, bars, spec.params)


def compute_indicators(
    bars: Sequence[PriceBar], specs: Iterable[IndicatorSpec]
) -> dict[str, IndicatorSeries]:
    """Build the key -> series map a strategy evaluates against."""
    out: dict[str, IndicatorSeries] = {}
    for spec in specs:
        if spec.key in out:
            continue
        series = calculate_spec(spec, bars)
        if series is None:
            logger.warning(f"Skipping indicator {spec.key}: could not be calculated")
            continue
        out[spec.key] = series
    return out


def series_to_frame(
    series: IndicatorSeries, bars: Sequence[PriceBar] | None = None
) -> pd.DataFrame:
    """One row per bar, one column per payload field plus ``valid``.

    When ``bars`` is given the frame is indexed by bar date.
    """
    df = pd.DataFrame([asdict(v) for v in series.values])
    if bars is not None and len(bars) == len(series):
        df.index = pd.DatetimeIndex([pd.Timestamp(b.date) for b in bars], name="Date")
    return df
