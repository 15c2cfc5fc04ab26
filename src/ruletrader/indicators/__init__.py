from ruletrader.indicators.base import (
    BollingerValue,
    IndicatorField,
    IndicatorKind,
    IndicatorSeries,
    IndicatorSpec,
    IndicatorValue,
    MacdValue,
    PivotValue,
    ScalarValue,
    StochasticValue,
)
from ruletrader.indicators.engine import (
    calculate,
    calculate_spec,
    compute_indicators,
    series_to_frame,
)

__all__ = [
    "BollingerValue",
    "IndicatorField",
    "IndicatorKind",
    "IndicatorSeries",
    "IndicatorSpec",
    "IndicatorValue",
    "MacdValue",
    "PivotValue",
    "ScalarValue",
    "StochasticValue",
    "calculate",
    "calculate_spec",
    "compute_indicators",
    "series_to_frame",
]
