"""
Indicator identities, value payloads and the index-aligned series container.

A series always has exactly one value per source bar. Points before an
indicator's warm-up completes carry 0.0 placeholders with ``valid=False``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class IndicatorKind(str, Enum):
    SMA = "SMA"
    EMA = "EMA"
    WMA = "WMA"
    RSI = "RSI"
    ROC = "ROC"
    ATR = "ATR"
    STDDEV = "STDDEV"
    OBV = "OBV"
    MACD = "MACD"
    STOCHASTIC = "STOCHASTIC"
    BOLLINGER = "BOLLINGER"
    PIVOT = "PIVOT"


# Number of integer parameters each kind carries in its IndicatorSpec
PARAM_COUNTS: dict[IndicatorKind, int] = {
    IndicatorKind.SMA: 1,
    IndicatorKind.EMA: 1,
    IndicatorKind.WMA: 1,
    IndicatorKind.RSI: 1,
    IndicatorKind.ROC: 1,
    IndicatorKind.ATR: 1,
    IndicatorKind.STDDEV: 1,
    IndicatorKind.OBV: 0,
    IndicatorKind.MACD: 3,
    IndicatorKind.STOCHASTIC: 2,
    IndicatorKind.BOLLINGER: 2,
    IndicatorKind.PIVOT: 0,
}


@dataclass(frozen=True)
class IndicatorSpec:
    """Hashable identity of one computed series: kind plus integer parameters.

    Bollinger's multiplier is stored as ``mult * 100`` rounded half away from
    zero so the params stay integral and hashable.
    """

    kind: IndicatorKind
    params: tuple[int, ...] = ()

    @property
    def key(self) -> str:
        if not self.params:
            return self.kind.value
        return "_".join([self.kind.value, *(str(p) for p in self.params)])

    def __str__(self) -> str:
        return self.key

    @classmethod
    def bollinger(cls, period: int, multiplier: float) -> IndicatorSpec:
        # Half away from zero, so 2.125 keys as 213
        scaled = math.floor(abs(multiplier) * 100 + 0.5)
        return cls(IndicatorKind.BOLLINGER, (period, int(math.copysign(scaled, multiplier))))


class IndicatorField(str, Enum):
    """Sub-field of an indicator value; the enum value is the payload attribute name."""

    VALUE = "value"
    MACD_LINE = "line"
    MACD_SIGNAL = "signal"
    MACD_HISTOGRAM = "histogram"
    STOCH_K = "k"
    STOCH_D = "d"
    BOLLINGER_UPPER = "upper"
    BOLLINGER_MIDDLE = "middle"
    BOLLINGER_LOWER = "lower"
    PIVOT = "pivot"
    PIVOT_R1 = "r1"
    PIVOT_R2 = "r2"
    PIVOT_R3 = "r3"
    PIVOT_S1 = "s1"
    PIVOT_S2 = "s2"
    PIVOT_S3 = "s3"


@dataclass(frozen=True)
class ScalarValue:
    valid: bool = False
    value: float = 0.0


@dataclass(frozen=True)
class MacdValue:
    valid: bool = False
    line: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(frozen=True)
class StochasticValue:
    valid: bool = False
    k: float = 0.0
    d: float = 0.0


@dataclass(frozen=True)
class BollingerValue:
    valid: bool = False
    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0


@dataclass(frozen=True)
class PivotValue:
    valid: bool = False
    pivot: float = 0.0
    r1: float = 0.0
    r2: float = 0.0
    r3: float = 0.0
    s1: float = 0.0
    s2: float = 0.0
    s3: float = 0.0


IndicatorValue = Union[ScalarValue, MacdValue, StochasticValue, BollingerValue, PivotValue]


@dataclass
class IndicatorSeries:
    spec: IndicatorSpec
    values: list[IndicatorValue] = field(default_factory=list)

    @property
    def kind(self) -> IndicatorKind:
        return self.spec.kind

    @property
    def params(self) -> tuple[int, ...]:
        return self.spec.params

    @property
    def key(self) -> str:
        return self.spec.key

    def __len__(self) -> int:
        return len(self.values)

    def at(self, index: int) -> IndicatorValue | None:
        if index < 0 or index >= len(self.values):
            return None
        return self.values[index]

    def field_at(self, index: int, name: IndicatorField) -> float | None:
        """Return the requested sub-field at ``index``, or None if absent or not yet valid."""
        value = self.at(index)
        if value is None or not value.valid:
            return None
        return getattr(value, name.value, None)

    def first_valid_index(self) -> int | None:
        for i, v in enumerate(self.values):
            if v.valid:
                return i
        return None
