"""
Rule and operand trees.

Each variant is a frozen dataclass; ``Rule`` and ``Operand`` are the unions
the evaluator dispatches on. ``str(node)`` renders the rule text that parses
back to an equal tree.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from ruletrader.indicators.base import IndicatorField, IndicatorKind, IndicatorSpec


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class PriceField(str, Enum):
    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    CLOSE = "close"


# Operand keyword used for each (kind, field) pair when rendering
_INDICATOR_KEYWORDS: dict[tuple[IndicatorKind, IndicatorField], str] = {
    (IndicatorKind.SMA, IndicatorField.VALUE): "SMA",
    (IndicatorKind.EMA, IndicatorField.VALUE): "EMA",
    (IndicatorKind.WMA, IndicatorField.VALUE): "WMA",
    (IndicatorKind.RSI, IndicatorField.VALUE): "RSI",
    (IndicatorKind.ROC, IndicatorField.VALUE): "ROC",
    (IndicatorKind.ATR, IndicatorField.VALUE): "ATR",
    (IndicatorKind.STDDEV, IndicatorField.VALUE): "STDDEV",
    (IndicatorKind.OBV, IndicatorField.VALUE): "OBV",
    (IndicatorKind.MACD, IndicatorField.MACD_LINE): "MACD",
    (IndicatorKind.MACD, IndicatorField.MACD_SIGNAL): "MACD_SIGNAL",
    (IndicatorKind.MACD, IndicatorField.MACD_HISTOGRAM): "MACD_HISTOGRAM",
    (IndicatorKind.STOCHASTIC, IndicatorField.STOCH_K): "STOCHASTIC_K",
    (IndicatorKind.STOCHASTIC, IndicatorField.STOCH_D): "STOCHASTIC_D",
    (IndicatorKind.BOLLINGER, IndicatorField.BOLLINGER_UPPER): "BOLLINGER_UPPER",
    (IndicatorKind.BOLLINGER, IndicatorField.BOLLINGER_MIDDLE): "BOLLINGER_MIDDLE",
    (IndicatorKind.BOLLINGER, IndicatorField.BOLLINGER_LOWER): "BOLLINGER_LOWER",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT): "PIVOT",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT_R1): "PIVOT_R1",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT_R2): "PIVOT_R2",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT_R3): "PIVOT_R3",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT_S1): "PIVOT_S1",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT_S2): "PIVOT_S2",
    (IndicatorKind.PIVOT, IndicatorField.PIVOT_S3): "PIVOT_S3",
}


# --- Operands ---


@dataclass(frozen=True)
class PriceOperand:
    field: PriceField

    def __str__(self) -> str:
        return self.field.value


@dataclass(frozen=True)
class VolumeOperand:
    def __str__(self) -> str:
        return "volume"


@dataclass(frozen=True)
class ConstantOperand:
    value: float

    def __str__(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class IndicatorOperand:
    spec: IndicatorSpec
    field: IndicatorField = IndicatorField.VALUE

    @property
    def key(self) -> str:
        return self.spec.key

    def __str__(self) -> str:
        keyword = _INDICATOR_KEYWORDS[(self.spec.kind, self.field)]
        params = list(self.spec.params)
        if not params:
            return keyword
        if self.spec.kind is IndicatorKind.BOLLINGER:
            args = [str(params[0]), format_number(params[1] / 100.0)]
        else:
            args = [str(p) for p in params]
        return f"{keyword}({','.join(args)})"


Operand = Union[PriceOperand, VolumeOperand, ConstantOperand, IndicatorOperand]


# --- Rules ---


@dataclass(frozen=True)
class _Comparison:
    keyword: ClassVar[str] = ""

    left: Operand
    right: Operand

    def operands(self) -> tuple[Operand, ...]:
        return (self.left, self.right)

    def __str__(self) -> str:
        return f"{self.keyword}({self.left},{self.right})"


@dataclass(frozen=True)
class CrossAbove(_Comparison):
    keyword: ClassVar[str] = "CROSS_ABOVE"


@dataclass(frozen=True)
class CrossBelow(_Comparison):
    keyword: ClassVar[str] = "CROSS_BELOW"


@dataclass(frozen=True)
class Above(_Comparison):
    keyword: ClassVar[str] = "ABOVE"


@dataclass(frozen=True)
class Below(_Comparison):
    keyword: ClassVar[str] = "BELOW"


@dataclass(frozen=True)
class Equals(_Comparison):
    keyword: ClassVar[str] = "EQUALS"


@dataclass(frozen=True)
class Between:
    """``lower <= left <= upper``, bounds inclusive."""

    keyword: ClassVar[str] = "BETWEEN"

    left: Operand
    lower: Operand
    upper: float

    def operands(self) -> tuple[Operand, ...]:
        return (self.left, self.lower)

    def __str__(self) -> str:
        return f"{self.keyword}({self.left},{self.lower},{format_number(self.upper)})"


@dataclass(frozen=True)
class And:
    keyword: ClassVar[str] = "AND"

    children: tuple[Rule, ...]

    def __str__(self) -> str:
        return f"{self.keyword}({','.join(str(c) for c in self.children)})"


@dataclass(frozen=True)
class Or:
    keyword: ClassVar[str] = "OR"

    children: tuple[Rule, ...]

    def __str__(self) -> str:
        return f"{self.keyword}({','.join(str(c) for c in self.children)})"


@dataclass(frozen=True)
class Not:
    keyword: ClassVar[str] = "NOT"

    child: Rule | None

    def __str__(self) -> str:
        return f"{self.keyword}({self.child if self.child is not None else ''})"


@dataclass(frozen=True)
class Consecutive:
    keyword: ClassVar[str] = "CONSECUTIVE"

    child: Rule
    lookback: int

    def __str__(self) -> str:
        return f"{self.keyword}({self.child},{self.lookback})"


@dataclass(frozen=True)
class AnyOf:
    keyword: ClassVar[str] = "ANY_OF"

    child: Rule
    lookback: int

    def __str__(self) -> str:
        return f"{self.keyword}({self.child},{self.lookback})"


Rule = Union[
    CrossAbove, CrossBelow, Above, Below, Equals, Between, And, Or, Not, Consecutive, AnyOf
]

COMPARISONS: dict[str, type[_Comparison]] = {
    cls.keyword: cls for cls in (CrossAbove, CrossBelow, Above, Below, Equals)
}


def iter_operands(rule: Rule) -> Iterator[Operand]:
    """Yield every operand in the tree, depth first, left to right."""
    if isinstance(rule, (_Comparison, Between)):
        yield from rule.operands()
    elif isinstance(rule, (And, Or)):
        for child in rule.children:
            yield from iter_operands(child)
    elif isinstance(rule, (Not, Consecutive, AnyOf)):
        if rule.child is not None:
            yield from iter_operands(rule.child)


def collect_indicator_specs(rules: Iterable[Rule | None]) -> list[IndicatorSpec]:
    """De-duplicated indicator specs referenced by ``rules``, in first-seen order."""
    seen: dict[IndicatorSpec, None] = {}
    for rule in rules:
        if rule is None:
            continue
        for operand in iter_operands(rule):
            if isinstance(operand, IndicatorOperand):
                seen.setdefault(operand.spec, None)
    return list(seen)
