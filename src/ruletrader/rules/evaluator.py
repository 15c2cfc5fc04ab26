from __future__ import annotations

from collections.abc import Mapping, Sequence

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import IndicatorSeries
from ruletrader.rules.ast import (
    Above,
    And,
    AnyOf,
    Below,
    Between,
    ConstantOperand,
    Consecutive,
    CrossAbove,
    CrossBelow,
    Equals,
    IndicatorOperand,
    Not,
    Operand,
    Or,
    PriceOperand,
    Rule,
    VolumeOperand,
)

EQUALS_EPSILON = 1e-9

Indicators = Mapping[str, IndicatorSeries]


def resolve_operand(
    operand: Operand, bars: Sequence[PriceBar], indicators: Indicators, index: int
) -> float | None:
    """Value of ``operand`` at bar ``index``; None when it cannot be resolved."""
    if index < 0 or index >= len(bars):
        return None
    if isinstance(operand, ConstantOperand):
        return operand.value
    if isinstance(operand, PriceOperand):
        return float(getattr(bars[index], operand.field.value))
    if isinstance(operand, VolumeOperand):
        return float(bars[index].volume)
    if isinstance(operand, IndicatorOperand):
        series = indicators.get(operand.key)
        if series is None:
            return None
        return series.field_at(index, operand.field)
    return None


def _pair(
    rule: Rule, bars: Sequence[PriceBar], indicators: Indicators, index: int
) -> tuple[float, float] | None:
    left = resolve_operand(rule.left, bars, indicators, index)
    right = resolve_operand(rule.right, bars, indicators, index)
    if left is None or right is None:
        return None
    return left, right


def _crossed(rule: Rule, bars: Sequence[PriceBar], indicators: Indicators, index: int) -> bool:
    if index == 0:
        return False
    prev = _pair(rule, bars, indicators, index - 1)
    curr = _pair(rule, bars, indicators, index)
    if prev is None or curr is None:
        return False
    if isinstance(rule, CrossAbove):
        return prev[0] <= prev[1] and curr[0] > curr[1]
    return prev[0] >= prev[1] and curr[0] < curr[1]


def _window(rule: Consecutive | AnyOf, index: int) -> range | None:
    if index < rule.lookback - 1:
        return None
    return range(index - rule.lookback + 1, index + 1)


def evaluate(
    rule: Rule | None, bars: Sequence[PriceBar], indicators: Indicators, index: int
) -> bool:
    """
    Evaluate ``rule`` at bar ``index``.

    Never raises for data problems: unresolved operands, missing children and
    out-of-range indices all evaluate to False.
    """
    if rule is None or index < 0 or index >= len(bars):
        return False

    if isinstance(rule, (CrossAbove, CrossBelow)):
        return _crossed(rule, bars, indicators, index)

    if isinstance(rule, (Above, Below, Equals)):
        pair = _pair(rule, bars, indicators, index)
        if pair is None:
            return False
        left, right = pair
        if isinstance(rule, Above):
            return left > right
        if isinstance(rule, Below):
            return left < right
        return abs(left - right) <= EQUALS_EPSILON

    if isinstance(rule, Between):
        value = resolve_operand(rule.left, bars, indicators, index)
        lower = resolve_operand(rule.lower, bars, indicators, index)
        if value is None or lower is None:
            return False
        return lower <= value <= rule.upper

    if isinstance(rule, And):
        if not rule.children:
            return False
        return all(evaluate(child, bars, indicators, index) for child in rule.children)

    if isinstance(rule, Or):
        return any(evaluate(child, bars, indicators, index) for child in rule.children)

    if isinstance(rule, Not):
        if rule.child is None:
            return False
        return not evaluate(rule.child, bars, indicators, index)

    if isinstance(rule, Consecutive):
        window = _window(rule, index)
        return window is not None and all(evaluate(rule.child, bars, indicators, i) for i in window)

    if isinstance(rule, AnyOf):
        window = _window(rule, index)
        return window is not None and any(evaluate(rule.child, bars, indicators, i) for i in window)

    return False
