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
    PriceField,
    PriceOperand,
    Rule,
    VolumeOperand,
    collect_indicator_specs,
)
from ruletrader.rules.evaluator import evaluate, resolve_operand
from ruletrader.rules.parser import parse_rule, try_parse_rule

__all__ = [
    "Above",
    "And",
    "AnyOf",
    "Below",
    "Between",
    "ConstantOperand",
    "Consecutive",
    "CrossAbove",
    "CrossBelow",
    "Equals",
    "IndicatorOperand",
    "Not",
    "Operand",
    "Or",
    "PriceField",
    "PriceOperand",
    "Rule",
    "VolumeOperand",
    "collect_indicator_specs",
    "evaluate",
    "parse_rule",
    "resolve_operand",
    "try_parse_rule",
]
