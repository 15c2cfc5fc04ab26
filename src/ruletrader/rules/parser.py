"""
Recursive-descent parser for rule text.

    rule      := comparison | composite | temporal
    comparison:= (CROSS_ABOVE|CROSS_BELOW|ABOVE|BELOW|EQUALS) "(" operand "," operand ")"
               | BETWEEN "(" operand "," operand "," number ")"
    composite := (AND|OR) "(" rule ("," rule)+ ")" | NOT "(" rule ")"
    temporal  := (CONSECUTIVE|ANY_OF) "(" rule "," integer ")"
    operand   := open | high | low | close | volume | number | indicator

Keywords are case-sensitive and whitespace between tokens is ignored. The
whole input must be consumed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ruletrader.exceptions import RuleParseError
from ruletrader.indicators.base import IndicatorField, IndicatorKind, IndicatorSpec
from ruletrader.logging import get_logger
from ruletrader.rules.ast import (
    COMPARISONS,
    And,
    AnyOf,
    Between,
    ConstantOperand,
    Consecutive,
    IndicatorOperand,
    Not,
    Operand,
    Or,
    PriceField,
    PriceOperand,
    Rule,
    VolumeOperand,
)

logger = get_logger("rules")

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<punct>[(),])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Token:
    kind: str  # "number" | "ident" | "punct" | "eof"
    text: str
    position: int


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise RuleParseError(f"Unexpected character {text[pos]!r}", pos)
        if m.lastgroup != "ws":
            tokens.append(Token(m.lastgroup, m.group(), pos))
        pos = m.end()
    tokens.append(Token("eof", "", len(text)))
    return tokens


# Indicator operand keyword -> (kind, field, integer parameter count)
_SIMPLE_INDICATORS: dict[str, tuple[IndicatorKind, IndicatorField, int]] = {
    "SMA": (IndicatorKind.SMA, IndicatorField.VALUE, 1),
    "EMA": (IndicatorKind.EMA, IndicatorField.VALUE, 1),
    "WMA": (IndicatorKind.WMA, IndicatorField.VALUE, 1),
    "RSI": (IndicatorKind.RSI, IndicatorField.VALUE, 1),
    "ROC": (IndicatorKind.ROC, IndicatorField.VALUE, 1),
    "ATR": (IndicatorKind.ATR, IndicatorField.VALUE, 1),
    "STDDEV": (IndicatorKind.STDDEV, IndicatorField.VALUE, 1),
    "OBV": (IndicatorKind.OBV, IndicatorField.VALUE, 0),
    "MACD": (IndicatorKind.MACD, IndicatorField.MACD_LINE, 3),
    "MACD_LINE": (IndicatorKind.MACD, IndicatorField.MACD_LINE, 3),
    "MACD_SIGNAL": (IndicatorKind.MACD, IndicatorField.MACD_SIGNAL, 3),
    "MACD_HISTOGRAM": (IndicatorKind.MACD, IndicatorField.MACD_HISTOGRAM, 3),
    "STOCHASTIC_K": (IndicatorKind.STOCHASTIC, IndicatorField.STOCH_K, 2),
    "STOCHASTIC_D": (IndicatorKind.STOCHASTIC, IndicatorField.STOCH_D, 2),
    "PIVOT": (IndicatorKind.PIVOT, IndicatorField.PIVOT, 0),
    "PIVOT_R1": (IndicatorKind.PIVOT, IndicatorField.PIVOT_R1, 0),
    "PIVOT_R2": (IndicatorKind.PIVOT, IndicatorField.PIVOT_R2, 0),
    "PIVOT_R3": (IndicatorKind.PIVOT, IndicatorField.PIVOT_R3, 0),
    "PIVOT_S1": (IndicatorKind.PIVOT, IndicatorField.PIVOT_S1, 0),
    "PIVOT_S2": (IndicatorKind.PIVOT, IndicatorField.PIVOT_S2, 0),
    "PIVOT_S3": (IndicatorKind.PIVOT, IndicatorField.PIVOT_S3, 0),
}

_BOLLINGER_FIELDS = {
    "BOLLINGER_UPPER": IndicatorField.BOLLINGER_UPPER,
    "BOLLINGER_MIDDLE": IndicatorField.BOLLINGER_MIDDLE,
    "BOLLINGER_LOWER": IndicatorField.BOLLINGER_LOWER,
}

_PRICE_FIELDS = {f.value: f for f in PriceField}

_RULE_KEYWORDS = {*COMPARISONS, "BETWEEN", "AND", "OR", "NOT", "CONSECUTIVE", "ANY_OF"}


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    # --- token helpers ---

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind != "eof":
            self.pos += 1
        return tok

    def error(self, message: str, tok: Token | None = None) -> RuleParseError:
        tok = tok or self.peek()
        return RuleParseError(message, tok.position)

    def expect(self, punct: str) -> Token:
        tok = self.peek()
        if tok.kind != "punct" or tok.text != punct:
            found = tok.text or "end of input"
            raise self.error(f"Expected '{punct}', found '{found}'")
        return self.advance()

    def accept(self, punct: str) -> bool:
        tok = self.peek()
        if tok.kind == "punct" and tok.text == punct:
            self.advance()
            return True
        return False

    def number(self) -> float:
        tok = self.peek()
        if tok.kind != "number":
            raise self.error(f"Expected number, found '{tok.text or 'end of input'}'")
        self.advance()
        return float(tok.text)

    def positive_int(self, what: str) -> int:
        tok = self.peek()
        if tok.kind != "number" or not tok.text.isdigit() or int(tok.text) <= 0:
            found = tok.text or "end of input"
            raise self.error(f"Expected positive integer {what}, found '{found}'")
        self.advance()
        return int(tok.text)

    # --- grammar ---

    def parse(self) -> Rule:
        rule = self.rule()
        tok = self.peek()
        if tok.kind != "eof":
            raise self.error(f"Unexpected trailing input '{tok.text}'")
        return rule

    def rule(self) -> Rule:
        tok = self.peek()
        if tok.kind != "ident" or tok.text not in _RULE_KEYWORDS:
            raise self.error(f"Expected rule keyword, found '{tok.text or 'end of input'}'")
        self.advance()
        keyword = tok.text
        self.expect("(")

        if keyword in COMPARISONS:
            left = self.operand()
            self.expect(",")
            right = self.operand()
            node: Rule = COMPARISONS[keyword](left, right)
        elif keyword == "BETWEEN":
            left = self.operand()
            self.expect(",")
            lower = self.operand()
            self.expect(",")
            node = Between(left, lower, self.number())
        elif keyword in ("AND", "OR"):
            children = [self.rule()]
            self.expect(",")
            children.append(self.rule())
            while self.accept(","):
                children.append(self.rule())
            node = And(tuple(children)) if keyword == "AND" else Or(tuple(children))
        elif keyword == "NOT":
            node = Not(self.rule())
        else:
            child = self.rule()
            self.expect(",")
            lookback = self.positive_int("lookback")
            temporal = Consecutive if keyword == "CONSECUTIVE" else AnyOf
            node = temporal(child, lookback)

        self.expect(")")
        return node

    def operand(self) -> Operand:
        tok = self.peek()
        if tok.kind == "number":
            return ConstantOperand(self.number())
        if tok.kind != "ident":
            raise self.error(f"Expected operand, found '{tok.text or 'end of input'}'")
        self.advance()
        name = tok.text

        if name in _PRICE_FIELDS:
            return PriceOperand(_PRICE_FIELDS[name])
        if name == "volume":
            return VolumeOperand()
        if name in _BOLLINGER_FIELDS:
            self.expect("(")
            period = self.positive_int("period")
            self.expect(",")
            multiplier = self.number()
            self.expect(")")
            spec = IndicatorSpec.bollinger(period, multiplier)
            return IndicatorOperand(spec, _BOLLINGER_FIELDS[name])
        if name in _SIMPLE_INDICATORS:
            kind, field, count = _SIMPLE_INDICATORS[name]
            params: list[int] = []
            if count:
                self.expect("(")
                params.append(self.positive_int("period"))
                for _ in range(count - 1):
                    self.expect(",")
                    params.append(self.positive_int("period"))
                self.expect(")")
            return IndicatorOperand(IndicatorSpec(kind, tuple(params)), field)

        raise RuleParseError(f"Unknown operand '{name}'", tok.position)


def parse_rule(text: str) -> Rule:
    """Parse rule text into a Rule tree; raises RuleParseError on any malformed input."""
    if text is None or not text.strip():
        raise RuleParseError("Empty rule", 0)
    try:
        return _Parser(text).parse()
    except RecursionError:
        raise RuleParseError("Rule nesting too deep", 0) from None


def try_parse_rule(text: str) -> Rule | None:
    """Like parse_rule but returns None instead of raising."""
    try:
        return parse_rule(text)
    except RuleParseError as e:
        logger.debug(f"Rule parse failed: {e.message}")
        return None
