"""Property-based tests for parser, indicator, execution and backtest invariants.

- try_parse_rule never raises, whatever the text
- rendering a rule and parsing it back gives the same tree
- indicator warm-up never shrinks as the period grows
- once an indicator turns valid it stays valid for every kind
- crossover rules are false on the first bar
- a zero-cost round trip at one price leaves cash unchanged
- every point of the backtest equity curve matches cash plus marked positions
"""

from __future__ import annotations

import pytest
from hypothesis import given, seed, settings
from hypothesis import strategies as st

from ruletrader.backtest.engine import BacktestConfig, run_backtest
from ruletrader.exec.execution import ExecutionCosts, enter_long, enter_short, exit_position
from ruletrader.exec.ledger import Portfolio
from ruletrader.indicators import (
    IndicatorField,
    IndicatorKind,
    IndicatorSpec,
    calculate,
    compute_indicators,
)
from ruletrader.rules import (
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
    Or,
    PriceField,
    PriceOperand,
    VolumeOperand,
    evaluate,
    parse_rule,
    try_parse_rule,
)
from ruletrader.strategy import Strategy
from tests.fixtures.bars import START, make_bars

pytestmark = pytest.mark.property

# --- strategies ---

periods = st.integers(min_value=1, max_value=60)
finite = st.floats(allow_nan=False, allow_infinity=False, min_value=-1e9, max_value=1e9)

simple_indicator = st.builds(
    lambda kind, p: IndicatorOperand(IndicatorSpec(kind, (p,))),
    st.sampled_from(
        [
            IndicatorKind.SMA,
            IndicatorKind.EMA,
            IndicatorKind.WMA,
            IndicatorKind.RSI,
            IndicatorKind.ROC,
            IndicatorKind.ATR,
            IndicatorKind.STDDEV,
        ]
    ),
    periods,
)
macd_operand = st.builds(
    lambda f, a, b, c: IndicatorOperand(IndicatorSpec(IndicatorKind.MACD, (a, b, c)), f),
    st.sampled_from(
        [IndicatorField.MACD_LINE, IndicatorField.MACD_SIGNAL, IndicatorField.MACD_HISTOGRAM]
    ),
    periods,
    periods,
    periods,
)
bollinger_operand = st.builds(
    lambda f, p, m: IndicatorOperand(IndicatorSpec(IndicatorKind.BOLLINGER, (p, m)), f),
    st.sampled_from(
        [
            IndicatorField.BOLLINGER_UPPER,
            IndicatorField.BOLLINGER_MIDDLE,
            IndicatorField.BOLLINGER_LOWER,
        ]
    ),
    periods,
    st.integers(min_value=0, max_value=500),
)
pivot_operand = st.builds(
    lambda f: IndicatorOperand(IndicatorSpec(IndicatorKind.PIVOT), f),
    st.sampled_from([IndicatorField.PIVOT, IndicatorField.PIVOT_R2, IndicatorField.PIVOT_S3]),
)

operands = st.one_of(
    st.builds(PriceOperand, st.sampled_from(list(PriceField))),
    st.just(VolumeOperand()),
    st.builds(ConstantOperand, finite),
    st.just(IndicatorOperand(IndicatorSpec(IndicatorKind.OBV))),
    simple_indicator,
    macd_operand,
    bollinger_operand,
    pivot_operand,
)

comparisons = st.one_of(
    *(st.builds(cls, operands, operands) for cls in (CrossAbove, CrossBelow, Above, Below, Equals)),
    st.builds(Between, operands, operands, finite),
)

rules = st.recursive(
    comparisons,
    lambda children: st.one_of(
        st.builds(lambda xs: And(tuple(xs)), st.lists(children, min_size=2, max_size=3)),
        st.builds(lambda xs: Or(tuple(xs)), st.lists(children, min_size=2, max_size=3)),
        st.builds(Not, children),
        st.builds(Consecutive, children, st.integers(min_value=1, max_value=10)),
        st.builds(AnyOf, children, st.integers(min_value=1, max_value=10)),
    ),
    max_leaves=8,
)

closes = st.lists(
    st.floats(min_value=1.0, max_value=1_000.0, allow_nan=False, allow_infinity=False),
    min_size=2,
    max_size=80,
)

rule_alphabet = st.sampled_from(list("ABCDEFGHIKLMNOPRSTUVWXYZ_abcehilnosuv0123456789.,()- e"))


# --- parser ---


@seed(4101)
@settings(max_examples=300, deadline=None)
@given(text=st.text())
def test_try_parse_rule_is_total_on_any_text(text: str) -> None:
    result = try_parse_rule(text)
    assert result is None or str(result)


@seed(4102)
@settings(max_examples=300, deadline=None)
@given(text=st.text(alphabet=rule_alphabet, max_size=60))
def test_try_parse_rule_is_total_on_rule_like_text(text: str) -> None:
    try_parse_rule(text)


@seed(4103)
@settings(max_examples=300, deadline=None)
@given(rule=rules)
def test_rendered_rule_parses_back_to_same_tree(rule) -> None:
    assert parse_rule(str(rule)) == rule


@seed(4104)
@settings(max_examples=100, deadline=None)
@given(depth=st.integers(min_value=1, max_value=3_000))
def test_deep_nesting_never_escapes_as_recursion_error(depth: int) -> None:
    text = "NOT(" * depth + "ABOVE(close, 1)" + ")" * depth
    result = try_parse_rule(text)
    assert result is None or isinstance(result, Not)


# --- indicators ---


@seed(4201)
@settings(max_examples=100, deadline=None)
@given(
    values=closes,
    kind=st.sampled_from(
        [
            IndicatorKind.SMA,
            IndicatorKind.EMA,
            IndicatorKind.WMA,
            IndicatorKind.RSI,
            IndicatorKind.STDDEV,
        ]
    ),
    small=st.integers(min_value=1, max_value=20),
    extra=st.integers(min_value=0, max_value=20),
)
def test_warm_up_grows_with_period(values, kind, small, extra) -> None:
    bars = make_bars(values, spread=0.5)
    short = calculate(kind, bars, (small,))
    long = calculate(kind, bars, (small + extra,))
    assert len(short.values) == len(long.values) == len(bars)

    first_short = short.first_valid_index()
    first_long = long.first_valid_index()
    if first_long is not None:
        assert first_short is not None
        assert first_short <= first_long


@seed(4202)
@settings(max_examples=100, deadline=None)
@given(values=closes, period=st.integers(min_value=1, max_value=30))
def test_values_before_warm_up_are_invalid_placeholders(values, period) -> None:
    series = calculate(IndicatorKind.SMA, make_bars(values), (period,))
    for i, value in enumerate(series.values):
        assert value.valid is (i >= period - 1)
        if not value.valid:
            assert value.value == 0.0


indicator_params = st.one_of(
    st.tuples(
        st.sampled_from(
            [
                IndicatorKind.SMA,
                IndicatorKind.EMA,
                IndicatorKind.WMA,
                IndicatorKind.RSI,
                IndicatorKind.ROC,
                IndicatorKind.ATR,
                IndicatorKind.STDDEV,
            ]
        ),
        st.tuples(periods),
    ),
    st.tuples(st.sampled_from([IndicatorKind.OBV, IndicatorKind.PIVOT]), st.just(())),
    st.tuples(st.just(IndicatorKind.MACD), st.tuples(periods, periods, periods)),
    st.tuples(st.just(IndicatorKind.STOCHASTIC), st.tuples(periods, periods)),
    st.tuples(
        st.just(IndicatorKind.BOLLINGER),
        st.tuples(periods, st.integers(min_value=0, max_value=500)),
    ),
)


@seed(4203)
@settings(max_examples=300, deadline=None)
@given(values=closes, kind_params=indicator_params)
def test_values_stay_valid_once_warm_up_completes(values, kind_params) -> None:
    kind, params = kind_params
    bars = make_bars(values, spread=0.5)
    series = calculate(kind, bars, params)
    assert len(series.values) == len(bars)

    first = series.first_valid_index()
    if first is not None:
        assert all(v.valid for v in series.values[first:])


# --- rules ---


@seed(4301)
@settings(max_examples=200, deadline=None)
@given(values=closes, left=operands, right=operands)
def test_crossovers_are_false_on_first_bar(values, left, right) -> None:
    bars = make_bars(values, spread=0.5)
    for rule in (CrossAbove(left, right), CrossBelow(left, right)):
        specs = [op.spec for op in (left, right) if isinstance(op, IndicatorOperand)]
        indicators = compute_indicators(bars, specs)
        assert evaluate(rule, bars, indicators, 0) is False


# --- execution ---


@seed(4401)
@settings(max_examples=200, deadline=None)
@given(
    capital=st.floats(min_value=100.0, max_value=1e7),
    price=st.floats(min_value=0.01, max_value=10_000.0),
    fraction=st.floats(min_value=0.01, max_value=1.0),
    short=st.booleans(),
)
def test_zero_cost_round_trip_is_cash_neutral(capital, price, fraction, short) -> None:
    portfolio = Portfolio(capital)
    enter = enter_short if short else enter_long
    opened = enter(portfolio, "X", price, START, fraction, costs=ExecutionCosts())
    if not opened:
        assert portfolio.cash == capital
        return

    assert exit_position(portfolio, "X", price, START, ExecutionCosts())
    assert abs(portfolio.cash - capital) <= 1e-6 * capital
    assert portfolio.trades[0].pnl == 0.0
    assert portfolio.position_count == 0


# --- backtest ---

STRATEGIES = [
    ("CROSS_ABOVE(close, SMA(3))", "CROSS_BELOW(close, SMA(3))"),
    ("BELOW(RSI(5), 40)", "ABOVE(RSI(5), 60)"),
    ("ABOVE(close, BOLLINGER_MIDDLE(5, 2))", "ANY_OF(BELOW(close, EMA(4)), 2)"),
]


@seed(4501)
@settings(max_examples=40, deadline=None)
@given(
    values=st.lists(
        st.floats(min_value=1.0, max_value=1_000.0, allow_nan=False, allow_infinity=False),
        min_size=2,
        max_size=40,
    ),
    rules_idx=st.integers(min_value=0, max_value=len(STRATEGIES) - 1),
    commission=st.floats(min_value=0.0, max_value=20.0),
    commission_pct=st.floats(min_value=0.0, max_value=1.0),
    slippage=st.floats(min_value=0.0, max_value=2.0),
    size=st.floats(min_value=0.05, max_value=1.0),
    stop=st.sampled_from([0.0, 2.0, 10.0]),
    shorting=st.booleans(),
)
def test_equity_curve_matches_cash_plus_positions(
    values, rules_idx, commission, commission_pct, slippage, size, stop, shorting
) -> None:
    entry, exit_ = STRATEGIES[rules_idx]
    strategy = Strategy(
        name="prop",
        entry_long=parse_rule(entry),
        exit_long=parse_rule(exit_),
        entry_short=parse_rule(exit_),
        exit_short=parse_rule(entry),
        position_size=size,
        stop_loss_pct=stop,
    )
    config = BacktestConfig(
        commission_flat=commission,
        commission_pct=commission_pct,
        slippage_pct=slippage,
        allow_shorting=shorting,
    )
    bars = make_bars(values, spread=0.5)
    specs = strategy.indicator_specs()
    full = run_backtest(bars, compute_indicators(bars, specs), strategy, config).portfolio
    assert len(full.equity_curve) == len(bars)

    # Replaying each prefix exposes the cash and positions held at the end of that bar
    for k in range(len(bars)):
        prefix = bars[: k + 1]
        state = run_backtest(prefix, compute_indicators(prefix, specs), strategy, config).portfolio
        held = sum(abs(p.quantity) for p in state.positions.values())
        expected = state.cash + held * bars[k].close
        assert abs(full.equity_curve[k].equity - expected) <= 1e-2
        assert state.equity_curve[-1].equity == pytest.approx(full.equity_curve[k].equity)
        assert state.position_count <= strategy.max_positions
