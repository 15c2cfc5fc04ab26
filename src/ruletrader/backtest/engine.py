from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from ruletrader.backtest.data import InstrumentData, build_instrument_data, build_unified_timeline
from ruletrader.backtest.universe import validate_universe
from ruletrader.dataflow.bars import PriceBar
from ruletrader.dataflow.base import HistoricalDataSource
from ruletrader.exceptions import BacktestError, EquityInvariantError
from ruletrader.exec.execution import (
    ExecutionCosts,
    calc_commission,
    check_triggers,
    enter_long,
    enter_short,
    exit_position,
    total_equity,
)
from ruletrader.exec.ledger import Portfolio
from ruletrader.indicators.base import IndicatorSeries
from ruletrader.logging import get_logger
from ruletrader.rules.evaluator import evaluate
from ruletrader.strategy.base import Strategy

logger = get_logger("backtest")

EQUITY_TOLERANCE = 1e-2


@dataclass
class BacktestConfig:
    """Run-level settings; percentages are whole-number percents."""

    initial_capital: float = 100_000.0
    commission_flat: float = 0.0
    commission_pct: float = 0.0
    slippage_pct: float = 0.0
    allow_shorting: bool = False
    risk_free_rate: float = 0.05
    start_date: date | None = None
    end_date: date | None = None

    @property
    def costs(self) -> ExecutionCosts:
        return ExecutionCosts(
            commission_flat=self.commission_flat,
            commission_pct=self.commission_pct,
            slippage_pct=self.slippage_pct,
        )


@dataclass
class BacktestResult:
    portfolio: Portfolio
    strategy: Strategy
    config: BacktestConfig
    timeline: list[date] = field(default_factory=list)

    def trades_frame(self) -> pd.DataFrame:
        return self.portfolio.to_trades_dataframe()

    def equity_series(self) -> pd.Series:
        return self.portfolio.to_equity_series()

    @property
    def final_equity(self) -> float:
        curve = self.portfolio.equity_curve
        return curve[-1].equity if curve else self.portfolio.cash


def _recompute_equity(
    portfolio: Portfolio, prices: Mapping[str, float], costs: ExecutionCosts
) -> float:
    """Equity rebuilt from the trade ledger without reading ``portfolio.cash``."""
    equity = portfolio.initial_capital + sum(t.pnl for t in portfolio.trades)
    for code, pos in portfolio.positions.items():
        size = abs(pos.quantity)
        equity -= calc_commission(size * pos.entry_price, costs)
        equity -= pos.quantity * pos.entry_price
        if code in prices:
            equity += size * prices[code]
    return equity


def _check_equity_invariant(
    portfolio: Portfolio,
    prices: Mapping[str, float],
    when: date,
    reported: float,
    costs: ExecutionCosts,
) -> None:
    recomputed = _recompute_equity(portfolio, prices, costs)
    if abs(recomputed - reported) > EQUITY_TOLERANCE:
        logger.error(
            f"Equity invariant violated on {when}: reported={reported:.6f} "
            f"recomputed={recomputed:.6f} cash={portfolio.cash:.6f} "
            f"positions={portfolio.position_count}"
        )
        raise EquityInvariantError(when, reported, recomputed)


def _process_instrument(
    portfolio: Portfolio,
    inst: InstrumentData,
    index: int,
    when: date,
    strategy: Strategy,
    config: BacktestConfig,
    costs: ExecutionCosts,
) -> None:
    """Exit-then-entry for one instrument on one date."""
    close = inst.bars[index].close

    pos = portfolio.get_position(inst.code)
    if pos is not None:
        exit_rule = strategy.exit_long if pos.is_long else strategy.exit_short
        if exit_rule is not None and evaluate(exit_rule, inst.bars, inst.indicators, index):
            exit_position(portfolio, inst.code, close, when, costs)

    if portfolio.has_position(inst.code):
        return

    if evaluate(strategy.entry_long, inst.bars, inst.indicators, index):
        enter_long(
            portfolio,
            inst.code,
            close,
            when,
            strategy.position_size,
            strategy.stop_loss_pct,
            strategy.take_profit_pct,
            strategy.max_positions,
            costs,
            exchange=inst.exchange,
        )
    elif (
        config.allow_shorting
        and strategy.entry_short is not None
        and evaluate(strategy.entry_short, inst.bars, inst.indicators, index)
    ):
        enter_short(
            portfolio,
            inst.code,
            close,
            when,
            strategy.position_size,
            strategy.stop_loss_pct,
            strategy.take_profit_pct,
            strategy.max_positions,
            costs,
            exchange=inst.exchange,
        )


def run_multi_backtest(
    instruments: Sequence[InstrumentData],
    strategy: Strategy,
    config: BacktestConfig | None = None,
    timeline: list[date] | None = None,
) -> BacktestResult:
    """
    Day-by-day simulation over the union of the instruments' dates.

    Per date: stop/target triggers for every held code, then exit-then-entry
    for each instrument with a bar in the given order, then one equity point.
    ``max_positions`` is portfolio-wide, so earlier instruments win the last
    free slot.
    """
    config = config or BacktestConfig()
    costs = config.costs
    portfolio = Portfolio(config.initial_capital)
    if timeline is None:
        timeline = build_unified_timeline(instruments)

    logger.info(
        f"Backtesting {strategy.name} over {len(instruments)} instrument(s), {len(timeline)} dates"
    )

    for when in timeline:
        indexed = [(inst, inst.index_of(when)) for inst in instruments]
        prices = {inst.code: inst.bars[i].close for inst, i in indexed if i is not None}

        check_triggers(portfolio, prices, when, costs)

        for inst, i in indexed:
            if i is None:
                continue
            _process_instrument(portfolio, inst, i, when, strategy, config, costs)

        equity = total_equity(portfolio, prices)
        _check_equity_invariant(portfolio, prices, when, equity, costs)
        portfolio.record_equity(when, equity)

    result = BacktestResult(
        portfolio=portfolio, strategy=strategy, config=config, timeline=timeline
    )
    logger.info(
        f"Finished {strategy.name}: {len(portfolio.trades)} trades, "
        f"final equity {result.final_equity:,.2f}"
    )
    return result


def run_backtest(
    bars: Sequence[PriceBar],
    indicators: Mapping[str, IndicatorSeries],
    strategy: Strategy,
    config: BacktestConfig | None = None,
) -> BacktestResult:
    """Single-instrument run over ``bars`` with pre-computed ``indicators``."""
    if not bars:
        raise BacktestError("Cannot backtest an empty bar sequence")
    inst = InstrumentData(
        code=bars[0].code,
        exchange=bars[0].exchange,
        bars=list(bars),
        indicators=dict(indicators),
    )
    return run_multi_backtest([inst], strategy, config)


def run_backtest_pipeline(
    source: HistoricalDataSource,
    strategy: Strategy,
    config: BacktestConfig,
    codes: list[str],
    exchange: str,
) -> BacktestResult:
    """Validate the universe, load bars, compute indicators and run the multi-code driver."""
    universe = validate_universe(source, codes, exchange, config.start_date, config.end_date)
    specs = strategy.indicator_specs()
    instruments = []
    for code in universe.codes:
        inst = build_instrument_data(universe.bars[code], specs, code=code, exchange=exchange)
        if inst is not None:
            instruments.append(inst)
    return run_multi_backtest(instruments, strategy, config)
