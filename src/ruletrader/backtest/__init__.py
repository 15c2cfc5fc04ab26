from ruletrader.backtest.data import InstrumentData, build_instrument_data, build_unified_timeline
from ruletrader.backtest.engine import (
    BacktestConfig,
    BacktestResult,
    run_backtest,
    run_backtest_pipeline,
    run_multi_backtest,
)
from ruletrader.backtest.universe import SkippedCode, Universe, parse_codes, validate_universe

__all__ = [
    "BacktestConfig",
    "BacktestResult",
    "InstrumentData",
    "SkippedCode",
    "Universe",
    "build_instrument_data",
    "build_unified_timeline",
    "parse_codes",
    "run_backtest",
    "run_backtest_pipeline",
    "run_multi_backtest",
    "validate_universe",
]
