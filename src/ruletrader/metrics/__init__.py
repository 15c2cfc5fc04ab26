from ruletrader.metrics.report import (
    BacktestMetrics,
    CodeResult,
    code_results_frame,
    compute_code_results,
    compute_metrics,
    drawdown_stats,
    perf_metrics,
    trade_stats,
)

__all__ = [
    "BacktestMetrics",
    "CodeResult",
    "code_results_frame",
    "compute_code_results",
    "compute_metrics",
    "drawdown_stats",
    "perf_metrics",
    "trade_stats",
]
