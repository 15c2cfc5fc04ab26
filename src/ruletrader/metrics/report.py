from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd

from ruletrader.exec.ledger import ClosedTrade, Portfolio

TRADING_DAYS = 252


@dataclass(frozen=True)
class BacktestMetrics:
    total_return: float = 0.0
    annualized_return: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_duration: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    average_trade_duration: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class CodeResult:
    code: str
    exchange: str = ""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_pnl: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    win_rate: float = 0.0


def trade_stats(trades: Sequence[ClosedTrade]) -> dict[str, float]:
    """Win/loss statistics. Trades with zero PnL count as losing."""
    if not trades:
        return {}
    pnl = np.array([t.pnl for t in trades], dtype=float)
    wins = pnl[pnl > 0.0]
    losses = pnl[pnl <= 0.0]
    sum_wins = float(wins.sum())
    sum_losses = float(losses.sum())
    if sum_losses < 0.0:
        profit_factor = sum_wins / -sum_losses
    else:
        profit_factor = math.inf if sum_wins > 0.0 else 0.0
    return {
        "total_trades": len(trades),
        "winning_trades": len(wins),
        "losing_trades": len(losses),
        "win_rate": len(wins) / len(trades),
        "profit_factor": profit_factor,
        "average_win": float(wins.mean()) if len(wins) else 0.0,
        "average_loss": float(losses.mean()) if len(losses) else 0.0,
        "largest_win": max(float(wins.max()), 0.0) if len(wins) else 0.0,
        "largest_loss": min(float(losses.min()), 0.0) if len(losses) else 0.0,
        "average_trade_duration": float(np.mean([t.duration_days for t in trades])),
    }


def drawdown_stats(equity: pd.Series) -> tuple[float, int]:
    """Largest peak-to-trough fraction and the longest stretch (in points) below a peak."""
    values = equity.to_numpy(dtype=float)
    if len(values) < 2:
        return 0.0, 0
    peak = values[0]
    max_dd = 0.0
    dd_start = 0
    longest = 0
    in_drawdown = False
    for i in range(1, len(values)):
        if values[i] >= peak:
            if in_drawdown:
                longest = max(longest, i - dd_start)
                in_drawdown = False
            peak = values[i]
            dd_start = i
        elif not in_drawdown:
            in_drawdown = True
            dd_start = i - 1
        if peak > 0.0:
            max_dd = max(max_dd, (peak - values[i]) / peak)
    if in_drawdown:
        longest = max(longest, len(values) - 1 - dd_start)
    return max_dd, longest


def perf_metrics(equity: pd.Series, risk_free_rate: float = 0.05) -> dict[str, float]:
    equity = equity.dropna()
    if len(equity) < 2:
        return {}
    first = float(equity.iloc[0])
    last = float(equity.iloc[-1])
    total_return = (last - first) / first if first > 0.0 else 0.0
    periods = len(equity) - 1
    ann_return = (
        (1.0 + total_return) ** (TRADING_DAYS / periods) - 1.0 if total_return > -1.0 else 0.0
    )

    prev = equity.shift(1).iloc[1:].to_numpy(dtype=float)
    curr = equity.iloc[1:].to_numpy(dtype=float)
    ret = np.where(prev > 0.0, (curr - prev) / np.where(prev > 0.0, prev, 1.0), 0.0)

    rf_daily = risk_free_rate / TRADING_DAYS
    excess_mean = float(ret.mean()) - rf_daily
    vol = float(ret.std())  # population (ddof=0)
    downside = np.minimum(ret - rf_daily, 0.0)
    downside_dev = float(np.sqrt((downside**2).mean()))
    sharpe = excess_mean / vol * np.sqrt(TRADING_DAYS) if vol > 0.0 else 0.0
    sortino = excess_mean / downside_dev * np.sqrt(TRADING_DAYS) if downside_dev > 0.0 else 0.0

    max_dd, dd_duration = drawdown_stats(equity)
    return {
        "total_return": float(total_return),
        "annualized_return": float(ann_return),
        "sharpe_ratio": float(sharpe),
        "sortino_ratio": float(sortino),
        "max_drawdown": float(max_dd),
        "max_drawdown_duration": float(dd_duration),
    }


def compute_metrics(portfolio: Portfolio, risk_free_rate: float = 0.05) -> BacktestMetrics:
    """Aggregate performance of a finished run; the portfolio is only read."""
    stats: dict[str, float] = {}
    stats.update(trade_stats(portfolio.trades))
    stats.update(perf_metrics(portfolio.to_equity_series(), risk_free_rate))
    return BacktestMetrics(**stats)


def compute_code_results(
    trades: Iterable[ClosedTrade], codes: Sequence[str] | None = None, exchange: str = ""
) -> list[CodeResult]:
    """Per-code trade aggregates.

    With ``codes`` given, results follow that order (codes without trades get
    an empty row) and trades for other codes are ignored.
    """
    rows: dict[str, dict] = {}
    if codes is not None:
        for code in codes:
            rows[code] = {"code": code, "exchange": exchange, "pnls": []}
    for t in trades:
        if t.code not in rows:
            if codes is not None:
                continue
            rows[t.code] = {"code": t.code, "exchange": t.exchange, "pnls": []}
        rows[t.code]["pnls"].append(t.pnl)

    results = []
    for row in rows.values():
        pnls = row["pnls"]
        wins = [p for p in pnls if p > 0.0]
        losses = [p for p in pnls if p <= 0.0]
        results.append(
            CodeResult(
                code=row["code"],
                exchange=row["exchange"],
                total_trades=len(pnls),
                winning_trades=len(wins),
                losing_trades=len(losses),
                total_pnl=float(sum(pnls)),
                largest_win=max(wins, default=0.0),
                largest_loss=min(losses, default=0.0),
                win_rate=len(wins) / len(pnls) if pnls else 0.0,
            )
        )
    return results


def code_results_frame(results: Sequence[CodeResult]) -> pd.DataFrame:
    return pd.DataFrame([asdict(r) for r in results])
