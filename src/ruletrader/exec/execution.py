"""
Order execution against a Portfolio.

All functions return False (leaving the portfolio untouched) when an order is
rejected; rejections are logged at DEBUG and never raised.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from ruletrader.exec.ledger import ClosedTrade, Portfolio, Position
from ruletrader.logging import get_logger

logger = get_logger("execution")


@dataclass(frozen=True)
class ExecutionCosts:
    commission_flat: float = 0.0
    commission_pct: float = 0.0
    slippage_pct: float = 0.0


ZERO_COSTS = ExecutionCosts()


def calc_commission(trade_value: float, costs: ExecutionCosts) -> float:
    return costs.commission_flat + trade_value * costs.commission_pct / 100.0


def apply_slippage(price: float, slippage_pct: float, is_buy: bool) -> float:
    """Buys fill above the market price, sells below."""
    factor = slippage_pct / 100.0
    return price * (1.0 + factor) if is_buy else price * (1.0 - factor)


def calc_quantity(cash: float, size_fraction: float, exec_price: float) -> int:
    if exec_price <= 0.0:
        return 0
    return int(math.floor(cash * size_fraction / exec_price))


def _can_open(portfolio: Portfolio, code: str, max_positions: int) -> bool:
    if portfolio.has_position(code):
        logger.debug(f"{code}: entry rejected, position already open")
        return False
    if portfolio.position_count >= max_positions:
        logger.debug(
            f"{code}: entry rejected, {portfolio.position_count} positions open "
            f"(max {max_positions})"
        )
        return False
    return True


def _levels(
    exec_price: float, stop_loss_pct: float, take_profit_pct: float, long: bool
) -> tuple[float, float]:
    sign = 1.0 if long else -1.0
    stop = exec_price * (1.0 - sign * stop_loss_pct / 100.0) if stop_loss_pct > 0 else 0.0
    target = exec_price * (1.0 + sign * take_profit_pct / 100.0) if take_profit_pct > 0 else 0.0
    return stop, target


def _enter(
    portfolio: Portfolio,
    code: str,
    market_price: float,
    when: date,
    size_fraction: float,
    stop_loss_pct: float,
    take_profit_pct: float,
    max_positions: int,
    costs: ExecutionCosts,
    exchange: str,
    long: bool,
) -> bool:
    if not _can_open(portfolio, code, max_positions):
        return False

    exec_price = apply_slippage(market_price, costs.slippage_pct, is_buy=long)
    qty = calc_quantity(portfolio.cash, size_fraction, exec_price)
    if qty <= 0:
        logger.debug(f"{code}: entry rejected, quantity {qty} at {exec_price:.4f}")
        return False

    value = qty * exec_price
    commission = calc_commission(value, costs)
    if long and value + commission > portfolio.cash:
        logger.debug(
            f"{code}: long entry rejected, needs {value + commission:.2f} "
            f"has {portfolio.cash:.2f}"
        )
        return False
    if not long and commission > portfolio.cash:
        logger.debug(f"{code}: short entry rejected, commission {commission:.2f} exceeds cash")
        return False

    if long:
        portfolio.cash -= value + commission
    else:
        portfolio.cash += value - commission

    stop, target = _levels(exec_price, stop_loss_pct, take_profit_pct, long)
    portfolio.add_position(
        Position(
            code=code,
            exchange=exchange,
            quantity=qty if long else -qty,
            entry_price=exec_price,
            entry_date=when,
            stop_loss=stop,
            take_profit=target,
        )
    )
    logger.debug(f"{code}: {'long' if long else 'short'} {qty} @ {exec_price:.4f} on {when}")
    return True


def enter_long(
    portfolio: Portfolio,
    code: str,
    market_price: float,
    when: date,
    size_fraction: float,
    stop_loss_pct: float = 0.0,
    take_profit_pct: float = 0.0,
    max_positions: int = 1,
    costs: ExecutionCosts = ZERO_COSTS,
    exchange: str = "",
) -> bool:
    return _enter(
        portfolio,
        code,
        market_price,
        when,
        size_fraction,
        stop_loss_pct,
        take_profit_pct,
        max_positions,
        costs,
        exchange,
        long=True,
    )


def enter_short(
    portfolio: Portfolio,
    code: str,
    market_price: float,
    when: date,
    size_fraction: float,
    stop_loss_pct: float = 0.0,
    take_profit_pct: float = 0.0,
    max_positions: int = 1,
    costs: ExecutionCosts = ZERO_COSTS,
    exchange: str = "",
) -> bool:
    return _enter(
        portfolio,
        code,
        market_price,
        when,
        size_fraction,
        stop_loss_pct,
        take_profit_pct,
        max_positions,
        costs,
        exchange,
        long=False,
    )


def exit_position(
    portfolio: Portfolio,
    code: str,
    market_price: float,
    when: date,
    costs: ExecutionCosts = ZERO_COSTS,
) -> bool:
    """Close the position in ``code`` at ``market_price`` and book the round trip."""
    pos = portfolio.get_position(code)
    if pos is None:
        logger.debug(f"{code}: exit rejected, no open position")
        return False

    # Closing a long sells, closing a short buys
    exec_price = apply_slippage(market_price, costs.slippage_pct, is_buy=pos.is_short)
    size = abs(pos.quantity)
    value = size * exec_price
    exit_commission = calc_commission(value, costs)
    entry_commission = calc_commission(size * pos.entry_price, costs)
    pnl = pos.quantity * (exec_price - pos.entry_price) - entry_commission - exit_commission

    if pos.is_long:
        portfolio.cash += value - exit_commission
    else:
        portfolio.cash -= value + exit_commission

    portfolio.record_trade(
        ClosedTrade(
            code=code,
            exchange=pos.exchange,
            quantity=pos.quantity,
            entry_price=pos.entry_price,
            exit_price=exec_price,
            entry_date=pos.entry_date,
            exit_date=when,
            pnl=pnl,
        )
    )
    portfolio.remove_position(code)
    logger.debug(f"{code}: closed {pos.quantity} @ {exec_price:.4f} on {when}, pnl {pnl:.2f}")
    return True


def check_triggers(
    portfolio: Portfolio,
    prices: Mapping[str, float],
    when: date,
    costs: ExecutionCosts = ZERO_COSTS,
) -> int:
    """Exit every position whose stop-loss or take-profit is hit; returns the exit count."""
    triggered: list[tuple[str, float]] = []
    for code, pos in list(portfolio.positions.items()):
        price = prices.get(code)
        if price is None:
            continue
        if pos.should_stop_loss(price) or pos.should_take_profit(price):
            triggered.append((code, price))

    exits = 0
    for code, price in triggered:
        if exit_position(portfolio, code, price, when, costs):
            exits += 1
    return exits


def total_equity(portfolio: Portfolio, prices: Mapping[str, float]) -> float:
    return portfolio.total_equity(prices)
