from ruletrader.exec.execution import (
    ExecutionCosts,
    apply_slippage,
    calc_commission,
    calc_quantity,
    check_triggers,
    enter_long,
    enter_short,
    exit_position,
    total_equity,
)
from ruletrader.exec.ledger import ClosedTrade, EquityPoint, Portfolio, Position

__all__ = [
    "ClosedTrade",
    "EquityPoint",
    "ExecutionCosts",
    "Portfolio",
    "Position",
    "apply_slippage",
    "calc_commission",
    "calc_quantity",
    "check_triggers",
    "enter_long",
    "enter_short",
    "exit_position",
    "total_equity",
]
