"""Tests for entry, exit and trigger execution math."""

from datetime import date

import pytest

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
from ruletrader.exec.ledger import Portfolio

D1 = date(2024, 1, 2)
D2 = date(2024, 1, 3)


class TestCostMath:
    def test_commission_flat_plus_pct(self):
        costs = ExecutionCosts(commission_flat=10.0, commission_pct=0.1)
        assert calc_commission(50_000.0, costs) == pytest.approx(60.0)

    def test_slippage_direction(self):
        assert apply_slippage(100.0, 1.0, is_buy=True) == pytest.approx(101.0)
        assert apply_slippage(100.0, 1.0, is_buy=False) == pytest.approx(99.0)

    def test_quantity_floors(self):
        assert calc_quantity(1_000.0, 0.5, 33.0) == 15
        assert calc_quantity(1_000.0, 0.5, 0.0) == 0


class TestEnterLong:
    def test_reference_entry(self, portfolio, zero_costs):
        assert enter_long(portfolio, "AAA", 100.0, D1, 0.5, 0.0, 0.0, 5, zero_costs)

        pos = portfolio.get_position("AAA")
        assert pos.quantity == 500
        assert pos.entry_price == 100.0
        assert portfolio.cash == pytest.approx(50_000.0)

    def test_costs_and_levels(self, portfolio):
        costs = ExecutionCosts(commission_flat=5.0, commission_pct=0.1, slippage_pct=1.0)
        assert enter_long(portfolio, "AAA", 100.0, D1, 0.5, 10.0, 20.0, 5, costs, exchange="ASX")

        pos = portfolio.get_position("AAA")
        assert pos.entry_price == pytest.approx(101.0)
        assert pos.quantity == 495
        value = 495 * 101.0
        assert portfolio.cash == pytest.approx(100_000 - value - (5.0 + value * 0.001))
        assert pos.stop_loss == pytest.approx(90.9)
        assert pos.take_profit == pytest.approx(121.2)
        assert pos.exchange == "ASX"

    def test_zero_pct_disables_levels(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 0.0, 0.0, 5, zero_costs)
        pos = portfolio.get_position("AAA")
        assert pos.stop_loss == 0.0
        assert pos.take_profit == 0.0

    def test_rejects_duplicate_code(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.1, 0, 0, 5, zero_costs)
        cash = portfolio.cash
        assert not enter_long(portfolio, "AAA", 100.0, D1, 0.1, 0, 0, 5, zero_costs)
        assert portfolio.cash == cash

    def test_rejects_when_full(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.1, 0, 0, 1, zero_costs)
        assert not enter_long(portfolio, "BBB", 100.0, D1, 0.1, 0, 0, 1, zero_costs)
        assert portfolio.position_count == 1

    def test_rejects_zero_quantity(self, zero_costs):
        portfolio = Portfolio(50.0)
        assert not enter_long(portfolio, "AAA", 100.0, D1, 1.0, 0, 0, 1, zero_costs)
        assert portfolio.cash == 50.0
        assert portfolio.position_count == 0

    def test_rejects_when_commission_exceeds_cash(self):
        portfolio = Portfolio(1_000.0)
        costs = ExecutionCosts(commission_flat=50.0)
        assert not enter_long(portfolio, "AAA", 100.0, D1, 1.0, 0, 0, 1, costs)
        assert portfolio.cash == 1_000.0


class TestEnterShort:
    def test_short_credits_cash(self, portfolio, zero_costs):
        assert enter_short(portfolio, "AAA", 100.0, D1, 0.5, 10.0, 20.0, 5, zero_costs)

        pos = portfolio.get_position("AAA")
        assert pos.quantity == -500
        assert pos.is_short
        assert portfolio.cash == pytest.approx(150_000.0)
        assert pos.stop_loss == pytest.approx(110.0)
        assert pos.take_profit == pytest.approx(80.0)

    def test_short_slips_down(self, portfolio):
        enter_short(portfolio, "AAA", 100.0, D1, 0.5, 0, 0, 5, ExecutionCosts(slippage_pct=1.0))
        assert portfolio.get_position("AAA").entry_price == pytest.approx(99.0)


class TestExit:
    def test_reference_long_exit(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 0, 0, 5, zero_costs)
        assert exit_position(portfolio, "AAA", 120.0, D2, zero_costs)

        trade = portfolio.trades[0]
        assert trade.pnl == pytest.approx(10_000.0)
        assert portfolio.cash == pytest.approx(110_000.0)
        assert not portfolio.has_position("AAA")
        assert trade.exit_date == D2

    def test_short_exit_pnl(self, portfolio, zero_costs):
        enter_short(portfolio, "AAA", 100.0, D1, 0.5, 0, 0, 5, zero_costs)
        exit_position(portfolio, "AAA", 90.0, D2, zero_costs)

        assert portfolio.trades[0].pnl == pytest.approx(5_000.0)
        assert portfolio.cash == pytest.approx(150_000.0 - 45_000.0)

    def test_exit_commissions_include_entry_leg(self, portfolio):
        costs = ExecutionCosts(commission_flat=10.0)
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 0, 0, 5, costs)
        exit_position(portfolio, "AAA", 100.0, D2, costs)
        assert portfolio.trades[0].pnl == pytest.approx(-20.0)

    def test_exit_slippage_follows_position_side(self, portfolio):
        costs = ExecutionCosts(slippage_pct=1.0)
        enter_short(portfolio, "AAA", 100.0, D1, 0.5, 0, 0, 5, costs)
        exit_position(portfolio, "AAA", 100.0, D2, costs)
        assert portfolio.trades[0].exit_price == pytest.approx(101.0)

    def test_exit_without_position(self, portfolio, zero_costs):
        assert not exit_position(portfolio, "AAA", 100.0, D2, zero_costs)
        assert portfolio.trades == []


class TestTriggers:
    def test_stop_loss_reference(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 10.0, 0.0, 5, zero_costs)
        assert portfolio.get_position("AAA").stop_loss == pytest.approx(90.0)

        assert check_triggers(portfolio, {"AAA": 88.0}, D2, zero_costs) == 1
        trade = portfolio.trades[0]
        assert trade.exit_price == pytest.approx(88.0)
        assert trade.pnl == pytest.approx(-6_000.0)

    def test_take_profit(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 0.0, 10.0, 5, zero_costs)
        assert check_triggers(portfolio, {"AAA": 109.0}, D2, zero_costs) == 0
        assert check_triggers(portfolio, {"AAA": 110.5}, D2, zero_costs) == 1

    def test_short_triggers_are_mirrored(self, portfolio, zero_costs):
        enter_short(portfolio, "AAA", 100.0, D1, 0.2, 5.0, 0.0, 5, zero_costs)
        enter_short(portfolio, "BBB", 100.0, D1, 0.2, 0.0, 5.0, 5, zero_costs)
        exits = check_triggers(portfolio, {"AAA": 106.0, "BBB": 94.0}, D2, zero_costs)
        assert exits == 2
        assert portfolio.position_count == 0

    def test_missing_price_is_skipped(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 10.0, 0.0, 5, zero_costs)
        assert check_triggers(portfolio, {}, D2, zero_costs) == 0
        assert portfolio.has_position("AAA")

    def test_disabled_levels_never_fire(self, portfolio, zero_costs):
        enter_long(portfolio, "AAA", 100.0, D1, 0.5, 0.0, 0.0, 5, zero_costs)
        assert check_triggers(portfolio, {"AAA": 0.01}, D2, zero_costs) == 0


def test_total_equity_counts_priced_positions_only(portfolio, zero_costs):
    enter_long(portfolio, "AAA", 100.0, D1, 0.25, 0, 0, 5, zero_costs)
    enter_long(portfolio, "BBB", 50.0, D1, 0.25, 0, 0, 5, zero_costs)
    cash = portfolio.cash

    assert total_equity(portfolio, {"AAA": 110.0, "BBB": 40.0}) == pytest.approx(
        cash + 250 * 110.0 + 375 * 40.0
    )
    assert total_equity(portfolio, {"AAA": 110.0}) == pytest.approx(cash + 250 * 110.0)
