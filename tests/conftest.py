"""
Shared pytest fixtures.
"""

import pytest

from ruletrader.config import app as app_config
from ruletrader.exec.execution import ExecutionCosts
from ruletrader.exec.ledger import Portfolio
from tests.fixtures.bars import make_bars, make_frame


@pytest.fixture(autouse=True)
def reset_app_config():
    """Each test starts without a cached global AppConfig."""
    app_config.set_config(None)
    yield
    app_config.set_config(None)


@pytest.fixture
def portfolio() -> Portfolio:
    return Portfolio(100_000.0)


@pytest.fixture
def zero_costs() -> ExecutionCosts:
    return ExecutionCosts()


@pytest.fixture
def rising_bars():
    return make_bars([float(i) for i in range(1, 61)])


@pytest.fixture
def ohlcv_frame():
    return make_frame()
