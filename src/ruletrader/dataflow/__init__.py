from ruletrader.dataflow.bars import PriceBar, bars_from_dataframe, bars_to_dataframe, validate_ohlc
from ruletrader.dataflow.base import HistoricalDataSource

__all__ = [
    "HistoricalDataSource",
    "PriceBar",
    "bars_from_dataframe",
    "bars_to_dataframe",
    "validate_ohlc",
]
