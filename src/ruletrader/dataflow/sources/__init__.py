from ruletrader.dataflow.sources.csv_source import CsvDataSource
from ruletrader.dataflow.sources.memory_source import InMemoryDataSource

__all__ = ["CsvDataSource", "InMemoryDataSource"]
