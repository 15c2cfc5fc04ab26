"""
ruletrader CLI commands
"""

import argparse
from pathlib import Path

from ruletrader.backtest.engine import BacktestResult, run_backtest_pipeline
from ruletrader.config import (
    BacktestSettings,
    FileConfigSource,
    build_strategy,
    get_config,
    load_backtest_settings,
    load_strategy_settings,
)
from ruletrader.dataflow.sources.csv_source import CsvDataSource
from ruletrader.exceptions import NoDataError, RuleParseError
from ruletrader.metrics.report import BacktestMetrics, compute_code_results, compute_metrics
from ruletrader.strategy import Strategy

from .base import BaseCommand
from .cli_utils import (
    console,
    format_currency,
    format_percentage,
    format_ratio,
    print_error,
    print_info,
    print_success,
    print_table,
    print_warning,
)


def _data_dir(args: argparse.Namespace, source: FileConfigSource | None = None) -> Path:
    if args.data_dir is not None:
        return Path(args.data_dir)
    if source is not None and (configured := source.get_string("data", "directory")):
        return Path(configured)
    return get_config().data.data_dir


def _warn_unused_short_rules(strategy: Strategy, settings: BacktestSettings) -> None:
    if strategy.supports_short and not settings.allow_shorting:
        print_warning(
            f"{strategy.name} has short rules but allow_shorting is off; they are ignored"
        )


class BacktestCommand(BaseCommand):
    """Run a strategy over a universe of codes"""

    name = "backtest"
    help = "Run a historical backtest from a config file"

    @classmethod
    def add_parser(cls, subparsers: argparse._SubParsersAction) -> None:
        parser = subparsers.add_parser(
            cls.name,
            help=cls.help,
            description="Run the strategy in the config file over daily CSV bars",
        )
        parser.add_argument("--config", type=Path, required=True, help="YAML or INI config file")
        parser.add_argument("--code", help="Comma-separated codes (overrides [backtest] codes)")
        parser.add_argument("--exchange", help="Exchange (overrides [backtest] exchange)")
        parser.add_argument("--data-dir", type=Path, help="Directory of <CODE>.csv files")

    def execute(self) -> int:
        source = FileConfigSource(self.args.config)
        settings = load_backtest_settings(source, codes=self.args.code, exchange=self.args.exchange)
        strategy = build_strategy(load_strategy_settings(source))
        data_source = CsvDataSource(_data_dir(self.args, source))

        print_info(
            f"Backtesting {strategy.name} on {', '.join(settings.codes)} "
            f"({settings.exchange}) {settings.start_date} to {settings.end_date}"
        )
        _warn_unused_short_rules(strategy, settings)
        result = run_backtest_pipeline(
            data_source,
            strategy,
            settings.to_backtest_config(),
            settings.codes,
            settings.exchange,
        )
        metrics = compute_metrics(result.portfolio, settings.risk_free_rate)
        self._display_results(result, metrics)
        print_success("Backtest completed")
        return 0

    def _display_results(self, result: BacktestResult, metrics: BacktestMetrics) -> None:
        portfolio = result.portfolio
        rows = [
            ["Initial Capital", format_currency(portfolio.initial_capital)],
            ["Final Equity", format_currency(result.final_equity)],
            ["Total Return", format_percentage(metrics.total_return)],
            ["Annualized Return", format_percentage(metrics.annualized_return)],
            ["Sharpe Ratio", format_ratio(metrics.sharpe_ratio)],
            ["Sortino Ratio", format_ratio(metrics.sortino_ratio)],
            ["Max Drawdown", format_percentage(metrics.max_drawdown)],
            ["Max DD Duration", f"{metrics.max_drawdown_duration:.0f} days"],
            ["Total Trades", str(metrics.total_trades)],
            ["Win Rate", format_percentage(metrics.win_rate)],
            ["Profit Factor", format_ratio(metrics.profit_factor)],
            ["Average Win", format_currency(metrics.average_win)],
            ["Average Loss", format_currency(metrics.average_loss)],
            ["Avg Trade Duration", f"{metrics.average_trade_duration:.2f} days"],
        ]
        print_table(["Metric", "Value"], rows, title="Performance")

        codes = list(dict.fromkeys(t.code for t in portfolio.trades))
        if not codes:
            return
        per_code = compute_code_results(portfolio.trades, codes)
        print_table(
            ["Code", "Trades", "Win Rate", "Total PnL", "Largest Win", "Largest Loss"],
            [
                [
                    r.code,
                    r.total_trades,
                    format_percentage(r.win_rate),
                    format_currency(r.total_pnl),
                    format_currency(r.largest_win),
                    format_currency(r.largest_loss),
                ]
                for r in per_code
            ],
            title="Per-code results",
        )


class ValidateCommand(BaseCommand):
    """Check a config file without running it"""

    name = "validate"
    help = "Validate config settings and strategy rules"

    @classmethod
    def add_parser(cls, subparsers: argparse._SubParsersAction) -> None:
        parser = subparsers.add_parser(cls.name, help=cls.help)
        parser.add_argument("--config", type=Path, required=True, help="YAML or INI config file")

    def execute(self) -> int:
        source = FileConfigSource(self.args.config)
        settings = load_backtest_settings(source)
        strategy_settings = load_strategy_settings(source)
        try:
            strategy = build_strategy(strategy_settings)
        except RuleParseError as e:
            rule_name = e.details.get("rule", "rule")
            print_error(f"{rule_name}: {e.display_with_context(e.details.get('text', ''))}")
            return e.exit_code

        rows = [
            [name, str(rule)]
            for name, rule in zip(
                ("entry_long", "exit_long", "entry_short", "exit_short"), strategy.rules()
            )
            if rule is not None
        ]
        print_table(["Rule", "Parsed"], rows, title=strategy.name)
        console.print(
            "Indicators: " + (", ".join(s.key for s in strategy.indicator_specs()) or "(none)")
        )
        console.print(
            f"Universe: {', '.join(settings.codes)} on {settings.exchange}, "
            f"{settings.start_date} to {settings.end_date}"
        )
        _warn_unused_short_rules(strategy, settings)
        print_success("Configuration is valid")
        return 0


class InfoCommand(BaseCommand):
    """Summarise the bars available for one code"""

    name = "info"
    help = "Show bar count and date range for a code"

    @classmethod
    def add_parser(cls, subparsers: argparse._SubParsersAction) -> None:
        parser = subparsers.add_parser(cls.name, help=cls.help)
        parser.add_argument("--code", required=True, help="Instrument code")
        parser.add_argument("--exchange", default="", help="Exchange suffix of the data file")
        parser.add_argument("--data-dir", type=Path, help="Directory of <CODE>.csv files")

    def execute(self) -> int:
        code = self.args.code.strip().upper()
        exchange = (self.args.exchange or "").strip().upper()
        bars = CsvDataSource(_data_dir(self.args)).fetch_bars(code, exchange)
        if not bars:
            raise NoDataError(f"No bars found for {code}", {"code": code, "exchange": exchange})

        print_table(
            ["Code", "Exchange", "Bars", "First", "Last"],
            [[code, exchange or "-", len(bars), bars[0].date, bars[-1].date]],
        )
        return 0


COMMANDS: dict[str, type[BaseCommand]] = {
    cmd.name: cmd for cmd in (BacktestCommand, ValidateCommand, InfoCommand)
}
