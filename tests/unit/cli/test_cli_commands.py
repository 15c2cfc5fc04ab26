"""End-to-end tests for the ruletrader command line."""

import pytest

from ruletrader.cli.cli import create_parser, main
from tests.fixtures.bars import make_frame

CONFIG = """\
backtest:
  start_date: 2024-01-01
  end_date: 2024-06-30
  exchange: ASX
  codes: BHP,CBA
  commission_per_trade: 5
strategy:
  name: SMA cross
  entry_long: CROSS_ABOVE(close, SMA(5))
  exit_long: CROSS_BELOW(close, SMA(5))
  position_size: 0.3
  max_positions: 2
"""


@pytest.fixture
def data_dir(tmp_path):
    bars = tmp_path / "bars"
    bars.mkdir()
    for seed, code in enumerate(("BHP", "CBA"), start=1):
        make_frame(120, seed=seed).reset_index().to_csv(bars / f"{code}.ASX.csv", index=False)
    return bars


def write_config(tmp_path, text=CONFIG, name="run.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def backtest(config, data_dir, *extra):
    return main(["backtest", "--config", config, "--data-dir", str(data_dir), *extra])


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "backtest" in capsys.readouterr().out


def test_parser_lists_commands():
    parser = create_parser()
    args = parser.parse_args(["info", "--code", "BHP"])
    assert args.command == "info"
    assert args.exchange == ""


class TestBacktestCommand:
    def test_runs_and_reports(self, tmp_path, data_dir, capsys):
        code = backtest(write_config(tmp_path), data_dir)
        out = capsys.readouterr().out
        assert code == 0
        assert "Performance" in out
        assert "Sharpe Ratio" in out
        assert "Backtest completed" in out

    def test_code_override(self, tmp_path, data_dir, capsys):
        assert backtest(write_config(tmp_path), data_dir, "--code", "cba") == 0
        assert "on CBA (ASX)" in capsys.readouterr().out

    def test_warns_about_ignored_short_rules(self, tmp_path, data_dir, capsys):
        text = CONFIG + "  entry_short: CROSS_BELOW(close, SMA(5))\n"
        assert backtest(write_config(tmp_path, text), data_dir) == 0
        out = capsys.readouterr().out
        assert "Warning" in out
        assert "Backtest completed" in out

    def test_data_dir_from_config(self, tmp_path, data_dir):
        text = CONFIG + f"data:\n  directory: {data_dir}\n"
        assert main(["backtest", "--config", write_config(tmp_path, text)]) == 0

    def test_missing_config_file(self, tmp_path):
        assert main(["backtest", "--config", str(tmp_path / "nope.yaml")]) == 2

    def test_invalid_config_value(self, tmp_path, data_dir):
        text = CONFIG.replace("2024-06-30", "2023-06-30")
        assert backtest(write_config(tmp_path, text), data_dir) == 2

    def test_bad_rule(self, tmp_path, data_dir):
        text = CONFIG.replace("CROSS_BELOW(close, SMA(5))", "CROSS_BELOW(close SMA(5))")
        assert backtest(write_config(tmp_path, text), data_dir) == 4

    def test_no_usable_codes(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert backtest(write_config(tmp_path), empty) == 5


class TestValidateCommand:
    def test_valid_config(self, tmp_path, capsys):
        assert main(["validate", "--config", write_config(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert "SMA_5" in out
        assert "Configuration is valid" in out

    def test_ini_config(self, tmp_path):
        ini = (
            "[backtest]\nstart_date = 2024-01-01\nend_date = 2024-03-01\n"
            "exchange = ASX\ncodes = BHP\n"
            "[strategy]\nentry_long = ABOVE(RSI(14), 50)\nexit_long = BELOW(RSI(14), 50)\n"
        )
        assert main(["validate", "--config", write_config(tmp_path, ini, "run.ini")]) == 0

    def test_rule_error_shows_position(self, tmp_path, capsys):
        text = CONFIG.replace("SMA(5))\n  exit", "SMA(5)\n  exit", 1)
        assert main(["validate", "--config", write_config(tmp_path, text)]) == 4
        assert "entry_long" in capsys.readouterr().out

    def test_warns_when_short_rules_cannot_run(self, tmp_path, capsys):
        text = CONFIG + "  entry_short: CROSS_BELOW(close, SMA(5))\n"
        assert main(["validate", "--config", write_config(tmp_path, text)]) == 0
        out = capsys.readouterr().out
        assert "Warning" in out
        assert "allow_shorting" in out
        assert "Configuration is valid" in out

    def test_no_warning_when_shorting_allowed(self, tmp_path, capsys):
        text = CONFIG.replace("exchange: ASX\n", "exchange: ASX\n  allow_shorting: true\n")
        text += "  entry_short: CROSS_BELOW(close, SMA(5))\n"
        assert main(["validate", "--config", write_config(tmp_path, text)]) == 0
        assert "Warning" not in capsys.readouterr().out

    def test_missing_strategy_key(self, tmp_path):
        text = CONFIG.replace("  exit_long: CROSS_BELOW(close, SMA(5))\n", "")
        assert main(["validate", "--config", write_config(tmp_path, text)]) == 2


class TestInfoCommand:
    def test_shows_range(self, data_dir, capsys):
        args = ["info", "--code", "bhp", "--exchange", "asx", "--data-dir", str(data_dir)]
        assert main(args) == 0
        out = capsys.readouterr().out
        assert "BHP" in out
        assert "120" in out

    def test_unknown_code(self, data_dir):
        assert main(["info", "--code", "RIO", "--data-dir", str(data_dir)]) == 5

    def test_data_dir_from_environment(self, data_dir, monkeypatch):
        monkeypatch.setenv("RULETRADER_DATA_DIR", str(data_dir))
        assert main(["info", "--code", "CBA", "--exchange", "ASX"]) == 0
