#!/usr/bin/env python3
"""
ruletrader command-line entry point
"""

import argparse
import sys

from ruletrader.exceptions import RuleTraderError

from .cli_utils import get_version, print_error, setup_logging
from .commands import COMMANDS


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser"""
    parser = argparse.ArgumentParser(
        prog="ruletrader",
        description="Backtest rule-based trading strategies over daily bars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ruletrader validate --config strategy.yaml
  ruletrader backtest --config strategy.yaml --data-dir data/bars
  ruletrader backtest --config strategy.ini --code BHP,CBA --exchange ASX
  ruletrader info --code BHP --exchange ASX --data-dir data/bars
        """,
    )
    parser.add_argument("--version", action="version", version=f"ruletrader {get_version()}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase verbosity (-vv for debug)"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")

    subparsers = parser.add_subparsers(title="Commands", dest="command")
    for command in COMMANDS.values():
        command.add_parser(subparsers)
    return parser


def main(args: list[str] | None = None) -> int:
    """Main CLI entry point"""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.quiet:
        log_level = "ERROR"
    elif parsed_args.verbose >= 2:
        log_level = "DEBUG"
    elif parsed_args.verbose == 1:
        log_level = "INFO"
    else:
        log_level = "WARNING"
    setup_logging(log_level)

    if not parsed_args.command:
        parser.print_help()
        return 0

    try:
        return COMMANDS[parsed_args.command](parsed_args).execute()
    except KeyboardInterrupt:
        print_error("Operation cancelled by user")
        return 130
    except RuleTraderError as e:
        print_error(e.message)
        return e.exit_code
    except Exception as e:
        if parsed_args.verbose >= 2:
            import traceback

            traceback.print_exc()
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
