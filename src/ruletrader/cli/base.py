"""
Base command class for CLI commands
"""

import argparse
from abc import ABC, abstractmethod

from ruletrader.logging import get_logger


class BaseCommand(ABC):
    """Base class for all CLI commands"""

    name: str = ""
    help: str = ""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.logger = get_logger(f"cli.{self.name}")

    @classmethod
    @abstractmethod
    def add_parser(cls, subparsers: argparse._SubParsersAction) -> None:
        """Add command parser to subparsers"""

    @abstractmethod
    def execute(self) -> int:
        """Execute the command

        Returns:
            Exit code (0 for success). Failures are raised as RuleTraderError
            subclasses and mapped to exit codes by the entry point.
        """
