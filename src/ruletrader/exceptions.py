"""
Centralized exception definitions for ruletrader.

Every error the package raises derives from RuleTraderError so callers (the CLI
in particular) can map a failure to an exit code without inspecting messages.
"""

from typing import Any


class RuleTraderError(Exception):
    """Base exception for all ruletrader errors."""

    exit_code = 1

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RuleTraderError):
    """Raised when there's a configuration issue."""

    exit_code = 2


class ConfigMissingError(ConfigurationError):
    """Raised when a required configuration key is absent."""

    def __init__(self, section: str, key: str) -> None:
        super().__init__(
            f"Missing required config: [{section}] {key}",
            {"section": section, "key": key},
        )
        self.section = section
        self.key = key


class ConfigInvalidError(ConfigurationError):
    """Raised when a configuration value fails validation."""

    def __init__(self, section: str, key: str, reason: str) -> None:
        super().__init__(
            f"Invalid config [{section}] {key}: {reason}",
            {"section": section, "key": key, "reason": reason},
        )
        self.section = section
        self.key = key
        self.reason = reason


class DataError(RuleTraderError):
    """Raised when there's an issue with data sources or data quality."""

    exit_code = 5


class NoDataError(DataError):
    """Raised when a data source returns nothing for a code."""

    pass


class InsufficientDataError(DataError):
    """Raised when there's insufficient data for analysis."""

    pass


class RuleError(RuleTraderError):
    """Raised for problems with rule text or rule trees."""

    exit_code = 4


class RuleParseError(RuleError):
    """Raised when rule text cannot be parsed.

    ``position`` is the zero-based character offset where parsing failed.
    """

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at position {position}", {"position": position})
        self.reason = message
        self.position = position

    def display_with_context(self, text: str) -> str:
        """Render the offending input with a caret under the failure point."""
        caret = " " * min(self.position, len(text)) + "^"
        return f"{self.message}\n  {text}\n  {caret}"


class RuleInvalidError(RuleError):
    """Raised when a parsed rule cannot be used (e.g. a missing required rule)."""

    pass


class UniverseError(RuleTraderError):
    """Raised when a code universe cannot be built."""

    exit_code = 5


class EmptyCodeTokenError(UniverseError):
    """Raised when a code list contains an empty entry."""

    def __init__(self, position: int) -> None:
        super().__init__(f"Empty code at position {position}", {"position": position})
        self.position = position


class DuplicateCodeError(UniverseError):
    """Raised when a code list names the same code twice."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Duplicate code: {code}", {"code": code})
        self.code = code


class AllCodesFailedError(UniverseError):
    """Raised when no code in a universe survives validation."""

    pass


class BacktestError(RuleTraderError):
    """Raised when a backtest run cannot continue."""

    pass


class EquityInvariantError(BacktestError):
    """Raised when portfolio equity disagrees with its independent recomputation."""

    def __init__(self, date: Any, reported: float, recomputed: float) -> None:
        super().__init__(
            f"Equity invariant violated on {date}: reported={reported:.6f} "
            f"recomputed={recomputed:.6f}",
            {"date": str(date), "reported": reported, "recomputed": recomputed},
        )
        self.date = date
        self.reported = reported
        self.recomputed = recomputed
