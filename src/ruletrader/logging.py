from __future__ import annotations

import logging
import os
import sys

_FMT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def _resolve_level() -> int:
    # Config wins over the environment, but only once something has imported it
    config = sys.modules.get("ruletrader.config")
    try:
        level_name = config.get_config().logging.level.value
    except Exception:
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, str(level_name).upper(), logging.INFO)


def _ensure_root_config() -> None:
    """
    Configure a single stdout handler on the root logger exactly once.

    Existing handlers (pytest, the CLI's RichHandler) are left alone unless
    LOG_FORCE=1 is set, in which case they are replaced.
    """
    root = logging.getLogger()
    force = os.getenv("LOG_FORCE", "0") == "1"

    if root.handlers and not force:
        return

    if force:
        for h in list(root.handlers):
            root.removeHandler(h)

    # Install the handler before resolving the level: loading config logs too
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(_FMT))
    root.addHandler(handler)
    root.setLevel(_resolve_level())


def get_logger(name: str) -> logging.Logger:
    _ensure_root_config()
    logger = logging.getLogger(name)
    # Child loggers propagate to the single root handler
    logger.propagate = True
    return logger
