"""
Provides support for logging

Pure formula functions never log. Stateful components, i.e., the loan risk engine and the allocation strategies,
retrieve a logger via :func:`get_logger`.
"""

import logging
import time
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def parse_log_level(level: int | str) -> int:
    """
    :param level: numeric level or level name, e.g., "DEBUG" or "info"
    :exception ValueError: if the level name is unknown
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level}")
    return resolved


def configure_logging(
    level: int | str = logging.WARNING,
    handlers: list[logging.Handler] | None = None,
):
    """
    Configures the root logger format and log level.

    - log format: %(asctime)s [%(levelname)s] [%(name)s] %(message)s
    - timestamps are UTC
    - warnings are captured and logged via the `py.warnings` logger

    >>> configure_logging(level="DEBUG")
    >>> logger = logging.getLogger('folksfinance.lend.loan.LoanRiskEngine')
    >>> logger.warning('loan is liquidatable') # doctest: +SKIP
    2024-03-09 14:48:20,594 [WARNING] [folksfinance.lend.loan.LoanRiskEngine] loan is liquidatable

    """
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        format=LOG_FORMAT,
        level=parse_log_level(level),
        handlers=handlers,
        force=True,
    )
    logging.captureWarnings(True)


def get_logger(obj: Any, name: str | None = None) -> logging.Logger:
    """
    Returns a logger named after the object's class, qualified by the class's module, e.g.,
    `folksfinance.xalgo.allocation.GreedyStakeAllocationStrategy`. Loggers thus inherit the `folksfinance` logger's
    level.

    If `name` is specified, then it is appended as a child logger name.
    """
    cls = obj.__class__
    logger = logging.getLogger(f"{cls.__module__}.{cls.__qualname__}")
    if name is None:
        return logger

    return logger.getChild(name)
