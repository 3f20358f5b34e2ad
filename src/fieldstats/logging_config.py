"""
Logging Configuration
Sets up the package logger for the CLI and notebooks.

Model-fitting warnings raised through the `warnings` module (statsmodels
convergence and perfect-separation warnings, scipy small-sample warnings)
are routed into the same handlers so they land in the run log next to
the analysis steps that produced them.
"""
import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "fieldstats"
WARNINGS_LOGGER = "py.warnings"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level '{level}'")
    return resolved


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    capture_warnings: bool = True,
) -> logging.Logger:
    """
    Configure the 'fieldstats' logger.

    Args:
        level: Logging level, as a number or a name such as "DEBUG".
        log_file: Optional path to save logs to a file.
        capture_warnings: Also send Python warnings (e.g. statsmodels
            ConvergenceWarning) to the package handlers.

    Returns:
        The configured package logger.
    """
    level = _resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    names = [PACKAGE_LOGGER] + ([WARNINGS_LOGGER] if capture_warnings else [])
    for name in names:
        target = logging.getLogger(name)
        target.setLevel(level)
        # Re-running setup replaces the previous handlers
        for old in list(target.handlers):
            target.removeHandler(old)
            old.close()
        for handler in handlers:
            target.addHandler(handler)
        target.propagate = name != WARNINGS_LOGGER
    logging.captureWarnings(capture_warnings)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.debug("Logging initialized at %s.", logging.getLevelName(level))
    return logger
