"""
Logging setup for the posereg pipeline

Modules log through ``logging.getLogger(__name__)``; applications call
``setup_logging`` once to attach handlers to the package logger.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure the ``posereg`` package logger

    Args:
        level: Logging level (name or number)
        log_file: Optional file path; parent directories are created

    Returns:
        The configured package logger

    Example:
        >>> from posereg.core.logging_config import setup_logging
        >>> logger = setup_logging("DEBUG")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("posereg")
    package_logger.setLevel(level)

    # Replace handlers so repeated calls don't duplicate output
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    package_logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    return package_logger
