"""
Logging setup shared by the cluster driver modules.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str,
    log_file: Optional[Path] = None,
    verbose: bool = False
) -> logging.Logger:
    """
    Create or reconfigure a named logger.

    Args:
        name: Logger name (usually the module's __name__)
        log_file: Optional file to mirror log records into
        verbose: Log at DEBUG instead of INFO

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT)

    if not any(getattr(h, '_mysqlsh_console', False) for h in logger.handlers):
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        console._mysqlsh_console = True
        logger.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
