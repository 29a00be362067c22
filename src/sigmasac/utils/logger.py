"""Logging utilities."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

# SIGMASAC_DEBUG=1 turns on per-iteration messages from the consensus loop
_DEBUG = os.environ.get("SIGMASAC_DEBUG", "0") == "1"


def setup_logger(name: str = 'sigmasac', log_level: Optional[int] = None,
                 log_file: Optional[str] = None) -> logging.Logger:
    """Setup logger with console and optional file handler."""
    if log_level is None:
        log_level = logging.DEBUG if _DEBUG else logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # calling twice must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
