"""Logging infrastructure setup."""

import logging
import os
from pathlib import Path


def setup_logger(
    name: str = "market_pulse",
    log_file: str = "output/market_pulse.log",
    level: str = "INFO",
) -> logging.Logger:
    """
    Configure and return a logger that writes to a file and the console.

    Args:
        name (str): The name of the logger.
        log_file (str): The path to the log file.
        level (str): Minimum level name (e.g. ``"INFO"``, ``"DEBUG"``).

    Returns:
        logging.Logger: The configured logger instance.
    """
    logger = logging.getLogger(name)

    # Avoid adding multiple handlers if setup is called multiple times
    if logger.hasHandlers():
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(module)s.%(funcName)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# Default logger instance; MARKET_PULSE_LOG_FILE relocates the log file
logger = setup_logger(
    log_file=os.getenv("MARKET_PULSE_LOG_FILE", "output/market_pulse.log"),
    level=os.getenv("MARKET_PULSE_LOG_LEVEL", "INFO"),
)
