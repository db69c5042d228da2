"""
Logging setup for rofi-totp.

Diagnostics go to stderr; a rotating log file keeps a record of what the
detached launcher deliveries did, since rofi throws their stderr away.
"""
import logging
import os
from collections.abc import Mapping
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rofi_totp.config import APP_NAME


LOGGER_NAME = "rofi_totp"


def log_file(environ: Mapping[str, str] = os.environ) -> Path:
    state_home = environ.get("XDG_STATE_HOME") or os.path.join(
        Path.home(), ".local", "state"
    )

    return Path(state_home) / APP_NAME / f"{APP_NAME}.log"


def setup_logger(environ: Mapping[str, str] = os.environ) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        environ: Environment to read ROFI_TOTP_LOG_LEVEL and XDG_STATE_HOME from

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    level = environ.get("ROFI_TOTP_LOG_LEVEL", "WARNING").upper()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level, logging.WARNING))
    console_handler.setFormatter(
        logging.Formatter(f"{APP_NAME}: %(levelname)s: %(message)s")
    )
    logger.addHandler(console_handler)

    path = log_file(environ)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

    except OSError as err:
        logger.warning("not logging to %s: %s", path, err)

    else:
        file_handler = RotatingFileHandler(
            path,
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger
