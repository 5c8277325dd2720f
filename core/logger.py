"""
Logging configuration for the EcoWave Hub admin backend.

One application logger ("ecowave_admin") writes to the console and, unless
LOG_FILE is set to an empty string, to a rotating file. Components log through
child loggers (get_logger("database"), get_logger("admin_log")) so their lines
can be told apart and tuned separately.
"""
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

APP_LOGGER_NAME = "ecowave_admin"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(
    name: str = APP_LOGGER_NAME,
    log_file: Optional[Path] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional rotating file handler.

    Args:
        name: Logger name
        log_file: Path to log file (if None, only console logging)
        level: Logging level
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    # Uvicorn configures the root logger too; keep lines from printing twice
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(component: str) -> logging.Logger:
    """Child of the application logger, e.g. get_logger("database") -> "ecowave_admin.database"."""
    return logging.getLogger(APP_LOGGER_NAME).getChild(component)


def _default_log_file() -> Optional[Path]:
    # LOG_FILE unset: logs/app.log next to the project; LOG_FILE="": console only
    value = os.getenv("LOG_FILE")
    if value is None:
        return Path(__file__).parent.parent / "logs" / "app.log"
    return Path(value) if value else None


def _default_level() -> int:
    name = os.getenv("LOG_LEVEL", "").strip().upper()
    if name:
        # getLevelName maps known names to ints and anything else to a string
        level = logging.getLevelName(name)
        return level if isinstance(level, int) else logging.INFO
    return logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO


logger = setup_logger(log_file=_default_log_file(), level=_default_level())
