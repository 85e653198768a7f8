import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

APP_LOGGER_NAME = "lendbook"
# Commit, loan lifecycle and report refresh messages all live under this logger
LEDGER_LOGGER_NAME = "lendbook.services"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FORMATS = {
    "default": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "compact": "%(levelname)s %(name)s: %(message)s",
    "audit": "%(asctime)s %(levelname)s [%(name)s] pid=%(process)d %(message)s",
}

QUIET_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "faker",
]


def _level(name: Optional[str], fallback: int) -> int:
    if not name:
        return fallback
    return getattr(logging, name.upper(), fallback)


def resolve_log_format(log_format: Optional[str] = None) -> str:
    """Map a preset name (default, compact, audit) to its format; anything else is used as a raw format string."""
    log_format = log_format or os.getenv("LOG_FORMAT", "default")
    return LOG_FORMATS.get(log_format.lower(), log_format)


def setup_logging(
    app_log_level: Optional[str] = None,
    ledger_log_level: Optional[str] = None,
    third_party_log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Set up logging for the Lendbook API and its maintenance scripts.

    Args:
        app_log_level: Level for the lendbook loggers (env APP_LOG_LEVEL, default INFO)
        ledger_log_level: Level for the ledger services only (env LEDGER_LOG_LEVEL,
            defaults to the app level). Set DEBUG to trace commits without the
            noise of every router and CRUD call.
        third_party_log_level: Level for SQLAlchemy, uvicorn and friends (env THIRD_PARTY_LOG_LEVEL, default WARNING)
        log_format: Preset name or raw logging format string (env LOG_FORMAT, default "default")
        log_file: Optional rotating log file path (env LOG_FILE)
        max_file_size: Maximum size of log file before rotation (bytes)
        backup_count: Number of backup log files to keep

    Returns:
        The root lendbook logger
    """
    app_level = _level(app_log_level or os.getenv("APP_LOG_LEVEL"), logging.INFO)
    ledger_level = _level(ledger_log_level or os.getenv("LEDGER_LOG_LEVEL"), app_level)
    third_party_level = _level(third_party_log_level or os.getenv("THIRD_PARTY_LOG_LEVEL"), logging.WARNING)
    log_file = log_file or os.getenv("LOG_FILE")

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)
    app_logger.handlers.clear()

    logging.getLogger(LEDGER_LOGGER_NAME).setLevel(ledger_level)

    formatter = logging.Formatter(fmt=resolve_log_format(log_format), datefmt=DATE_FORMAT)

    # Handlers pass everything through; the logger levels above do the filtering
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(third_party_level)

    app_logger.propagate = False

    return app_logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """Logger under the lendbook namespace, so module names like lendbook.services.ledger inherit the ledger level."""
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")
