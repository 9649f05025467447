import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "budget_ai"

# Rotation for LOG_FILE
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

THIRD_PARTY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
]


def setup_logging(
    app_log_level: Optional[str] = None,
    third_party_log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the ``budget_ai`` logger tree for the API and the job script.

    Args:
        app_log_level: Level for application logs (default: APP_LOG_LEVEL or INFO)
        third_party_log_level: Level for library logs (default: THIRD_PARTY_LOG_LEVEL or WARNING)
        log_file: Optional rotating log file (default: LOG_FILE); console only when unset

    Returns:
        The application root logger
    """
    app_log_level = app_log_level or os.getenv("APP_LOG_LEVEL", "INFO")
    third_party_log_level = third_party_log_level or os.getenv("THIRD_PARTY_LOG_LEVEL", "WARNING")
    log_file = log_file or os.getenv("LOG_FILE")

    app_level = getattr(logging, app_log_level.upper(), logging.INFO)
    third_party_level = getattr(logging, third_party_log_level.upper(), logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)
    # setup_logging may run more than once (app import + script)
    app_logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
            )
        )

    for handler in handlers:
        handler.setLevel(app_level)
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    for logger_name in THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(third_party_level)

    app_logger.propagate = False

    return app_logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """Logger under the ``budget_ai`` namespace, e.g. ``budget_ai.src.services.scheduler``."""
    if name == APP_LOGGER_NAME or name.startswith(f"{APP_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")
