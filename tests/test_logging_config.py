import logging
import logging.handlers

from src.logging_config import (
    APP_LOGGER_NAME,
    LOG_BACKUP_COUNT,
    LOG_MAX_BYTES,
    get_logger,
    setup_logging,
)


def test_console_only_by_default(monkeypatch):
    monkeypatch.delenv("LOG_FILE", raising=False)

    logger = setup_logging(app_log_level="debug")

    assert logger.name == APP_LOGGER_NAME
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert not logger.propagate


def test_log_file_gets_rotating_handler(tmp_path):
    log_file = tmp_path / "logs" / "budget_ai.log"

    logger = setup_logging(app_log_level="INFO", log_file=str(log_file))
    get_logger("recurring_expenses_job").info("job started")
    for handler in logger.handlers:
        handler.flush()

    rotating = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(rotating) == 1
    assert rotating[0].maxBytes == LOG_MAX_BYTES
    assert rotating[0].backupCount == LOG_BACKUP_COUNT
    assert "job started" in log_file.read_text()

    rotating[0].close()
    logger.handlers.clear()


def test_repeated_setup_does_not_duplicate_handlers(monkeypatch):
    monkeypatch.delenv("LOG_FILE", raising=False)

    setup_logging()
    logger = setup_logging(third_party_log_level="ERROR")

    assert len(logger.handlers) == 1
    assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR


def test_get_logger_namespaces_module_names():
    assert get_logger("src.services.scheduler").name == f"{APP_LOGGER_NAME}.src.services.scheduler"
    assert get_logger(f"{APP_LOGGER_NAME}.job").name == f"{APP_LOGGER_NAME}.job"
    assert get_logger().name == APP_LOGGER_NAME
