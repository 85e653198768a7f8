import logging

import pytest

from lendbook.logging_config import LOG_FORMATS, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_loggers(monkeypatch):
    for variable in ("APP_LOG_LEVEL", "LEDGER_LOG_LEVEL", "THIRD_PARTY_LOG_LEVEL", "LOG_FORMAT", "LOG_FILE"):
        monkeypatch.delenv(variable, raising=False)

    app_logger = logging.getLogger("lendbook")
    ledger_logger = logging.getLogger("lendbook.services")
    saved = (app_logger.level, list(app_logger.handlers), app_logger.propagate, ledger_logger.level)

    yield

    for handler in app_logger.handlers:
        if handler not in saved[1]:
            handler.close()
    app_logger.setLevel(saved[0])
    app_logger.handlers[:] = saved[1]
    app_logger.propagate = saved[2]
    ledger_logger.setLevel(saved[3])


def _formats(logger):
    return [handler.formatter._fmt for handler in logger.handlers]


def test_defaults():
    app_logger = setup_logging()

    assert app_logger.level == logging.INFO
    assert logging.getLogger("lendbook.services").level == logging.INFO
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert _formats(app_logger) == [LOG_FORMATS["default"]]


def test_format_preset_by_name():
    assert _formats(setup_logging(log_format="compact")) == [LOG_FORMATS["compact"]]


def test_raw_format_from_environment(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "%(name)s | %(message)s")

    assert _formats(setup_logging()) == ["%(name)s | %(message)s"]


def test_ledger_level_is_independent_of_app_level(monkeypatch):
    monkeypatch.setenv("APP_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")

    setup_logging()

    assert get_logger("lendbook.services.ledger").isEnabledFor(logging.DEBUG)
    assert not get_logger("routers.transactions").isEnabledFor(logging.INFO)


def test_unknown_level_falls_back():
    setup_logging(app_log_level="ERROR", ledger_log_level="LOUD")

    assert logging.getLogger("lendbook.services").level == logging.ERROR


def test_audit_format_written_to_file(tmp_path):
    log_file = tmp_path / "logs" / "ledger.log"
    app_logger = setup_logging(log_format="audit", log_file=str(log_file))

    get_logger("lendbook.services.ledger").warning("Rejected transaction 'R-1'")
    for handler in app_logger.handlers:
        handler.flush()

    line = log_file.read_text().strip()
    assert "[lendbook.services.ledger]" in line
    assert "pid=" in line
    assert line.endswith("Rejected transaction 'R-1'")


def test_get_logger_prefixes_namespace():
    assert get_logger("scripts.seed").name == "lendbook.scripts.seed"
    assert get_logger("lendbook.crud.crud_loan").name == "lendbook.crud.crud_loan"
