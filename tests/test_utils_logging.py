import logging

from pythonjsonlogger import jsonlogger

import src.utils.logging as log_utils


def test_setup_logging_production_json(monkeypatch, tmp_path):
    monkeypatch.setattr(log_utils.settings, "ENVIRONMENT", "production", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_LEVEL", "INFO", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_DIR", str(tmp_path / "logs"), raising=False)

    logger = log_utils.setup_logging("ej_test_prod")

    assert any(isinstance(h.formatter, jsonlogger.JsonFormatter) for h in logger.handlers)
    assert len(logger.handlers) == 2
    assert any(p.name.startswith("ej_test_prod_") for p in (tmp_path / "logs").iterdir())


def test_setup_logging_dev_console_only(monkeypatch):
    monkeypatch.setattr(log_utils.settings, "ENVIRONMENT", "development", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_LEVEL", "debug", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_DIR", "", raising=False)

    logger = log_utils.setup_logging("ej_test_dev")

    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0].formatter, jsonlogger.JsonFormatter)
    assert logger.level == logging.DEBUG
    assert logging.getLogger("matplotlib").level == logging.WARNING


def test_module_loggers_reach_run_handlers(monkeypatch):
    monkeypatch.setattr(log_utils.settings, "ENVIRONMENT", "development", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_DIR", "", raising=False)

    logger = log_utils.setup_logging("ej_test_root")

    assert logging.getLogger().handlers == logger.handlers


def test_get_logger_returns_named_logger():
    logger = log_utils.get_logger("src.processing.pca")
    assert logger.name == "src.processing.pca"


def test_log_banner(caplog):
    logger = logging.getLogger("ej_banner")
    logger.propagate = True

    with caplog.at_level(logging.INFO, logger="ej_banner"):
        log_utils.log_banner(logger, "STAGE 1: LOAD INPUTS")

    messages = [r.getMessage() for r in caplog.records]
    assert messages[1] == "STAGE 1: LOAD INPUTS"
    assert messages[2] == "=" * 60
