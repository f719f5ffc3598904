import logging

import quizportal.logging_config as logging_config


def test_setup_logging_configures_once(monkeypatch):
    monkeypatch.setattr(logging_config, "_configured", False)
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    logger = logging_config.setup_logging("debug")
    logging_config.setup_logging()

    assert logger.name == "quizportal"
    assert len(calls) == 1
    assert calls[0]["level"] == logging.DEBUG
    assert calls[0]["format"] == logging_config.LOG_FORMAT
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
