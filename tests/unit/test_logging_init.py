from __future__ import annotations

import logging
from io import StringIO

from table_admin.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == "table_admin"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent_and_debug_lowers_level():
    logger = setup_logging()
    again = setup_logging(debug=True)
    assert again is logger
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert get_logger() is logger


def test_logging_labeled_prefixes():
    captured_output = StringIO()
    logger = logging.getLogger("test_table_admin_labels")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    handler = logging.StreamHandler(captured_output)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "table=t staged=1")

    lines = captured_output.getvalue().splitlines()
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY table=t staged=1",
    ]


def test_module_loggers_propagate_to_app_logger(capsys):
    setup_logging()
    logging.getLogger("table_admin.services.paste").info("Pasted 2 cells across 1 rows.")
    log_summary("table=customers staged=0")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO Pasted 2 cells across 1 rows.", "SUMMARY table=customers staged=0"]
