import logging
import os

from sgnsim.core.preferences import prefs
from sgnsim.utils.logger import SimLogger, catch_logs, get_logger

logger = get_logger("sgnsim.tests.test_logger")


def _log_lines():
    SimLogger.file_handler.flush()
    assert os.path.isfile(SimLogger.tmp_log)
    with open(SimLogger.tmp_log, encoding="utf-8") as f:
        return f.readlines()


def test_file_logging():
    prefs.logging.file_log_level = "DEBUG"
    SimLogger.initialize()
    logger.error("error message xxx")
    logger.warn("warning message xxx")
    logger.info("info message xxx")
    logger.debug("debug message xxx")
    logger.diagnostic("diagnostic message xxx")
    log_content = _log_lines()
    # only >= debug messages should show up
    for level, line in zip(["error", "warning", "info", "debug"], log_content[-4:]):
        assert "sgnsim.tests.test_logger" in line
        assert f"{level} message xxx" in line
        assert level.upper() in line


def test_file_logging_special_characters():
    SimLogger.initialize()
    special_chars = "→ ≠ ≤ ≥ µm φ σ ∞"
    logger.debug(special_chars)
    last_line = _log_lines()[-1]
    assert "sgnsim.tests.test_logger" in last_line
    assert special_chars in last_line


def test_file_log_level():
    # diagnostic messages are only written to the file by default
    SimLogger.initialize()
    logger.diagnostic("diagnostic message yyy")
    assert "diagnostic message yyy" in _log_lines()[-1]
    assert SimLogger.console_handler.level == logging.INFO


def test_catch_logs():
    with catch_logs() as logs:
        logger.info("not caught")
        logger.warn("caught")
        logger.error("also caught")
    assert [(level, message) for level, _, message in logs] == [
        ("WARNING", "caught"),
        ("ERROR", "also caught"),
    ]

    with catch_logs(log_level=logging.INFO) as logs:
        logger.debug("not caught")
        logger.info("caught")
    assert logs == [("INFO", "sgnsim.tests.test_logger", "caught")]


def test_name_suffix():
    with catch_logs() as logs:
        logger.warn("a specific warning", name_suffix="specific")
    assert logs == [
        ("WARNING", "sgnsim.tests.test_logger.specific", "a specific warning")
    ]


def test_log_once():
    with catch_logs() as logs:
        for _ in range(3):
            logger.warn("only shown once", name_suffix="once_test", once=True)
        logger.warn("shown again", name_suffix="once_test")
        logger.warn("shown again", name_suffix="once_test")
    assert [message for _, _, message in logs] == [
        "only shown once",
        "shown again",
        "shown again",
    ]

