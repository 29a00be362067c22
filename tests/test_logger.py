"""Tests for the logger setup."""

import logging

from sigmasac.utils import setup_logger


def test_setup_logger_is_idempotent(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    setup_logger('sigmasac.test', log_level=logging.DEBUG, log_file=str(log_file))
    logger = setup_logger('sigmasac.test', log_level=logging.DEBUG, log_file=str(log_file))

    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG

    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in log_file.read_text()

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_setup_logger_closes_replaced_file_handler(tmp_path):
    first = setup_logger('sigmasac.reopen', log_file=str(tmp_path / "first.log"))
    old_file_handler = next(h for h in first.handlers if isinstance(h, logging.FileHandler))

    logger = setup_logger('sigmasac.reopen', log_file=str(tmp_path / "second.log"))

    assert old_file_handler not in logger.handlers
    assert old_file_handler.stream is None

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
