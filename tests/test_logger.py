"""
Logger configuration
"""
import logging
import os
from logging.handlers import RotatingFileHandler

import config
from core.logger import logger, setup_logger


def test_default_logger_follows_config():
    assert logger.level == (logging.DEBUG if config.DEBUG else logging.INFO)

    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].baseFilename == os.path.abspath(config.LOG_FILE)


def test_setup_logger_writes_rotating_file(tmp_path):
    log_file = tmp_path / 'nested' / 'service.log'
    test_logger = setup_logger(name='campus_incidents.file', log_file=log_file, level=logging.DEBUG)

    test_logger.debug('written to file')
    for handler in test_logger.handlers:
        handler.flush()

    assert test_logger.level == logging.DEBUG
    assert 'written to file' in log_file.read_text(encoding='utf-8')
    for handler in list(test_logger.handlers):
        handler.close()
        test_logger.removeHandler(handler)


def test_setup_logger_without_file_uses_console_only():
    test_logger = setup_logger(name='campus_incidents.console')

    assert test_logger.level == logging.INFO
    assert [type(h) for h in test_logger.handlers] == [logging.StreamHandler]
