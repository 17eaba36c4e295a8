import json
import logging
import os

import pytest

from core.Logger import CONF_PATH, Logger, read_config
from core.ResourceManager import ResourceManager
from utils.logging import CustomFormatter, setup_logging
from utils.Timer import Timer


def test_read_config(conf_file):
    assert read_config(conf_file)['save_format'] == 'csv'


def test_read_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_config(str(tmp_path / 'missing.json'))


def test_read_config_invalid_file(tmp_path):
    path = tmp_path / 'local_conf.json'
    path.write_text('{"log_level": ', encoding='utf-8')
    with pytest.raises(json.JSONDecodeError):
        read_config(str(path))


def test_logger_prepares_the_session(conf_file, tmp_path):
    logger = Logger(conf_path=conf_file)
    assert logger.source_path == str(tmp_path / 'data')
    assert os.path.isdir(logger.source_path)
    assert isinstance(logger.resource_manager, ResourceManager)
    assert logger.resource_manager.resource_path == str(tmp_path)
    assert logger.protocol_path is None
    assert not logger.manual_run
    assert logging.getLogger('').level == logging.DEBUG

    logging.info('session message')
    logger.cleanup()
    with open(tmp_path / 'logs' / 'log.txt', encoding='utf-8') as f:
        assert 'session message' in f.read()


def test_protocol_path(conf_file, tmp_path):
    logger = Logger(protocol='sequential_test.py', conf_path=conf_file)
    assert logger.manual_run
    assert logger.protocol_path == os.path.join(CONF_PATH, 'sequential_test.py')
    assert logger.get_protocol()

    protocol = tmp_path / 'protocol.py'
    logger.protocol_path = str(protocol)
    assert logger.protocol_path == str(protocol)
    with pytest.raises(FileNotFoundError):
        logger.get_protocol()


def test_log_returns_the_session_time(conf_file, caplog):
    logger = Logger(conf_path=conf_file)
    with caplog.at_level(logging.INFO):
        tmst = logger.log('Trial', {'word': 'red'})
    assert tmst >= 0
    assert "Trial at" in caplog.text
    assert "'word': 'red'" in caplog.text


def test_setup_logging_level(tmp_path):
    assert setup_logging(False, 'warning', str(tmp_path / 'log.txt')) == logging.WARNING
    assert setup_logging(False, 'not-a-level', str(tmp_path / 'log.txt')) == logging.INFO


def test_console_handler(tmp_path):
    root = logging.getLogger('')
    before = len(root.handlers)
    setup_logging(True, 'INFO', str(tmp_path / 'log.txt'))
    added = root.handlers[before:]
    assert len(added) == 2
    assert any(isinstance(handler.formatter, CustomFormatter) for handler in added)


def test_custom_formatter_adds_location_above_info():
    formatter = CustomFormatter()
    info = logging.LogRecord('x', logging.INFO, 'Trial.py', 10, 'hello', None, None)
    error = logging.LogRecord('x', logging.ERROR, 'Trial.py', 12, 'failed', None, None)
    assert '(Trial.py:10)' not in formatter.format(info)
    assert '(Trial.py:12)' in formatter.format(error)


def test_timer():
    timer = Timer()
    assert timer.elapsed_time() >= 0
    date = Timer.date_str()
    # 2024-01-01_10h00.00.000
    assert len(date) == 23
    assert Timer.date_str('%Y') == date[:4]
