"""Unit tests for structured logging."""

import io
import json
import logging
import os
import sys
import time

import pytest

from yunbi_client.api.errors import YunbiAPIError
from yunbi_client.logging import LoggerManager, StructuredFormatter, get_logger, initialize_logging
from yunbi_client.logging import logger as logger_module


@pytest.fixture
def logger_manager(tmp_path):
    manager = LoggerManager(log_dir=str(tmp_path / 'logs'), log_level='DEBUG', console_output=False)
    yield manager
    manager.shutdown()


def _record(msg='hello', **extra):
    record = logging.LogRecord('yunbi_client.api.dispatcher', logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test cases for StructuredFormatter."""

    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(_record()))

        assert data['level'] == 'INFO'
        assert data['logger'] == 'yunbi_client.api.dispatcher'
        assert data['message'] == 'hello'
        assert data['source'].endswith(':10')
        assert 'extra' not in data

    def test_extra_fields(self):
        data = json.loads(StructuredFormatter().format(_record(path='/members/me')))
        assert data['extra'] == {'path': '/members/me'}

    def test_extra_fields_disabled(self):
        data = json.loads(StructuredFormatter(include_extra=False).format(_record(path='/x')))
        assert 'extra' not in data

    def test_exception_info(self):
        try:
            raise YunbiAPIError()
        except YunbiAPIError:
            record = logging.LogRecord('test', logging.ERROR, __file__, 1, 'failed', (), None)
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))
        assert data['exception']['type'] == 'YunbiAPIError'
        assert data['exception']['message'] == 'yunbi_api_error'


class TestLoggerManager:
    """Test cases for LoggerManager."""

    def test_creates_log_files(self, logger_manager):
        logging.getLogger('yunbi_client.test').info("request sent")
        logging.getLogger('yunbi_client.test').error("request failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        main_log = (logger_manager.log_dir / 'yunbi_client.log').read_text()
        error_log = (logger_manager.log_dir / 'errors.log').read_text()

        assert 'request sent' in main_log
        assert 'request failed' in error_log
        assert 'request sent' not in error_log

    def test_plain_format(self, tmp_path):
        manager = LoggerManager(log_dir=str(tmp_path), console_output=False, structured_format=False)
        try:
            logging.getLogger('yunbi_client.test').warning("plain message")
            for handler in logging.getLogger().handlers:
                handler.flush()
            line = (tmp_path / 'yunbi_client.log').read_text().strip().splitlines()[-1]
            assert ' - WARNING - plain message' in line
        finally:
            manager.shutdown()

    def test_console_stream(self, tmp_path):
        stream = io.StringIO()
        manager = LoggerManager(log_dir=str(tmp_path), console_stream=stream)
        try:
            logging.getLogger('yunbi_client.test').info("to console")
        finally:
            manager.shutdown()

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert lines[-1]['message'] == 'to console'

    def test_log_error_with_context(self, logger_manager):
        logger_manager.log_error_with_context(YunbiAPIError(), {'path': '/members/me'})
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads((logger_manager.log_dir / 'errors.log').read_text().strip().splitlines()[-1])
        assert entry['extra']['error_code'] == 'yunbi_api_error'
        assert entry['extra']['context'] == {'path': '/members/me'}

    def test_cleanup_old_logs(self, logger_manager):
        old_file = logger_manager.log_dir / 'old.log.1'
        old_file.write_text('stale')
        old_time = time.time() - 40 * 24 * 3600
        os.utime(old_file, (old_time, old_time))

        assert logger_manager.cleanup_old_logs(retention_days=30) == 1
        assert not old_file.exists()
        assert (logger_manager.log_dir / 'yunbi_client.log').exists()


def test_initialize_logging_replaces_manager(tmp_path):
    try:
        first = initialize_logging(log_dir=str(tmp_path / 'a'), console_output=False)
        second = initialize_logging(log_dir=str(tmp_path / 'b'), console_output=False)

        assert logger_module._logger_manager is second
        assert first is not second
        assert get_logger('yunbi_client.x') is logging.getLogger('yunbi_client.x')
    finally:
        logger_module._logger_manager.shutdown()
        logger_module._logger_manager = None
