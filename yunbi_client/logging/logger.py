"""
Structured logging with rotation.

The library itself only logs through ``logging.getLogger(__name__)``;
applications (and the ``yunbi`` CLI) call initialize_logging() to attach
handlers.
"""

import logging
import logging.handlers
import sys
import json
import traceback
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


class StructuredFormatter(logging.Formatter):
    """
    Formats records as one JSON object per line.

    Fields: ``timestamp`` (local time, millisecond precision), ``level``,
    ``logger``, ``message`` and ``source`` (``module:function:line``), plus
    ``exception`` when the record carries exc_info and ``extra`` for anything
    passed through the ``extra`` argument.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return datetime.fromtimestamp(record.created).isoformat(timespec='milliseconds')

    @staticmethod
    def _exception_fields(exc_info) -> Dict[str, Any]:
        exc_type, exc_value, exc_tb = exc_info
        return {
            'type': exc_type.__name__ if exc_type else None,
            'message': str(exc_value) if exc_value else None,
            'traceback': traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'source': f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry['exception'] = self._exception_fields(record.exc_info)

        if self.include_extra:
            extra = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES}
            if extra:
                entry['extra'] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggerManager:
    """
    Centralized logging setup for applications built on the client.

    Writes everything at or above ``log_level`` to ``yunbi_client.log``,
    errors additionally to ``errors.log``, and optionally to a console stream.
    """

    def __init__(self,
                 log_dir: str = "logs",
                 log_level: str = "INFO",
                 max_file_size: int = 10 * 1024 * 1024,
                 backup_count: int = 30,
                 console_output: bool = True,
                 structured_format: bool = True,
                 console_stream: Optional[TextIO] = None):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files
            log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            max_file_size: Maximum size per log file in bytes
            backup_count: Number of rotated files to keep
            console_output: Whether to output logs to console
            structured_format: Whether to use structured JSON format
            console_stream: Stream for console output, defaults to stdout
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper())
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.console_output = console_output
        self.structured_format = structured_format
        self.console_stream = console_stream

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

        self.logger = logging.getLogger(__name__)
        self.logger.info("LoggerManager initialized", extra={
            'log_dir': str(self.log_dir),
            'log_level': log_level,
        })

    def _make_formatter(self) -> logging.Formatter:
        if self.structured_format:
            return StructuredFormatter()
        return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    def _setup_logging(self) -> None:
        """Replace the root logger's handlers with rotating file and console handlers."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        self._previous_level = root_logger.level
        self._handlers = []

        root_logger.setLevel(self.log_level)
        formatter = self._make_formatter()

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "yunbi_client.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(self.log_level)
        file_handler.setFormatter(formatter)
        self._handlers.append(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "errors.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        self._handlers.append(error_handler)

        if self.console_output:
            console_handler = logging.StreamHandler(self.console_stream or sys.stdout)
            console_handler.setLevel(self.log_level)
            console_handler.setFormatter(formatter)
            self._handlers.append(console_handler)

        for handler in self._handlers:
            root_logger.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def log_error_with_context(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Log an error with context and stack trace.

        Args:
            error: Exception instance
            context: Additional context, e.g. endpoint path (never query strings)
        """
        self.logger.error(f"Error occurred: {error}", extra={
            'error_type': type(error).__name__,
            'error_code': getattr(error, 'error_code', None),
            'context': context,
        }, exc_info=(type(error), error, error.__traceback__))

    def cleanup_old_logs(self, retention_days: int = 30) -> int:
        """
        Delete log files older than the retention period.

        Returns:
            Number of files removed
        """
        cutoff_date = datetime.now() - timedelta(days=retention_days)
        removed = 0

        for log_file in self.log_dir.glob("*.log*"):
            try:
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    removed += 1
                    self.logger.info(f"Cleaned up old log file: {log_file}")
            except OSError as e:
                self.logger.error(f"Failed to cleanup log file {log_file}: {e}")

        return removed

    def shutdown(self) -> None:
        """Detach and close the handlers installed by this manager."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        root_logger.setLevel(self._previous_level)


# Global logger manager instance
_logger_manager: Optional[LoggerManager] = None


def initialize_logging(log_dir: str = "logs",
                       log_level: str = "INFO",
                       **kwargs) -> LoggerManager:
    """
    Initialize the global logging system.

    Args:
        log_dir: Directory for log files
        log_level: Minimum log level
        **kwargs: Additional LoggerManager arguments

    Returns:
        LoggerManager instance
    """
    global _logger_manager
    if _logger_manager is not None:
        _logger_manager.shutdown()
    _logger_manager = LoggerManager(log_dir=log_dir, log_level=log_level, **kwargs)
    return _logger_manager


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger. Handlers are only attached once initialize_logging() ran.
    """
    if _logger_manager is None:
        return logging.getLogger(name)
    return _logger_manager.get_logger(name)
