"""Logging setup for applications using the Yunbi client."""

from .logger import LoggerManager, StructuredFormatter, get_logger, initialize_logging

__all__ = [
    'LoggerManager',
    'StructuredFormatter',
    'get_logger',
    'initialize_logging',
]
