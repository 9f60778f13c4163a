"""Configuration management."""

from .manager import ConfigManager, ConfigValidationError

__all__ = [
    'ConfigManager',
    'ConfigValidationError',
]
