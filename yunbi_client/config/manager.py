"""Configuration loading and validation."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import logging

import yaml

from ..api.client import CredentialManager
from ..data.models import Credential

logger = logging.getLogger(__name__)

ENV_ACCESS_KEY = 'YUNBI_ACCESS_KEY'
ENV_SECRET_KEY = 'YUNBI_SECRET_KEY'


@dataclass
class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    message: str
    config_path: Optional[str] = None
    field_path: Optional[str] = None
    expected_type: Optional[str] = None
    actual_value: Optional[Any] = None

    def __str__(self) -> str:
        return self.message


def _matches_type(value, expected_type) -> bool:
    types = expected_type if isinstance(expected_type, tuple) else (expected_type,)
    if isinstance(value, bool) and bool not in types:
        return False
    return isinstance(value, types)


def _type_name(expected_type) -> str:
    if isinstance(expected_type, tuple):
        return ' or '.join(t.__name__ for t in expected_type)
    return expected_type.__name__


class ConfigManager:
    """Loads and validates the client's YAML configuration."""

    REQUIRED_SECTIONS = ['api', 'credentials']

    def __init__(self, config_path: Optional[str] = None):
        """Initialize ConfigManager with optional config path.

        Args:
            config_path: Optional path to main config file
        """
        self.config_path = config_path or "config/default.yaml"
        self._config: Dict[str, Any] = {}
        self._loaded = False

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from YAML file.

        Args:
            config_path: Optional path to config file. Uses instance path if not provided.

        Returns:
            Dictionary containing loaded configuration

        Raises:
            ConfigValidationError: If config file is invalid or missing
        """
        path = config_path or self.config_path

        config_file = Path(path)
        if not config_file.exists():
            raise ConfigValidationError(
                f"Configuration file not found: {path}",
                config_path=path
            )

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Invalid YAML syntax in {path}: {str(e)}",
                config_path=path
            )
        except OSError as e:
            raise ConfigValidationError(
                f"Failed to load configuration from {path}: {str(e)}",
                config_path=path
            )

        if config_data is None:
            raise ConfigValidationError(
                f"Configuration file is empty: {path}",
                config_path=path
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError(
                f"Configuration must be a dictionary, got {type(config_data).__name__}",
                config_path=path,
                expected_type="dict",
                actual_value=type(config_data).__name__
            )

        self._validate_config_structure(config_data, path)
        self._validate_api_config(config_data['api'], path)
        self._validate_credentials_config(config_data['credentials'], path)
        self._validate_optional_section(config_data, 'clock', {'sync_on_start': bool}, path)
        self._validate_optional_section(config_data, 'logging', {
            'log_dir': str,
            'log_level': str,
            'structured_format': bool,
            'console_output': bool,
            'retention_days': int,
        }, path)

        self._config = config_data
        self._loaded = True

        logger.info(f"Successfully loaded configuration from {path}")
        return config_data.copy()

    def _validate_config_structure(self, config: Dict[str, Any], path: str) -> None:
        """Validate that config has required structure."""
        for section in self.REQUIRED_SECTIONS:
            if section not in config:
                raise ConfigValidationError(
                    f"Missing required configuration section '{section}' in {path}",
                    config_path=path,
                    field_path=section
                )

            if not isinstance(config[section], dict):
                raise ConfigValidationError(
                    f"Configuration section '{section}' must be a dictionary in {path}",
                    config_path=path,
                    field_path=section,
                    expected_type="dict",
                    actual_value=type(config[section]).__name__
                )

    def _check_fields(self, section: str, values: Dict[str, Any], fields: Dict[str, Any],
                      path: str, required: bool) -> None:
        for field, expected_type in fields.items():
            if field not in values:
                if not required:
                    continue
                raise ConfigValidationError(
                    f"Missing required {section} config field '{field}' in {path}",
                    config_path=path,
                    field_path=f"{section}.{field}"
                )

            value = values[field]
            if not _matches_type(value, expected_type):
                raise ConfigValidationError(
                    f"{section.capitalize()} config field '{field}' must be of type {_type_name(expected_type)} in {path}",
                    config_path=path,
                    field_path=f"{section}.{field}",
                    expected_type=_type_name(expected_type),
                    actual_value=type(value).__name__
                )

    def _validate_api_config(self, api_config: Dict[str, Any], path: str) -> None:
        """Validate API configuration section."""
        self._check_fields('api', api_config, {
            'base_url': str,
            'api_prefix': str,
            'timeout': (int, float),
        }, path, required=True)

        if not api_config['api_prefix'].startswith('/'):
            raise ConfigValidationError(
                f"API config 'api_prefix' must start with '/' in {path}",
                config_path=path,
                field_path="api.api_prefix",
                expected_type="path starting with '/'",
                actual_value=api_config['api_prefix']
            )

        if api_config['timeout'] <= 0:
            raise ConfigValidationError(
                f"API config 'timeout' must be positive in {path}",
                config_path=path,
                field_path="api.timeout",
                expected_type="positive number",
                actual_value=api_config['timeout']
            )

    def _validate_credentials_config(self, credentials_config: Dict[str, Any], path: str) -> None:
        """Validate credentials section. Empty keys are allowed for public-only use."""
        self._check_fields('credentials', credentials_config, {
            'access_key': str,
            'secret_key': str,
            'credentials_file': str,
        }, path, required=False)

    def _validate_optional_section(self, config: Dict[str, Any], section: str,
                                   fields: Dict[str, Any], path: str) -> None:
        if section not in config:
            return
        if not isinstance(config[section], dict):
            raise ConfigValidationError(
                f"Configuration section '{section}' must be a dictionary in {path}",
                config_path=path,
                field_path=section,
                expected_type="dict",
                actual_value=type(config[section]).__name__
            )
        self._check_fields(section, config[section], fields, path, required=False)

    def get_config(self) -> Dict[str, Any]:
        """Get current configuration. Loads if not already loaded."""
        if not self._loaded:
            self.load_config()
        return self._config.copy()

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get specific configuration section."""
        config = self.get_config()
        if section not in config:
            raise ConfigValidationError(f"Configuration section '{section}' not found")
        return config[section].copy()

    def get_credentials(self, password: Optional[str] = None) -> Credential:
        """
        Resolve the API credential.

        Environment variables win over the file's keys. When neither supplies
        keys and a credentials_file is configured, the encrypted store is read.
        """
        credentials = self.get_section('credentials')
        access_key = os.getenv(ENV_ACCESS_KEY) or credentials.get('access_key') or ''
        secret_key = os.getenv(ENV_SECRET_KEY) or credentials.get('secret_key') or ''

        credentials_file = credentials.get('credentials_file')
        if not (access_key or secret_key) and credentials_file:
            with open(credentials_file, 'r') as f:
                encrypted_data = json.load(f)
            return CredentialManager(password).decrypt_credentials(encrypted_data)

        return Credential(access_key=access_key, secret_key=secret_key)
