"""
Configuration management for csgolog
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

from .patterns import DIALECTS, DEFAULT_DIALECT

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


class Config:
    """Configuration manager for csgolog."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize configuration from YAML file.

        Args:
            config_path: Path to configuration file; defaults are used when
                None or when the file does not exist

        Raises:
            ConfigError: If configuration is invalid or cannot be loaded
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._load_config()
        self._validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file, layered over the defaults.

        Returns:
            Configuration dictionary

        Raises:
            ConfigError: If file cannot be loaded
        """
        config = self._get_default_config()

        if self.config_path is None:
            return config

        if not self.config_path.exists():
            logger.warning(f"Config file {self.config_path} not found, using defaults")
            return config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in config file: {e}")
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            logger.error(f"Failed to load config: {e}")
            raise ConfigError(f"Failed to load config: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")

        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values

        logger.info(f"Loaded configuration from {self.config_path}")
        return config

    def _get_default_config(self) -> Dict[str, Any]:
        """Return default configuration.

        Returns:
            Default configuration dictionary
        """
        return {
            'parser': {
                'dialect': DEFAULT_DIALECT,
                'strict': False
            },
            'output': {
                'indent': None
            },
            'logging': {
                'level': 'WARNING',
                'file': None
            }
        }

    def _validate_config(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If configuration is invalid
        """
        required_keys = ['parser', 'output', 'logging']
        for key in required_keys:
            if not isinstance(self.config.get(key), dict):
                raise ConfigError(f"Missing required config section: {key}")

        dialect = self.get('parser.dialect')
        if dialect not in DIALECTS:
            raise ConfigError(
                f"Unknown parser dialect: {dialect} (expected one of {sorted(DIALECTS)})"
            )

        if not isinstance(self.get('parser.strict'), bool):
            raise ConfigError("parser.strict must be true or false")

        indent = self.get('output.indent')
        if indent is not None and (not isinstance(indent, int) or isinstance(indent, bool)
                                   or indent < 0):
            raise ConfigError("output.indent must be a non-negative integer or null")

        level = str(self.get('logging.level', 'WARNING')).upper()
        if level not in LOG_LEVELS:
            logger.warning(f"Unknown log level: {level}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key using dot notation.

        Args:
            key: Configuration key (supports dot notation like 'parser.dialect')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_parser_config(self) -> Dict[str, Any]:
        """Get parser configuration.

        Returns:
            Parser configuration dictionary
        """
        return self.config.get('parser', {})

    def get_output_config(self) -> Dict[str, Any]:
        """Get output configuration.

        Returns:
            Output configuration dictionary
        """
        return self.config.get('output', {})

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration.

        Returns:
            Logging configuration dictionary
        """
        return self.config.get('logging', {})

    def reload(self) -> None:
        """Reload configuration from file.

        Raises:
            ConfigError: If configuration cannot be reloaded
        """
        logger.info("Reloading configuration...")
        self.config = self._load_config()
        self._validate_config()

    def is_valid(self) -> bool:
        """Check if configuration is valid.

        Returns:
            True if configuration is valid
        """
        try:
            self._validate_config()
            return True
        except ConfigError:
            return False
