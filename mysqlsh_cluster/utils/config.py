"""
Configuration management for the cluster driver.
Supports YAML and JSON configuration files and MYSQLSH_* environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

# Environment variable -> dotted config key
ENV_KEYS = {
    'MYSQLSH_URI': 'mysqlsh.uri',
    'MYSQLSH_BINARY': 'mysqlsh.binary',
    'MYSQLSH_CLUSTER_NAME': 'mysqlsh.cluster_name',
    'MYSQLSH_TIMEOUT': 'mysqlsh.timeout',
    'MYSQLSH_SSH_HOST': 'ssh.host',
    'MYSQLSH_SSH_USER': 'ssh.user',
    'MYSQLSH_SSH_PASSWORD': 'ssh.password',
    'MYSQLSH_SSH_KEY': 'ssh.key_file',
    'MYSQLSH_SSH_PORT': 'ssh.port',
    'MYSQLSH_LOG_FILE': 'log_file',
}

NUMERIC_KEYS = {'mysqlsh.timeout': float, 'ssh.port': int}


class Config:
    """Configuration manager with file and environment variable support."""

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration file (YAML or JSON)
        """
        self._config: Dict[str, Any] = {}
        if config_file and config_file.exists():
            self.load_from_file(config_file)

    @classmethod
    def from_env(
        cls,
        config_file: Optional[Path] = None,
        dotenv_path: Optional[Path] = None
    ) -> 'Config':
        """
        Build configuration from a file, then overlay MYSQLSH_* variables.

        A .env file is loaded first (without overriding variables already
        present in the process environment).

        Args:
            config_file: Optional YAML/JSON configuration file
            dotenv_path: Optional .env file (default: search upwards from cwd)

        Returns:
            Config instance
        """
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))
        config = cls(config_file)
        for env_name, key in ENV_KEYS.items():
            value = os.environ.get(env_name)
            if value:
                config.set(key, value)
        return config

    def load_from_file(self, config_file: Path) -> None:
        """
        Load configuration from file.

        Args:
            config_file: Path to configuration file
        """
        suffix = config_file.suffix.lower()
        with open(config_file, 'r') as f:
            if suffix in ['.yaml', '.yml']:
                self._config = yaml.safe_load(f) or {}
            elif suffix == '.json':
                self._config = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {suffix}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (supports dot notation, e.g., 'mysqlsh.uri')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        if key in NUMERIC_KEYS and isinstance(value, str):
            return NUMERIC_KEYS[key](value)
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split('.')
        config = self._config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
