"""
load the config from config.yaml and the environment
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

DEFAULT_CONFIG_FILE = "config.yaml"

DEFAULTS = {
    'couchdb': {
        'url': 'http://localhost:5984',
        'request_timeout': 10000,
        'verify_tls': True,
    },
    'logging': {
        'level': 'INFO',
        'format': 'json',
    },
}


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable -> nested config key
    ENV_MAPPINGS = {
        'COUCH_URL': ('couchdb', 'url'),
        'COUCH_REQUEST_TIMEOUT': ('couchdb', 'request_timeout'),
        'COUCH_VERIFY_TLS': ('couchdb', 'verify_tls'),
        'LOG_LEVEL': ('logging', 'level'),
        'LOG_FORMAT': ('logging', 'format'),
    }

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to a YAML file. If None, ``config.yaml`` in the
                        working directory is used when it exists, otherwise
                        the built-in defaults.
            environ: Mapping to read overrides from; defaults to os.environ.
        """
        self._explicit_path = config_path is not None
        self.config_path = Path(config_path if config_path is not None else DEFAULT_CONFIG_FILE)
        self._environ = os.environ if environ is None else environ
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        config = copy.deepcopy(DEFAULTS)

        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except FileNotFoundError:
            if self._explicit_path:
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            loaded = {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file must hold a mapping: {self.config_path}")

        self._merge(config, loaded)
        return self._apply_env_overrides(config)

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]):
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = self._environ.get(env_var)
            if env_value is not None:
                # Navigate to the nested config location
                current = config
                for key in config_path[:-1]:
                    if key not in current:
                        current[key] = {}
                    current = current[key]

                final_key = config_path[-1]
                current[final_key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value by nested keys.

        Args:
            *keys: Configuration keys (e.g., 'couchdb', 'url')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def couchdb(self) -> Dict[str, Any]:
        """Get CouchDB connection configuration."""
        return self.get('couchdb', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})
