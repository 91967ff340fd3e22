#!/usr/bin/env python3
"""
Configuration Management Module for the Recovery Signer CLI

Handles hierarchical configuration loading (defaults, configuration file,
environment variables) and validation of the merged settings.
"""

import os
import json
import copy
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

import yaml

# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path('.recovery.yml'),                      # Project-specific YAML
    Path('.recovery.json'),                     # Project-specific JSON
    Path.home() / '.recovery' / 'config.yml',   # User global YAML
    Path.home() / '.recovery' / 'config.json',  # User global JSON
]

# Environment variable prefix; '__' separates nesting levels
ENV_PREFIX = 'RECOVERY_'
ENV_NESTING = '__'

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

# Default configuration values
DEFAULT_CONFIG = {
    # Recovery run behaviour
    'recovery': {
        'result_suffix': '.signed.json',
    },

    # Account chains: chain ids used when a transaction carries none
    'account': {
        'chain_ids': {
            'eth': 1,
            'erc20': 1,
            'teth': 11155111,
            'terc20': 11155111,
        }
    },

    # UTXO chains
    'utxo': {
        'zcash_branch_id': 0xC8E71055,
    },

    'logging': {
        'level': 'WARNING',
    },
}


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
        """
        self.logger = logging.getLogger('recovery-cli.config')
        self.config_file = config_file
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = []

        # 1. Start with default configuration
        configs.append(copy.deepcopy(DEFAULT_CONFIG))
        self._config_sources.append("defaults")

        # 2. Load configuration file
        if self.config_file:
            config_path = Path(self.config_file)
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
            config_data = self._load_config_file(config_path)
            if config_data:
                configs.append(config_data)
                self._config_sources.append(f"file:{self.config_file}")
        else:
            # Search for config files in standard locations
            for config_path in CONFIG_SEARCH_PATHS:
                if config_path.exists():
                    config_data = self._load_config_file(config_path)
                    if config_data:
                        configs.append(config_data)
                        self._config_sources.append(f"file:{config_path}")
                        self.logger.debug(f"Loaded config from {config_path}")
                    break  # Use first found config file

        # 3. Apply environment variables
        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        # Merge all configurations (later ones override earlier ones)
        self._config_cache = self._deep_merge(*configs)
        return self._config_cache

    def _load_config_file(self, path: Path) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        with open(path, 'r') as f:
            if path.suffix in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                self.logger.warning(f"Unknown config file format: {path}")
                return None

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                # e.g., RECOVERY_UTXO__ZCASH_BRANCH_ID -> {'utxo': {'zcash_branch_id': value}}
                parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)
                if not all(parts):
                    continue
                current = env_config

                for part in parts[:-1]:
                    if not isinstance(current.get(part), dict):
                        current[part] = {}
                    current = current[part]

                current[parts[-1]] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse environment variable value to appropriate type."""
        # JSON covers numbers, booleans and nested values
        try:
            return json.loads(value)
        except ValueError:
            pass

        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'recovery.result_suffix')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        config = self.load()

        keys = key_path.split('.')
        current = config

        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        suffix = config.get('recovery', {}).get('result_suffix')
        if not isinstance(suffix, str) or not suffix:
            errors.append("recovery.result_suffix must be a non-empty string")
        elif '/' in suffix or os.sep in suffix:
            errors.append(f"recovery.result_suffix must not contain a path separator: {suffix}")

        for coin, chain_id in (config.get('account', {}).get('chain_ids') or {}).items():
            if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
                errors.append(f"account.chain_ids.{coin} must be a positive integer")

        branch_id = config.get('utxo', {}).get('zcash_branch_id')
        if isinstance(branch_id, bool) or not isinstance(branch_id, int) or not 0 <= branch_id <= 0xFFFFFFFF:
            errors.append("utxo.zcash_branch_id must be a 32-bit integer")

        level = str(config.get('logging', {}).get('level', '')).upper()
        if level not in LOG_LEVELS:
            errors.append(f"Invalid logging level: {level}")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()  # Ensure config is loaded
        return self._config_sources
