"""
Market Providers - Configuration Loader
Handles loading and merging configuration from YAML files.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import yaml

logger = logging.getLogger('market_providers.config')

CONFIG_ENV_VAR = 'MARKET_PROVIDERS_CONFIG'


# Default configuration (used if no config file found)
DEFAULT_CONFIG = {
    'providers': {
        # Priority order per concept; first entry is the primary provider
        'concepts': {
            'exchange_rates': ['frankfurter', 'fawaz_currency_api', 'exchangerate_api'],
            'securities': ['alpha_vantage'],
        },
        'settings': {
            'exchangerate_api': {
                'api_key_env': 'EXCHANGERATE_API_KEY',
            },
            'alpha_vantage': {
                'api_key_env': 'ALPHA_VANTAGE_API_KEY',
            },
        },
    },
    'http': {
        'timeout': 10,
        'user_agent': 'market_providers',
        'max_retries': 2,
        'retry_interval': 0.05,
        'retry_randomness': 0.5,
        'backoff_factor': 2,
    },
    'logging': {
        'console_level': 'INFO',
        'log_dir': None,
        'retention_days': 30,
        'levels': {},
    },
}

_loaded_config: Optional[Dict[str, Any]] = None


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _get_search_paths() -> List[Path]:
    """
    Build the list of paths to search for config files.

    Priority order:
    1. Explicit argument (handled in load_config)
    2. $MARKET_PROVIDERS_CONFIG
    3. market_providers/user_config.yaml (user overrides)
    4. market_providers/config/config.yaml (default)
    """
    pkg_dir = Path(__file__).parent.parent  # market_providers/

    paths = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        paths.append(Path(env_path))
    paths.extend([
        pkg_dir / 'user_config.yaml',
        pkg_dir / 'config' / 'config.yaml',
    ])
    return paths


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Configuration dictionary (defaults merged with the first file found)

    Raises:
        yaml.YAMLError: the selected file is not valid YAML
    """
    global _loaded_config

    # If already loaded and no explicit path, return cached
    if _loaded_config is not None and config_path is None:
        return _loaded_config

    config = deep_merge({}, DEFAULT_CONFIG)

    search_paths = []
    if config_path:
        explicit = Path(config_path)
        if explicit.is_absolute():
            search_paths.append(explicit)
        else:
            search_paths.append(Path.cwd() / config_path)
            search_paths.append(explicit)
    search_paths.extend(_get_search_paths())

    config_file = next((p for p in search_paths if p.exists()), None)

    if config_file:
        with open(config_file, 'r', encoding='utf-8') as f:
            file_config = yaml.safe_load(f)
        if file_config:
            config = deep_merge(config, file_config)
        logger.info("Loaded config from: %s", config_file)
    else:
        logger.warning("No config file found, using defaults")
        logger.debug("Searched: %s", ", ".join(str(p) for p in search_paths))

    _loaded_config = config
    return config


def get_config() -> Dict[str, Any]:
    """Get the loaded configuration."""
    if _loaded_config is None:
        return load_config()
    return _loaded_config


def reset_config():
    """Forget the cached configuration (next access reloads)."""
    global _loaded_config
    _loaded_config = None


def get_providers_config() -> Dict[str, Any]:
    """Get provider concept ordering and per-provider settings."""
    return get_config().get('providers', DEFAULT_CONFIG['providers'])


def get_http_config() -> Dict[str, Any]:
    """Get shared HTTP client settings."""
    return get_config().get('http', DEFAULT_CONFIG['http'])


def get_logging_config() -> Dict[str, Any]:
    """Get logging settings."""
    return get_config().get('logging', DEFAULT_CONFIG['logging'])


def resolve_credential(settings: Dict[str, Any]) -> Optional[str]:
    """
    Resolve a provider API key.

    The environment variable named by ``api_key_env`` wins over an inline
    ``api_key``.  Empty values count as missing.
    """
    env_name = settings.get('api_key_env')
    if env_name:
        value = os.environ.get(env_name, '').strip()
        if value:
            return value
    inline = str(settings.get('api_key') or '').strip()
    return inline or None
