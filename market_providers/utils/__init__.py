"""
Market Providers - Utilities

Configuration loading and logging setup.
"""

from market_providers.utils.config import (
    load_config,
    get_config,
    reset_config,
    get_providers_config,
    get_http_config,
    get_logging_config,
    resolve_credential,
)
from market_providers.utils.logging import (
    setup_logging,
    setup_logging_from_config,
    get_logger,
    shutdown_logging,
    LoggingManager,
)

__all__ = [
    'load_config',
    'get_config',
    'reset_config',
    'get_providers_config',
    'get_http_config',
    'get_logging_config',
    'resolve_credential',
    'setup_logging',
    'setup_logging_from_config',
    'get_logger',
    'shutdown_logging',
    'LoggingManager',
]
