"""
Market Providers - Provider Factory
===================================
Creates and memoizes provider instances from configuration.

The factory:
  1. Reads the ``providers.settings.<key>`` block for the requested key
  2. Looks up the implementation class via ``ProviderRegistry``
  3. Resolves the API key from the environment variable named by
     ``api_key_env`` (or an inline ``api_key``); a missing key leaves the
     provider on its default tier
  4. Injects the shared HTTP settings (user agent, timeout, retry policy)
  5. Returns a constructed provider; no network I/O happens here, clients
     are built lazily on first use

Usage:
    factory = ProviderFactory(get_config())
    frankfurter = factory.get("frankfurter")
"""

import logging
import threading
from typing import Dict, List, Optional

from market_providers.integrations.error_reporter import ErrorReporter
from market_providers.integrations.http_client import RetryPolicy
from market_providers.providers.base import BaseProvider
from market_providers.providers.errors import (
    ProviderConfigurationError,
    ProviderNotConfiguredError,
)
from market_providers.providers.registry import ProviderRegistry
from market_providers.utils.config import get_config, resolve_credential

logger = logging.getLogger('market_providers.registry')

# Settings keys consumed by the factory rather than passed to constructors
_CONTROL_KEYS = {'enabled', 'api_key_env', 'api_key'}

_TRUE_STRINGS = {'1', 'true', 'yes', 'on'}
_FALSE_STRINGS = {'0', 'false', 'no', 'off', ''}


def _as_bool(value) -> bool:
    """Config flag that may arrive as a quoted YAML string."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ProviderConfigurationError(f"Invalid boolean setting: {value!r}")
    return bool(value)


class ProviderFactory:
    """Creates provider instances from configuration."""

    def __init__(
        self,
        config: Optional[Dict] = None,
        *,
        error_reporter: Optional[ErrorReporter] = None,
    ):
        """
        Args:
            config: Full configuration dict (defaults to ``get_config()``).
            error_reporter: Reporter handed to every provider; None uses the
                            process default.
        """
        config = config if config is not None else get_config()
        providers_cfg = config.get('providers', {}) or {}
        self._concepts_cfg: Dict = providers_cfg.get('concepts', {}) or {}
        self._settings: Dict = providers_cfg.get('settings', {}) or {}
        self._http_cfg: Dict = config.get('http', {}) or {}
        self._error_reporter = error_reporter

        # Live instances, one per key, for the life of the factory
        self._instances: Dict[str, BaseProvider] = {}
        self._lock = threading.Lock()

    @property
    def concepts_config(self) -> Dict:
        return self._concepts_cfg

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def is_enabled(self, key: str) -> bool:
        """Registered and not switched off by ``enabled: false``."""
        if ProviderRegistry.get(key) is None:
            return False
        return _as_bool(self._settings_for(key).get('enabled', True))

    def enabled_keys(self) -> List[str]:
        return [k for k in ProviderRegistry.list_keys() if self.is_enabled(k)]

    def get(self, key: str) -> BaseProvider:
        """Return the memoized instance for *key*, creating it on first use.

        Raises:
            ProviderNotConfiguredError: unknown or disabled key
            ProviderConfigurationError: settings do not fit the constructor
        """
        instance = self._instances.get(key)
        if instance is not None:
            return instance

        if not self.is_enabled(key):
            raise ProviderNotConfiguredError(key, available=self.enabled_keys())

        with self._lock:
            instance = self._instances.get(key)
            if instance is None:
                instance = self._create_instance(key)
                self._instances[key] = instance
        return instance

    def close_all(self):
        """Close every cached provider client and clear the cache."""
        with self._lock:
            for key, instance in self._instances.items():
                try:
                    instance.close()
                except Exception as exc:
                    logger.warning("Error closing provider %s: %s", key, exc)
            self._instances.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _settings_for(self, key: str) -> Dict:
        return self._settings.get(key) or {}

    def _create_instance(self, key: str) -> BaseProvider:
        provider_cls = ProviderRegistry.get(key)
        settings = self._settings_for(key)

        kwargs = {k: v for k, v in settings.items() if k not in _CONTROL_KEYS}
        if 'api_key_env' in settings or 'api_key' in settings:
            api_key = resolve_credential(settings)
            if not api_key:
                logger.info("No API key for '%s'; using default tier", key)
            kwargs['api_key'] = api_key

        kwargs.setdefault('user_agent', self._http_cfg.get('user_agent'))
        kwargs.setdefault('timeout', self._http_cfg.get('timeout'))
        kwargs['retry_policy'] = RetryPolicy.from_config(self._http_cfg)
        kwargs['error_reporter'] = self._error_reporter

        try:
            instance = provider_cls(**kwargs)
        except TypeError as exc:
            raise ProviderConfigurationError(
                f"Failed to construct {provider_cls.__name__}({key}): {exc}. "
                f"kwargs={sorted(kwargs)}"
            ) from exc

        logger.info("Provider '%s' (%s) configured", key, provider_cls.__name__)
        return instance
