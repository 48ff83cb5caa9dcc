"""
Market Providers - Data Provider Abstraction Layer
==================================================
Provides a unified interface over interchangeable upstream data sources,
grouped by concept:

  exchange_rates  – daily FX rates for a currency pair
  securities      – security search, metadata and prices

Every provider operation returns a ``ProviderResponse`` envelope instead of
raising.  Concrete implementations live in sub-modules (e.g.
``providers.frankfurter``) and register themselves via ``ProviderRegistry``;
``Registry`` resolves the configured, ordered instances per concept.
"""

from market_providers.providers.types import (
    Concept,
    ErrorKind,
    ErrorInfo,
    Rate,
    Price,
    Security,
    SecurityInfo,
    UsageData,
)
from market_providers.providers.errors import (
    ProviderError,
    UpstreamError,
    RateLimitedError,
    RateNotFoundError,
    SecurityNotFoundError,
    ProviderNotConfiguredError,
    ProviderConfigurationError,
)
from market_providers.providers.response import ProviderResponse, with_provider_response
from market_providers.providers.base import (
    BaseProvider,
    ExchangeRateProvider,
    SecuritiesProvider,
)
from market_providers.providers.registry import (
    ProviderRegistry,
    ProviderGroup,
    Registry,
    get_registry,
    reset_registry,
    get_provider,
    for_concept,
)
from market_providers.providers.factory import ProviderFactory

# Import concrete providers so they auto-register with the registry
import market_providers.providers.frankfurter         # noqa: F401
import market_providers.providers.fawaz_currency_api  # noqa: F401
import market_providers.providers.exchangerate_api    # noqa: F401
import market_providers.providers.alpha_vantage       # noqa: F401

__all__ = [
    # Canonical data types
    'Concept',
    'ErrorKind',
    'ErrorInfo',
    'Rate',
    'Price',
    'Security',
    'SecurityInfo',
    'UsageData',
    # Errors
    'ProviderError',
    'UpstreamError',
    'RateLimitedError',
    'RateNotFoundError',
    'SecurityNotFoundError',
    'ProviderNotConfiguredError',
    'ProviderConfigurationError',
    # Envelope
    'ProviderResponse',
    'with_provider_response',
    # Abstract base classes
    'BaseProvider',
    'ExchangeRateProvider',
    'SecuritiesProvider',
    # Registry
    'ProviderRegistry',
    'ProviderGroup',
    'Registry',
    'ProviderFactory',
    'get_registry',
    'reset_registry',
    'get_provider',
    'for_concept',
]
