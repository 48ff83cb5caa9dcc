"""
Market Providers
================
Pluggable market-data and exchange-rate providers behind one normalized
interface.

    from datetime import date
    from market_providers import for_concept

    for provider in for_concept("exchange_rates"):
        response = provider.fetch_exchange_rate("USD", "EUR", date.today())
        if response.success:
            print(provider.key, response.data.rate)
            break
"""

__version__ = "0.1.0"

# Load the provider layer first: it pulls in the integrations it depends on
from market_providers.providers import (  # noqa: E402
    Concept,
    ErrorKind,
    ErrorInfo,
    Rate,
    Price,
    Security,
    SecurityInfo,
    UsageData,
    ProviderResponse,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderConfigurationError,
    ProviderGroup,
    Registry,
    get_registry,
    get_provider,
    for_concept,
)

__all__ = [
    'Concept',
    'ErrorKind',
    'ErrorInfo',
    'Rate',
    'Price',
    'Security',
    'SecurityInfo',
    'UsageData',
    'ProviderResponse',
    'ProviderError',
    'ProviderNotConfiguredError',
    'ProviderConfigurationError',
    'ProviderGroup',
    'Registry',
    'get_registry',
    'get_provider',
    'for_concept',
]
