"""
Market Providers - ExchangeRate-API
===================================
Exchange-rate provider backed by ExchangeRate-API v6.

With an API key the keyed endpoint (``v6.exchangerate-api.com``) is used;
without one the provider falls back to the open tier (``open.er-api.com``),
which only serves latest rates.  ExchangeRate-API has no range endpoint, so
ranges are decomposed into one request per day.
"""

from datetime import date
from typing import List, Optional

from market_providers.providers.base import ExchangeRateProvider
from market_providers.providers.errors import (
    RateLimitedError,
    RateNotFoundError,
    UpstreamError,
)
from market_providers.providers.registry import ProviderRegistry
from market_providers.providers.response import ProviderResponse
from market_providers.providers.types import ErrorKind, Rate, UsageData

KEYED_BASE_URL = "https://v6.exchangerate-api.com/v6"
OPEN_BASE_URL = "https://open.er-api.com/v6"

# Free tier: 1500 requests per month
FREE_TIER_MONTHLY_LIMIT = 1500

# "error-type" values -> error raised; anything else is an UPSTREAM_ERROR
ERROR_TYPES = {
    "no-data-available": RateNotFoundError,
    "unsupported-code": RateNotFoundError,
    "quota-reached": RateLimitedError,
}


class ExchangerateApiProvider(ExchangeRateProvider):
    """ExchangeRate-API v6 (keyed) with the open-access tier as fallback."""

    key = "exchangerate_api"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        self._api_key = api_key or None
        super().__init__(**kwargs)

    @property
    def base_url(self) -> str:
        if self._api_key:
            return f"{KEYED_BASE_URL}/{self._api_key}"
        return OPEN_BASE_URL

    @property
    def plan(self) -> str:
        return "keyed" if self._api_key else "free"

    def health_check(self) -> ProviderResponse[bool]:
        def _check():
            data = self.client.get_json("/latest/USD")
            return isinstance(data, dict) and data.get("result") == "success"

        return self._call("health_check", _check)

    def usage(self) -> ProviderResponse[UsageData]:
        # Exact usage needs the keyed quota endpoint; report the tier limit
        return self._call("usage", lambda: UsageData.static(FREE_TIER_MONTHLY_LIMIT, self.plan))

    # ------------------------------------------------------------------
    # Exchange rates
    # ------------------------------------------------------------------

    def fetch_exchange_rate(self, from_currency: str, to_currency: str, date: date) -> ProviderResponse[Rate]:
        def _fetch():
            if date == self.today():
                path = f"/latest/{from_currency}"
            elif not self._api_key:
                # The open tier only serves latest rates
                return self.failure(
                    ErrorKind.RATE_NOT_FOUND,
                    f"Historical rates for {from_currency} on {date} need an API key",
                )
            else:
                path = f"/history/{from_currency}/{date.year}/{date.month}/{date.day}"
            data = self.client.get_json(path)

            if data.get("result") != "success":
                error_type = data.get("error-type")
                error_cls = ERROR_TYPES.get(error_type, UpstreamError)
                raise error_cls(f"API error: {error_type}", upstream_message=error_type)

            # Keyed history responses use conversion_rates; the open tier uses rates
            rates = data.get("conversion_rates") or data.get("rates") or {}
            rate_value = rates.get(to_currency)
            if rate_value is None:
                return self.failure(
                    ErrorKind.RATE_NOT_FOUND,
                    f"No rate found for {from_currency} to {to_currency} on {date}",
                )
            return Rate(date=date, from_currency=from_currency, to_currency=to_currency, rate=float(rate_value))

        return self._call(
            "fetch_exchange_rate", _fetch,
            from_currency=from_currency, to_currency=to_currency, date=date,
        )

    def fetch_exchange_rates(
        self,
        from_currency: str,
        to_currency: str,
        start_date: date,
        end_date: date,
    ) -> ProviderResponse[List[Rate]]:
        return self._call(
            "fetch_exchange_rates",
            lambda: self._fetch_rates_by_day(from_currency, to_currency, start_date, end_date),
            from_currency=from_currency, to_currency=to_currency,
            start_date=start_date, end_date=end_date,
        )


ProviderRegistry.register(ExchangerateApiProvider.key, ExchangerateApiProvider)
