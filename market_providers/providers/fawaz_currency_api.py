"""
Market Providers - Fawaz Currency API
=====================================
Keyless exchange-rate provider backed by the fawazahmed0 currency-api
published on the jsDelivr CDN.  One JSON file per base currency per day;
no native range support, so ranges are decomposed into single-day calls.
"""

import math
from datetime import date
from typing import List

from market_providers.providers.base import ExchangeRateProvider
from market_providers.providers.registry import ProviderRegistry
from market_providers.providers.response import ProviderResponse
from market_providers.providers.types import ErrorKind, Rate, UsageData

CDN_BASE_URL = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api"


class FawazCurrencyApiProvider(ExchangeRateProvider):
    """Daily currency snapshots from the fawazahmed0 currency-api."""

    key = "fawaz_currency_api"

    def health_check(self) -> ProviderResponse[bool]:
        def _check():
            data = self.client.get_json(f"{CDN_BASE_URL}@latest/v1/currencies.json")
            return isinstance(data, dict) and bool(data)

        return self._call("health_check", _check)

    def usage(self) -> ProviderResponse[UsageData]:
        # Free CDN, no rate limits
        return self._call("usage", lambda: UsageData.static(math.inf, "free"))

    # ------------------------------------------------------------------
    # Exchange rates
    # ------------------------------------------------------------------

    def fetch_exchange_rate(self, from_currency: str, to_currency: str, date: date) -> ProviderResponse[Rate]:
        def _fetch():
            version = "latest" if date == self.today() else date.isoformat()
            data = self.client.get_json(
                f"{CDN_BASE_URL}@{version}/v1/currencies/{from_currency.lower()}.json"
            )
            # Rates are keyed by the lower-cased base currency
            rates = data.get(from_currency.lower())
            if rates is None:
                return self.failure(ErrorKind.RATE_NOT_FOUND, f"No rates found for {from_currency}")

            rate_value = rates.get(to_currency.lower())
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


ProviderRegistry.register(FawazCurrencyApiProvider.key, FawazCurrencyApiProvider)
