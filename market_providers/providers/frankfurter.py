"""
Market Providers - Frankfurter Exchange Rates
=============================================
Exchange-rate provider backed by the keyless Frankfurter API
(European Central Bank reference rates).

Frankfurter supports native date ranges (``/2024-01-01..2024-01-31``), so
``fetch_exchange_rates`` is one upstream call; the returned window is
filtered, de-duplicated and sorted before it reaches the caller.
"""

import math
from datetime import date
from typing import List

from market_providers.providers.base import ExchangeRateProvider, normalize_rates
from market_providers.providers.errors import UpstreamError
from market_providers.providers.registry import ProviderRegistry
from market_providers.providers.response import ProviderResponse
from market_providers.providers.types import ErrorKind, Rate, UsageData


class FrankfurterProvider(ExchangeRateProvider):
    """ECB reference rates via api.frankfurter.app."""

    key = "frankfurter"
    base_url = "https://api.frankfurter.app"

    def health_check(self) -> ProviderResponse[bool]:
        def _check():
            data = self.client.get_json("/latest")
            return isinstance(data, dict) and bool(data.get("rates"))

        return self._call("health_check", _check)

    def usage(self) -> ProviderResponse[UsageData]:
        # Free and unlimited; no usage endpoint
        return self._call("usage", lambda: UsageData.static(math.inf, "free"))

    # ------------------------------------------------------------------
    # Exchange rates
    # ------------------------------------------------------------------

    def fetch_exchange_rate(self, from_currency: str, to_currency: str, date: date) -> ProviderResponse[Rate]:
        def _fetch():
            data = self.client.get_json(
                f"/{date.isoformat()}",
                params={"from": from_currency, "to": to_currency},
            )
            rate_value = data.get("rates", {}).get(to_currency)
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
        def _fetch():
            if start_date > end_date:
                return []
            data = self.client.get_json(
                f"/{start_date.isoformat()}..{end_date.isoformat()}",
                params={"from": from_currency, "to": to_currency},
            )
            rates_data = data.get("rates")
            if not isinstance(rates_data, dict):
                raise UpstreamError(
                    f"Malformed range payload for {from_currency} to {to_currency}",
                    upstream_message=repr(data)[:200],
                )

            rates = []
            for date_str, rate_data in rates_data.items():
                rate = self._parse_rate(from_currency, to_currency, date_str, rate_data)
                if rate is not None:
                    rates.append(rate)
            return normalize_rates(rates, start_date, end_date)

        return self._call(
            "fetch_exchange_rates", _fetch,
            from_currency=from_currency, to_currency=to_currency,
            start_date=start_date, end_date=end_date,
        )

    def _parse_rate(self, from_currency, to_currency, date_str, rate_data):
        """One entry of the range payload, or None (reported) if invalid."""
        rate_value = rate_data.get(to_currency) if isinstance(rate_data, dict) else None
        try:
            if not date_str or rate_value is None:
                raise ValueError(f"rate data {rate_data!r}")
            return Rate(
                date=date.fromisoformat(date_str),
                from_currency=from_currency,
                to_currency=to_currency,
                rate=float(rate_value),
            )
        except (TypeError, ValueError) as exc:
            self._logger.warning(
                "%s returned invalid rate data for pair from: %s to: %s on: %s. Rate data: %r",
                type(self).__name__, from_currency, to_currency, date_str, rate_value,
            )
            self._report(
                "parse_rate",
                self.failure(
                    ErrorKind.UPSTREAM_ERROR,
                    f"{type(self).__name__} returned invalid rate data",
                    upstream_message=str(exc),
                ),
                from_currency=from_currency, to_currency=to_currency, date=date_str,
            )
            return None


# ---------------------------------------------------------------------------
# Auto-register with the provider registry at import time
# ---------------------------------------------------------------------------
ProviderRegistry.register(FrankfurterProvider.key, FrankfurterProvider)
