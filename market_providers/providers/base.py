"""
Market Providers - Provider Abstract Base Classes
==================================================
Two concept ABCs that providers implement:

  ExchangeRateProvider  – single-day and date-range FX rates
  SecuritiesProvider    – security search, metadata and prices

Each ABC inherits ``BaseProvider`` which wires up:
  - a lazily built, memoized ``HttpClient`` (one per provider instance,
    race-safe first initialization)
  - the capturing boundary (``_call``) that turns every operation into a
    ``ProviderResponse``
  - the error-reporting collaborator

Concrete providers (Frankfurter, Alpha Vantage, …) subclass one or more of
these ABCs and register themselves with ``ProviderRegistry``.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Callable, Iterable, List, Optional

from market_providers.integrations.error_reporter import ErrorReporter
from market_providers.integrations.http_client import HttpClient, RetryPolicy
from market_providers.providers.response import (
    ProviderResponse,
    report_error,
    with_provider_response,
)
from market_providers.providers.types import (
    Concept, ErrorInfo, ErrorKind, Price, Rate, Security, SecurityInfo, UsageData,
)


class BaseProvider(ABC):
    """Shared foundation for every data provider."""

    #: Registry key, set by each concrete provider.
    key: str = ""

    #: Base URL handed to the memoized client, or None for absolute URLs.
    base_url: Optional[str] = None

    def __init__(
        self,
        *,
        http_client: Optional[HttpClient] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        error_reporter: Optional[ErrorReporter] = None,
        logger: logging.Logger = None,
    ):
        self._logger = logger or logging.getLogger(f"market_providers.provider.{self.key}")
        self._user_agent = user_agent
        self._timeout = timeout
        self._retry_policy = retry_policy
        self._error_reporter = error_reporter

        # May be injected (tests, shared clients); otherwise built on first use
        self._client = http_client
        self._client_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.key

    @property
    def concepts(self) -> List[Concept]:
        return concepts_of(type(self))

    @property
    def client(self) -> HttpClient:
        """Memoized upstream client; the first caller builds it."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._build_client()
        return self._client

    def _build_client(self) -> HttpClient:
        kwargs = {'logger': logging.getLogger('market_providers.http')}
        if self._user_agent:
            kwargs['user_agent'] = self._user_agent
        if self._timeout is not None:
            kwargs['timeout'] = self._timeout
        if self._retry_policy is not None:
            kwargs['retry_policy'] = self._retry_policy
        return HttpClient(self.base_url, **kwargs)

    def today(self) -> date:
        """Current calendar date (overridable for tests)."""
        return date.today()

    # ------------------------------------------------------------------
    # Universal operations
    # ------------------------------------------------------------------

    @abstractmethod
    def health_check(self) -> ProviderResponse[bool]:
        """True iff the upstream is reachable and returns a well-formed payload."""
        ...

    @abstractmethod
    def usage(self) -> ProviderResponse[UsageData]:
        """Best-effort quota snapshot."""
        ...

    # ------------------------------------------------------------------
    # Boundary helpers (call from subclass operations)
    # ------------------------------------------------------------------

    def _call(self, operation: str, fn: Callable[[], Any], **context) -> ProviderResponse:
        """Run *fn* under the capturing boundary."""
        context.setdefault('provider', self.key)
        return with_provider_response(
            fn,
            provider=self.key,
            operation=operation,
            context={k: _printable(v) for k, v in context.items()},
            reporter=self._error_reporter,
            logger=self._logger,
        )

    def _report(self, operation: str, info: ErrorInfo, **context):
        """Send *info* to the error reporter without building an envelope."""
        context.setdefault('provider', self.key)
        report_error(
            self._error_reporter, self.key, operation, info,
            {k: _printable(v) for k, v in context.items()},
        )

    @staticmethod
    def failure(kind: ErrorKind, message: str, upstream_message: Optional[str] = None) -> ErrorInfo:
        """Explicit failure value for a provider operation body."""
        return ErrorInfo(kind=kind, message=message, upstream_message=upstream_message)

    def close(self):
        """Release the upstream client, if one was built."""
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} key={self.key!r}>"


# ======================================================================
# Concept ABCs
# ======================================================================

class ExchangeRateProvider(BaseProvider):
    """Provider for foreign-exchange rates."""

    concept = Concept.EXCHANGE_RATES

    @abstractmethod
    def fetch_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        date: date,
    ) -> ProviderResponse[Rate]:
        """Rate for one pair on one day.

        Fails with ``RATE_NOT_FOUND`` when the upstream has no data for the
        triple, ``UPSTREAM_ERROR`` when the call itself fails.
        """
        ...

    @abstractmethod
    def fetch_exchange_rates(
        self,
        from_currency: str,
        to_currency: str,
        start_date: date,
        end_date: date,
    ) -> ProviderResponse[List[Rate]]:
        """Rates for every available day in ``[start_date, end_date]``,
        ascending by date with no duplicate dates.
        """
        ...

    def _fetch_rates_by_day(
        self,
        from_currency: str,
        to_currency: str,
        start_date: date,
        end_date: date,
    ) -> List[Rate]:
        """Range decomposition: one ``fetch_exchange_rate`` per day.

        Runs sequentially.  A failed day is logged and omitted; it never
        fails the whole range.
        """
        rates = []
        for day in date_range(start_date, end_date):
            response = self.fetch_exchange_rate(from_currency, to_currency, day)
            if response.success:
                rates.append(response.data)
            else:
                level = logging.INFO if response.error.kind.is_expected else logging.WARNING
                self._logger.log(
                    level, "Failed to fetch rate for %s to %s on %s: %s",
                    from_currency, to_currency, day, response.error.message,
                )
        return normalize_rates(rates, start_date, end_date)


class SecuritiesProvider(BaseProvider):
    """Provider for security search, metadata and prices."""

    concept = Concept.SECURITIES

    @abstractmethod
    def search_securities(
        self,
        symbol: str,
        country_code: Optional[str] = None,
        exchange_operating_mic: Optional[str] = None,
    ) -> ProviderResponse[List[Security]]:
        """Symbol / free-text search.  No matches is an empty success."""
        ...

    @abstractmethod
    def fetch_security_info(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
    ) -> ProviderResponse[SecurityInfo]:
        ...

    @abstractmethod
    def fetch_security_price(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
        date: date,
    ) -> ProviderResponse[Price]:
        """Price on *date*; the current date prefers a latest-quote call."""
        ...

    @abstractmethod
    def fetch_security_prices(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
        start_date: date,
        end_date: date,
    ) -> ProviderResponse[List[Price]]:
        """Prices within ``[start_date, end_date]``, ascending by date."""
        ...

    def _price_from_range(
        self,
        symbol: str,
        exchange_operating_mic: Optional[str],
        day: date,
    ):
        """Historical single-day price via the range fetch (start=end=day)."""
        response = self.fetch_security_prices(symbol, exchange_operating_mic, day, day)
        if not response.success:
            return response
        if not response.data:
            return self.failure(
                ErrorKind.SECURITY_NOT_FOUND,
                f"No price found for {symbol} on {day}",
            )
        return response.data[0]


CONCEPT_BASES = {
    Concept.EXCHANGE_RATES: ExchangeRateProvider,
    Concept.SECURITIES: SecuritiesProvider,
}


def concepts_of(provider_class: type) -> List[Concept]:
    """Concepts whose ABC *provider_class* subclasses."""
    return [
        concept for concept, base in CONCEPT_BASES.items()
        if isinstance(provider_class, type) and issubclass(provider_class, base)
    ]


# ---------------------------------------------------------------------------
# Range helpers
# ---------------------------------------------------------------------------

def date_range(start_date: date, end_date: date) -> Iterable[date]:
    """Every calendar day in ``[start_date, end_date]`` (empty if reversed)."""
    day = start_date
    while day <= end_date:
        yield day
        day += timedelta(days=1)


def normalize_rates(rates: Iterable[Rate], start_date: date, end_date: date) -> List[Rate]:
    """Keep rates inside the range, one per date (first wins), ascending."""
    by_date = {}
    for rate in rates:
        if start_date <= rate.date <= end_date and rate.date not in by_date:
            by_date[rate.date] = rate
    return [by_date[d] for d in sorted(by_date)]


def normalize_prices(prices: Iterable[Price], start_date: date, end_date: date) -> List[Price]:
    """Keep prices inside the range, one per date (first wins), ascending."""
    by_date = {}
    for price in prices:
        if start_date <= price.date <= end_date and price.date not in by_date:
            by_date[price.date] = price
    return [by_date[d] for d in sorted(by_date)]


def _printable(value):
    if isinstance(value, date):
        return value.isoformat()
    return value
