"""
Market Providers - Response Envelope Tests
Tests for canonical value types, the ProviderResponse envelope and the
capturing boundary that builds it.
"""

import math
import unittest
from datetime import date, datetime
from unittest.mock import Mock

import provider_fixtures  # noqa: F401  (adds project root to sys.path)

from market_providers.integrations.error_reporter import ErrorReporter
from market_providers.providers.errors import (
    RateLimitedError,
    RateNotFoundError,
    UpstreamError,
)
from market_providers.providers.response import ProviderResponse, with_provider_response
from market_providers.providers.types import (
    Concept, ErrorInfo, ErrorKind, Price, Rate, UsageData,
)


class TestValueTypes(unittest.TestCase):
    """Canonical data types keep supplied values and enforce invariants."""

    def test_rate_round_trip(self):
        rate = Rate(date=date(2024, 1, 2), from_currency="USD", to_currency="EUR", rate=0.9123)
        self.assertEqual(rate.date, date(2024, 1, 2))
        self.assertEqual(rate.from_currency, "USD")
        self.assertEqual(rate.to_currency, "EUR")
        self.assertEqual(rate.rate, 0.9123)
        self.assertEqual(rate.key, ("USD", "EUR", date(2024, 1, 2)))

    def test_rate_must_be_positive(self):
        with self.assertRaises(ValueError):
            Rate(date=date(2024, 1, 2), from_currency="USD", to_currency="EUR", rate=0)
        with self.assertRaises(ValueError):
            Rate(date=date(2024, 1, 2), from_currency="USD", to_currency="EUR", rate=-1.5)

    def test_rate_rejects_timestamp(self):
        with self.assertRaises(TypeError):
            Rate(date=datetime(2024, 1, 2, 12), from_currency="USD", to_currency="EUR", rate=1.1)

    def test_price_round_trip_and_default_currency(self):
        price = Price(symbol="AAPL", date=date(2024, 1, 2), price=185.64, exchange_operating_mic="XNAS")
        self.assertEqual(price.symbol, "AAPL")
        self.assertEqual(price.price, 185.64)
        self.assertEqual(price.currency, "USD")
        self.assertEqual(price.exchange_operating_mic, "XNAS")

    def test_price_allows_zero_but_not_negative(self):
        Price(symbol="X", date=date(2024, 1, 2), price=0.0)
        with self.assertRaises(ValueError):
            Price(symbol="X", date=date(2024, 1, 2), price=-0.01)

    def test_price_rejects_nan(self):
        with self.assertRaises(ValueError):
            Price(symbol="X", date=date(2024, 1, 2), price=math.nan)

    def test_usage_static_snapshot(self):
        usage = UsageData.static(math.inf, "free")
        self.assertTrue(usage.unbounded)
        self.assertEqual(usage.used, 0)
        self.assertEqual(usage.utilization, 0.0)

        bounded = UsageData.static(25, "demo")
        self.assertFalse(bounded.unbounded)
        self.assertLessEqual(bounded.used, bounded.limit)

    def test_usage_invariants(self):
        with self.assertRaises(ValueError):
            UsageData(used=0, limit=10, utilization=1.5, plan="free")
        with self.assertRaises(ValueError):
            UsageData(used=11, limit=10, utilization=1.0, plan="free")

    def test_concept_parse(self):
        self.assertIs(Concept.parse("exchange_rates"), Concept.EXCHANGE_RATES)
        self.assertIs(Concept.parse(" Securities "), Concept.SECURITIES)
        self.assertIs(Concept.parse(Concept.SECURITIES), Concept.SECURITIES)
        with self.assertRaises(ValueError):
            Concept.parse("crypto")


class TestProviderResponse(unittest.TestCase):
    """Envelope holds either data or an error, never both."""

    def test_ok(self):
        response = ProviderResponse.ok([1, 2])
        self.assertTrue(response.success)
        self.assertTrue(response)
        self.assertEqual(response.data, [1, 2])
        self.assertIsNone(response.error)
        self.assertEqual(response.unwrap(), [1, 2])

    def test_fail(self):
        response = ProviderResponse.fail(ErrorKind.RATE_NOT_FOUND, "nothing", upstream_message="raw")
        self.assertFalse(response.success)
        self.assertFalse(response)
        self.assertIsNone(response.data)
        self.assertEqual(response.error_kind, ErrorKind.RATE_NOT_FOUND)
        self.assertEqual(response.error.upstream_message, "raw")

    def test_never_both(self):
        info = ErrorInfo(kind=ErrorKind.UPSTREAM_ERROR, message="boom")
        with self.assertRaises(ValueError):
            ProviderResponse(success=True, data=1, error=info)
        with self.assertRaises(ValueError):
            ProviderResponse(success=False, data=1, error=info)
        with self.assertRaises(ValueError):
            ProviderResponse(success=False)

    def test_unwrap_raises_matching_error(self):
        response = ProviderResponse.fail(ErrorKind.RATE_NOT_FOUND, "no rate")
        with self.assertRaises(RateNotFoundError):
            response.unwrap()
        response = ProviderResponse.fail(ErrorKind.RATE_LIMITED, "slow down")
        with self.assertRaises(RateLimitedError):
            response.unwrap()

    def test_immutable(self):
        response = ProviderResponse.ok(1)
        with self.assertRaises(Exception):
            response.data = 2


class TestCapturingBoundary(unittest.TestCase):
    """with_provider_response never raises and classifies every outcome."""

    def setUp(self):
        self.reporter = Mock(spec=ErrorReporter)

    def _run(self, fn, **kwargs):
        return with_provider_response(
            fn,
            provider="test",
            operation="op",
            context={'symbol': 'AAPL'},
            reporter=self.reporter,
            **kwargs,
        )

    def test_value_becomes_success(self):
        response = self._run(lambda: 42)
        self.assertTrue(response.success)
        self.assertEqual(response.data, 42)
        self.reporter.report.assert_not_called()

    def test_returned_error_info_becomes_failure_without_report(self):
        response = self._run(lambda: ErrorInfo(ErrorKind.SECURITY_NOT_FOUND, "unknown symbol"))
        self.assertFalse(response.success)
        self.assertEqual(response.error_kind, ErrorKind.SECURITY_NOT_FOUND)
        self.reporter.report.assert_not_called()

    def test_provider_error_is_captured_and_reported(self):
        def _fail():
            raise UpstreamError("HTTP 500", upstream_message="Internal Server Error")

        response = self._run(_fail)
        self.assertFalse(response.success)
        self.assertEqual(response.error_kind, ErrorKind.UPSTREAM_ERROR)
        self.assertEqual(response.error.message, "HTTP 500")
        self.reporter.report.assert_called_once()
        event = self.reporter.report.call_args[0][0]
        self.assertEqual(event.provider, "test")
        self.assertEqual(event.operation, "op")
        self.assertEqual(event.context, {'symbol': 'AAPL'})

    def test_unexpected_exception_is_upstream_error(self):
        response = self._run(lambda: {}["missing"])
        self.assertFalse(response.success)
        self.assertEqual(response.error_kind, ErrorKind.UPSTREAM_ERROR)
        self.assertIn("KeyError", response.error.message)
        self.reporter.report.assert_called_once()

    def test_rate_limited_is_reported(self):
        def _fail():
            raise RateLimitedError("quota", upstream_message="25 requests per day")

        response = self._run(_fail)
        self.assertEqual(response.error_kind, ErrorKind.RATE_LIMITED)
        self.reporter.report.assert_called_once()

    def test_reporter_failure_does_not_escape(self):
        self.reporter.report.side_effect = RuntimeError("sink down")

        def _fail():
            raise UpstreamError("bad")

        response = self._run(_fail)
        self.assertFalse(response.success)

    def test_nested_response_passes_through(self):
        inner = ProviderResponse.fail(ErrorKind.RATE_NOT_FOUND, "none")
        self.assertIs(self._run(lambda: inner), inner)


if __name__ == '__main__':
    unittest.main()
