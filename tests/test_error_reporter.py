"""
Market Providers - Error Reporter Tests
"""

import threading
import unittest
from datetime import date
from unittest.mock import Mock

from provider_fixtures import FakeHttpClient

from market_providers.integrations.error_reporter import (
    CallbackErrorReporter,
    ErrorEvent,
    LoggingErrorReporter,
    get_error_reporter,
    set_error_reporter,
)
from market_providers.providers.errors import UpstreamError
from market_providers.providers.frankfurter import FrankfurterProvider


def make_event(**overrides):
    fields = dict(
        provider='frankfurter',
        operation='fetch_exchange_rate',
        kind='upstream_error',
        message='HTTP 502',
        context={'from_currency': 'USD'},
    )
    fields.update(overrides)
    return ErrorEvent(**fields)


class TestErrorEvent(unittest.TestCase):

    def test_to_dict(self):
        data = make_event(upstream_message='Bad Gateway').to_dict()
        self.assertEqual(data['provider'], 'frankfurter')
        self.assertEqual(data['kind'], 'upstream_error')
        self.assertEqual(data['upstream_message'], 'Bad Gateway')
        self.assertEqual(data['context'], {'from_currency': 'USD'})
        self.assertIsInstance(data['occurred_at'], str)


class TestLoggingErrorReporter(unittest.TestCase):

    def test_logs_warning(self):
        reporter = LoggingErrorReporter()
        with self.assertLogs('market_providers.errors', level='WARNING') as logs:
            reporter.report(make_event())
        self.assertIn('frankfurter.fetch_exchange_rate', logs.output[0])


class TestCallbackErrorReporter(unittest.TestCase):

    def test_events_delivered_off_thread(self):
        received = []
        threads = []

        def _sink(event):
            received.append(event)
            threads.append(threading.current_thread())

        reporter = CallbackErrorReporter(_sink)
        reporter.report(make_event())
        reporter.report(make_event(operation='health_check'))

        self.assertTrue(reporter.flush(timeout=5))
        self.assertEqual([e.operation for e in received], ['fetch_exchange_rate', 'health_check'])
        self.assertTrue(all(t is not threading.main_thread() for t in threads))
        reporter.close()

    def test_callback_failure_is_contained(self):
        calls = []

        def _sink(event):
            calls.append(event)
            raise RuntimeError("sink unavailable")

        reporter = CallbackErrorReporter(_sink)
        with self.assertLogs('market_providers.errors', level='WARNING'):
            reporter.report(make_event())
            self.assertTrue(reporter.flush(timeout=5))
        reporter.report(make_event())
        self.assertTrue(reporter.flush(timeout=5))
        self.assertEqual(len(calls), 2)
        reporter.close()

    def test_full_queue_drops_events(self):
        gate = threading.Event()
        reporter = CallbackErrorReporter(lambda event: gate.wait(5), max_queue_size=1)

        for _ in range(5):
            reporter.report(make_event())

        self.assertGreaterEqual(reporter.dropped, 3)
        gate.set()
        self.assertTrue(reporter.flush(timeout=5))
        reporter.close()

    def test_flush_without_events(self):
        reporter = CallbackErrorReporter(Mock())
        self.assertTrue(reporter.flush(timeout=1))


class TestDefaultReporter(unittest.TestCase):

    def tearDown(self):
        set_error_reporter(None)

    def test_set_and_restore(self):
        custom = Mock()
        previous = set_error_reporter(custom)
        self.assertIsInstance(previous, LoggingErrorReporter)
        self.assertIs(get_error_reporter(), custom)

        set_error_reporter(None)
        self.assertIsInstance(get_error_reporter(), LoggingErrorReporter)

    def test_provider_without_reporter_uses_default(self):
        custom = Mock()
        set_error_reporter(custom)
        provider = FrankfurterProvider(http_client=FakeHttpClient({
            "/2024-01-02": UpstreamError("HTTP 502 from /2024-01-02", upstream_message="Bad Gateway"),
        }))

        response = provider.fetch_exchange_rate("USD", "EUR", date(2024, 1, 2))

        self.assertFalse(response.success)
        custom.report.assert_called_once()
        event = custom.report.call_args[0][0]
        self.assertEqual(event.provider, 'frankfurter')
        self.assertEqual(event.upstream_message, 'Bad Gateway')
        self.assertEqual(event.context['date'], '2024-01-02')


if __name__ == '__main__':
    unittest.main()
