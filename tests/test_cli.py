"""
Market Providers - CLI Tests
Commands run against a registry whose providers use canned HTTP payloads.
"""

import io
import unittest
from contextlib import redirect_stdout

from provider_fixtures import FakeHttpClient, make_config

from market_providers.cli import provider_cli
from market_providers.providers.errors import UpstreamError
from market_providers.providers.fawaz_currency_api import CDN_BASE_URL
from market_providers.providers.registry import Registry
from market_providers.utils.config import reset_config
from market_providers.utils.logging import shutdown_logging


class TestCliMain(unittest.TestCase):
    """Full ``main()`` runs that need no network."""

    def tearDown(self):
        shutdown_logging()
        reset_config()

    def _main(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = provider_cli.main(list(argv))
        return code, out.getvalue()

    def test_list(self):
        code, output = self._main('list')
        self.assertEqual(code, 0)
        self.assertIn('frankfurter > fawaz_currency_api > exchangerate_api', output)
        self.assertIn('alpha_vantage', output)

    def test_usage(self):
        code, output = self._main('usage', '--concept', 'exchange_rates')
        self.assertEqual(code, 0)
        self.assertIn('frankfurter', output)
        self.assertIn('unlimited', output)

    def test_unknown_provider_exit_code(self):
        code, output = self._main('usage', '--provider', 'synth')
        self.assertEqual(code, 2)
        self.assertIn("Provider 'synth' is not configured", output)


class TestCliCommands(unittest.TestCase):
    """Command functions with injected HTTP doubles."""

    def setUp(self):
        self.registry = Registry(make_config())
        self.parser = provider_cli.build_parser()

    def tearDown(self):
        self.registry.close()

    def _inject(self, key, routes):
        provider = self.registry.get_provider(key)
        provider._client = FakeHttpClient(routes)
        return provider

    def _run(self, *argv):
        args = self.parser.parse_args(list(argv))
        out = io.StringIO()
        with redirect_stdout(out):
            code = args.func(args, self.registry)
        return code, out.getvalue()

    def test_rate_falls_back_to_next_provider(self):
        self._inject('frankfurter', {'/2024-01-02': UpstreamError("HTTP 503")})
        self._inject('fawaz_currency_api', {
            f"{CDN_BASE_URL}@2024-01-02/v1/currencies/usd.json": {'usd': {'eur': 0.91}},
        })

        code, output = self._run('rate', 'USD', 'EUR', '--date', '2024-01-02')

        self.assertEqual(code, 0)
        self.assertIn('FAILED [upstream_error]', output)
        self.assertIn('via fawaz_currency_api', output)
        self.assertIn('0.910000', output)

    def test_rate_range_single_provider(self):
        self._inject('frankfurter', {
            '/2024-01-02..2024-01-03': {'rates': {'2024-01-02': {'EUR': 0.91}, '2024-01-03': {'EUR': 0.92}}},
        })
        code, output = self._run(
            'rate', 'USD', 'EUR', '--date', '2024-01-02', '--end', '2024-01-03', '--provider', 'frankfurter',
        )

        self.assertEqual(code, 0)
        self.assertIn('Total: 2', output)

    def test_search(self):
        self._inject('alpha_vantage', {'/query': {'bestMatches': [
            {'1. symbol': 'AAPL', '2. name': 'Apple Inc', '4. region': 'United States'},
        ]}})
        code, output = self._run('search', 'AAPL')

        self.assertEqual(code, 0)
        self.assertIn('AAPL', output)
        self.assertIn('XNAS', output)

    def test_price_failure_exit_code(self):
        self._inject('alpha_vantage', {'/query': {'Error Message': 'Invalid API call.'}})
        code, output = self._run('price', 'NOPE', '--date', '2024-01-02')

        self.assertEqual(code, 1)
        self.assertIn('FAILED [upstream_error]', output)

    def test_health_counts_unhealthy(self):
        self._inject('frankfurter', {'/latest': {'rates': {}}})
        code, output = self._run('health', '--provider', 'frankfurter')

        self.assertEqual(code, 1)
        self.assertIn('UNHEALTHY', output)


if __name__ == '__main__':
    unittest.main()
