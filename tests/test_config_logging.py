"""
Market Providers - Configuration and Logging Tests
"""

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import provider_fixtures  # noqa: F401

from market_providers.utils import config as config_module
from market_providers.utils.config import (
    DEFAULT_CONFIG,
    deep_merge,
    load_config,
    reset_config,
    resolve_credential,
)
from market_providers.utils.logging import (
    LoggingManager,
    setup_logging_from_config,
    shutdown_logging,
)


class TestDeepMerge(unittest.TestCase):

    def test_nested_override(self):
        base = {'http': {'timeout': 10, 'user_agent': 'a'}, 'logging': {'console_level': 'INFO'}}
        merged = deep_merge(base, {'http': {'timeout': 3}})

        self.assertEqual(merged['http'], {'timeout': 3, 'user_agent': 'a'})
        self.assertEqual(merged['logging'], {'console_level': 'INFO'})
        self.assertEqual(base['http']['timeout'], 10)

    def test_lists_are_replaced(self):
        merged = deep_merge(
            {'concepts': {'exchange_rates': ['a', 'b']}},
            {'concepts': {'exchange_rates': ['c']}},
        )
        self.assertEqual(merged['concepts']['exchange_rates'], ['c'])


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        reset_config()
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        reset_config()
        self.tmp.cleanup()

    def _write(self, text):
        path = Path(self.tmp.name) / 'config.yaml'
        path.write_text(text, encoding='utf-8')
        return str(path)

    def test_explicit_file_merged_over_defaults(self):
        path = self._write(
            "providers:\n"
            "  concepts:\n"
            "    exchange_rates: [fawaz_currency_api]\n"
            "http:\n"
            "  timeout: 3\n"
        )
        config = load_config(path)

        self.assertEqual(config['providers']['concepts']['exchange_rates'], ['fawaz_currency_api'])
        self.assertEqual(config['providers']['concepts']['securities'], ['alpha_vantage'])
        self.assertEqual(config['http']['timeout'], 3)
        self.assertEqual(config['http']['max_retries'], DEFAULT_CONFIG['http']['max_retries'])

    def test_env_var_path(self):
        path = self._write("http:\n  user_agent: from-env\n")
        with patch.dict(os.environ, {config_module.CONFIG_ENV_VAR: path}):
            config = load_config()
        self.assertEqual(config['http']['user_agent'], 'from-env')

    def test_cached_until_reset(self):
        path = self._write("http:\n  timeout: 7\n")
        first = load_config(path)
        self.assertIs(config_module.get_config(), first)

        reset_config()
        self.assertIsNone(config_module._loaded_config)

    def test_packaged_default_file(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop(config_module.CONFIG_ENV_VAR, None)
            config = load_config()
        settings = config['providers']['settings']
        self.assertEqual(settings['alpha_vantage']['api_key_env'], 'ALPHA_VANTAGE_API_KEY')
        self.assertTrue(settings['frankfurter']['enabled'])


class TestResolveCredential(unittest.TestCase):

    def test_env_wins_over_inline(self):
        settings = {'api_key_env': 'MP_TEST_KEY', 'api_key': 'inline'}
        with patch.dict(os.environ, {'MP_TEST_KEY': 'from-env'}):
            self.assertEqual(resolve_credential(settings), 'from-env')

    def test_inline_fallback(self):
        settings = {'api_key_env': 'MP_TEST_KEY_UNSET', 'api_key': ' inline '}
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('MP_TEST_KEY_UNSET', None)
            self.assertEqual(resolve_credential(settings), 'inline')

    def test_empty_values_are_missing(self):
        with patch.dict(os.environ, {'MP_TEST_KEY': '  '}):
            self.assertIsNone(resolve_credential({'api_key_env': 'MP_TEST_KEY', 'api_key': ''}))
        self.assertIsNone(resolve_credential({}))


class TestLoggingManager(unittest.TestCase):

    def tearDown(self):
        shutdown_logging()

    def test_console_only_without_log_dir(self):
        manager = LoggingManager(console_level='WARNING', levels={'http': 'DEBUG'})
        try:
            self.assertEqual(list(manager.handlers), ['console'])
            self.assertEqual(manager.handlers['console'].level, logging.WARNING)
            self.assertEqual(logging.getLogger('market_providers.http').level, logging.DEBUG)
            self.assertEqual(logging.getLogger('market_providers.registry').level, logging.INFO)
        finally:
            manager.shutdown()

    def test_file_handlers_with_log_dir(self):
        with tempfile.TemporaryDirectory() as log_dir:
            manager = LoggingManager(log_dir=log_dir)
            try:
                self.assertIn('combined_all', manager.handlers)
                self.assertIn('provider_errors', manager.handlers)
                logging.getLogger('market_providers.errors').warning("upstream down")
                for handler in manager.handlers.values():
                    handler.flush()
                error_files = list(Path(log_dir, 'errors').glob('provider_errors_*.log'))
                self.assertEqual(len(error_files), 1)
                self.assertIn("upstream down", error_files[0].read_text(encoding='utf-8'))
            finally:
                manager.shutdown()

    def test_setup_from_config(self):
        manager = setup_logging_from_config({'logging': {'console_level': 'ERROR', 'levels': {'cli': 'WARNING'}}})
        self.assertEqual(manager.handlers['console'].level, logging.ERROR)
        self.assertEqual(logging.getLogger('market_providers.cli').level, logging.WARNING)

    def test_shutdown_detaches_handlers(self):
        manager = setup_logging_from_config({})
        console = manager.handlers['console']
        shutdown_logging()
        self.assertNotIn(console, logging.getLogger('market_providers').handlers)


if __name__ == '__main__':
    unittest.main()
