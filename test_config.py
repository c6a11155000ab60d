#!/usr/bin/env python3
"""
環境変数からの設定読み込みテスト
"""
import unittest
from unittest.mock import patch

from app.config import AppConfig


class TestAppConfig(unittest.TestCase):

    def test_defaults(self):
        with patch.dict('os.environ', {}, clear=True):
            config = AppConfig.from_env()

        self.assertEqual(config.allowed_ips, [])
        self.assertTrue(config.trust_forwarded_for)
        self.assertEqual(config.row_interval_seconds, 0.05)
        self.assertEqual(config.max_users_per_request, 1000)
        self.assertEqual(config.db_connect_timeout, 10)
        self.assertEqual(config.log_level, 'INFO')
        self.assertIsNone(config.security_log_file)
        self.assertEqual(config.default_db_name, 'asterisk')

    def test_environment_overrides(self):
        env = {
            'ALLOWED_IPS': '123.123.123.123, 188.245.77.11,,',
            'TRUST_FORWARDED_FOR': 'false',
            'ROW_INTERVAL_SECONDS': '0',
            'MAX_USERS_PER_REQUEST': '250',
            'DB_CONNECT_TIMEOUT': '3',
            'LOG_LEVEL': 'debug',
            'DEFAULT_DB_HOST': 'vicidial-db',
        }
        with patch.dict('os.environ', env, clear=True):
            config = AppConfig.from_env()

        self.assertEqual(config.allowed_ips, ['123.123.123.123', '188.245.77.11'])
        self.assertFalse(config.trust_forwarded_for)
        self.assertEqual(config.row_interval_seconds, 0.0)
        self.assertEqual(config.max_users_per_request, 250)
        self.assertEqual(config.db_connect_timeout, 3)
        self.assertEqual(config.log_level, 'DEBUG')
        self.assertEqual(config.form_defaults()['host'], 'vicidial-db')


if __name__ == '__main__':
    unittest.main()
