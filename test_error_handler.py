#!/usr/bin/env python3
"""
エラーハンドリング機能の単体テスト
"""
import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import unittest

import pymysql
from sqlalchemy.exc import IntegrityError, OperationalError

from app.services.error_handler import (
    BulkUserErrorHandler, ErrorCategory, ErrorSeverity, describe_db_error
)


class TestDescribeDbError(unittest.TestCase):

    def test_driver_message_without_sql(self):
        orig = pymysql.err.IntegrityError(1062, "Duplicate entry '1000' for key 'user'")
        error = IntegrityError('INSERT INTO vicidial_users ...', {'user': '1000'}, orig)

        message = describe_db_error(error)

        self.assertEqual(message, "Duplicate entry '1000' for key 'user'")
        self.assertNotIn('INSERT', message)

    def test_connection_error_message(self):
        orig = pymysql.err.OperationalError(1045, "Access denied for user 'nodeuser'@'localhost'")

        self.assertEqual(describe_db_error(OperationalError(None, None, orig)),
                         "Access denied for user 'nodeuser'@'localhost'")

    def test_plain_exception(self):
        self.assertEqual(describe_db_error(ValueError('bad value')), 'bad value')


class TestBulkUserErrorHandler(unittest.TestCase):

    def setUp(self):
        self.handler = BulkUserErrorHandler()

    def test_error_detail_creation(self):
        """ErrorDetailの作成"""
        detail = self.handler.create_error_detail(
            ValueError('Duplicate entry'),
            ErrorCategory.ROW_INSERT,
            ErrorSeverity.MEDIUM,
            {'user_id': 1000}
        )

        self.assertEqual(detail.message, 'Duplicate entry')
        self.assertEqual(detail.exception_type, 'ValueError')
        self.assertEqual(len(detail.error_id), 8)
        self.assertTrue(detail.is_recoverable)

        self.assertIs(detail.category, ErrorCategory.ROW_INSERT)
        self.assertIs(detail.severity, ErrorSeverity.MEDIUM)
        self.assertEqual(detail.context, {'user_id': 1000})

    def test_connection_errors_are_not_recoverable(self):
        detail = self.handler.create_error_detail(
            ConnectionRefusedError('refused'), ErrorCategory.CONNECTION, ErrorSeverity.HIGH
        )

        self.assertFalse(detail.is_recoverable)

    def test_severity_selects_log_level(self):
        with self.assertLogs('app.services.error_handler', level='INFO') as logs:
            row_error = self.handler.record(
                ValueError('Duplicate entry'), ErrorCategory.ROW_INSERT, ErrorSeverity.MEDIUM, {'user_id': 5}
            )
            self.handler.record(
                OSError('unreachable'), ErrorCategory.CONNECTION, ErrorSeverity.HIGH
            )

        levels = [record.levelname for record in logs.records]
        self.assertEqual(levels, ['WARNING', 'ERROR'])
        self.assertIn(row_error.error_id, logs.output[0])
        self.assertIn('ROW_INSERT ERROR', logs.output[0])
        self.assertIn('"user_id": 5', logs.output[0])

    def test_validation_errors_log_at_info(self):
        """入力エラーは回復不可のINFOログとして記録"""
        with self.assertLogs('app.services.error_handler', level='INFO') as logs:
            detail = self.handler.record(
                ValueError('endUserId must be an integer'), ErrorCategory.VALIDATION, ErrorSeverity.LOW,
                {'endpoint': 'create-users'}
            )

        self.assertEqual([record.levelname for record in logs.records], ['INFO'])
        self.assertIn('VALIDATION ERROR (low)', logs.output[0])
        self.assertFalse(detail.is_recoverable)


if __name__ == '__main__':
    unittest.main()
