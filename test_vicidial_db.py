#!/usr/bin/env python3
"""
データベースアクセス（接続URL・INSERT文・接続確認）のテスト
"""
import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy.pool import NullPool

from app.models.vicidial_user import ConnectionProfile, RowTemplate, build_row
from app.services import vicidial_db


SOCKET_PROFILE = ConnectionProfile(
    host='localhost', user='nodeuser', password='nodepass', database='asterisk',
    socket_path='/var/run/mysql/mysql.sock'
)
TCP_PROFILE = ConnectionProfile(host='db.internal', user='cron', password='', database='asterisk', port=3307)


class TestDatabaseUrl(unittest.TestCase):

    def test_socket_profile(self):
        url = vicidial_db.build_database_url(SOCKET_PROFILE)

        self.assertEqual(url.drivername, 'mysql+pymysql')
        self.assertEqual(url.username, 'nodeuser')
        self.assertEqual(url.password, 'nodepass')
        self.assertEqual(url.database, 'asterisk')
        self.assertEqual(url.query['unix_socket'], '/var/run/mysql/mysql.sock')
        self.assertEqual(url.query['charset'], 'utf8mb4')

    def test_tcp_profile(self):
        url = vicidial_db.build_database_url(TCP_PROFILE)

        self.assertEqual(url.host, 'db.internal')
        self.assertEqual(url.port, 3307)
        self.assertIsNone(url.password)
        self.assertNotIn('unix_socket', url.query)


class TestInsertStatement(unittest.TestCase):

    def test_bind_parameters_match_row_columns(self):
        row = build_row(1000, RowTemplate(password='p', user_level='1'))
        bind_names = set(vicidial_db.INSERT_USER_SQL.compile().params)

        self.assertEqual(bind_names, set(row.to_params()))

    def test_targets_vicidial_users(self):
        self.assertIn('INSERT INTO vicidial_users', str(vicidial_db.INSERT_USER_SQL))

    def test_insert_user_executes_with_row_params(self):
        connection = MagicMock()
        row = build_row(1001, RowTemplate(password='p'))

        vicidial_db.insert_user(connection, row)

        connection.execute.assert_called_once_with(vicidial_db.INSERT_USER_SQL, row.to_params())


class TestOpenConnection(unittest.TestCase):

    @patch('app.services.vicidial_db.create_engine')
    def test_one_unpooled_autocommit_connection(self, create_engine):
        engine = create_engine.return_value
        connection = vicidial_db.open_connection(SOCKET_PROFILE, connect_timeout=5)

        kwargs = create_engine.call_args[1]
        self.assertIs(kwargs['poolclass'], NullPool)
        self.assertEqual(kwargs['connect_args'], {'connect_timeout': 5})
        engine.connect.return_value.execution_options.assert_called_once_with(isolation_level='AUTOCOMMIT')
        self.assertIs(connection, engine.connect.return_value.execution_options.return_value)

    @patch('app.services.vicidial_db.create_engine')
    def test_failed_connect_disposes_engine(self, create_engine):
        engine = create_engine.return_value
        engine.connect.side_effect = ConnectionRefusedError('refused')

        with self.assertRaises(ConnectionRefusedError):
            vicidial_db.open_connection(TCP_PROFILE)

        engine.dispose.assert_called_once()


class TestCheckConnection(unittest.TestCase):

    @patch('app.services.vicidial_db.open_connection')
    def test_runs_trivial_query_and_closes(self, open_connection):
        connection = open_connection.return_value

        vicidial_db.check_connection(SOCKET_PROFILE, 3)

        open_connection.assert_called_once_with(SOCKET_PROFILE, 3)
        connection.execute.assert_called_once_with(vicidial_db.PING_SQL)
        connection.close.assert_called_once()
        connection.engine.dispose.assert_called_once()

    @patch('app.services.vicidial_db.open_connection')
    def test_closes_when_query_fails(self, open_connection):
        connection = open_connection.return_value
        connection.execute.side_effect = RuntimeError('gone away')

        with self.assertRaises(RuntimeError):
            vicidial_db.check_connection(SOCKET_PROFILE)

        connection.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
