"""
Unit tests for Snowflake client connection management.

Tests connection establishment, retry handling, result shaping and resource
cleanup against a mocked connector.
"""

import pytest
from unittest.mock import Mock, patch

from snowflake.connector.errors import OperationalError, ProgrammingError

from snowflake_query_anomalies.config.settings import SnowflakeConnectionConfig
from snowflake_query_anomalies.connectors.snowflake_client import (
    QueryExecutionError,
    SnowflakeClient,
)


class TestSnowflakeClient:
    """Test suite for Snowflake client functionality."""

    @pytest.fixture
    def connection_settings(self):
        return SnowflakeConnectionConfig(
            account="test_account",
            user="test_user",
            password="secret",
            warehouse="test_warehouse",
            role="ANALYST",
        )

    @pytest.fixture
    def mock_cursor(self):
        cursor = Mock()
        cursor.description = [("QUERY_ID",), ("USER_NAME",)]
        cursor.fetchmany.side_effect = [[("q1", "ALICE"), ("q2", "BOB")], []]
        return cursor

    @pytest.fixture
    def mock_snowflake_connector(self, mock_cursor):
        """Mock snowflake connector module."""
        with patch('snowflake.connector.connect') as mock_connect:
            mock_conn = Mock()
            mock_conn.is_closed.return_value = False
            mock_conn.cursor.return_value = mock_cursor
            mock_connect.return_value = mock_conn
            yield mock_connect

    @pytest.fixture(autouse=True)
    def no_sleep(self):
        with patch('snowflake_query_anomalies.connectors.snowflake_client.time.sleep') as mock_sleep:
            yield mock_sleep

    def test_connection_parameters(self, connection_settings, mock_snowflake_connector):
        """Test that settings are translated into connector arguments."""
        client = SnowflakeClient(connection_settings)
        client.connect()

        kwargs = mock_snowflake_connector.call_args.kwargs
        assert kwargs['account'] == "test_account"
        assert kwargs['password'] == "secret"
        assert kwargs['database'] == "SNOWFLAKE"
        assert kwargs['schema'] == "ACCOUNT_USAGE"
        assert kwargs['role'] == "ANALYST"
        assert 'authenticator' not in kwargs

    def test_connection_retry_then_success(self, connection_settings, mock_snowflake_connector, no_sleep):
        """Test exponential backoff between failed connection attempts."""
        mock_conn = mock_snowflake_connector.return_value
        mock_snowflake_connector.side_effect = [
            OperationalError("Temporary failure"),
            OperationalError("Another failure"),
            mock_conn,
        ]

        client = SnowflakeClient(connection_settings)

        assert client.connect(retry_attempts=3) is mock_conn
        assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0]

    def test_connection_failure(self, connection_settings, mock_snowflake_connector):
        """Test that exhausted retries raise ConnectionError."""
        mock_snowflake_connector.side_effect = OperationalError("Connection failed")

        client = SnowflakeClient(connection_settings)

        with pytest.raises(ConnectionError, match="after 2 attempts"):
            client.connect(retry_attempts=2)
        assert mock_snowflake_connector.call_count == 2

    def test_query_results_as_dicts(self, connection_settings, mock_snowflake_connector, mock_cursor):
        """Test that rows come back keyed by column name."""
        client = SnowflakeClient(connection_settings)
        params = {'window_start': '2024-01-01T00:00:00+00:00'}

        rows = client.execute_query("SELECT QUERY_ID, USER_NAME FROM t", params)

        assert rows == [
            {"QUERY_ID": "q1", "USER_NAME": "ALICE"},
            {"QUERY_ID": "q2", "USER_NAME": "BOB"},
        ]
        mock_cursor.execute.assert_called_once_with("SELECT QUERY_ID, USER_NAME FROM t", params)
        mock_cursor.close.assert_called_once()

    def test_query_failure_raises_after_retries(self, connection_settings, mock_snowflake_connector, mock_cursor):
        mock_cursor.execute.side_effect = ProgrammingError("SQL compilation error")

        client = SnowflakeClient(connection_settings)

        with pytest.raises(QueryExecutionError):
            client.execute_query("SELECT 1", retry_attempts=2)
        assert mock_cursor.execute.call_count == 2

    def test_context_manager_closes_connection(self, connection_settings, mock_snowflake_connector):
        """Test resource cleanup on exit."""
        mock_conn = mock_snowflake_connector.return_value

        with SnowflakeClient(connection_settings) as client:
            client.connect()

        mock_conn.close.assert_called_once()

    def test_missing_private_key(self, tmp_path):
        """Test that JWT auth with a missing key file fails early."""
        settings = SnowflakeConnectionConfig(
            account="test_account",
            user="test_user",
            warehouse="test_warehouse",
            authenticator="SNOWFLAKE_JWT",
            private_key_path=str(tmp_path / "missing.p8"),
        )

        with pytest.raises(FileNotFoundError):
            SnowflakeClient(settings)
