"""
Snowflake Client - Connection manager with credential handling and retry logic.

Supports both password and JWT (private key) authentication. Query results are
returned as lists of dictionaries keyed by upper-case column name.
"""

import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import snowflake.connector
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import load_pem_private_key
from snowflake.connector import SnowflakeConnection
from snowflake.connector.errors import (
    DatabaseError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
)

from ..config.settings import SnowflakeConnectionConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)


class QueryExecutionError(Exception):
    """Raised when query execution fails after all retry attempts."""
    pass


class SnowflakeClient:
    """
    Snowflake connection manager with retry logic and secure credential handling.

    Features:
    - Password or JWT (private key) authentication
    - Exponential backoff retry on connect and on query execution
    - Lazy connection, reused until closed
    """

    def __init__(self, settings: SnowflakeConnectionConfig):
        """
        Initialize Snowflake client with configuration.

        Args:
            settings: Snowflake connection settings
        """
        self.settings = settings
        self._connection: Optional[SnowflakeConnection] = None
        self._private_key: Optional[bytes] = None
        self._connection_params = self._build_connection_params()

        if self._is_jwt_auth():
            self._load_private_key()

    def _is_jwt_auth(self) -> bool:
        """Check if JWT authentication is configured."""
        return bool(
            self.settings.authenticator and
            self.settings.authenticator.upper() == 'SNOWFLAKE_JWT' and
            self.settings.private_key_path
        )

    def _load_private_key(self):
        """Load and parse the private key for JWT authentication."""
        key_path = Path(self.settings.private_key_path)
        if not key_path.exists():
            raise FileNotFoundError(f"Private key file not found: {key_path}")

        passphrase = None
        if self.settings.private_key_passphrase:
            passphrase = self.settings.private_key_passphrase.encode()

        try:
            private_key_obj = load_pem_private_key(key_path.read_bytes(), password=passphrase)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Failed to load private key: {e}")

        # Snowflake expects DER-encoded PKCS8
        self._private_key = private_key_obj.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )
        logger.info("Private key loaded successfully for JWT authentication")

    def _build_connection_params(self) -> Dict[str, Any]:
        """Build connection parameters from settings."""
        params = {
            'account': self.settings.account,
            'user': self.settings.user,
            'warehouse': self.settings.warehouse,
            'database': self.settings.database,
            'schema': self.settings.schema_name,
            'network_timeout': self.settings.network_timeout,
            'login_timeout': self.settings.login_timeout,
            'client_session_keep_alive': True,
        }

        if self.settings.role:
            params['role'] = self.settings.role

        if self._is_jwt_auth():
            params['authenticator'] = 'SNOWFLAKE_JWT'
        elif self.settings.password:
            params['password'] = self.settings.password
        else:
            logger.warning("No password provided and JWT auth not configured")

        return params

    def connect(self, retry_attempts: int = 3) -> SnowflakeConnection:
        """
        Establish connection to Snowflake with retry logic.

        Raises:
            ConnectionError: If connection fails after all retry attempts
        """
        last_error = None

        for attempt in range(retry_attempts):
            try:
                logger.info(f"Attempting Snowflake connection (attempt {attempt + 1}/{retry_attempts})")

                connection_params = self._connection_params.copy()
                if self._private_key:
                    connection_params['private_key'] = self._private_key

                self._connection = snowflake.connector.connect(**connection_params)
                logger.info("Successfully connected to Snowflake")
                return self._connection

            except (DatabaseError, OperationalError, InterfaceError) as e:
                last_error = e
                if attempt < retry_attempts - 1:
                    wait_time = (2 ** attempt) * self.settings.retry_delay_base
                    logger.warning(
                        f"Connection attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {wait_time} seconds..."
                    )
                    time.sleep(wait_time)
                else:
                    logger.error(f"All connection attempts failed. Last error: {e}")

        raise ConnectionError(
            f"Failed to connect to Snowflake after {retry_attempts} attempts: {last_error}"
        )

    @contextmanager
    def get_connection(self):
        """Yield an open connection, connecting first if needed."""
        if not self._connection or self._connection.is_closed():
            self.connect()
        yield self._connection

    def execute_query(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None,
        retry_attempts: int = 3,
        fetch_size: int = 10000
    ) -> List[Dict[str, Any]]:
        """
        Execute SQL query with retry logic and return rows as dictionaries.

        Raises:
            QueryExecutionError: If query fails after all retry attempts
        """
        last_error = None

        for attempt in range(retry_attempts):
            try:
                with self.get_connection() as conn:
                    cursor = conn.cursor()
                    try:
                        if params:
                            cursor.execute(query, params)
                        else:
                            cursor.execute(query)

                        columns = [desc[0] for desc in cursor.description]
                        results = []
                        while True:
                            batch = cursor.fetchmany(size=fetch_size)
                            if not batch:
                                break
                            results.extend(dict(zip(columns, row)) for row in batch)

                        logger.debug(f"Query executed successfully, returned {len(results)} rows")
                        return results
                    finally:
                        cursor.close()

            except (DatabaseError, OperationalError, ProgrammingError) as e:
                last_error = e
                if attempt < retry_attempts - 1:
                    wait_time = (2 ** attempt) * self.settings.retry_delay_base
                    logger.warning(
                        f"Query execution attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {wait_time} seconds..."
                    )
                    time.sleep(wait_time)
                    # Force reconnection on next attempt
                    self._connection = None
                else:
                    logger.error(f"Query failed after {retry_attempts} attempts: {e}")

        raise QueryExecutionError(
            f"Query execution failed after {retry_attempts} attempts: {last_error}"
        )

    def close(self):
        """Close the connection if open."""
        if self._connection and not self._connection.is_closed():
            self._connection.close()
            logger.info("Snowflake connection closed")
        self._connection = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
