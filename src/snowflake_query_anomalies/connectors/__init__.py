"""
Snowflake connection management.
"""

from .snowflake_client import SnowflakeClient, QueryExecutionError

__all__ = [
    'SnowflakeClient',
    'QueryExecutionError',
]
