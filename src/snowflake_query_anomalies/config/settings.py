"""
Settings and configuration management for the query anomaly detection job.

This module provides centralized configuration loading with validation
using Pydantic models and support for environment variable overrides.
"""

import json
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from ..env_loader import load_env


class AppConfig(BaseModel):
    """Application configuration."""
    name: str = Field(default="Snowflake Query Anomalies")
    version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default="logs/anomaly_detection.log")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()


class DetectionConfig(BaseModel):
    """Baseline and detector parameters."""
    reference_timezone: str = Field(default="America/Los_Angeles")
    historical_window_days: int = Field(default=30, ge=1)
    recent_window_hours: int = Field(default=24, ge=1)
    min_activity: int = Field(default=20, ge=1)
    complexity_multiplier: float = Field(default=3.0, gt=0)
    hour_percentiles: Tuple[float, float] = Field(default=(5.0, 95.0))
    # When False the historical window ends where the recent window starts
    # instead of covering the full trailing period up to as_of
    include_recent_in_baseline: bool = Field(default=True)

    @field_validator('reference_timezone')
    @classmethod
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator('hour_percentiles')
    @classmethod
    def validate_percentiles(cls, v):
        lower, upper = v
        if not 0 <= lower < upper <= 100:
            raise ValueError("hour_percentiles must satisfy 0 <= lower < upper <= 100")
        return v


class LogFilterConfig(BaseModel):
    """Criteria every fetched query-log record must satisfy."""
    query_type: str = Field(default="SELECT")
    execution_status: str = Field(default="SUCCESS")
    excluded_users: List[str] = Field(default=["SYSTEM"])


class OutputConfig(BaseModel):
    """Where and how findings are delivered."""
    format: str = Field(default="table")
    path: Optional[str] = None

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        valid_formats = ["table", "csv", "json", "parquet"]
        if v.lower() not in valid_formats:
            raise ValueError(f"format must be one of {valid_formats}")
        return v.lower()

    @model_validator(mode='after')
    def require_path_for_files(self):
        if self.format != "table" and not self.path:
            raise ValueError(f"output path is required for format '{self.format}'")
        return self


class SnowflakeConnectionConfig(BaseModel):
    """Snowflake connection configuration."""
    account: str
    user: str
    password: Optional[str] = None
    warehouse: str
    database: str = Field(default="SNOWFLAKE")
    schema_name: str = Field(default="ACCOUNT_USAGE")
    role: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_passphrase: Optional[str] = None
    authenticator: Optional[str] = None
    network_timeout: int = Field(default=60, ge=10)
    login_timeout: int = Field(default=60, ge=10)
    retry_delay_base: float = Field(default=1.0, ge=0.1)  # Base delay for exponential backoff

    @field_validator('account', 'user', 'warehouse', 'database', 'schema_name')
    @classmethod
    def validate_required_fields(cls, v):
        if not v or not v.strip():
            raise ValueError("Required Snowflake connection field cannot be empty")
        return v.strip()


class Settings(BaseModel):
    """Main settings configuration."""
    app: AppConfig = Field(default_factory=AppConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    filters: LogFilterConfig = Field(default_factory=LogFilterConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    snowflake: Optional[SnowflakeConnectionConfig] = None


# Environment variable -> (section, key)
ENV_OVERRIDES = {
    'LOG_LEVEL': ('app', 'log_level'),
    'DEBUG': ('app', 'debug'),
    'ANOMALY_REFERENCE_TIMEZONE': ('detection', 'reference_timezone'),
    'ANOMALY_HISTORICAL_WINDOW_DAYS': ('detection', 'historical_window_days'),
    'ANOMALY_RECENT_WINDOW_HOURS': ('detection', 'recent_window_hours'),
    'ANOMALY_MIN_ACTIVITY': ('detection', 'min_activity'),
    'ANOMALY_COMPLEXITY_MULTIPLIER': ('detection', 'complexity_multiplier'),
}

SNOWFLAKE_ENV_MAPPING = {
    'account': 'SNOWFLAKE_ACCOUNT',
    'user': 'SNOWFLAKE_USER',
    'password': 'SNOWFLAKE_PASSWORD',
    'warehouse': 'SNOWFLAKE_WAREHOUSE',
    'database': 'SNOWFLAKE_DATABASE',
    'schema_name': 'SNOWFLAKE_SCHEMA',
    'role': 'SNOWFLAKE_ROLE',
    'private_key_path': 'SNOWFLAKE_PRIVATE_KEY_FILE',
    'private_key_passphrase': 'SNOWFLAKE_PRIVATE_KEY_PASSPHRASE',
    'authenticator': 'SNOWFLAKE_AUTHENTICATOR',
}


def load_json_config(file_path: Path) -> Dict:
    """Load configuration from JSON file with environment variable substitution."""
    if not file_path.exists():
        return {}

    with open(file_path, 'r') as f:
        content = f.read()

    # Replace environment variables in format ${VAR_NAME}
    def replace_env_var(match):
        var_name = match.group(1)
        return os.getenv(var_name, match.group(0))

    content = re.sub(r'\$\{([^}]+)\}', replace_env_var, content)

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_path}: {e}")


def apply_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay supported environment variables onto raw config data."""
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is None or value == "":
            continue
        if key == 'debug':
            value = value.lower() in ("true", "1", "yes")
        config_data.setdefault(section, {})[key] = value
    return config_data


def load_snowflake_config(config_dir: Path) -> Optional[SnowflakeConnectionConfig]:
    """Load Snowflake connection configuration."""
    env_config = {}
    for key, env_var in SNOWFLAKE_ENV_MAPPING.items():
        value = os.getenv(env_var)
        if value:
            env_config[key] = value

    json_config = load_json_config(config_dir / "snowflake.json")

    # Environment variables take precedence
    connection_config = dict(json_config.get('connection', {}))
    if 'schema' in connection_config:
        connection_config.setdefault('schema_name', connection_config.pop('schema'))
    connection_config.update(env_config)

    if not connection_config:
        return None

    try:
        return SnowflakeConnectionConfig(**connection_config)
    except Exception as e:
        raise ValueError(f"Invalid Snowflake configuration: {e}")


def load_settings(config_dir: str = "config") -> Settings:
    """Build settings from config files and the environment (uncached)."""
    load_env()
    config_path = Path(config_dir)
    config_data = load_json_config(config_path / "settings.json")
    config_data.pop('snowflake', None)
    config_data = apply_env_overrides(config_data)

    settings = Settings(**config_data)
    settings.snowflake = load_snowflake_config(config_path)
    return settings


@lru_cache()
def get_settings(config_dir: str = "config") -> Settings:
    """Get application settings (cached)."""
    return load_settings(config_dir)


def reload_settings(config_dir: str = "config") -> Settings:
    """Force reload of settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings(config_dir)
