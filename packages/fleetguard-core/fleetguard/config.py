"""
Fleetguard Configuration

Loads settings from ~/.fleetguard/config.yaml with environment variable overrides.
Supports SQLite, PostgreSQL and Supabase database configurations.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional
import os
import logging

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".fleetguard"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_SQLITE_PATH = "~/.fleetguard/fleet_fraud.db"
DEFAULT_TIMEOUT = 30.0


@dataclass
class DatabaseConfig:
    """Database configuration settings."""

    type: Optional[str] = None  # "sqlite", "postgres", "supabase" or None to detect
    sqlite_path: str = DEFAULT_SQLITE_PATH
    postgres_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT  # seconds, per operation
    health_table: str = "users"

    def resolve_type(self) -> str:
        """
        Decide which backend to use.

        An explicit type wins. Otherwise Supabase is used when both a URL and a
        key are configured, SQLite when no PostgreSQL URL is set, and
        PostgreSQL last.
        """
        if self.type:
            db_type = self.type.lower()
            if db_type == "postgresql":
                return "postgres"
            return db_type

        if self.supabase_url and self.supabase_key:
            return "supabase"
        if not self.postgres_url:
            return "sqlite"
        return "postgres"


@dataclass
class LoggingConfig:
    """Logging settings for the command line scripts."""

    level: str = "INFO"


@dataclass
class FleetguardConfig:
    """
    Complete Fleetguard configuration.

    Loaded from ~/.fleetguard/config.yaml with environment variable overrides.
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary for display (masks secrets)."""
        result = asdict(self)
        db = result["database"]

        for key in ("postgres_url", "supabase_url"):
            url = db.get(key)
            if url:
                db[key] = url[:30] + "..." if len(url) > 30 else "***"

        if db.get("supabase_key"):
            db["supabase_key"] = "***"

        return result


def _parse_database_config(data: dict) -> DatabaseConfig:
    """Parse database configuration from YAML data."""
    db_data = data.get("database", {}) or {}

    sqlite_config = db_data.get("sqlite", {}) or {}
    postgres_config = db_data.get("postgres", {}) or {}
    supabase_config = db_data.get("supabase", {}) or {}

    postgres_url = postgres_config.get("url")
    url_env = postgres_config.get("url_env")
    if url_env and not postgres_url:
        postgres_url = os.environ.get(url_env)

    supabase_key = supabase_config.get("key")
    key_env = supabase_config.get("key_env")
    if key_env and not supabase_key:
        supabase_key = os.environ.get(key_env)

    return DatabaseConfig(
        type=db_data.get("type"),
        sqlite_path=sqlite_config.get("path", DEFAULT_SQLITE_PATH),
        postgres_url=postgres_url,
        supabase_url=supabase_config.get("url"),
        supabase_key=supabase_key,
        timeout=float(db_data.get("timeout", DEFAULT_TIMEOUT)),
        health_table=db_data.get("health_table", "users"),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse logging configuration from YAML data."""
    logging_data = data.get("logging", {}) or {}
    return LoggingConfig(level=str(logging_data.get("level", "INFO")).upper())


def _apply_env_overrides(config: FleetguardConfig) -> None:
    db = config.database

    if os.environ.get("DB_TYPE"):
        db.type = os.environ["DB_TYPE"]

    if os.environ.get("SQLITE_DB_PATH"):
        db.sqlite_path = os.environ["SQLITE_DB_PATH"]

    if os.environ.get("DATABASE_URL"):
        db.postgres_url = os.environ["DATABASE_URL"]

    if os.environ.get("SUPABASE_URL"):
        db.supabase_url = os.environ["SUPABASE_URL"]

    # Service role key bypasses row level security, so prefer it for backend work
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or os.environ.get("SUPABASE_ANON_KEY")
    if key:
        db.supabase_key = key

    if os.environ.get("FLEETGUARD_DB_TIMEOUT"):
        try:
            db.timeout = float(os.environ["FLEETGUARD_DB_TIMEOUT"])
        except ValueError:
            logger.warning(
                f"Ignoring invalid FLEETGUARD_DB_TIMEOUT: {os.environ['FLEETGUARD_DB_TIMEOUT']!r}"
            )

    if os.environ.get("FLEETGUARD_LOG_LEVEL"):
        config.logging.level = os.environ["FLEETGUARD_LOG_LEVEL"].upper()


def load_config(config_path: Optional[Path] = None) -> FleetguardConfig:
    """
    Load configuration from file with environment variable overrides.

    Args:
        config_path: Optional path to config file. Defaults to ~/.fleetguard/config.yaml

    Returns:
        FleetguardConfig instance
    """
    config_file = config_path or CONFIG_FILE
    config = FleetguardConfig()

    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}

            config.database = _parse_database_config(data)
            config.logging = _parse_logging_config(data)

        except yaml.YAMLError as e:
            logger.warning(f"Could not parse config file at {config_file}: {e}")
        except (OSError, ValueError) as e:
            logger.warning(f"Unexpected error loading config from {config_file}: {e}")

    _apply_env_overrides(config)

    return config


def save_config(config: FleetguardConfig, config_path: Optional[Path] = None) -> None:
    """
    Save configuration to file.

    Args:
        config: FleetguardConfig instance to save
        config_path: Optional path to config file. Defaults to ~/.fleetguard/config.yaml
    """
    config_file = config_path or CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)

    db = config.database
    data = {
        "database": {
            "timeout": db.timeout,
            "health_table": db.health_table,
            "sqlite": {"path": db.sqlite_path},
        },
        "logging": {"level": config.logging.level},
    }

    if db.type:
        data["database"]["type"] = db.type
    if db.postgres_url:
        data["database"]["postgres"] = {"url": db.postgres_url}
    if db.supabase_url:
        data["database"]["supabase"] = {"url": db.supabase_url}
        if db.supabase_key:
            data["database"]["supabase"]["key"] = db.supabase_key

    with open(config_file, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    # Secure permissions (readable only by owner)
    config_file.chmod(0o600)

    logger.info(f"Configuration saved to {config_file}")
