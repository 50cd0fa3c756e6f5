"""Configuration for the demand record tools.

Settings come from environment variables (``AppConfig.from_env()``).  Store
tuning (pragmas, insert batch size) may also be kept in a JSON file named
by APP_DB_CONFIG, loaded into a ``DatabaseConfig``:

    {"synchronous": "FULL", "batch_size": 200}
"""

import json
import os as _os
from pathlib import Path
from typing import Any, Dict


class Config:
    """Base configuration class for organizing application settings."""

    def to_dict(self) -> Dict[str, Any]:
        """Public attributes as a dictionary."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Start from the defaults and override with *data*.

        Raises:
            ValueError: If *data* names a setting the class does not have.
        """
        config = cls()
        unknown = sorted(set(data) - set(config.to_dict()))
        if unknown:
            raise ValueError(f"Unknown {cls.__name__} setting(s): {', '.join(unknown)}")
        for key, value in data.items():
            setattr(config, key, value)
        return config

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from a JSON object file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
            ValueError: If the file is not an object or names unknown settings
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return cls.from_dict(data)


class DatabaseConfig(Config):
    """Pragmas and batching for the record store connection."""

    def __init__(self):
        self.wal_mode = True
        self.synchronous = "NORMAL"
        self.busy_timeout_ms = 5000
        self.batch_size = 500


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the application works out of the
    box without any configuration.

    Environment variables:
        APP_DB_PATH: Path to the SQLite store (default: data/demands.db)
        APP_DB_CONFIG: Optional JSON file of DatabaseConfig overrides
        APP_BACKUP_DIR: Directory for backups and corruption copies (default: data/backups)
        APP_ARCHIVE_DIR: Directory of legacy YYYY-MM.json month files (default: data-json)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_LOG_LEVEL: Root log level (default: INFO)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        SEARCH_DEFAULT_LIMIT: Page size when the caller sends none (default: 20)
        SEARCH_MAX_LIMIT: Largest accepted page size (default: 100)
    """

    def __init__(self) -> None:
        self.db_path = Path(_os.getenv("APP_DB_PATH", "data/demands.db"))
        db_config = _os.getenv("APP_DB_CONFIG", "")
        self.db_config_path = Path(db_config) if db_config else None
        self.backup_dir = Path(_os.getenv("APP_BACKUP_DIR", "data/backups"))
        self.archive_dir = Path(_os.getenv("APP_ARCHIVE_DIR", "data-json"))
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        self.log_level = _os.getenv("APP_LOG_LEVEL", "INFO").upper()
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.search_default_limit = int(_os.getenv("SEARCH_DEFAULT_LIMIT", "20"))
        self.search_max_limit = int(_os.getenv("SEARCH_MAX_LIMIT", "100"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()

    def database_config(self) -> DatabaseConfig:
        """Store settings: defaults, overridden by the APP_DB_CONFIG file if set."""
        if self.db_config_path is None:
            return DatabaseConfig()
        return DatabaseConfig.load_json(self.db_config_path)
