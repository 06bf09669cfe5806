"""Configuration management utilities for the ministry reports tools.

Provides reusable pieces for:
- Loading and saving configuration as JSON
- Reading environment-specific settings for the reports gateway
- Connection settings for the ministry management REST API
- Known values shared by the scope, attendance and report modules
"""

from pathlib import Path
from typing import Dict, Any
import json


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all public config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Unknown keys are set as attributes as well so that saved files from
        newer versions still load.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config

    def save_json(self, path: Path) -> None:
        """Save configuration to JSON file.

        Args:
            path: Path to save configuration file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from JSON file.

        Args:
            path: Path to configuration file

        Returns:
            Config instance loaded from file

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class ClientConfig(Config):
    """Connection settings for the ministry management REST API."""

    def __init__(self):
        """Initialize client configuration."""
        super().__init__()
        self.base_url = "http://localhost:3000"
        self.timeout_seconds = 30
        self.max_retries = 3
        self.backoff_factor = 0.5
        self.pool_connections = 10
        self.pool_maxsize = 20
        self.reference_ttl_seconds = 300.0


class KnownValues:
    """Container for known valid values used across the ministry modules."""

    # Organizational scopes a user (or event) can be attached to
    USER_SCOPES = (
        "superadmin", "national", "region",
        "university", "smallgroup", "alumnismallgroup",
    )

    ATTENDANCE_STATUSES = ("present", "absent", "excused")

    EVENT_TYPES = ("permanent", "training")

    # Drilldown levels, ordered from coarsest to finest
    REPORT_LEVELS = ("national", "region", "university", "member")

    @classmethod
    def is_valid_status(cls, status: str) -> bool:
        """Check if an attendance status is one the API accepts.

        Args:
            status: Status string to check

        Returns:
            True if valid, False otherwise
        """
        return status in cls.ATTENDANCE_STATUSES

    @classmethod
    def is_valid_level(cls, level: str) -> bool:
        """Check if a drilldown level name is known."""
        return level in cls.REPORT_LEVELS


# ── Consolidated application configuration ────────────────────────────────────

import os as _os  # noqa: E402


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the gateway works out of the box
    against a local development instance of the ministry API.

    Environment variables:
        MINISTRY_API_BASE_URL: Root URL of the ministry REST API
            (default: http://localhost:3000)
        MINISTRY_API_TIMEOUT: Request timeout in seconds (default: 30)
        MINISTRY_API_RETRIES: Retries for idempotent requests (default: 3)
        APP_PORT: Gateway server port (default: 8000)
        APP_HOST: Gateway bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        REPORT_PAGE_SIZE: Rows per page in report tables (default: 20)
        REFERENCE_CACHE_TTL: Seconds to cache region/university lists (default: 300)
        EXPORT_MAX_ROWS: Detail rows written to PDF exports (default: 50)
    """

    def __init__(self) -> None:
        super().__init__()
        self.api_base_url = _os.getenv("MINISTRY_API_BASE_URL", "http://localhost:3000")
        self.api_timeout = int(_os.getenv("MINISTRY_API_TIMEOUT", "30"))
        self.api_retries = int(_os.getenv("MINISTRY_API_RETRIES", "3"))
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.page_size = int(_os.getenv("REPORT_PAGE_SIZE", "20"))
        self.reference_ttl = float(_os.getenv("REFERENCE_CACHE_TTL", "300"))
        self.export_max_rows = int(_os.getenv("EXPORT_MAX_ROWS", "50"))

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()

    def client_config(self) -> ClientConfig:
        """Build the ClientConfig used by MinistryClient from these settings."""
        cfg = ClientConfig()
        cfg.base_url = self.api_base_url.rstrip("/")
        cfg.timeout_seconds = self.api_timeout
        cfg.max_retries = self.api_retries
        cfg.reference_ttl_seconds = self.reference_ttl
        return cfg
