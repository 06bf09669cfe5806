"""
Tests for utils/config.py

Covers Config JSON round-trips, ClientConfig defaults, KnownValues and
AppConfig environment parsing.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import AppConfig, ClientConfig, Config, KnownValues


class TestConfig:
    def test_to_dict_skips_private(self):
        cfg = Config()
        cfg.name = "reports"
        cfg._secret = "x"
        assert cfg.to_dict() == {"name": "reports"}

    def test_from_dict_sets_attributes(self):
        cfg = Config.from_dict({"a": 1, "b": "two"})
        assert cfg.a == 1
        assert cfg.b == "two"

    def test_save_and_load_json(self, tmp_path):
        cfg = ClientConfig()
        cfg.base_url = "https://ministry.example.org"
        path = tmp_path / "nested" / "client.json"
        cfg.save_json(path)
        loaded = ClientConfig.load_json(path)
        assert loaded.base_url == "https://ministry.example.org"
        assert loaded.max_retries == 3

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.load_json(tmp_path / "missing.json")


class TestClientConfig:
    def test_defaults(self):
        cfg = ClientConfig()
        assert cfg.base_url == "http://localhost:3000"
        assert cfg.timeout_seconds == 30
        assert cfg.reference_ttl_seconds == 300.0


class TestKnownValues:
    @pytest.mark.parametrize("status", ["present", "absent", "excused"])
    def test_valid_statuses(self, status):
        assert KnownValues.is_valid_status(status)

    @pytest.mark.parametrize("status", ["late", "", "Present", "excuse"])
    def test_invalid_statuses(self, status):
        assert not KnownValues.is_valid_status(status)

    def test_levels_are_ordered(self):
        assert KnownValues.REPORT_LEVELS == ("national", "region", "university", "member")
        assert KnownValues.is_valid_level("member")
        assert not KnownValues.is_valid_level("smallgroup")


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        for var in ("MINISTRY_API_BASE_URL", "APP_PORT", "APP_LOG_FORMAT",
                    "APP_CORS_ORIGINS", "REPORT_PAGE_SIZE", "EXPORT_MAX_ROWS"):
            monkeypatch.delenv(var, raising=False)
        cfg = AppConfig.from_env()
        assert cfg.api_base_url == "http://localhost:3000"
        assert cfg.api_port == 8000
        assert cfg.log_format == "text"
        assert cfg.cors_origins == ["*"]
        assert cfg.page_size == 20
        assert cfg.export_max_rows == 50

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MINISTRY_API_BASE_URL", "https://ministry.example.org/")
        monkeypatch.setenv("MINISTRY_API_RETRIES", "5")
        monkeypatch.setenv("APP_CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("REFERENCE_CACHE_TTL", "60")
        cfg = AppConfig.from_env()
        assert cfg.cors_origins == ["https://a.example", "https://b.example"]
        client_cfg = cfg.client_config()
        assert client_cfg.base_url == "https://ministry.example.org"
        assert client_cfg.max_retries == 5
        assert client_cfg.reference_ttl_seconds == 60.0
