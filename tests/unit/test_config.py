"""
Unit tests for environment configuration.
"""

import logging

import pytest

from sqlproxy.duckproxy_server.config import (
    BackupConfig,
    HttpConfig,
    ServerConfig,
    StoreConfig,
)
from sqlproxy.duckproxy_server.errors import ConfigError

ENV_VARS = (
    "MOTHERDUCK_TOKEN",
    "motherduck_token",
    "MOTHERDUCK_DATABASE",
    "DUCKDB_PATH",
    "GOOGLE_SHEETS_BACKUP",
    "APPS_SCRIPT_URL",
    "BACKUP_MAX_ATTEMPTS",
    "BACKUP_RETRY_DELAY_MS",
    "BACKUP_MAX_RETRY_DELAY_MS",
    "BACKUP_TIMEOUT_SECONDS",
    "HOST",
    "PORT",
    "CORS_ORIGINS",
    "RAW_QUERY_ENABLED",
    "TABLE_ALIASES",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from an empty proxy environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestServerConfig:
    """Tests for ServerConfig.from_env()."""

    def test_token_required_for_motherduck(self):
        """No hardcoded token: a MotherDuck setup without one is fatal."""
        with pytest.raises(ConfigError, match="MOTHERDUCK_TOKEN"):
            ServerConfig.from_env()

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("MOTHERDUCK_TOKEN", "secret")
        config = ServerConfig.from_env()

        assert config.store.database == "PartnerPortal"
        assert config.store.uses_motherduck
        assert config.http.port == 3000
        assert config.http.raw_query_enabled is False
        assert config.http.cors_origins == ("*",)
        assert config.backup.enabled is True
        assert config.backup.url is None
        assert config.backup.active is False
        assert config.observability.log_format == "json"

    def test_lowercase_token_variable(self, monkeypatch):
        monkeypatch.setenv("motherduck_token", "secret")
        assert ServerConfig.from_env().store.token == "secret"

    def test_local_path_needs_no_token(self, monkeypatch):
        monkeypatch.setenv("DUCKDB_PATH", "/tmp/proxy.duckdb")
        config = ServerConfig.from_env()
        assert not config.store.uses_motherduck
        assert config.store.local_path == "/tmp/proxy.duckdb"

    def test_full_environment(self, monkeypatch):
        monkeypatch.setenv("MOTHERDUCK_TOKEN", "secret")
        monkeypatch.setenv("MOTHERDUCK_DATABASE", "Sales")
        monkeypatch.setenv("GOOGLE_SHEETS_BACKUP", "true")
        monkeypatch.setenv("APPS_SCRIPT_URL", "https://script.example.com/exec")
        monkeypatch.setenv("BACKUP_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("RAW_QUERY_ENABLED", "true")
        monkeypatch.setenv("TABLE_ALIASES", "Deals=Sales_Deals")
        monkeypatch.setenv("LOG_FORMAT", "TEXT")

        config = ServerConfig.from_env()

        assert config.store.database == "Sales"
        assert config.backup.active
        assert config.backup.max_attempts == 5
        assert config.http.port == 8080
        assert config.http.cors_origins == ("https://a.example", "https://b.example")
        assert config.http.raw_query_enabled is True
        assert config.http.table_aliases == {"Deals": "Sales_Deals"}
        assert config.observability.log_format == "text"

    def test_backup_disabled_flag(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_SHEETS_BACKUP", "false")
        monkeypatch.setenv("APPS_SCRIPT_URL", "https://script.example.com/exec")
        assert BackupConfig.from_env().active is False

    def test_enabled_backup_without_url_warns(self, monkeypatch, caplog):
        monkeypatch.setenv("DUCKDB_PATH", ":memory:")
        with caplog.at_level(logging.WARNING):
            config = ServerConfig.from_env()
        assert config.backup.active is False
        assert "APPS_SCRIPT_URL" in caplog.text

    @pytest.mark.parametrize(
        "name,value",
        [
            ("PORT", "not-a-port"),
            ("PORT", "70000"),
            ("BACKUP_MAX_ATTEMPTS", "0"),
            ("BACKUP_TIMEOUT_SECONDS", "0"),
            ("LOG_FORMAT", "xml"),
            ("TABLE_ALIASES", "broken"),
        ],
    )
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv("DUCKDB_PATH", ":memory:")
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigError):
            ServerConfig.from_env()

    def test_token_not_in_repr(self):
        assert "secret" not in repr(StoreConfig(token="secret"))

    def test_log_config_redacts_token(self, caplog):
        config = ServerConfig(store=StoreConfig(token="secret"), http=HttpConfig())
        with caplog.at_level(logging.INFO):
            config.log_config()
        for record in caplog.records:
            assert "secret" not in str(record.__dict__)
