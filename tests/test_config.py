"""Tests for configuration module."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from ddns_relay.config import (
    CacheConfig,
    ConfigValidationError,
    HealthConfig,
    LoggingConfig,
    ProviderConfig,
    ServerConfig,
    dict_to_config,
    load_config,
    load_config_from_file,
    merge_config,
    parse_args,
    validate_config_dict,
)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_default_values(self):
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 38080
        assert config.client_ip_header == "CF-Connecting-IP"
        assert config.trust_forwarded_for is False

    def test_custom_values(self):
        config = ServerConfig(host="127.0.0.1", port=9000)
        assert config.host == "127.0.0.1"
        assert config.port == 9000


class TestCacheConfig:
    """Tests for CacheConfig."""

    def test_default_values(self):
        config = CacheConfig()
        assert config.max_entries == 700000
        assert config.ttl == 86400
        assert config.key_prefix == "ddns:"


class TestProviderConfig:
    """Tests for ProviderConfig."""

    def test_default_values(self):
        config = ProviderConfig()
        assert config.api_base == "https://api.cloudflare.com/client/v4"
        assert config.timeout == 30.0


class TestHealthConfig:
    """Tests for HealthConfig."""

    def test_default_values(self):
        config = HealthConfig()
        assert config.enabled is False


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_default_values(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file_enabled is False
        assert config.file_path == "/var/log/ddns-relay.log"


class TestMergeConfig:
    """Tests for merge_config function."""

    def test_simple_merge(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3, "c": 4}
        result = merge_config(base, override)
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"cache": {"max_entries": 10, "ttl": 60}}
        override = {"cache": {"ttl": 120}}
        result = merge_config(base, override)
        assert result == {"cache": {"max_entries": 10, "ttl": 120}}
        assert base["cache"]["ttl"] == 60


class TestDictToConfig:
    """Tests for dict_to_config function."""

    def test_empty_dict(self):
        config = dict_to_config({})
        assert config.server.port == 38080
        assert config.cache.max_entries == 700000
        assert config.health.enabled is False

    def test_full_dict(self):
        data = {
            "server": {"host": "127.0.0.1", "port": 9000, "client_ip_header": "X-Real-IP"},
            "cache": {"max_entries": 1000, "ttl": 3600, "key_prefix": "test:"},
            "provider": {"timeout": 5},
            "logging": {
                "level": "DEBUG",
                "file_enabled": True,
                "file_path": "/tmp/test.log",
            },
        }
        config = dict_to_config(data)
        assert config.server.client_ip_header == "X-Real-IP"
        assert config.cache.max_entries == 1000
        assert config.cache.ttl == 3600
        assert config.cache.key_prefix == "test:"
        assert config.provider.timeout == 5.0
        assert config.logging.level == "DEBUG"

    def test_file_path_is_expanded(self):
        config = dict_to_config({"logging": {"file_path": "~/relay.log"}})
        assert config.logging.file_path == str(Path("~/relay.log").expanduser())


class TestLoadConfigFromFile:
    """Tests for load_config_from_file function."""

    def test_load_toml_file(self):
        toml_content = """
[server]
port = 9000

[cache]
max_entries = 5000
ttl = 600
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write(toml_content)
            f.flush()
            config_path = Path(f.name)

        try:
            data = load_config_from_file(config_path)
            assert data["server"]["port"] == 9000
            assert data["cache"] == {"max_entries": 5000, "ttl": 600}
        finally:
            config_path.unlink()


class TestParseArgs:
    """Tests for parse_args function."""

    def test_default_args(self):
        args = parse_args([])
        assert args.config is None
        assert args.host is None
        assert args.port is None
        assert args.client_ip_header is None
        assert args.cache_max_entries is None
        assert args.cache_ttl is None
        assert args.provider_timeout is None
        assert args.log_level is None
        assert args.log_file_enabled is None
        assert args.log_file_path is None
        assert args.health_enabled is None

    def test_custom_args(self):
        args = parse_args(
            ["--port", "9000", "--cache-max-entries", "100", "--cache-ttl", "60"],
        )
        assert args.port == 9000
        assert args.cache_max_entries == 100
        assert args.cache_ttl == 60

    def test_config_path(self):
        args = parse_args(["--config", "/path/to/config.toml"])
        assert args.config == Path("/path/to/config.toml")

    def test_health_enabled_disabled(self):
        assert parse_args(["--health-enabled"]).health_enabled is True
        assert parse_args(["--health-disabled"]).health_enabled is False

    def test_log_file_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--log-file-enabled", "--log-file-disabled"])


class TestLoadConfig:
    """Tests for load_config with files and CLI overrides."""

    def test_cli_overrides_file(self, tmp_path: Path):
        config_path = tmp_path / "config.toml"
        config_path.write_text("[cache]\nmax_entries = 5000\nttl = 600\n")

        args = parse_args(["--config", str(config_path), "--cache-ttl", "30"])
        config = load_config(args)

        assert config.cache.max_entries == 5000
        assert config.cache.ttl == 30

    def test_cli_only(self):
        args = parse_args(["--client-ip-header", "X-Real-IP", "--provider-timeout", "2.5"])
        config = load_config(args)
        assert config.server.client_ip_header == "X-Real-IP"
        assert config.provider.timeout == 2.5

    def test_missing_file_exits(self, tmp_path: Path):
        args = parse_args(["--config", str(tmp_path / "absent.toml")])
        with pytest.raises(SystemExit):
            load_config(args)

    def test_invalid_value_raises(self):
        args = parse_args(["--cache-max-entries", "0"])
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(args)
        assert "cache.max_entries" in str(exc_info.value)


class TestConfigValidation:
    """Tests for configuration validation."""

    def test_valid_config(self):
        data = {
            "server": {"host": "127.0.0.1", "port": 8080},
            "cache": {"max_entries": 10, "ttl": 60},
            "logging": {"level": "DEBUG", "file_enabled": True},
            "health": {"enabled": True},
        }
        validate_config_dict(data)

    def test_invalid_port_type(self):
        data = {"server": {"port": "not_a_number"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data, Path("config.toml"))
        error_msg = str(exc_info.value)
        assert "server.port" in error_msg
        assert "int" in error_msg
        assert "not_a_number" in error_msg

    def test_coercible_port_type(self):
        validate_config_dict({"server": {"port": "8080"}})

    def test_non_positive_ttl(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict({"cache": {"ttl": 0}})
        assert "cache.ttl" in str(exc_info.value)

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict({"provider": {"timeout": -1}})
        assert "provider.timeout" in str(exc_info.value)

    def test_error_shows_config_path(self):
        data = {"server": {"port": "invalid"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data, Path("/path/to/config.toml"))
        assert "/path/to/config.toml" in str(exc_info.value)

    def test_health_invalid_bool(self):
        data = {"health": {"enabled": "anything"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data)
        error_msg = str(exc_info.value)
        assert "health.enabled" in error_msg
        assert "bool" in error_msg
