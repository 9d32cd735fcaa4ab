"""
Unit tests for configuration.
"""

import pytest

from proxybricks.config import ProxyRoute, ServerConfig, DEFAULT_TARGET_PORT
from proxybricks.http.message import DEFAULT_MAX_HEADER_SIZE


class TestProxyRoute:
    """Tests for PREFIX=HOST[:PORT] parsing."""

    def test_host_only(self):
        route = ProxyRoute.parse("/rest=jira.domain.com")
        assert route == ProxyRoute("/rest", "jira.domain.com", DEFAULT_TARGET_PORT)

    def test_host_and_port(self):
        route = ProxyRoute.parse("/api=localhost:9000")
        assert route.host == "localhost"
        assert route.port == 9000

    @pytest.mark.parametrize("text", [
        "/rest",
        "=jira.domain.com",
        "/rest=",
        "/rest=jira.domain.com:https",
        "/rest=:443",
    ])
    def test_invalid(self, text: str):
        with pytest.raises(ValueError):
            ProxyRoute.parse(text)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.max_header_size == DEFAULT_MAX_HEADER_SIZE
        assert config.target_tls is True
        assert config.proxy_routes == []
        config.validate()

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PROXYBRICKS_HOST", "0.0.0.0")
        monkeypatch.setenv("PROXYBRICKS_PORT", "9000")
        monkeypatch.setenv("PROXYBRICKS_PROXY", "/rest=jira.domain.com, /api=localhost:9001")
        monkeypatch.setenv("PROXYBRICKS_STATIC_DIR", str(tmp_path))
        monkeypatch.setenv("PROXYBRICKS_TARGET_TLS", "0")
        monkeypatch.setenv("PROXYBRICKS_MAX_HEADER_SIZE", "8192")
        monkeypatch.setenv("PROXYBRICKS_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.proxy_routes == [
            ProxyRoute("/rest", "jira.domain.com", 443),
            ProxyRoute("/api", "localhost", 9001),
        ]
        assert config.static_dir == str(tmp_path)
        assert config.target_tls is False
        assert config.verify_tls is True
        assert config.max_header_size == 8192
        assert config.log_level == "DEBUG"
        config.validate()

    def test_from_env_without_variables(self, monkeypatch):
        for name in ("PROXYBRICKS_PROXY", "PROXYBRICKS_PORT", "PROXYBRICKS_STATIC_DIR"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig.from_env()
        assert config.proxy_routes == []
        assert config.static_dir is None

    @pytest.mark.parametrize("kwargs", [
        {"port": 70000},
        {"port": -1},
        {"buffer_size": 100},
        {"request_timeout": 0},
        {"max_header_size": 10},
        {"proxy_routes": [ProxyRoute("rest", "example.org")]},
        {"proxy_routes": [ProxyRoute("/rest", "example.org", 0)]},
        {"static_dir": "/definitely/not/here"},
    ])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()

    def test_port_zero_is_allowed(self):
        """Test that an OS-chosen port passes validation."""
        ServerConfig(port=0).validate()
