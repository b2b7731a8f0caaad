"""Tests for settings."""

import json

import pytest

from drxa.config import RpcEndpoints, Settings, get_settings


class TestSettings:
    """Tests for Settings defaults and environment loading."""

    def test_defaults(self):
        """Test default values."""
        settings = Settings(_env_file=None)

        assert settings.dry_run is False
        assert settings.http_timeout == 30.0
        assert settings.evm_poll_interval == 12.0
        assert settings.bitcoin_poll_interval == 15.0

    def test_default_endpoints(self):
        """Test the built-in endpoint table."""
        settings = Settings(_env_file=None)

        eth = settings.get_rpc_endpoints("ethereum")
        assert eth.http == "https://eth.llamarpc.com"
        assert eth.explorer_api == "https://api.etherscan.io/api"
        assert settings.get_rpc_endpoints("bitcoin").explorer_api == "https://blockstream.info/api"
        assert settings.get_rpc_endpoints("kusama") is None

    def test_env_prefix(self, monkeypatch):
        """Test DRXA_ variables are read."""
        monkeypatch.setenv("DRXA_DRY_RUN", "true")
        monkeypatch.setenv("DRXA_HTTP_TIMEOUT", "5")

        settings = Settings(_env_file=None)

        assert settings.dry_run is True
        assert settings.http_timeout == 5.0

    def test_unknown_variables_ignored(self, monkeypatch):
        """Test DRXA_ variables without a matching setting are not loaded."""
        monkeypatch.setenv("DRXA_ENVIRONMENT", "production")
        monkeypatch.setenv("DRXA_DEBUG", "true")

        settings = Settings(_env_file=None)

        assert not hasattr(settings, "environment")
        assert not hasattr(settings, "debug")
        assert set(Settings.model_fields) == {
            "dry_run",
            "http_timeout",
            "rpc_endpoints",
            "explorer_api_keys",
            "evm_poll_interval",
            "bitcoin_poll_interval",
            "simulated_poll_interval",
        }

    def test_endpoints_from_env_json(self, monkeypatch):
        """Test endpoint tables can be supplied as JSON."""
        monkeypatch.setenv("DRXA_RPC_ENDPOINTS", json.dumps({"base": {"http": "https://base.test"}}))
        monkeypatch.setenv("DRXA_EXPLORER_API_KEYS", json.dumps({"base": "secret-key"}))

        settings = Settings(_env_file=None)

        assert settings.get_rpc_endpoints("base").http == "https://base.test"
        assert settings.explorer_api_keys == {"base": "secret-key"}

    def test_overrides_take_precedence(self):
        """Test per-call overrides beat settings."""
        settings = Settings(_env_file=None)
        override = RpcEndpoints(http="https://private.test")

        assert settings.get_rpc_endpoints("Ethereum", {"ethereum": override}) is override
        assert settings.get_rpc_endpoints("bsc", {"ethereum": override}).http.startswith("https://bsc")

    def test_endpoint_requires_http(self):
        """Test RpcEndpoints validates its required field."""
        with pytest.raises(ValueError):
            RpcEndpoints(ws="wss://only.test")

    def test_get_settings_cached(self):
        """Test get_settings returns one instance."""
        assert get_settings() is get_settings()
