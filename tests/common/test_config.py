"""
Tests for network configuration and settings
"""

import logging

import pytest

from x402_core.config import NetworkConfig, X402Settings
from x402_core.exceptions import UnsupportedNetworkError


def test_chain_id_from_network():
    assert NetworkConfig.get_chain_id("eip155:84532") == 84532


@pytest.mark.parametrize("network", ["eip155:base", "solana:devnet"])
def test_chain_id_rejects_non_evm(network):
    with pytest.raises(UnsupportedNetworkError):
        NetworkConfig.get_chain_id(network)


def test_rpc_url_override(monkeypatch):
    monkeypatch.setenv("X402_RPC_URL_84532", "http://localhost:8545")
    assert NetworkConfig.get_rpc_url("eip155:84532") == "http://localhost:8545"
    assert NetworkConfig.get_rpc_url("eip155:8453") == "https://mainnet.base.org"
    assert NetworkConfig.get_rpc_url("eip155:424242") is None


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("FACILITATOR_URLS", "https://a.example, https://b.example,")
    monkeypatch.setenv("FACILITATOR_PORT", "9000")
    monkeypatch.setenv("EVM_NETWORKS", "eip155:8453,eip155:84532")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = X402Settings.from_env(tmp_path / "missing.env")

    assert settings.facilitator_urls == ["https://a.example", "https://b.example"]
    assert settings.facilitator_port == 9000
    assert settings.evm_networks == ["eip155:8453", "eip155:84532"]
    assert settings.log_level == logging.DEBUG


def test_settings_defaults(monkeypatch, tmp_path):
    for name in ("FACILITATOR_URLS", "EVM_NETWORKS", "LOG_LEVEL", "EVM_PRIVATE_KEY"):
        monkeypatch.delenv(name, raising=False)

    settings = X402Settings.from_env(tmp_path / "missing.env")

    assert settings.facilitator_urls == []
    assert settings.evm_networks == ["eip155:84532"]
    assert settings.evm_private_key == ""
    assert settings.log_level == logging.INFO


def test_setup_logging_replaces_root_handlers():
    from x402_core.logging_config import setup_logging

    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("debug")
        setup_logging("warning")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
