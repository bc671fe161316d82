"""
X402 Network Configuration
Centralized configuration for network identifiers, RPC endpoints and runtime settings
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv

from x402_core.exceptions import UnsupportedNetworkError


class NetworkConfig:
    """Network configuration for chain IDs and RPC endpoints"""

    # EVM Networks
    EVM_MAINNET = "eip155:1"
    EVM_SEPOLIA = "eip155:11155111"
    BASE_MAINNET = "eip155:8453"
    BASE_SEPOLIA = "eip155:84532"
    EVM_FAMILY = "eip155:*"

    # Solana Networks (CAIP-2 genesis hash references)
    SOLANA_MAINNET = "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp"
    SOLANA_DEVNET = "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1"

    # RPC URLs for EVM networks
    RPC_URLS: Dict[str, str] = {
        "eip155:1": "https://eth.llamarpc.com",
        "eip155:11155111": "https://rpc.sepolia.org",
        "eip155:8453": "https://mainnet.base.org",
        "eip155:84532": "https://sepolia.base.org",
    }

    @classmethod
    def get_rpc_url(cls, network: str) -> str | None:
        """Get RPC URL for an EVM network.

        ``X402_RPC_URL_<CHAIN_ID>`` overrides the built-in endpoint.

        Args:
            network: Network identifier (e.g., "eip155:84532")

        Returns:
            RPC URL string, or None if not configured
        """
        if network.startswith("eip155:"):
            override = os.getenv(f"X402_RPC_URL_{cls.get_chain_id(network)}")
            if override:
                return override
        return cls.RPC_URLS.get(network)

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Get chain ID for an EVM network

        Args:
            network: Network identifier (e.g., "eip155:8453")

        Returns:
            Chain ID as integer

        Raises:
            UnsupportedNetworkError: If network is not an EVM network
        """
        # EVM networks encode chain ID directly in the identifier
        if network.startswith("eip155:"):
            try:
                return int(network.split(":", 1)[1])
            except (ValueError, IndexError):
                raise UnsupportedNetworkError(f"Invalid EVM network: {network}")
        raise UnsupportedNetworkError(f"Unsupported network: {network}")


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class X402Settings:
    """Runtime settings for facilitator and resource server processes"""

    facilitator_urls: list[str] = field(default_factory=list)
    facilitator_timeout: float = 30.0
    facilitator_init_timeout: float = 10.0
    facilitator_host: str = "0.0.0.0"
    facilitator_port: int = 8001
    evm_private_key: str = ""
    evm_networks: list[str] = field(default_factory=lambda: [NetworkConfig.BASE_SEPOLIA])
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "X402Settings":
        """Load settings from the process environment (and an optional .env file)"""
        load_dotenv(env_file) if env_file else load_dotenv()

        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        return cls(
            facilitator_urls=_split_csv(os.getenv("FACILITATOR_URLS")),
            facilitator_timeout=float(os.getenv("FACILITATOR_TIMEOUT", "30")),
            facilitator_init_timeout=float(os.getenv("FACILITATOR_INIT_TIMEOUT", "10")),
            facilitator_host=os.getenv("FACILITATOR_HOST", "0.0.0.0"),
            facilitator_port=int(os.getenv("FACILITATOR_PORT", "8001")),
            evm_private_key=os.getenv("EVM_PRIVATE_KEY", ""),
            evm_networks=_split_csv(os.getenv("EVM_NETWORKS")) or [NetworkConfig.BASE_SEPOLIA],
            log_level=getattr(logging, level_name, logging.INFO),
        )
