"""
EvmClientSigner - EVM client signer implementation
"""

import logging
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from x402_core.abi import ERC20_ABI
from x402_core.exceptions import SignatureCreationError, UnsupportedNetworkError
from x402_core.signers.client.base import ClientSigner
from x402_core.signers.utils import build_typed_data, normalize_signature, resolve_provider_uri

logger = logging.getLogger(__name__)


class EvmClientSigner(ClientSigner):
    """EVM client signer implementation using eth_account and web3.py"""

    def __init__(self, private_key: str) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = Account.from_key(private_key).address
        self._async_web3_clients: dict[str, AsyncWeb3] = {}
        logger.debug(f"EvmClientSigner initialized: address={self._address}")

    @classmethod
    def from_private_key(cls, private_key: str) -> "EvmClientSigner":
        """Create signer from private key"""
        return cls(private_key)

    def get_address(self) -> str:
        return self._address

    def _get_web3(self, network: str) -> AsyncWeb3:
        """Lazy initialize async web3 client for the given network"""
        if network not in self._async_web3_clients:
            provider_uri = resolve_provider_uri(network)
            if not provider_uri:
                raise UnsupportedNetworkError(f"No RPC endpoint configured for {network}")
            self._async_web3_clients[network] = AsyncWeb3(AsyncHTTPProvider(provider_uri))
        return self._async_web3_clients[network]

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        primary_type: str,
    ) -> str:
        try:
            encoded = encode_typed_data(
                full_message=build_typed_data(domain, types, message, primary_type)
            )
            signed = Account.sign_message(encoded, private_key=self._private_key)
            return normalize_signature(signed.signature.hex())
        except Exception as e:
            raise SignatureCreationError(f"Failed to sign typed data: {e}") from e

    async def check_balance(self, token: str, network: str) -> int | None:
        """Check ERC20 token balance"""
        try:
            w3 = self._get_web3(network)
            contract = w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)
            return await contract.functions.balanceOf(self._address).call()
        except Exception as e:
            logger.warning(f"Failed to read balance of {token} on {network}: {e}")
            return None
