"""
EvmFacilitatorSigner - EVM facilitator signer implementation
"""

import logging
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from x402_core.encoding import hex_to_bytes
from x402_core.exceptions import UnsupportedNetworkError
from x402_core.signers.facilitator.base import FacilitatorSigner
from x402_core.signers.utils import build_typed_data, resolve_provider_uri

logger = logging.getLogger(__name__)


class EvmFacilitatorSigner(FacilitatorSigner):
    """EVM facilitator signer implementation using web3.py"""

    def __init__(self, private_key: str) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = Account.from_key(private_key).address
        self._async_web3_clients: dict[str, AsyncWeb3] = {}
        logger.debug(f"EvmFacilitatorSigner initialized: address={self._address}")

    @classmethod
    def from_private_key(cls, private_key: str) -> "EvmFacilitatorSigner":
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

    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        signature: str,
        primary_type: str,
    ) -> bool:
        try:
            signable = encode_typed_data(
                full_message=build_typed_data(domain, types, message, primary_type)
            )
            recovered = Account.recover_message(signable, signature=hex_to_bytes(signature))
            return recovered.lower() == address.lower()
        except Exception as e:
            logger.warning(f"Signature verification failed: {e}")
            return False

    async def read_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
        network: str,
    ) -> Any:
        w3 = self._get_web3(network)
        contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)
        return await getattr(contract.functions, method)(*args).call()

    async def write_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
        network: str,
    ) -> str | None:
        """Build, sign and broadcast a contract transaction"""
        try:
            w3 = self._get_web3(network)
            contract = w3.eth.contract(
                address=Web3.to_checksum_address(contract_address), abi=abi
            )
            func = getattr(contract.functions, method)

            tx = await func(*args).build_transaction(
                {
                    "from": self._address,
                    "nonce": await w3.eth.get_transaction_count(self._address, "pending"),
                    "chainId": await w3.eth.chain_id,
                }
            )

            signed_tx = Account.sign_transaction(tx, private_key=self._private_key)
            tx_hash = await w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            return "0x" + bytes(tx_hash).hex()
        except Exception as e:
            logger.error(
                f"Contract write failed: method={method}, contract={contract_address}: {e}",
                exc_info=True,
            )
            return None

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: int = 120,
        network: str = "",
    ) -> dict[str, Any]:
        """Wait for EVM transaction confirmation"""
        w3 = self._get_web3(network)
        receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return {
            "hash": tx_hash,
            "blockNumber": str(receipt["blockNumber"]),
            "status": "confirmed" if receipt["status"] == 1 else "failed",
        }
