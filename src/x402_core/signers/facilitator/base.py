"""
Facilitator signer base interface
"""

from abc import ABC, abstractmethod
from typing import Any


class FacilitatorSigner(ABC):
    """
    Abstract base class for facilitator signers.

    Responsible for verifying signatures, reading chain state and executing
    on-chain transactions.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Get the facilitator's account address"""
        pass

    @abstractmethod
    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        signature: str,
        primary_type: str,
    ) -> bool:
        """
        Verify EIP-712 typed data signature.

        Args:
            address: Expected signer address
            domain: EIP-712 domain
            types: Type definitions
            message: Signed message
            signature: Signature to verify
            primary_type: Primary type name

        Returns:
            True if the signature recovers to *address*
        """
        pass

    @abstractmethod
    async def read_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
        network: str,
    ) -> Any:
        """
        Call a view function.

        Raises:
            Exception: on RPC failure; callers decide whether to tolerate it
        """
        pass

    @abstractmethod
    async def write_contract(
        self,
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
        network: str,
    ) -> str | None:
        """
        Execute a contract write transaction.

        Args:
            contract_address: Contract address
            abi: Contract ABI
            method: Method name
            args: Method arguments
            network: Network identifier (e.g. "eip155:84532")

        Returns:
            Transaction hash, or None on failure
        """
        pass

    @abstractmethod
    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: int = 120,
        network: str = "",
    ) -> dict[str, Any]:
        """
        Wait for transaction confirmation.

        Returns:
            Receipt dict with at least ``hash``, ``blockNumber`` and ``status``
            (``"confirmed"`` or ``"failed"``)
        """
        pass
