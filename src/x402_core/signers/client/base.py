"""
Client signer base interface
"""

from abc import ABC, abstractmethod
from typing import Any


class ClientSigner(ABC):
    """
    Abstract base class for client signers.

    The only component that touches the payer's private key.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Get the payer's account address"""
        pass

    @abstractmethod
    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        primary_type: str,
    ) -> str:
        """
        Sign EIP-712 typed data.

        Args:
            domain: EIP-712 domain
            types: Type definitions (EIP712Domain is derived from domain when absent)
            message: Message to sign
            primary_type: Primary type name

        Returns:
            0x-prefixed hex signature

        Raises:
            SignatureCreationError: signing failed
        """
        pass

    @abstractmethod
    async def check_balance(self, token: str, network: str) -> int | None:
        """
        Read the payer's token balance.

        Returns:
            Balance in the token's smallest unit, or None if it could not be read
        """
        pass
