"""
Facilitator mechanism base interface
"""

from abc import ABC, abstractmethod
from typing import Any

from x402_core.types import PaymentPayload, PaymentRequirements, SettleResponse, VerifyResponse


class FacilitatorMechanism(ABC):
    """
    Abstract base class for facilitator payment mechanisms.

    Responsible for verifying authorizations and executing settlements.
    """

    @abstractmethod
    def scheme(self) -> str:
        """Get the payment scheme name"""
        pass

    def get_extra(self, network: str) -> dict[str, Any] | None:
        """Scheme metadata advertised in ``/supported`` for *network*"""
        return None

    def get_signers(self, network: str) -> list[str]:
        """Addresses this mechanism settles from on *network*"""
        return []

    @abstractmethod
    def replay_key(self, payload: PaymentPayload) -> str | None:
        """
        Identify the authorization for replay protection.

        Two payloads that can only be settled once between them must return the
        same key. None means the payload is too malformed to identify; verify
        rejects it anyway.
        """
        pass

    @abstractmethod
    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify the payment without executing anything on-chain.

        Returns:
            VerifyResponse; failures are reported through ``invalidReason``
        """
        pass

    @abstractmethod
    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Re-verify, then execute the payment on-chain.

        Returns:
            SettleResponse with the transaction hash on success
        """
        pass
