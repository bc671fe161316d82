"""
Client mechanism base interface
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from x402_core.types import PaymentRequirements

if TYPE_CHECKING:
    from x402_core.signers.client.base import ClientSigner


class ClientMechanism(ABC):
    """
    Abstract base class for client payment mechanisms.

    Responsible for authorizing a payment for one scheme on one network family.
    """

    @abstractmethod
    def scheme(self) -> str:
        """Get the payment scheme name"""
        pass

    def get_signer(self) -> "ClientSigner | None":
        """Return the signer used by this mechanism, if any.

        Used by balance-aware selection policies.
        """
        return None

    @abstractmethod
    async def create_payment_payload(self, requirements: PaymentRequirements) -> dict[str, Any]:
        """
        Authorize a payment for the given requirements.

        Args:
            requirements: The requirement chosen from the server's offer

        Returns:
            Scheme-specific payload body (placed in ``PaymentPayload.payload``)
        """
        pass
