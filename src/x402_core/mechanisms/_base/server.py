"""
Server mechanism base interface
"""

from abc import ABC, abstractmethod
from typing import Any

from x402_core.types import AssetAmount, PaymentRequirements, SupportedKind


class ServerMechanism(ABC):
    """
    Abstract base class for server payment mechanisms.

    Responsible for parsing prices and enhancing payment requirements.
    """

    @abstractmethod
    def scheme(self) -> str:
        """Get the payment scheme name"""
        pass

    @abstractmethod
    async def parse_price(self, price: Any, network: str) -> AssetAmount:
        """
        Parse a price into an asset and an amount in the asset's smallest unit.

        Args:
            price: Money string (``"$0.01"``), token string (``"0.01 USDC"``),
                number, or explicit ``AssetAmount``
            network: Concrete network identifier

        Raises:
            ValueError: malformed price
            UnknownTokenError: no token for the price on *network*
        """
        pass

    @abstractmethod
    async def enhance_payment_requirements(
        self,
        requirements: PaymentRequirements,
        supported_kind: SupportedKind,
        facilitator_extensions: list[str],
    ) -> PaymentRequirements:
        """
        Add scheme-specific metadata a client needs to build a payload.

        Args:
            requirements: Base payment requirements
            supported_kind: The facilitator kind that will process this requirement
            facilitator_extensions: Extension names advertised by the facilitator
        """
        pass
