"""
ExactEvmServerMechanism - prices and EIP-712 metadata for exact on eip155
"""

import logging
from typing import Any

from x402_core.mechanisms._base.server import ServerMechanism
from x402_core.mechanisms.evm.exact.types import SCHEME_EXACT
from x402_core.tokens import TokenRegistry
from x402_core.types import AssetAmount, PaymentRequirements, SupportedKind

logger = logging.getLogger(__name__)


class ExactEvmServerMechanism(ServerMechanism):
    """Server mechanism for exact on any eip155 network"""

    def scheme(self) -> str:
        return SCHEME_EXACT

    async def parse_price(self, price: Any, network: str) -> AssetAmount:
        return TokenRegistry.parse_price(price, network)

    async def enhance_payment_requirements(
        self,
        requirements: PaymentRequirements,
        supported_kind: SupportedKind,
        facilitator_extensions: list[str],
    ) -> PaymentRequirements:
        """Fill in the token's EIP-712 domain name/version and facilitator kind extras"""
        extra = dict(supported_kind.extra or {})
        extra.update(requirements.extra)

        if "name" not in extra or "version" not in extra:
            token = TokenRegistry.find_by_address(requirements.network, requirements.asset)
            if token is not None:
                extra.setdefault("name", token.name)
                extra.setdefault("version", token.version)
            else:
                logger.warning(
                    f"No EIP-712 domain known for {requirements.asset} on "
                    f"{requirements.network}; clients will not be able to sign"
                )

        return requirements.model_copy(update={"extra": extra})
