"""
ExactEvmClientMechanism - signs EIP-3009 TransferWithAuthorization payloads
"""

import logging
from typing import Any

from x402_core.config import NetworkConfig
from x402_core.exceptions import SignatureCreationError
from x402_core.mechanisms._base.client import ClientMechanism
from x402_core.mechanisms.evm.exact.types import (
    SCHEME_EXACT,
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
    TransferAuthorization,
    build_eip712_domain,
    build_eip712_message,
    create_nonce,
    create_validity_window,
)
from x402_core.signers.client.base import ClientSigner
from x402_core.types import PaymentRequirements

logger = logging.getLogger(__name__)


class ExactEvmClientMechanism(ClientMechanism):
    """Client mechanism for exact on any eip155 network"""

    def __init__(self, signer: ClientSigner) -> None:
        self._signer = signer

    def scheme(self) -> str:
        return SCHEME_EXACT

    def get_signer(self) -> ClientSigner:
        return self._signer

    async def create_payment_payload(self, requirements: PaymentRequirements) -> dict[str, Any]:
        name = requirements.extra.get("name")
        version = requirements.extra.get("version")
        if not name or not version:
            raise SignatureCreationError(
                f"Requirement for {requirements.asset} on {requirements.network} "
                "is missing the EIP-712 domain (extra.name / extra.version)"
            )

        valid_after, valid_before = create_validity_window(requirements.max_timeout_seconds)
        auth = TransferAuthorization(
            from_address=self._signer.get_address(),
            to=requirements.pay_to,
            value=requirements.amount,
            valid_after=str(valid_after),
            valid_before=str(valid_before),
            nonce=create_nonce(),
        )
        domain = build_eip712_domain(
            name,
            version,
            NetworkConfig.get_chain_id(requirements.network),
            requirements.asset,
        )

        logger.info(
            f"Signing transferWithAuthorization: from={auth.from_address}, to={auth.to}, "
            f"value={auth.value}, network={requirements.network}"
        )
        signature = await self._signer.sign_typed_data(
            domain=domain,
            types=TRANSFER_AUTH_EIP712_TYPES,
            message=build_eip712_message(auth),
            primary_type=TRANSFER_AUTH_PRIMARY_TYPE,
        )
        return {
            "signature": signature,
            "authorization": auth.model_dump(by_alias=True),
        }
