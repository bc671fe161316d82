"""
ExactEvmFacilitatorMechanism - verifies and settles EIP-3009 transfer authorizations
"""

import logging
import time
from typing import Any

from pydantic import ValidationError
from web3 import Web3

from x402_core.abi import AUTHORIZATION_STATE_ABI, ERC20_ABI, TRANSFER_WITH_AUTHORIZATION_ABI
from x402_core.config import NetworkConfig
from x402_core.encoding import hex_to_bytes
from x402_core.exceptions import UnsupportedNetworkError
from x402_core.mechanisms._base.facilitator import FacilitatorMechanism
from x402_core.mechanisms.evm.exact.types import (
    EXPIRY_BUFFER_SECONDS,
    SCHEME_EXACT,
    TRANSFER_AUTH_EIP712_TYPES,
    TRANSFER_AUTH_PRIMARY_TYPE,
    ExactEvmPayload,
    build_eip712_domain,
    build_eip712_message,
    split_signature,
)
from x402_core.signers.facilitator.base import FacilitatorSigner
from x402_core.tokens import TokenRegistry
from x402_core.types import (
    ASSET_MISMATCH,
    AUTHORIZATION_WINDOW_TOO_LONG,
    EXPIRED,
    INSUFFICIENT_AMOUNT,
    INSUFFICIENT_FUNDS,
    INVALID_PAYLOAD,
    INVALID_SIGNATURE,
    MISSING_EIP712_DOMAIN,
    NETWORK_MISMATCH,
    NONCE_ALREADY_USED,
    NOT_YET_VALID,
    RECIPIENT_MISMATCH,
    SCHEME_MISMATCH,
    TOKEN_NOT_ALLOWED,
    TRANSACTION_FAILED,
    TRANSACTION_REVERTED,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


def _nonce_bytes(nonce: str) -> bytes:
    raw = hex_to_bytes(nonce)
    if len(raw) != 32:
        raise ValueError(f"nonce must be 32 bytes, got {len(raw)}")
    return raw


class ExactEvmFacilitatorMechanism(FacilitatorMechanism):
    """Facilitator mechanism for exact on any eip155 network.

    Tokens are restricted to ``allowed_tokens`` when given, otherwise to the
    tokens TokenRegistry knows for the payment's network.
    """

    def __init__(
        self,
        signer: FacilitatorSigner,
        allowed_tokens: list[str] | None = None,
        receipt_timeout: int = 120,
    ) -> None:
        self._signer = signer
        self._allowed_tokens = (
            {token.lower() for token in allowed_tokens} if allowed_tokens is not None else None
        )
        self._receipt_timeout = receipt_timeout
        logger.info(f"Initialized exact EVM facilitator: signer={signer.get_address()}")

    def scheme(self) -> str:
        return SCHEME_EXACT

    def get_signers(self, network: str) -> list[str]:
        return [self._signer.get_address()]

    def replay_key(self, payload: PaymentPayload) -> str | None:
        try:
            parsed = ExactEvmPayload.model_validate(payload.payload)
            auth = parsed.authorization
            nonce = _nonce_bytes(auth.nonce)
            payer = Web3.to_checksum_address(auth.from_address)
        except (ValidationError, ValueError):
            return None
        # one key per on-chain (authorizer, bytes32 nonce) pair, however it is spelled
        return f"{payer.lower()}:{nonce.hex()}"

    def _token_allowed(self, network: str, asset: str) -> bool:
        if self._allowed_tokens is not None:
            return asset.lower() in self._allowed_tokens
        return TokenRegistry.find_by_address(network, asset) is not None

    def _invalid(self, reason: str, payer: str | None = None) -> VerifyResponse:
        logger.warning(f"Verification failed: {reason} (payer={payer})")
        return VerifyResponse(isValid=False, invalidReason=reason, payer=payer)

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        try:
            parsed = ExactEvmPayload.model_validate(payload.payload)
        except ValidationError as e:
            logger.warning(f"Malformed exact EVM payload: {e.error_count()} error(s)")
            return self._invalid(INVALID_PAYLOAD)

        auth = parsed.authorization
        payer = auth.from_address
        logger.info(
            f"Verifying transferWithAuthorization: from={payer}, to={auth.to}, "
            f"value={auth.value}, network={requirements.network}"
        )

        if payload.scheme != requirements.scheme:
            return self._invalid(SCHEME_MISMATCH, payer)
        if payload.network != requirements.network:
            return self._invalid(NETWORK_MISMATCH, payer)
        if payload.accepted.asset.lower() != requirements.asset.lower():
            return self._invalid(ASSET_MISMATCH, payer)
        if not self._token_allowed(requirements.network, requirements.asset):
            return self._invalid(TOKEN_NOT_ALLOWED, payer)

        name = requirements.extra.get("name")
        version = requirements.extra.get("version")
        if not name or not version:
            return self._invalid(MISSING_EIP712_DOMAIN, payer)

        try:
            chain_id = NetworkConfig.get_chain_id(requirements.network)
            domain = build_eip712_domain(name, version, chain_id, requirements.asset)
            _nonce_bytes(auth.nonce)
            message = build_eip712_message(auth)
            value = int(auth.value)
            valid_after = int(auth.valid_after)
            valid_before = int(auth.valid_before)
        except (UnsupportedNetworkError, ValueError) as e:
            logger.warning(f"Unusable authorization fields: {e}")
            return self._invalid(INVALID_PAYLOAD, payer)

        is_valid = await self._signer.verify_typed_data(
            address=payer,
            domain=domain,
            types=TRANSFER_AUTH_EIP712_TYPES,
            message=message,
            signature=parsed.signature,
            primary_type=TRANSFER_AUTH_PRIMARY_TYPE,
        )
        if not is_valid:
            return self._invalid(INVALID_SIGNATURE, payer)

        if auth.to.lower() != requirements.pay_to.lower():
            return self._invalid(RECIPIENT_MISMATCH, payer)
        if value < int(requirements.amount):
            return self._invalid(INSUFFICIENT_AMOUNT, payer)

        now = int(time.time())
        if valid_before < now + EXPIRY_BUFFER_SECONDS:
            return self._invalid(EXPIRED, payer)
        if valid_after > now:
            return self._invalid(NOT_YET_VALID, payer)
        if valid_before - now > requirements.max_timeout_seconds + EXPIRY_BUFFER_SECONDS:
            return self._invalid(AUTHORIZATION_WINDOW_TOO_LONG, payer)

        chain_reason = await self._check_chain_state(auth.nonce, payer, requirements)
        if chain_reason:
            return self._invalid(chain_reason, payer)

        logger.info(f"Payment verification successful: payer={payer}")
        return VerifyResponse(isValid=True, payer=payer)

    async def _check_chain_state(
        self, nonce: str, payer: str, requirements: PaymentRequirements
    ) -> str | None:
        """Nonce state and balance reads; RPC failures are tolerated, settle is authoritative"""
        checksum_payer = Web3.to_checksum_address(payer)
        try:
            used = await self._signer.read_contract(
                requirements.asset,
                AUTHORIZATION_STATE_ABI,
                "authorizationState",
                [checksum_payer, hex_to_bytes(nonce)],
                requirements.network,
            )
            if used:
                return NONCE_ALREADY_USED
        except Exception as e:
            logger.warning(f"Could not read authorizationState, continuing: {e}")

        try:
            balance = await self._signer.read_contract(
                requirements.asset,
                ERC20_ABI,
                "balanceOf",
                [checksum_payer],
                requirements.network,
            )
            if int(balance) < int(requirements.amount):
                return INSUFFICIENT_FUNDS
        except Exception as e:
            logger.warning(f"Could not read balance, continuing: {e}")

        return None

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        verify_result = await self.verify(payload, requirements)
        if not verify_result.is_valid:
            logger.error(f"Settlement refused: {verify_result.invalid_reason}")
            return SettleResponse(
                success=False,
                errorReason=verify_result.invalid_reason,
                payer=verify_result.payer,
                network=requirements.network,
            )

        parsed = ExactEvmPayload.model_validate(payload.payload)
        auth = parsed.authorization
        payer = auth.from_address

        try:
            v, r, s = split_signature(parsed.signature)
            args: list[Any] = [
                Web3.to_checksum_address(auth.from_address),
                Web3.to_checksum_address(auth.to),
                int(auth.value),
                int(auth.valid_after),
                int(auth.valid_before),
                hex_to_bytes(auth.nonce),
                v,
                r,
                s,
            ]
            logger.info(f"Settling transferWithAuthorization on {requirements.network}")
            tx_hash = await self._signer.write_contract(
                requirements.asset,
                TRANSFER_WITH_AUTHORIZATION_ABI,
                "transferWithAuthorization",
                args,
                requirements.network,
            )
            if tx_hash is None:
                logger.error("Settlement transaction failed: no transaction hash returned")
                return SettleResponse(
                    success=False,
                    errorReason=TRANSACTION_FAILED,
                    payer=payer,
                    network=requirements.network,
                )

            logger.info(f"Transaction broadcast: txHash={tx_hash}, waiting for receipt")
            receipt = await self._signer.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout, network=requirements.network
            )
        except Exception as e:
            logger.error(f"Settlement failed: {e}", exc_info=True)
            return SettleResponse(
                success=False,
                errorReason=TRANSACTION_FAILED,
                payer=payer,
                network=requirements.network,
            )

        if str(receipt.get("status", "")).lower() != "confirmed":
            logger.error(f"Transaction reverted on-chain: txHash={tx_hash}")
            return SettleResponse(
                success=False,
                errorReason=TRANSACTION_REVERTED,
                payer=payer,
                transaction=tx_hash,
                network=requirements.network,
            )

        logger.info(f"Settlement successful: txHash={tx_hash}")
        return SettleResponse(
            success=True,
            payer=payer,
            transaction=tx_hash,
            network=requirements.network,
        )
