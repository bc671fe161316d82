"""
X402Facilitator - Core payment processor for x402 protocol
"""

import logging

from x402_core.facilitator.nonce_store import InMemoryNonceStore, NonceStore
from x402_core.mechanisms._base.facilitator import FacilitatorMechanism
from x402_core.registry import SchemeRegistry
from x402_core.types import (
    INVALID_PAYLOAD,
    NONCE_ALREADY_USED,
    UNSUPPORTED_SCHEME,
    UNSUPPORTED_VERSION,
    X402_VERSION,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
    network_family,
)

logger = logging.getLogger(__name__)


class X402Facilitator:
    """
    Core payment processor for x402 protocol.

    Manages payment mechanisms and coordinates verification/settlement. A payment
    authorization settles at most once: settle holds a per-authorization lock from
    the consumed check until the nonce is recorded.
    """

    def __init__(self, nonce_store: NonceStore | None = None) -> None:
        self._registry: SchemeRegistry[FacilitatorMechanism] = SchemeRegistry()
        self._extensions: list[str] = []
        self._nonce_store = nonce_store or InMemoryNonceStore()

    @property
    def nonce_store(self) -> NonceStore:
        return self._nonce_store

    def register(
        self,
        networks: list[str],
        mechanism: FacilitatorMechanism,
        x402_version: int = X402_VERSION,
    ) -> "X402Facilitator":
        """
        Register a payment mechanism for multiple networks.

        Args:
            networks: Network identifiers or family wildcards (``eip155:*``)
            mechanism: Facilitator mechanism instance
            x402_version: Protocol version served by the mechanism

        Returns:
            self for method chaining
        """
        scheme = mechanism.scheme()
        for network in networks:
            self._registry.register(x402_version, network, scheme, mechanism)
            logger.info(f"Registered facilitator mechanism v{x402_version} {network}/{scheme}")
        return self

    def register_extension(self, name: str) -> "X402Facilitator":
        if name not in self._extensions:
            self._extensions.append(name)
        return self

    def freeze(self) -> None:
        self._registry.freeze()

    def supported(self) -> SupportedResponse:
        """Return supported version/network/scheme combinations, extensions and signers"""
        kinds: list[SupportedKind] = []
        signers: dict[str, list[str]] = {}
        for entry in self._registry.entries():
            mechanism: FacilitatorMechanism = entry.implementation
            kinds.append(
                SupportedKind(
                    x402Version=entry.x402_version,
                    scheme=entry.scheme,
                    network=entry.network,
                    extra=mechanism.get_extra(entry.network),
                )
            )
            family_signers = signers.setdefault(f"{network_family(entry.network)}:*", [])
            for address in mechanism.get_signers(entry.network):
                if address not in family_signers:
                    family_signers.append(address)

        return SupportedResponse(
            kinds=kinds,
            extensions=list(self._extensions),
            signers={family: addrs for family, addrs in signers.items() if addrs},
        )

    def _resolve(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> tuple[FacilitatorMechanism | None, str | None]:
        """Return (mechanism, error reason)"""
        if payload.x402_version not in self._registry.versions():
            return None, UNSUPPORTED_VERSION
        mechanism = self._registry.resolve(
            payload.x402_version, requirements.network, requirements.scheme
        )
        if mechanism is None:
            return None, UNSUPPORTED_SCHEME
        return mechanism, None

    def _replay_key(
        self,
        mechanism: FacilitatorMechanism,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> str | None:
        key = mechanism.replay_key(payload)
        if key is None:
            return None
        return f"{requirements.network}/{requirements.scheme}/{key}"

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment authorization and validity. No side effects.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse
        """
        logger.info(f"Received verify request: {requirements.network}/{requirements.scheme}")
        mechanism, reason = self._resolve(payload, requirements)
        if mechanism is None:
            logger.warning(
                f"Invalid: {reason} for v{payload.x402_version} "
                f"{requirements.network}/{requirements.scheme}"
            )
            return VerifyResponse(isValid=False, invalidReason=reason)

        key = self._replay_key(mechanism, payload, requirements)
        if key is not None and await self._nonce_store.is_consumed(key):
            logger.warning(f"Invalid: authorization already settled ({key})")
            return VerifyResponse(isValid=False, invalidReason=NONCE_ALREADY_USED)

        logger.info("Verifying payment")
        result = await mechanism.verify(payload, requirements)
        if result.is_valid:
            logger.info(f"Valid: payer={result.payer}")
        else:
            logger.info(f"Invalid: {result.invalid_reason}")
        return result

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement. Never retried internally.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            SettleResponse with the transaction hash on success
        """
        logger.info(f"Received settle request: {requirements.network}/{requirements.scheme}")
        mechanism, reason = self._resolve(payload, requirements)
        if mechanism is None:
            logger.warning(f"SettleFailed: {reason}")
            return SettleResponse(
                success=False, errorReason=reason, network=requirements.network
            )

        key = self._replay_key(mechanism, payload, requirements)
        if key is None:
            logger.warning("SettleFailed: payload carries no identifiable authorization")
            return SettleResponse(
                success=False, errorReason=INVALID_PAYLOAD, network=requirements.network
            )

        async with self._nonce_store.lock(key):
            if await self._nonce_store.is_consumed(key):
                logger.warning(f"SettleFailed: authorization already settled ({key})")
                return SettleResponse(
                    success=False,
                    errorReason=NONCE_ALREADY_USED,
                    network=requirements.network,
                )

            logger.info(f"Settling payment ({key})")
            result = await mechanism.settle(payload, requirements)
            if result.success:
                await self._nonce_store.mark_consumed(key)
                logger.info(f"Settled: tx={result.transaction}")
            else:
                logger.warning(f"SettleFailed: {result.error_reason}")
            return result
