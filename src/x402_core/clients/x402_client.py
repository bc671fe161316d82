"""
X402Client - Core payment client for x402 protocol
"""

import inspect
import logging
from typing import Awaitable, Callable, Protocol, Union

from x402_core.exceptions import NoCompatiblePaymentRequirementsError, UnsupportedVersionError
from x402_core.mechanisms._base.client import ClientMechanism
from x402_core.registry import SchemeRegistry
from x402_core.signers.client.base import ClientSigner
from x402_core.types import X402_VERSION, PaymentPayload, PaymentRequired, PaymentRequirements

logger = logging.getLogger(__name__)


PaymentRequirementsSelector = Callable[
    [list[PaymentRequirements]],
    Union[PaymentRequirements, Awaitable[PaymentRequirements]],
]


class PaymentPolicy(Protocol):
    """Policy that filters or reorders payment requirements.

    Policies are applied in registration order after mechanism filtering and
    before the selector. Return a subset (or reordered list) of the input.
    """

    async def apply(
        self,
        requirements: list[PaymentRequirements],
    ) -> list[PaymentRequirements]:
        """Apply this policy to the given requirements."""
        ...


def select_first(requirements: list[PaymentRequirements]) -> PaymentRequirements:
    return requirements[0]


class X402Client:
    """
    Core payment client for x402 protocol.

    Manages the payment mechanism registry and coordinates payment creation.
    Mechanisms are the only place a signing key is used.
    """

    def __init__(self, selector: PaymentRequirementsSelector | None = None) -> None:
        """
        Initialize X402Client.

        Args:
            selector: Picks one requirement among the remaining candidates,
                      sync or async. Defaults to the first candidate.
        """
        self._registry: SchemeRegistry[ClientMechanism] = SchemeRegistry()
        self._policies: list[PaymentPolicy] = []
        self._selector = selector or select_first

    def register(
        self,
        network_pattern: str,
        mechanism: ClientMechanism,
        x402_version: int = X402_VERSION,
    ) -> "X402Client":
        """
        Register a payment mechanism for a network pattern.

        Args:
            network_pattern: Network or family wildcard (e.g., "eip155:*", "eip155:8453")
            mechanism: Payment mechanism instance
            x402_version: Protocol version the mechanism produces payloads for

        Returns:
            self for method chaining
        """
        logger.info(f"Registering {mechanism.scheme()} mechanism for '{network_pattern}'")
        self._registry.register(x402_version, network_pattern, mechanism.scheme(), mechanism)
        return self

    def register_policy(self, policy: PaymentPolicy) -> "X402Client":
        """
        Register a payment policy.

        Returns:
            self for method chaining
        """
        self._policies.append(policy)
        return self

    def resolve_mechanism(
        self, scheme: str, network: str, x402_version: int = X402_VERSION
    ) -> ClientMechanism | None:
        return self._registry.resolve(x402_version, network, scheme)

    def resolve_signer(
        self, scheme: str, network: str, x402_version: int = X402_VERSION
    ) -> ClientSigner | None:
        """Signer of the mechanism that would pay for (scheme, network), if any"""
        mechanism = self.resolve_mechanism(scheme, network, x402_version)
        return mechanism.get_signer() if mechanism is not None else None

    async def select_payment_requirements(
        self,
        x402_version: int,
        accepts: list[PaymentRequirements],
    ) -> PaymentRequirements:
        """
        Select payment requirements from available options.

        Raises:
            NoCompatiblePaymentRequirementsError: nothing left after filtering
        """
        logger.info(f"Selecting payment requirements from {len(accepts)} options")

        candidates = [
            r
            for r in accepts
            if self.resolve_mechanism(r.scheme, r.network, x402_version) is not None
        ]
        logger.debug(f"After mechanism filter: {len(candidates)} candidates")

        for policy in self._policies:
            candidates = await policy.apply(candidates)
            logger.debug(f"After {type(policy).__name__}: {len(candidates)} candidates")

        if not candidates:
            offered = [f"v{x402_version} {r.network}/{r.scheme}" for r in accepts]
            logger.error(f"No supported payment requirements among {offered}")
            raise NoCompatiblePaymentRequirementsError(offered, self._registry.describe())

        selected = self._selector(candidates)
        if inspect.isawaitable(selected):
            selected = await selected
        if selected not in candidates:
            logger.error(f"Selector returned a requirement outside the candidates: {selected!r}")
            raise NoCompatiblePaymentRequirementsError(
                [f"v{x402_version} {r.network}/{r.scheme}" for r in candidates],
                self._registry.describe(),
            )

        logger.info(
            "Selected payment requirement: network=%s, scheme=%s, amount=%s",
            selected.network,
            selected.scheme,
            selected.amount,
        )
        return selected

    async def create_payment_payload(self, payment_required: PaymentRequired) -> PaymentPayload:
        """
        Choose a requirement from a 402 response and authorize payment for it.

        Raises:
            UnsupportedVersionError: no mechanism registered for the offered version
            NoCompatiblePaymentRequirementsError: no offered requirement is payable
            SignatureCreationError: the mechanism could not sign
        """
        version = payment_required.x402_version
        if version not in self._registry.versions():
            raise UnsupportedVersionError(version)

        requirements = await self.select_payment_requirements(version, payment_required.accepts)
        mechanism = self.resolve_mechanism(requirements.scheme, requirements.network, version)
        if mechanism is None:
            raise NoCompatiblePaymentRequirementsError(
                [f"v{version} {requirements.network}/{requirements.scheme}"],
                self._registry.describe(),
            )

        logger.info(
            f"Creating payment payload for scheme={requirements.scheme}, "
            f"network={requirements.network}"
        )
        body = await mechanism.create_payment_payload(requirements)
        return PaymentPayload(
            x402Version=version,
            scheme=requirements.scheme,
            network=requirements.network,
            payload=body,
            accepted=requirements.model_copy(deep=True),
            resource=payment_required.resource,
            extensions=payment_required.extensions,
        )
