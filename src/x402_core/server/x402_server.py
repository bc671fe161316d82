"""
X402ResourceServer - Core payment server for x402 protocol
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence, Union

from x402_core.exceptions import ConfigurationError
from x402_core.facilitator.composite import CompositeFacilitatorClient
from x402_core.facilitator.facilitator_client import FacilitatorClient
from x402_core.mechanisms._base.server import ServerMechanism
from x402_core.registry import SchemeRegistry
from x402_core.types import (
    X402_VERSION,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
    is_wildcard,
)

logger = logging.getLogger(__name__)


@dataclass
class ResourceConfig:
    """One way to pay for a resource"""

    scheme: str
    network: str
    price: Any
    pay_to: str
    max_timeout_seconds: int = 300
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class RouteConfig:
    """Payment options and metadata for a protected route"""

    accepts: list[ResourceConfig]
    description: str | None = None
    mime_type: str | None = None
    resource: str | None = None


RouteSpec = Union[RouteConfig, ResourceConfig, Sequence[ResourceConfig]]


def as_route_config(route: RouteSpec) -> RouteConfig:
    if isinstance(route, RouteConfig):
        return route
    if isinstance(route, ResourceConfig):
        return RouteConfig(accepts=[route])
    return RouteConfig(accepts=list(route))


class X402ResourceServer:
    """
    Core payment server for x402 protocol.

    Manages server mechanisms and the facilitator client, builds payment
    requirements and coordinates verification/settlement. Framework agnostic.
    """

    def __init__(
        self,
        facilitator: FacilitatorClient | Sequence[FacilitatorClient],
        x402_version: int = X402_VERSION,
    ) -> None:
        """
        Args:
            facilitator: A facilitator client, or several in precedence order
            x402_version: Protocol version this server speaks
        """
        if isinstance(facilitator, (list, tuple)):
            facilitator = (
                facilitator[0] if len(facilitator) == 1 else CompositeFacilitatorClient(facilitator)
            )
        self._facilitator: FacilitatorClient = facilitator
        self._x402_version = x402_version
        self._registry: SchemeRegistry[ServerMechanism] = SchemeRegistry()
        self._supported: SupportedResponse | None = None

    @property
    def x402_version(self) -> int:
        return self._x402_version

    @property
    def facilitator(self) -> FacilitatorClient:
        return self._facilitator

    def register(
        self,
        network: str,
        mechanism: ServerMechanism,
        x402_version: int | None = None,
    ) -> "X402ResourceServer":
        """
        Register a payment mechanism for a network.

        Args:
            network: Network identifier or family wildcard (e.g. "eip155:*")
            mechanism: Server mechanism instance

        Returns:
            self for method chaining
        """
        version = x402_version or self._x402_version
        self._registry.register(version, network, mechanism.scheme(), mechanism)
        return self

    async def initialize(self) -> SupportedResponse:
        """Fetch and cache facilitator capabilities, then freeze the registry"""
        if isinstance(self._facilitator, CompositeFacilitatorClient):
            supported = await self._facilitator.initialize()
        else:
            supported = await self._facilitator.supported()
        self._supported = supported
        if not self._registry.frozen:
            self._registry.freeze()
        logger.info(
            f"Resource server initialized: {len(supported.kinds)} facilitator kinds, "
            f"mechanisms={self._registry.describe()}"
        )
        return supported

    async def get_supported(self) -> SupportedResponse:
        if self._supported is None:
            return await self.initialize()
        return self._supported

    def _find_supported_kind(
        self, supported: SupportedResponse, network: str, scheme: str
    ) -> SupportedKind | None:
        # exact network kinds take precedence over family wildcards
        candidates = [k for k in supported.kinds if k.matches(self._x402_version, network, scheme)]
        for kind in candidates:
            if kind.network == network:
                return kind
        return candidates[0] if candidates else None

    async def build_payment_requirements(self, route: RouteSpec) -> list[PaymentRequirements]:
        """
        Build the ``accepts`` list for a route.

        Options without a facilitator able to process them are left out.

        Raises:
            ConfigurationError: no mechanism registered for an option
            ValueError / UnknownTokenError: an option's price cannot be parsed
            FacilitatorUnavailableError: facilitator capabilities could not be fetched
        """
        route_config = as_route_config(route)
        supported = await self.get_supported()

        accepts: list[PaymentRequirements] = []
        for option in route_config.accepts:
            if is_wildcard(option.network):
                raise ConfigurationError(
                    f"Resource option must name a concrete network, got {option.network}"
                )
            mechanism = self._registry.resolve(self._x402_version, option.network, option.scheme)
            if mechanism is None:
                raise ConfigurationError(
                    f"No server mechanism registered for {option.network}/{option.scheme}"
                )

            asset = await mechanism.parse_price(option.price, option.network)
            requirements = PaymentRequirements(
                scheme=option.scheme,
                network=option.network,
                asset=asset.asset,
                amount=asset.amount,
                payTo=option.pay_to,
                maxTimeoutSeconds=option.max_timeout_seconds,
                extra={**asset.extra, **option.extra},
            )

            kind = self._find_supported_kind(supported, option.network, option.scheme)
            if kind is None:
                logger.warning(
                    f"No facilitator supports v{self._x402_version} "
                    f"{option.network}/{option.scheme}; option omitted"
                )
                continue

            accepts.append(
                await mechanism.enhance_payment_requirements(
                    requirements, kind, list(supported.extensions)
                )
            )
        return accepts

    def create_payment_required_response(
        self,
        requirements: list[PaymentRequirements],
        resource: ResourceInfo | None = None,
        error: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> PaymentRequired:
        """Create 402 Payment Required response"""
        return PaymentRequired(
            x402Version=self._x402_version,
            error=error,
            resource=resource,
            accepts=requirements,
            extensions=extensions,
        )

    @staticmethod
    def find_matching_requirements(
        accepts: list[PaymentRequirements],
        payload: PaymentPayload,
    ) -> PaymentRequirements | None:
        """Return the offered requirement the payload's ``accepted`` deep-equals, if any"""
        accepted = payload.accepted.model_dump(by_alias=True, exclude_none=True)
        for requirements in accepts:
            if requirements.model_dump(by_alias=True, exclude_none=True) == accepted:
                return requirements
        return None

    async def verify_payment(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment through the facilitator.

        Raises:
            TransportError: no facilitator could be reached
        """
        return await self._facilitator.verify(payload, requirements)

    async def settle_payment(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement through the facilitator.

        Raises:
            TransportError: no facilitator could be reached
        """
        return await self._facilitator.settle(payload, requirements)
