"""
CompositeFacilitatorClient - several facilitators behind one client, with failover
"""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from x402_core.config import X402Settings
from x402_core.exceptions import ConfigurationError, FacilitatorUnavailableError
from x402_core.facilitator.facilitator_client import FacilitatorClient, HTTPFacilitatorClient
from x402_core.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_INIT_TIMEOUT = 10.0

R = TypeVar("R")


class CompositeFacilitatorClient:
    """
    Merges the capabilities of several facilitators.

    Earlier clients take precedence when two advertise the same
    (version, network, scheme). Verify and settle go to the clients advertising
    the payment's kind first, then to the others in declared order; a client
    raising FacilitatorUnavailableError is skipped. Settlement is never sent
    twice to the same facilitator.
    """

    facilitator_id = "composite"

    def __init__(
        self,
        clients: Sequence[FacilitatorClient],
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
    ) -> None:
        if not clients:
            raise ValueError("CompositeFacilitatorClient needs at least one facilitator client")
        self._clients = list(clients)
        self._init_timeout = init_timeout
        self._supported: SupportedResponse | None = None
        # client index -> kinds it advertised
        self._client_kinds: dict[int, list[SupportedKind]] = {}

    @property
    def clients(self) -> list[FacilitatorClient]:
        return list(self._clients)

    async def _poll(self, client: FacilitatorClient) -> SupportedResponse:
        return await asyncio.wait_for(client.supported(), timeout=self._init_timeout)

    async def initialize(self) -> SupportedResponse:
        """
        Query every facilitator's ``/supported`` concurrently.

        Unresponsive facilitators are logged and left out (degraded mode).

        Raises:
            FacilitatorUnavailableError: no facilitator answered
        """
        results = await asyncio.gather(
            *(self._poll(client) for client in self._clients), return_exceptions=True
        )

        kinds: list[SupportedKind] = []
        seen: set[tuple[int, str, str]] = set()
        extensions: list[str] = []
        signers: dict[str, list[str]] = {}
        self._client_kinds = {}

        for index, (client, result) in enumerate(zip(self._clients, results)):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    f"Facilitator {client.facilitator_id} did not answer /supported: "
                    f"{type(result).__name__}: {result}"
                )
                continue

            self._client_kinds[index] = list(result.kinds)
            for kind in result.kinds:
                key = (kind.x402_version, kind.network, kind.scheme)
                if key not in seen:
                    seen.add(key)
                    kinds.append(kind)
            for extension in result.extensions:
                if extension not in extensions:
                    extensions.append(extension)
            for family, addresses in result.signers.items():
                merged = signers.setdefault(family, [])
                merged.extend(a for a in addresses if a not in merged)

        if not self._client_kinds:
            raise FacilitatorUnavailableError(
                self.facilitator_id, "no facilitator answered /supported"
            )

        self._supported = SupportedResponse(kinds=kinds, extensions=extensions, signers=signers)
        logger.info(
            f"Facilitators initialized: {len(self._client_kinds)}/{len(self._clients)} "
            f"responsive, {len(kinds)} kinds"
        )
        return self._supported

    async def supported(self) -> SupportedResponse:
        if self._supported is None:
            return await self.initialize()
        return self._supported

    def _ordered_clients(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> list[FacilitatorClient]:
        advertising: list[FacilitatorClient] = []
        others: list[FacilitatorClient] = []
        for index, client in enumerate(self._clients):
            kinds = self._client_kinds.get(index, [])
            if any(
                k.matches(payload.x402_version, requirements.network, requirements.scheme)
                for k in kinds
            ):
                advertising.append(client)
            else:
                others.append(client)
        return advertising + others

    async def _dispatch(
        self,
        operation: str,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
        call: Callable[[FacilitatorClient], Awaitable[R]],
    ) -> R:
        errors: list[str] = []
        for client in self._ordered_clients(payload, requirements):
            try:
                return await call(client)
            except FacilitatorUnavailableError as e:
                logger.warning(f"{operation} via {client.facilitator_id} failed, trying next: {e}")
                errors.append(str(e))
        raise FacilitatorUnavailableError(
            self.facilitator_id, f"{operation} failed on every facilitator: {errors}"
        )

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        return await self._dispatch(
            "verify", payload, requirements, lambda c: c.verify(payload, requirements)
        )

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        return await self._dispatch(
            "settle", payload, requirements, lambda c: c.settle(payload, requirements)
        )


def facilitator_client_from_settings(settings: X402Settings) -> FacilitatorClient:
    """HTTP client for ``FACILITATOR_URLS``; several URLs are combined in declared order"""
    if not settings.facilitator_urls:
        raise ConfigurationError("FACILITATOR_URLS environment variable is required")
    clients = [
        HTTPFacilitatorClient(url, timeout=settings.facilitator_timeout)
        for url in settings.facilitator_urls
    ]
    if len(clients) == 1:
        return clients[0]
    return CompositeFacilitatorClient(clients, init_timeout=settings.facilitator_init_timeout)
