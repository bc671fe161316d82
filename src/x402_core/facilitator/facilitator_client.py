"""
FacilitatorClient - Clients for communicating with a facilitator
"""

import logging
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
from pydantic import BaseModel, ValidationError

from x402_core.exceptions import FacilitatorResponseError, FacilitatorUnavailableError
from x402_core.facilitator.x402_facilitator import X402Facilitator
from x402_core.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

T = TypeVar("T", bound=BaseModel)


@runtime_checkable
class FacilitatorClient(Protocol):
    """What a resource server needs from a facilitator, local or remote"""

    facilitator_id: str

    async def supported(self) -> SupportedResponse: ...

    async def verify(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse: ...

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse: ...


def _request_body(payload: PaymentPayload, requirements: PaymentRequirements) -> dict[str, Any]:
    return {
        "x402Version": payload.x402_version,
        "paymentPayload": payload.model_dump(by_alias=True, exclude_none=True),
        "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
    }


class HTTPFacilitatorClient:
    """
    Client for a facilitator reachable over HTTP.

    Connection errors, timeouts and non-2xx answers raise
    FacilitatorUnavailableError: the outcome is unknown and another facilitator
    may be tried. A 2xx body that does not parse raises FacilitatorResponseError.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        facilitator_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            timeout: Per-request timeout in seconds
            facilitator_id: Unique identifier for this facilitator
            transport: Optional httpx transport (tests, custom routing)
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport
        self.facilitator_id = facilitator_id or self._base_url
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        path: str,
        model_class: type[T],
        json: dict[str, Any] | None = None,
    ) -> T:
        client = await self._get_client()
        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise FacilitatorUnavailableError(self.facilitator_id, f"{path} timed out") from e
        except httpx.HTTPError as e:
            raise FacilitatorUnavailableError(self.facilitator_id, f"{path} failed: {e}") from e

        if not response.is_success:
            raise FacilitatorUnavailableError(
                self.facilitator_id, f"{path} returned HTTP {response.status_code}"
            )

        try:
            return model_class.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise FacilitatorResponseError(
                self.facilitator_id, f"unparseable {path} response: {e}"
            ) from e

    async def supported(self) -> SupportedResponse:
        """
        Query facilitator supported capabilities.

        Returns:
            SupportedResponse with supported versions/networks/schemes
        """
        return await self._request("GET", "/supported", SupportedResponse)

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Verify payment (without executing on-chain transaction)"""
        return await self._request(
            "POST", "/verify", VerifyResponse, _request_body(payload, requirements)
        )

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """Execute payment settlement (on-chain transaction)"""
        return await self._request(
            "POST", "/settle", SettleResponse, _request_body(payload, requirements)
        )


class LocalFacilitatorClient:
    """Adapts an in-process X402Facilitator to the FacilitatorClient interface"""

    def __init__(self, facilitator: X402Facilitator, facilitator_id: str = "local") -> None:
        self._facilitator = facilitator
        self.facilitator_id = facilitator_id

    async def supported(self) -> SupportedResponse:
        return self._facilitator.supported()

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        return await self._facilitator.verify(payload, requirements)

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        return await self._facilitator.settle(payload, requirements)
