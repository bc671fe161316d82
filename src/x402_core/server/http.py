"""
HTTP orchestration of the x402 payment flow, independent of any web framework.

A framework binding supplies an :class:`HTTPAdapter` for the incoming request,
calls :meth:`X402HTTPResourceServer.process_http_request` before the handler and
:meth:`X402HTTPResourceServer.process_settlement` after it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from x402_core.encoding import (
    decode_payment_signature_header,
    encode_payment_required_header,
    encode_payment_response_header,
)
from x402_core.exceptions import InvalidPaymentHeaderError, TransportError
from x402_core.server.x402_server import (
    RouteConfig,
    RouteSpec,
    X402ResourceServer,
    as_route_config,
)
from x402_core.types import (
    FACILITATOR_UNAVAILABLE,
    INVALID_PAYMENT_HEADER,
    NO_MATCHING_REQUIREMENTS,
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    UNSUPPORTED_VERSION,
    PaymentPayload,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
)

logger = logging.getLogger(__name__)

NO_PAYMENT_REQUIRED = "no-payment-required"
PAYMENT_ERROR = "payment-error"
PAYMENT_VERIFIED = "payment-verified"


class HTTPAdapter(Protocol):
    """Read-only view of an incoming HTTP request"""

    def get_header(self, name: str) -> str | None:
        """Header value, looked up case-insensitively"""
        ...

    def get_method(self) -> str: ...

    def get_path(self) -> str: ...

    def get_url(self) -> str: ...


@dataclass
class HTTPResponseInstructions:
    """Response the framework binding should send instead of calling the handler"""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass
class HTTPProcessResult:
    kind: str
    response: HTTPResponseInstructions | None = None
    payment_payload: PaymentPayload | None = None
    payment_requirements: PaymentRequirements | None = None


@dataclass
class SettlementResult:
    success: bool
    skipped: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    settle_response: SettleResponse | None = None
    error_reason: str | None = None


def _compile_route_pattern(path: str) -> re.Pattern[str]:
    """``*`` matches within one path segment, ``**`` across segments"""
    parts = re.split(r"(\*\*|\*)", path.rstrip("/") or "/")
    regex = "".join(
        ".*" if part == "**" else "[^/]+" if part == "*" else re.escape(part) for part in parts
    )
    return re.compile(f"^{regex}/?$")


@dataclass
class _CompiledRoute:
    method: str | None
    pattern: re.Pattern[str]
    config: RouteConfig


class X402HTTPResourceServer:
    """
    Applies x402 to HTTP requests using a route table.

    Route keys are ``"METHOD /path"`` or ``"/path"`` (any method); first match in
    declaration order wins.
    """

    def __init__(
        self,
        server: X402ResourceServer,
        routes: Mapping[str, RouteSpec] | None = None,
    ) -> None:
        self._server = server
        self._routes: list[_CompiledRoute] = []
        for key, route in (routes or {}).items():
            self.add_route(key, route)

    @property
    def server(self) -> X402ResourceServer:
        return self._server

    def add_route(self, key: str, route: RouteSpec) -> "X402HTTPResourceServer":
        parts = key.strip().split(None, 1)
        if len(parts) == 2:
            method, path = parts[0].upper(), parts[1]
        else:
            method, path = None, parts[0]
        self._routes.append(
            _CompiledRoute(method, _compile_route_pattern(path), as_route_config(route))
        )
        return self

    def get_route(self, method: str, path: str) -> RouteConfig | None:
        for route in self._routes:
            if route.method is not None and route.method != method.upper():
                continue
            if route.pattern.match(path):
                return route.config
        return None

    async def initialize(self) -> None:
        await self._server.initialize()

    def _error(self, status: int, error: str) -> HTTPProcessResult:
        return HTTPProcessResult(
            kind=PAYMENT_ERROR,
            response=HTTPResponseInstructions(status=status, body={"error": error}),
        )

    def _payment_required(
        self,
        accepts: list[PaymentRequirements],
        resource: ResourceInfo,
        error: str,
    ) -> HTTPProcessResult:
        payment_required = self._server.create_payment_required_response(
            accepts, resource=resource, error=error
        )
        header = encode_payment_required_header(payment_required)
        return HTTPProcessResult(
            kind=PAYMENT_ERROR,
            response=HTTPResponseInstructions(
                status=402,
                headers={PAYMENT_REQUIRED_HEADER: header},
                body=payment_required.model_dump(by_alias=True, exclude_none=True),
            ),
        )

    async def process_http_request(
        self,
        adapter: HTTPAdapter,
        route: RouteSpec | None = None,
    ) -> HTTPProcessResult:
        """
        Decide whether the handler may run.

        Args:
            adapter: The incoming request
            route: Explicit route config; looked up in the route table when omitted
        """
        route_config = (
            as_route_config(route)
            if route is not None
            else self.get_route(adapter.get_method(), adapter.get_path())
        )
        if route_config is None:
            return HTTPProcessResult(kind=NO_PAYMENT_REQUIRED)

        resource = ResourceInfo(
            url=route_config.resource or adapter.get_url(),
            description=route_config.description,
            mimeType=route_config.mime_type,
        )

        try:
            accepts = await self._server.build_payment_requirements(route_config)
        except TransportError as e:
            logger.error(f"Cannot build payment requirements: {e}")
            return self._error(503, FACILITATOR_UNAVAILABLE)

        header = adapter.get_header(PAYMENT_SIGNATURE_HEADER)
        if not header:
            return self._payment_required(
                accepts, resource, f"{PAYMENT_SIGNATURE_HEADER} header is required"
            )

        try:
            payload = decode_payment_signature_header(header)
        except InvalidPaymentHeaderError as e:
            logger.warning(f"Rejected payment header: {e}")
            return self._error(400, INVALID_PAYMENT_HEADER)

        if payload.x402_version != self._server.x402_version:
            return self._payment_required(accepts, resource, UNSUPPORTED_VERSION)

        requirements = self._server.find_matching_requirements(accepts, payload)
        if requirements is None:
            logger.warning(
                f"Payment for {payload.network}/{payload.scheme} matches no offered requirement"
            )
            return self._payment_required(accepts, resource, NO_MATCHING_REQUIREMENTS)

        try:
            verify_result = await self._server.verify_payment(payload, requirements)
        except TransportError as e:
            logger.error(f"Payment verification unavailable: {e}")
            return self._error(503, FACILITATOR_UNAVAILABLE)

        if not verify_result.is_valid:
            logger.warning(f"Payment verification failed: {verify_result.invalid_reason}")
            return self._payment_required(
                accepts, resource, verify_result.invalid_reason or "invalid_payment"
            )

        logger.info(f"Payment verified: payer={verify_result.payer}")
        return HTTPProcessResult(
            kind=PAYMENT_VERIFIED,
            payment_payload=payload,
            payment_requirements=requirements,
        )

    async def process_settlement(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
        handler_status: int,
    ) -> SettlementResult:
        """
        Settle after the handler ran.

        Nothing is sent to the facilitator when the handler answered with an
        error status. Settlement failures are reported, not raised.
        """
        if handler_status >= 400:
            logger.info(f"Handler returned {handler_status}; payment not settled")
            return SettlementResult(success=False, skipped=True)

        try:
            settle_result = await self._server.settle_payment(payload, requirements)
        except TransportError as e:
            logger.error(f"Settlement unavailable, response sent without payment proof: {e}")
            return SettlementResult(success=False, error_reason=FACILITATOR_UNAVAILABLE)

        if not settle_result.success:
            logger.error(f"Payment settlement failed: {settle_result.error_reason}")
            return SettlementResult(
                success=False,
                settle_response=settle_result,
                error_reason=settle_result.error_reason,
            )

        logger.info(f"Payment settled: tx={settle_result.transaction}")
        return SettlementResult(
            success=True,
            headers={PAYMENT_RESPONSE_HEADER: encode_payment_response_header(settle_result)},
            settle_response=settle_result,
        )
