"""
FastAPI middleware for x402 payment processing
"""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from x402_core.server.http import (
    NO_PAYMENT_REQUIRED,
    PAYMENT_VERIFIED,
    HTTPProcessResult,
    X402HTTPResourceServer,
)
from x402_core.server.x402_server import ResourceConfig, RouteConfig, X402ResourceServer
from x402_core.types import PaymentPayload, PaymentRequirements

logger = logging.getLogger(__name__)


class FastAPIRequestAdapter:
    """HTTPAdapter over a Starlette/FastAPI request"""

    def __init__(self, request: Request) -> None:
        self._request = request

    def get_header(self, name: str) -> str | None:
        return self._request.headers.get(name)

    def get_method(self) -> str:
        return self._request.method

    def get_path(self) -> str:
        return self._request.url.path

    def get_url(self) -> str:
        return str(self._request.url)


def _error_response(result: HTTPProcessResult) -> JSONResponse:
    instructions = result.response
    if instructions is None:
        logger.error(f"Payment processing ended in {result.kind} without a response")
        return JSONResponse(content={"error": result.kind}, status_code=500)
    return JSONResponse(
        content=instructions.body,
        status_code=instructions.status,
        headers=instructions.headers,
    )


class X402Middleware:
    """
    FastAPI integration for automatic 402 payment handling.

    Usage:
        app = FastAPI()
        server = X402ResourceServer(HTTPFacilitatorClient(url))
        server.register("eip155:*", ExactEvmServerMechanism())
        middleware = X402Middleware(X402HTTPResourceServer(server))

        @app.get("/protected")
        @middleware.protect(price="$0.01", network="eip155:84532", pay_to="0x...")
        async def protected_endpoint(request: Request):
            return {"data": "secret"}

    Or, with a route table, for the whole app:
        app.middleware("http")(X402Middleware(X402HTTPResourceServer(server, routes)))
    """

    def __init__(self, http_server: X402HTTPResourceServer) -> None:
        self._http_server = http_server

    @property
    def http_server(self) -> X402HTTPResourceServer:
        return self._http_server

    def protect(
        self,
        price: Any = None,
        network: str | None = None,
        pay_to: str | None = None,
        scheme: str = "exact",
        max_timeout_seconds: int = 300,
        prices: list[Any] | None = None,
        description: str | None = None,
        mime_type: str | None = None,
        route: RouteConfig | None = None,
    ) -> Callable:
        """
        Decorator to protect an endpoint with payment requirements.

        Single price:
            @middleware.protect(price="$0.01", network="eip155:84532", pay_to="0x...")

        Several prices on one network:
            @middleware.protect(network="eip155:84532", pay_to="0x...",
                                prices=["$0.01", "0.00001 WETH"])

        Arbitrary options (several networks or schemes):
            @middleware.protect(route=RouteConfig(accepts=[...]))

        The decorated endpoint must take ``request: Request`` as first argument.
        """
        if route is None:
            price_list = prices if prices is not None else [price]
            if not network or not pay_to or any(p is None for p in price_list):
                raise ValueError("price (or prices), network and pay_to are required")
            route = RouteConfig(
                accepts=[
                    ResourceConfig(
                        scheme=scheme,
                        network=network,
                        price=p,
                        pay_to=pay_to,
                        max_timeout_seconds=max_timeout_seconds,
                    )
                    for p in price_list
                ],
                description=description,
                mime_type=mime_type,
            )

        def decorator(func: Callable) -> Callable:
            @wraps(func)
            async def wrapper(request: Request, *args: Any, **kwargs: Any) -> Response:
                result = await self._http_server.process_http_request(
                    FastAPIRequestAdapter(request), route
                )
                payload, requirements = result.payment_payload, result.payment_requirements
                if result.kind != PAYMENT_VERIFIED or payload is None or requirements is None:
                    return _error_response(result)

                response = await func(request, *args, **kwargs)
                if not isinstance(response, Response):
                    response = JSONResponse(content=jsonable_encoder(response))

                return await self._settle(payload, requirements, response)

            return wrapper

        return decorator

    async def _settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
        response: Response,
    ) -> Response:
        settlement = await self._http_server.process_settlement(
            payload, requirements, response.status_code
        )
        response.headers.update(settlement.headers)
        return response

    async def __call__(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """``@app.middleware("http")`` entry point, driven by the route table"""
        result = await self._http_server.process_http_request(FastAPIRequestAdapter(request))
        if result.kind == NO_PAYMENT_REQUIRED:
            return await call_next(request)
        payload, requirements = result.payment_payload, result.payment_requirements
        if result.kind != PAYMENT_VERIFIED or payload is None or requirements is None:
            return _error_response(result)

        response = await call_next(request)
        return await self._settle(payload, requirements, response)


def x402_protected(
    server: X402ResourceServer | X402HTTPResourceServer,
    pay_to: str,
    price: Any = None,
    network: str | None = None,
    prices: list[Any] | None = None,
    **kwargs: Any,
) -> Callable:
    """
    Convenience decorator to protect endpoints.

        @x402_protected(server, price="$0.001", network="eip155:84532", pay_to="0x...")
    """
    http_server = (
        server if isinstance(server, X402HTTPResourceServer) else X402HTTPResourceServer(server)
    )
    middleware = X402Middleware(http_server)
    return middleware.protect(price=price, network=network, pay_to=pay_to, prices=prices, **kwargs)
