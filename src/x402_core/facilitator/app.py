"""
Facilitator HTTP service
Exposes an X402Facilitator over /verify, /settle and /supported.
"""

import asyncio
import logging
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from x402_core import __version__
from x402_core.config import X402Settings
from x402_core.exceptions import ConfigurationError
from x402_core.facilitator.x402_facilitator import X402Facilitator
from x402_core.logging_config import setup_logging
from x402_core.mechanisms.evm.exact import ExactEvmFacilitatorMechanism
from x402_core.signers.facilitator import EvmFacilitatorSigner
from x402_core.types import SettleRequest, VerifyRequest

logger = logging.getLogger(__name__)


def create_facilitator_app(
    facilitator: X402Facilitator,
    shutdown_event: asyncio.Event | None = None,
) -> FastAPI:
    """
    Build the facilitator FastAPI application.

    ``POST /close`` sets *shutdown_event*; :func:`serve` stops the server when it
    is set.
    """
    app = FastAPI(
        title="X402 Facilitator",
        description="Facilitator service for X402 payment protocol",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.facilitator = facilitator
    app.state.shutdown_event = shutdown_event or asyncio.Event()

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Service info endpoint"""
        supported = facilitator.supported()
        return {
            "service": "X402 Facilitator",
            "status": "running",
            "kinds": len(supported.kinds),
            "signers": supported.signers,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/supported")
    async def supported() -> dict[str, Any]:
        """Get supported capabilities"""
        return facilitator.supported().model_dump(by_alias=True, exclude_none=True)

    @app.post("/verify")
    async def verify(request: VerifyRequest) -> dict[str, Any]:
        """Verify payment payload against requirements"""
        try:
            result = await facilitator.verify(request.payment_payload, request.payment_requirements)
        except Exception as e:
            logger.exception("Verify failed")
            raise HTTPException(status_code=500, detail=str(e))
        return result.model_dump(by_alias=True, exclude_none=True)

    @app.post("/settle")
    async def settle(request: SettleRequest) -> dict[str, Any]:
        """Settle payment on-chain"""
        try:
            result = await facilitator.settle(request.payment_payload, request.payment_requirements)
        except Exception as e:
            logger.exception("Settle failed")
            raise HTTPException(status_code=500, detail=str(e))
        return result.model_dump(by_alias=True, exclude_none=True)

    @app.post("/close")
    async def close() -> dict[str, str]:
        logger.info("Shutdown requested via /close")
        app.state.shutdown_event.set()
        return {"message": "Facilitator shutting down"}

    return app


async def serve(app: FastAPI, host: str, port: int, log_level: str = "info") -> None:
    """Run *app* under uvicorn until it exits or its shutdown event is set"""
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level=log_level))
    shutdown_event: asyncio.Event = app.state.shutdown_event

    async def _watch_shutdown() -> None:
        await shutdown_event.wait()
        server.should_exit = True

    watcher = asyncio.create_task(_watch_shutdown())
    try:
        await server.serve()
    finally:
        watcher.cancel()


def build_facilitator(settings: X402Settings) -> X402Facilitator:
    """Facilitator with the exact EVM mechanism on the configured networks"""
    if not settings.evm_private_key:
        raise ConfigurationError("EVM_PRIVATE_KEY environment variable is required")

    signer = EvmFacilitatorSigner.from_private_key(settings.evm_private_key)
    facilitator = X402Facilitator()
    facilitator.register(settings.evm_networks, ExactEvmFacilitatorMechanism(signer))
    facilitator.freeze()
    logger.info(
        f"Facilitator initialized: address={signer.get_address()}, "
        f"networks={settings.evm_networks}"
    )
    return facilitator


def main() -> None:
    """Start the facilitator server"""
    settings = X402Settings.from_env()
    setup_logging(settings.log_level)

    app = create_facilitator_app(build_facilitator(settings))
    logger.info(
        f"Starting X402 Facilitator on {settings.facilitator_host}:{settings.facilitator_port}"
    )
    asyncio.run(
        serve(
            app,
            settings.facilitator_host,
            settings.facilitator_port,
            log_level=logging.getLevelName(settings.log_level).lower(),
        )
    )


if __name__ == "__main__":
    main()
