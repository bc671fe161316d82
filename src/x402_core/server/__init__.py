"""
Resource server: requirement building, verification/settlement and HTTP orchestration
"""

from x402_core.server.http import (
    NO_PAYMENT_REQUIRED,
    PAYMENT_ERROR,
    PAYMENT_VERIFIED,
    HTTPAdapter,
    HTTPProcessResult,
    HTTPResponseInstructions,
    SettlementResult,
    X402HTTPResourceServer,
)
from x402_core.server.x402_server import ResourceConfig, RouteConfig, X402ResourceServer

__all__ = [
    "HTTPAdapter",
    "HTTPProcessResult",
    "HTTPResponseInstructions",
    "NO_PAYMENT_REQUIRED",
    "PAYMENT_ERROR",
    "PAYMENT_VERIFIED",
    "ResourceConfig",
    "RouteConfig",
    "SettlementResult",
    "X402HTTPResourceServer",
    "X402ResourceServer",
]
