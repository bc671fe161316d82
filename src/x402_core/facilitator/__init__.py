"""
Facilitator: core processor, nonce store and clients for local or remote facilitators
"""

from x402_core.facilitator.composite import (
    CompositeFacilitatorClient,
    facilitator_client_from_settings,
)
from x402_core.facilitator.facilitator_client import (
    FacilitatorClient,
    HTTPFacilitatorClient,
    LocalFacilitatorClient,
)
from x402_core.facilitator.nonce_store import InMemoryNonceStore, NonceStore
from x402_core.facilitator.x402_facilitator import X402Facilitator

__all__ = [
    "CompositeFacilitatorClient",
    "FacilitatorClient",
    "HTTPFacilitatorClient",
    "InMemoryNonceStore",
    "LocalFacilitatorClient",
    "NonceStore",
    "X402Facilitator",
    "facilitator_client_from_settings",
]
