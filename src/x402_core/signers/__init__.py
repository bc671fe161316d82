"""
Signers: client-side payment authorization and facilitator-side verification/settlement
"""

from x402_core.signers.client import ClientSigner, EvmClientSigner
from x402_core.signers.facilitator import EvmFacilitatorSigner, FacilitatorSigner

__all__ = ["ClientSigner", "EvmClientSigner", "EvmFacilitatorSigner", "FacilitatorSigner"]
