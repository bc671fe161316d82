"""
Facilitator Signers
"""

from x402_core.signers.facilitator.base import FacilitatorSigner
from x402_core.signers.facilitator.evm_signer import EvmFacilitatorSigner

__all__ = ["EvmFacilitatorSigner", "FacilitatorSigner"]
