"""
"exact" payment scheme on EVM networks (EIP-3009 transferWithAuthorization)
"""

from x402_core.mechanisms.evm.exact.client import ExactEvmClientMechanism
from x402_core.mechanisms.evm.exact.facilitator import ExactEvmFacilitatorMechanism
from x402_core.mechanisms.evm.exact.server import ExactEvmServerMechanism
from x402_core.mechanisms.evm.exact.types import SCHEME_EXACT

__all__ = [
    "SCHEME_EXACT",
    "ExactEvmClientMechanism",
    "ExactEvmFacilitatorMechanism",
    "ExactEvmServerMechanism",
]
