"""
Base mechanism interfaces (ABCs).
"""

from x402_core.mechanisms._base.client import ClientMechanism
from x402_core.mechanisms._base.facilitator import FacilitatorMechanism
from x402_core.mechanisms._base.server import ServerMechanism

__all__ = [
    "ClientMechanism",
    "FacilitatorMechanism",
    "ServerMechanism",
]
