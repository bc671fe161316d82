"""
Payment mechanisms
"""

from x402_core.mechanisms._base import ClientMechanism, FacilitatorMechanism, ServerMechanism

__all__ = ["ClientMechanism", "FacilitatorMechanism", "ServerMechanism"]
