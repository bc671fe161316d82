"""
x402 - HTTP 402 micropayment protocol core for Python

Supports Client, Resource Server, and Facilitator roles with pluggable
payment schemes per network family.
"""

__version__ = "0.1.0"

from x402_core.exceptions import (
    ConfigurationError,
    FacilitatorResponseError,
    FacilitatorUnavailableError,
    InvalidPaymentHeaderError,
    NoCompatiblePaymentRequirementsError,
    NoMatchingRequirementsError,
    PaymentRejectedError,
    ProtocolError,
    RegistryFrozenError,
    SettlementError,
    SignatureCreationError,
    SignatureError,
    TransportError,
    UnknownTokenError,
    UnsupportedNetworkError,
    UnsupportedVersionError,
    X402Error,
)
from x402_core.registry import SchemeRegistry
from x402_core.tokens import TokenInfo, TokenRegistry
from x402_core.types import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    X402_VERSION,
    AssetAmount,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

__all__ = [
    "__version__",
    "X402_VERSION",
    "PAYMENT_REQUIRED_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "PAYMENT_SIGNATURE_HEADER",
    # Types
    "AssetAmount",
    "PaymentPayload",
    "PaymentRequired",
    "PaymentRequirements",
    "ResourceInfo",
    "SettleResponse",
    "SupportedKind",
    "SupportedResponse",
    "VerifyResponse",
    # Registry / tokens
    "SchemeRegistry",
    "TokenInfo",
    "TokenRegistry",
    # Exceptions
    "X402Error",
    "ConfigurationError",
    "UnsupportedNetworkError",
    "UnknownTokenError",
    "RegistryFrozenError",
    "ProtocolError",
    "InvalidPaymentHeaderError",
    "UnsupportedVersionError",
    "NoMatchingRequirementsError",
    "NoCompatiblePaymentRequirementsError",
    "PaymentRejectedError",
    "SignatureError",
    "SignatureCreationError",
    "SettlementError",
    "TransportError",
    "FacilitatorUnavailableError",
    "FacilitatorResponseError",
]
