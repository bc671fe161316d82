"""
Type definitions for x402 protocol
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

X402_VERSION = 2

# Header names
PAYMENT_REQUIRED_HEADER = "PAYMENT-REQUIRED"
PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"
PAYMENT_RESPONSE_HEADER = "PAYMENT-RESPONSE"

# Invalid / error reasons
INVALID_PAYLOAD = "invalid_payload"
UNSUPPORTED_SCHEME = "unsupported_scheme"
UNSUPPORTED_VERSION = "unsupported_version"
NETWORK_MISMATCH = "network_mismatch"
SCHEME_MISMATCH = "scheme_mismatch"
ASSET_MISMATCH = "asset_mismatch"
RECIPIENT_MISMATCH = "recipient_mismatch"
INSUFFICIENT_AMOUNT = "insufficient_amount"
INSUFFICIENT_FUNDS = "insufficient_funds"
EXPIRED = "expired"
NOT_YET_VALID = "not_yet_valid"
AUTHORIZATION_WINDOW_TOO_LONG = "authorization_window_too_long"
INVALID_SIGNATURE = "invalid_signature"
MISSING_EIP712_DOMAIN = "missing_eip712_domain"
NONCE_ALREADY_USED = "nonce_already_used"
TOKEN_NOT_ALLOWED = "token_not_allowed"
TRANSACTION_FAILED = "transaction_failed"
TRANSACTION_REVERTED = "transaction_reverted"
NO_MATCHING_REQUIREMENTS = "no_matching_requirements"
INVALID_PAYMENT_HEADER = "invalid_payment_header"
FACILITATOR_UNAVAILABLE = "facilitator_unavailable"


def network_family(network: str) -> str:
    """Return the family part of a ``family:reference`` network identifier."""
    return network.split(":", 1)[0]


def is_wildcard(network: str) -> bool:
    """True for family wildcards such as ``eip155:*``."""
    return network.endswith(":*")


def family_wildcard(network: str) -> str:
    """``eip155:8453`` -> ``eip155:*``"""
    return f"{network_family(network)}:*"


def network_matches(pattern: str, network: str) -> bool:
    """Match a concrete network against an exact or wildcard pattern."""
    if pattern == network:
        return True
    if is_wildcard(pattern):
        return not is_wildcard(network) and network_family(network) == network_family(pattern)
    return False


class ResourceInfo(BaseModel):
    """Resource information"""

    url: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    class Config:
        populate_by_name = True


class PaymentRequirements(BaseModel):
    """Payment requirements from server"""

    scheme: str
    network: str
    asset: str
    amount: str
    pay_to: str = Field(alias="payTo")
    max_timeout_seconds: int = Field(300, alias="maxTimeoutSeconds")
    extra: dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_is_integer_string(cls, value: Any) -> str:
        if isinstance(value, float):
            raise ValueError("amount must be an integer string in the smallest unit")
        text = str(value)
        if not (text.isascii() and text.isdigit()):
            raise ValueError(f"amount must be a non-negative integer string, got {text!r}")
        return text


class PaymentRequired(BaseModel):
    """Payment required response (402)"""

    x402_version: int = Field(X402_VERSION, alias="x402Version")
    error: Optional[str] = None
    resource: Optional[ResourceInfo] = None
    accepts: list[PaymentRequirements]
    extensions: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True


class PaymentPayload(BaseModel):
    """Payment payload sent by client"""

    x402_version: int = Field(alias="x402Version")
    scheme: Optional[str] = None
    network: Optional[str] = None
    payload: dict[str, Any]
    accepted: PaymentRequirements
    resource: Optional[ResourceInfo] = None
    extensions: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _fill_from_accepted(self) -> "PaymentPayload":
        if self.scheme is None:
            self.scheme = self.accepted.scheme
        if self.network is None:
            self.network = self.accepted.network
        if is_wildcard(self.network) or is_wildcard(self.accepted.network):
            raise ValueError("wildcard networks are not allowed in a payment payload")
        return self


class VerifyResponse(BaseModel):
    """Verification response from facilitator"""

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    payer: Optional[str] = None

    class Config:
        populate_by_name = True


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    success: bool
    error_reason: Optional[str] = Field(None, alias="errorReason")
    payer: Optional[str] = None
    transaction: str = ""
    network: str = ""

    class Config:
        populate_by_name = True


class SupportedKind(BaseModel):
    """Supported payment kind"""

    x402_version: int = Field(alias="x402Version")
    scheme: str
    network: str
    extra: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True

    def matches(self, x402_version: int, network: str, scheme: str) -> bool:
        return (
            self.x402_version == x402_version
            and self.scheme == scheme
            and network_matches(self.network, network)
        )


class SupportedResponse(BaseModel):
    """Supported response from facilitator"""

    kinds: list[SupportedKind] = Field(default_factory=list)
    extensions: list[str] = Field(default_factory=list)
    signers: dict[str, list[str]] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class AssetAmount(BaseModel):
    """Price normalized to a token and an integer amount in its smallest unit"""

    asset: str
    amount: str
    extra: dict[str, Any] = Field(default_factory=dict)


class VerifyRequest(BaseModel):
    """Body of POST /verify and POST /settle"""

    x402_version: Optional[int] = Field(None, alias="x402Version")
    payment_payload: PaymentPayload = Field(alias="paymentPayload")
    payment_requirements: PaymentRequirements = Field(alias="paymentRequirements")

    class Config:
        populate_by_name = True


SettleRequest = VerifyRequest
