"""
x402 custom exception hierarchy
"""

from typing import Any


class X402Error(Exception):
    """x402 base exception"""

    pass


class ConfigurationError(X402Error):
    """Configuration-related error (deployment bug, not a runtime condition)"""

    pass


class UnsupportedNetworkError(ConfigurationError):
    """Unsupported network"""

    pass


class UnknownTokenError(ConfigurationError):
    """Unknown token"""

    pass


class RegistryFrozenError(ConfigurationError):
    """Registration attempted after the registry was frozen"""

    pass


class ProtocolError(X402Error):
    """Malformed or mismatching protocol data, surfaced to the caller as 4xx"""

    pass


class InvalidPaymentHeaderError(ProtocolError):
    """Header value is not valid base64 JSON of the expected envelope"""

    def __init__(self, header: str, message: str):
        self.header = header
        super().__init__(f"Invalid {header} header: {message}")


class UnsupportedVersionError(ProtocolError):
    """Protocol version not supported"""

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"Unsupported x402 version: {version}")


class NoMatchingRequirementsError(ProtocolError):
    """Payment payload does not match any offered requirement"""

    pass


class NoCompatiblePaymentRequirementsError(ProtocolError):
    """Client has no mechanism for any of the offered requirements"""

    def __init__(self, offered: list[str], supported: list[str]):
        self.offered = offered
        self.supported = supported
        super().__init__(
            "No supported payment requirements found. "
            f"Offered: {offered or '[]'}; client supports: {supported or '[]'}"
        )


class PaymentRejectedError(ProtocolError):
    """Server answered 402 again after a payment was provided"""

    def __init__(self, message: str, response: Any = None, payment_required: Any = None):
        self.response = response
        self.payment_required = payment_required
        super().__init__(message)


class SignatureError(X402Error):
    """Signature-related error"""

    pass


class SignatureCreationError(SignatureError):
    """Signature creation failed"""

    pass


class SettlementError(X402Error):
    """Settlement-related error"""

    pass


class TransportError(X402Error):
    """Facilitator transport-level failure"""

    pass


class FacilitatorUnavailableError(TransportError):
    """Facilitator unreachable, timed out, or answered with a non-2xx status"""

    def __init__(self, facilitator_id: str, message: str):
        self.facilitator_id = facilitator_id
        super().__init__(f"Facilitator {facilitator_id} unavailable: {message}")


class FacilitatorResponseError(FacilitatorUnavailableError):
    """Facilitator answered with a body that could not be parsed"""

    pass
