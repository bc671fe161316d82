"""
Encoding utilities for x402 protocol headers.

Every header value is base64 of canonical JSON (UTF-8, sorted keys, compact
separators). Decoding rejects anything outside the base64 alphabet before
touching the JSON parser, so malformed input surfaces as
:class:`InvalidPaymentHeaderError` instead of an arbitrary exception.
"""

import base64
import binascii
import json
import re
from typing import Any, TypeVar, overload

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from x402_core.exceptions import InvalidPaymentHeaderError
from x402_core.types import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    PaymentPayload,
    PaymentRequired,
    SettleResponse,
)

T = TypeVar("T", bound=BaseModel)

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")


def encode_base64(data: str | bytes) -> str:
    """Encode data to base64"""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(data).decode("ascii")


def is_base64(value: str) -> bool:
    """Check that *value* only uses the base64 alphabet with valid padding."""
    return len(value) % 4 == 0 and bool(_BASE64_RE.match(value))


def decode_base64(data: str) -> str:
    """Decode base64 to string"""
    return base64.b64decode(data, validate=True).decode("utf-8")


def to_canonical_json(payload: Any) -> str:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, exclude_none=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def encode_payment_payload(payload: Any) -> str:
    """Encode an envelope (pydantic model or dict) to base64 for an HTTP header"""
    return encode_base64(to_canonical_json(payload))


@overload
def decode_payment_payload(
    encoded: str, model_class: type[T], header: str = ...
) -> T: ...


@overload
def decode_payment_payload(
    encoded: str, model_class: None = None, header: str = ...
) -> dict[str, Any]: ...


def decode_payment_payload(
    encoded: str,
    model_class: type[T] | None = None,
    header: str = "payment",
) -> T | dict[str, Any]:
    """Decode an envelope from a base64 HTTP header value

    Raises:
        InvalidPaymentHeaderError: value is not base64 JSON of the expected shape
    """
    value = (encoded or "").strip()
    if not value or not is_base64(value):
        raise InvalidPaymentHeaderError(header, "not a base64 string")

    try:
        json_str = decode_base64(value)
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidPaymentHeaderError(header, f"undecodable base64 ({e})") from e

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise InvalidPaymentHeaderError(header, f"invalid JSON ({e.msg})") from e

    if not isinstance(data, dict):
        raise InvalidPaymentHeaderError(header, "JSON value is not an object")

    if model_class is None:
        return data
    try:
        return model_class.model_validate(data)
    except PydanticValidationError as e:
        raise InvalidPaymentHeaderError(
            header, f"{e.error_count()} validation error(s) for {model_class.__name__}"
        ) from e


def encode_payment_required_header(payment_required: PaymentRequired) -> str:
    return encode_payment_payload(payment_required)


def decode_payment_required_header(value: str) -> PaymentRequired:
    return decode_payment_payload(value, PaymentRequired, PAYMENT_REQUIRED_HEADER)


def encode_payment_signature_header(payload: PaymentPayload) -> str:
    return encode_payment_payload(payload)


def decode_payment_signature_header(value: str) -> PaymentPayload:
    return decode_payment_payload(value, PaymentPayload, PAYMENT_SIGNATURE_HEADER)


def encode_payment_response_header(settle_response: SettleResponse) -> str:
    return encode_payment_payload(settle_response)


def decode_payment_response_header(value: str) -> SettleResponse:
    return decode_payment_payload(value, SettleResponse, PAYMENT_RESPONSE_HEADER)


def bytes_to_hex(data: bytes, prefix: bool = True) -> str:
    """Convert bytes to hex string"""
    hex_str = data.hex()
    return f"0x{hex_str}" if prefix else hex_str


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string to bytes"""
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)
