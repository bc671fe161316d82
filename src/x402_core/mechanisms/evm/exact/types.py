"""
Types and EIP-712 definitions for the EVM "exact" scheme (EIP-3009).
"""

import secrets
import time
from typing import Any

from pydantic import BaseModel, Field
from web3 import Web3

from x402_core.encoding import hex_to_bytes

SCHEME_EXACT = "exact"

# validAfter is backdated to tolerate client/facilitator clock skew
VALID_AFTER_SKEW_SECONDS = 600

# validBefore must leave at least this much time for the settlement transaction
EXPIRY_BUFFER_SECONDS = 6


class TransferAuthorization(BaseModel):
    """TransferWithAuthorization parameters"""

    from_address: str = Field(alias="from")
    to: str
    value: str
    valid_after: str = Field(alias="validAfter")
    valid_before: str = Field(alias="validBefore")
    nonce: str  # 32-byte hex string (0x...)

    class Config:
        populate_by_name = True


class ExactEvmPayload(BaseModel):
    """``PaymentPayload.payload`` body for exact on eip155"""

    signature: str
    authorization: TransferAuthorization


TRANSFER_AUTH_EIP712_TYPES = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}

TRANSFER_AUTH_PRIMARY_TYPE = "TransferWithAuthorization"


def build_eip712_message(auth: TransferAuthorization) -> dict[str, Any]:
    """Build EIP-712 message dict from authorization."""
    return {
        "from": Web3.to_checksum_address(auth.from_address),
        "to": Web3.to_checksum_address(auth.to),
        "value": int(auth.value),
        "validAfter": int(auth.valid_after),
        "validBefore": int(auth.valid_before),
        "nonce": hex_to_bytes(auth.nonce),
    }


def build_eip712_domain(
    token_name: str,
    token_version: str,
    chain_id: int,
    verifying_contract: str,
) -> dict[str, Any]:
    """Build EIP-712 domain dict for the token contract."""
    return {
        "name": token_name,
        "version": token_version,
        "chainId": chain_id,
        "verifyingContract": Web3.to_checksum_address(verifying_contract),
    }


def split_signature(signature: str) -> tuple[int, bytes, bytes]:
    """Split a 65-byte ECDSA signature into (v, r, s)."""
    sig = hex_to_bytes(signature)
    if len(sig) != 65:
        raise ValueError(f"Expected a 65-byte signature, got {len(sig)} bytes")
    v = sig[64]
    if v < 27:
        v += 27
    return v, sig[:32], sig[32:64]


def create_nonce() -> str:
    """Generate a random 32-byte nonce (0x-prefixed hex)."""
    return "0x" + secrets.token_hex(32)


def create_validity_window(max_timeout_seconds: int) -> tuple[int, int]:
    """Create (validAfter, validBefore) timestamps for a new authorization."""
    now = int(time.time())
    return now - VALID_AFTER_SKEW_SECONDS, now + max_timeout_seconds
