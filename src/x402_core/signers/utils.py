"""
Signer utility functions
"""

from typing import Any

from x402_core.config import NetworkConfig

EIP712_DOMAIN_FIELDS: list[tuple[str, str]] = [
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
    ("salt", "bytes32"),
]


def eip712_domain_type(domain: dict[str, Any]) -> list[dict[str, str]]:
    """Build the EIP712Domain type from the keys present in *domain*, in canonical order"""
    return [{"name": name, "type": typ} for name, typ in EIP712_DOMAIN_FIELDS if name in domain]


def build_typed_data(
    domain: dict[str, Any],
    types: dict[str, Any],
    message: dict[str, Any],
    primary_type: str,
) -> dict[str, Any]:
    """Assemble a full EIP-712 message accepted by ``encode_typed_data(full_message=...)``"""
    all_types = dict(types)
    all_types.setdefault("EIP712Domain", eip712_domain_type(domain))
    return {
        "types": all_types,
        "primaryType": primary_type,
        "domain": domain,
        "message": message,
    }


def normalize_signature(signature: str | bytes) -> str:
    """Return a 0x-prefixed hex signature"""
    if isinstance(signature, bytes):
        return "0x" + signature.hex()
    return signature if signature.startswith("0x") else "0x" + signature


def resolve_provider_uri(network: str) -> str | None:
    """Resolve a network identifier to an RPC provider URI.

    A value that already is an HTTP/WS URL is returned as-is, otherwise the
    network is looked up in NetworkConfig (env overrides first).
    """
    if network.startswith(("http://", "https://", "ws://", "wss://")):
        return network
    return NetworkConfig.get_rpc_url(network)
