"""
Token registry and price parsing
"""

from x402_core.tokens.registry import (
    DEFAULT_STABLECOIN,
    TokenInfo,
    TokenRegistry,
    to_smallest_unit,
)

__all__ = ["DEFAULT_STABLECOIN", "TokenInfo", "TokenRegistry", "to_smallest_unit"]
