"""
Token registry - Centralized management of token configurations for all networks
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from x402_core.exceptions import UnknownTokenError
from x402_core.types import AssetAmount

DEFAULT_STABLECOIN = "USDC"


@dataclass
class TokenInfo:
    """Token information

    ``name`` and ``version`` are the token's EIP-712 domain parameters.
    """

    address: str
    decimals: int
    name: str
    symbol: str
    version: str = "1"


def _is_evm(network: str) -> bool:
    return network.startswith("eip155:")


def to_smallest_unit(amount: Decimal, decimals: int) -> int:
    """Scale a human amount to the token's smallest unit without rounding

    Raises:
        ValueError: negative amount, or more precision than the token supports
    """
    if not amount.is_finite():
        raise ValueError(f"Price must be a finite number: {amount}")
    if amount < 0:
        raise ValueError(f"Price must not be negative: {amount}")
    # exact integer arithmetic, Decimal context precision would round large prices
    numerator, denominator = amount.as_integer_ratio()
    scaled, remainder = divmod(numerator * 10**decimals, denominator)
    if remainder:
        raise ValueError(f"Price {amount} has more than {decimals} decimal places")
    return scaled


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value).replace(",", "").replace("_", ""))
    except InvalidOperation:
        raise ValueError(f"Invalid price amount: {value!r}")


class TokenRegistry:
    """Token registry"""

    _tokens: dict[str, dict[str, TokenInfo]] = {
        # Ethereum Mainnet
        "eip155:1": {
            "USDC": TokenInfo(
                address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
                version="2",
            ),
        },
        # Ethereum Sepolia
        "eip155:11155111": {
            "USDC": TokenInfo(
                address="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
                decimals=6,
                name="USDC",
                symbol="USDC",
                version="2",
            ),
        },
        # Base Mainnet
        "eip155:8453": {
            "USDC": TokenInfo(
                address="0x833589fCD6eDb6E08f4c3C32D4f71b54bdA02913",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
                version="2",
            ),
        },
        # Base Sepolia
        "eip155:84532": {
            "USDC": TokenInfo(
                address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
                decimals=6,
                name="USDC",
                symbol="USDC",
                version="2",
            ),
            "WETH": TokenInfo(
                address="0x4200000000000000000000000000000000000006",
                decimals=18,
                name="Wrapped Ether",
                symbol="WETH",
            ),
        },
        # Solana
        "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp": {
            "USDC": TokenInfo(
                address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
            ),
        },
        "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1": {
            "USDC": TokenInfo(
                address="4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
                decimals=6,
                name="USD Coin",
                symbol="USDC",
            ),
        },
    }

    @classmethod
    def register_token(cls, network: str, token: TokenInfo) -> None:
        """Register a custom token for specified network

        Args:
            network: Network identifier (e.g. "eip155:84532")
            token: TokenInfo to register
        """
        cls._tokens.setdefault(network, {})[token.symbol.upper()] = token

    @classmethod
    def unregister_token(cls, network: str, symbol: str) -> None:
        cls._tokens.get(network, {}).pop(symbol.upper(), None)

    @classmethod
    def get_token(cls, network: str, symbol: str) -> TokenInfo:
        """Get token information for specified network and symbol

        Raises:
            UnknownTokenError: If token does not exist
        """
        token = cls._tokens.get(network, {}).get(symbol.upper())
        if token is None:
            raise UnknownTokenError(f"Unknown token {symbol} on network {network}")
        return token

    @classmethod
    def find_by_address(cls, network: str, address: str) -> TokenInfo | None:
        """Find token information by address"""
        tokens = cls._tokens.get(network, {})
        # Case-insensitive comparison for EVM addresses
        if _is_evm(network):
            lower = address.lower()
            for info in tokens.values():
                if info.address.lower() == lower:
                    return info
            return None
        for info in tokens.values():
            if info.address == address:
                return info
        return None

    @classmethod
    def get_network_tokens(cls, network: str) -> dict[str, TokenInfo]:
        """Get all tokens for specified network"""
        return cls._tokens.get(network, {})

    @classmethod
    def default_token(cls, network: str) -> TokenInfo:
        """Stablecoin used for money prices such as ``"$0.01"``"""
        return cls.get_token(network, DEFAULT_STABLECOIN)

    @classmethod
    def parse_price(cls, price: Any, network: str) -> AssetAmount:
        """Normalize a price into an asset and an integer smallest-unit amount

        Accepted forms:
            - ``AssetAmount`` or ``{"asset": ..., "amount": ..., "extra": {...}}``
              (already in smallest units, passed through)
            - ``"$0.01"``, ``"0.01"``, ``Decimal("0.01")``, ``1``: money amount
              in the network's default stablecoin
            - ``"0.01 USDC"``: amount of the named token

        Raises:
            ValueError: malformed price
            UnknownTokenError: token symbol or default stablecoin unknown on network
        """
        if isinstance(price, AssetAmount):
            return price.model_copy(deep=True)
        if isinstance(price, dict):
            if "asset" not in price or "amount" not in price:
                raise ValueError(f"Asset price must contain asset and amount: {price}")
            return AssetAmount(
                asset=price["asset"],
                amount=str(int(price["amount"])),
                extra=dict(price.get("extra") or {}),
            )
        if isinstance(price, bool):
            raise ValueError(f"Invalid price: {price!r}")

        if isinstance(price, str):
            text = price.strip()
            parts = text.split()
            if len(parts) == 2:
                amount_str, symbol = parts
                token = cls.get_token(network, symbol)
                amount = _to_decimal(amount_str.lstrip("$"))
            elif len(parts) == 1:
                token = cls.default_token(network)
                amount = _to_decimal(text.lstrip("$"))
            else:
                raise ValueError(f"Invalid price format: {price}")
        else:
            token = cls.default_token(network)
            amount = _to_decimal(price)

        return AssetAmount(
            asset=token.address,
            amount=str(to_smallest_unit(amount, token.decimals)),
            extra={"name": token.name, "version": token.version},
        )
