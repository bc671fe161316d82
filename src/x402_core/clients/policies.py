"""
Payment policies for filtering or reordering payment requirements.

Policies are applied in order after mechanism filtering and before selection.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from x402_core.tokens import TokenRegistry
from x402_core.types import PaymentRequirements, network_matches

if TYPE_CHECKING:
    from x402_core.clients.x402_client import X402Client

logger = logging.getLogger(__name__)


def _format_amount(req: PaymentRequirements, amount: int) -> str:
    """Human readable amount, e.g. ``0.01 USDC``"""
    token = TokenRegistry.find_by_address(req.network, req.asset)
    if token is None:
        return f"{amount} ({req.asset})"
    return f"{Decimal(amount).scaleb(-token.decimals)} {token.symbol}"


class PreferNetworkPolicy:
    """Move requirements on the given networks (or family wildcards) to the front.

    Order among preferred networks follows the order given here; everything else
    keeps its original relative order.
    """

    def __init__(self, networks: list[str]) -> None:
        self._networks = list(networks)

    def _rank(self, req: PaymentRequirements) -> int:
        for index, pattern in enumerate(self._networks):
            if network_matches(pattern, req.network):
                return index
        return len(self._networks)

    async def apply(
        self,
        requirements: list[PaymentRequirements],
    ) -> list[PaymentRequirements]:
        return sorted(requirements, key=self._rank)


class MaxAmountPolicy:
    """Drop requirements asking for more than ``max_amount`` smallest units"""

    def __init__(self, max_amount: int) -> None:
        self._max_amount = int(max_amount)

    async def apply(
        self,
        requirements: list[PaymentRequirements],
    ) -> list[PaymentRequirements]:
        kept = [r for r in requirements if int(r.amount) <= self._max_amount]
        if len(kept) < len(requirements):
            logger.info(
                f"{len(requirements) - len(kept)} requirement(s) above max amount "
                f"{self._max_amount} dropped"
            )
        return kept


class SufficientBalancePolicy:
    """Policy that filters out requirements with insufficient balance.

    Signers are resolved from the mechanisms registered on the X402Client.
    Requirements without a signer, or whose balance cannot be read, are kept.
    If all requirements are unaffordable, returns an empty list so the caller
    can raise an appropriate error.

    Usage::

        client.register_policy(SufficientBalancePolicy(client))
    """

    def __init__(self, client: "X402Client") -> None:
        self._client = client

    async def apply(
        self,
        requirements: list[PaymentRequirements],
    ) -> list[PaymentRequirements]:
        affordable: list[PaymentRequirements] = []
        for req in requirements:
            signer = self._client.resolve_signer(req.scheme, req.network)
            if signer is None:
                affordable.append(req)
                continue

            balance = await signer.check_balance(req.asset, req.network)
            if balance is None:
                affordable.append(req)
                continue

            needed = int(req.amount)
            if balance >= needed:
                logger.info(
                    f"{req.network}: balance={_format_amount(req, balance)} >= "
                    f"needed={_format_amount(req, needed)} (OK)"
                )
                affordable.append(req)
            else:
                logger.info(
                    f"{req.network}: balance={_format_amount(req, balance)} < "
                    f"needed={_format_amount(req, needed)} (skipped)"
                )
        if not affordable:
            logger.error("All payment requirements filtered: insufficient balance")
        return affordable
