"""
Tests for ExactEvmServerMechanism
"""

import pytest

from x402_core.mechanisms.evm.exact import ExactEvmServerMechanism
from x402_core.types import PaymentRequirements, SupportedKind


def _requirements(asset, extra=None):
    return PaymentRequirements(
        scheme="exact",
        network="eip155:84532",
        asset=asset,
        amount="1000",
        payTo="0x0000000000000000000000000000000000000001",
        extra=extra or {},
    )


@pytest.fixture
def kind():
    return SupportedKind(x402Version=2, scheme="exact", network="eip155:*")


@pytest.mark.anyio
async def test_parse_price():
    result = await ExactEvmServerMechanism().parse_price("$0.001", "eip155:84532")
    assert result.amount == "1000"
    assert result.extra == {"name": "USDC", "version": "2"}


@pytest.mark.anyio
async def test_enhance_fills_domain_from_registry(kind):
    requirements = _requirements("0x036cbd53842c5426634e7929541ec2318f3dcf7e")
    enhanced = await ExactEvmServerMechanism().enhance_payment_requirements(
        requirements, kind, []
    )
    assert enhanced.extra == {"name": "USDC", "version": "2"}
    assert requirements.extra == {}


@pytest.mark.anyio
async def test_enhance_keeps_route_extra_over_facilitator_extra():
    kind = SupportedKind(
        x402Version=2,
        scheme="exact",
        network="eip155:84532",
        extra={"name": "Facilitator Name", "feeHint": "low"},
    )
    requirements = _requirements(
        "0x036CbD53842c5426634e7929541eC2318f3dCF7e", {"name": "Route Name", "version": "9"}
    )
    enhanced = await ExactEvmServerMechanism().enhance_payment_requirements(
        requirements, kind, []
    )
    assert enhanced.extra == {"name": "Route Name", "version": "9", "feeHint": "low"}


@pytest.mark.anyio
async def test_enhance_unknown_token_leaves_extra(kind):
    requirements = _requirements("0x000000000000000000000000000000000000dEaD")
    enhanced = await ExactEvmServerMechanism().enhance_payment_requirements(
        requirements, kind, []
    )
    assert enhanced.extra == {}
