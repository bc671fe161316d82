"""
Pytest configuration and fixtures
"""

import pytest
from eth_account import Account

from x402_core.types import PaymentPayload, PaymentRequirements, ResourceInfo

BASE_SEPOLIA = "eip155:84532"
BASE_SEPOLIA_USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def payer_account():
    return Account.create()


@pytest.fixture
def facilitator_account():
    return Account.create()


@pytest.fixture
def merchant_address():
    return Account.create().address


@pytest.fixture
def usdc_requirements(merchant_address):
    """0.001 USDC on Base Sepolia, as the resource server would offer it"""
    return PaymentRequirements(
        scheme="exact",
        network=BASE_SEPOLIA,
        amount="1000",
        asset=BASE_SEPOLIA_USDC,
        payTo=merchant_address,
        maxTimeoutSeconds=300,
        extra={"name": "USDC", "version": "2"},
    )


@pytest.fixture
def make_payload():
    """Build a PaymentPayload carrying an opaque body for the given requirement"""

    def _make(requirements: PaymentRequirements, body: dict | None = None, **kwargs):
        return PaymentPayload(
            x402Version=kwargs.pop("x402_version", 2),
            resource=ResourceInfo(url="https://api.example.com/weather"),
            accepted=requirements,
            payload=body if body is not None else {"nonce": "n-1"},
            **kwargs,
        )

    return _make
