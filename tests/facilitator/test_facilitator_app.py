"""
Tests for the facilitator HTTP service
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from x402_core.config import X402Settings
from x402_core.exceptions import ConfigurationError
from x402_core.facilitator import X402Facilitator
from x402_core.facilitator.app import build_facilitator, create_facilitator_app
from x402_core.mechanisms._base.facilitator import FacilitatorMechanism
from x402_core.types import SettleResponse, VerifyResponse


class StubMechanism(FacilitatorMechanism):
    def __init__(self):
        self.verify = AsyncMock(return_value=VerifyResponse(isValid=True, payer="0xPayer"))
        self.settle = AsyncMock(
            return_value=SettleResponse(
                success=True, payer="0xPayer", transaction="0xtx", network="eip155:84532"
            )
        )

    def scheme(self):
        return "exact"

    def get_signers(self, network):
        return ["0xFacilitator"]

    def replay_key(self, payload):
        return payload.payload.get("nonce")

    async def verify(self, payload, requirements):
        pass

    async def settle(self, payload, requirements):
        pass


@pytest.fixture
def mechanism():
    return StubMechanism()


@pytest.fixture
def shutdown_event():
    return asyncio.Event()


@pytest.fixture
def client(mechanism, shutdown_event):
    facilitator = X402Facilitator().register(["eip155:*"], mechanism)
    return TestClient(create_facilitator_app(facilitator, shutdown_event))


@pytest.fixture
def request_body(usdc_requirements, make_payload):
    return {
        "x402Version": 2,
        "paymentPayload": make_payload(usdc_requirements).model_dump(
            by_alias=True, exclude_none=True
        ),
        "paymentRequirements": usdc_requirements.model_dump(by_alias=True),
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_root(client):
    body = client.get("/").json()
    assert body["status"] == "running"
    assert body["kinds"] == 1


def test_supported(client):
    body = client.get("/supported").json()
    assert body["kinds"] == [{"x402Version": 2, "scheme": "exact", "network": "eip155:*"}]
    assert body["signers"] == {"eip155:*": ["0xFacilitator"]}


def test_verify(client, mechanism, request_body):
    response = client.post("/verify", json=request_body)
    assert response.status_code == 200
    assert response.json() == {"isValid": True, "payer": "0xPayer"}
    mechanism.verify.assert_awaited_once()


def test_settle_then_replay(client, mechanism, request_body):
    first = client.post("/settle", json=request_body).json()
    assert first["success"] is True
    assert first["transaction"] == "0xtx"

    second = client.post("/settle", json=request_body).json()
    assert second["success"] is False
    assert second["errorReason"] == "nonce_already_used"
    mechanism.settle.assert_awaited_once()


def test_malformed_request_rejected(client):
    response = client.post("/verify", json={"paymentPayload": {}})
    assert response.status_code == 422


def test_non_ascii_digit_amount_rejected(client, mechanism, request_body):
    request_body["paymentRequirements"]["amount"] = "²"
    response = client.post("/verify", json=request_body)
    assert response.status_code == 422
    mechanism.verify.assert_not_awaited()


def test_mechanism_exception_is_500(client, mechanism, request_body):
    mechanism.verify.side_effect = RuntimeError("rpc exploded")
    response = client.post("/verify", json=request_body)
    assert response.status_code == 500


def test_close_sets_shutdown_event(client, shutdown_event):
    response = client.post("/close")
    assert response.status_code == 200
    assert shutdown_event.is_set()


def test_build_facilitator_requires_key():
    with pytest.raises(ConfigurationError):
        build_facilitator(X402Settings())
