"""
Tests for CompositeFacilitatorClient
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from x402_core.config import X402Settings
from x402_core.exceptions import ConfigurationError, FacilitatorUnavailableError
from x402_core.facilitator import (
    CompositeFacilitatorClient,
    HTTPFacilitatorClient,
    facilitator_client_from_settings,
)
from x402_core.types import SettleResponse, SupportedKind, SupportedResponse, VerifyResponse


def _kind(network, scheme="exact", extra=None):
    return SupportedKind(x402Version=2, scheme=scheme, network=network, extra=extra)


def _fake(facilitator_id, kinds=None, signers=None, supported_error=None):
    client = AsyncMock()
    client.facilitator_id = facilitator_id
    if supported_error is not None:
        client.supported.side_effect = supported_error
    else:
        client.supported.return_value = SupportedResponse(
            kinds=kinds or [], extensions=[], signers=signers or {}
        )
    client.verify.return_value = VerifyResponse(isValid=True, payer=facilitator_id)
    client.settle.return_value = SettleResponse(success=True, transaction=f"0x{facilitator_id}")
    return client


def test_requires_a_client():
    with pytest.raises(ValueError):
        CompositeFacilitatorClient([])


@pytest.mark.anyio
async def test_merge_earlier_client_wins():
    first = _fake(
        "a",
        kinds=[_kind("eip155:8453", extra={"from": "a"})],
        signers={"eip155:*": ["0xA"]},
    )
    second = _fake(
        "b",
        kinds=[_kind("eip155:8453", extra={"from": "b"}), _kind("eip155:84532")],
        signers={"eip155:*": ["0xB", "0xA"]},
    )
    composite = CompositeFacilitatorClient([first, second])

    supported = await composite.initialize()

    assert [(k.network, (k.extra or {}).get("from")) for k in supported.kinds] == [
        ("eip155:8453", "a"),
        ("eip155:84532", None),
    ]
    assert supported.signers == {"eip155:*": ["0xA", "0xB"]}


@pytest.mark.anyio
async def test_degraded_initialization():
    down = _fake("down", supported_error=FacilitatorUnavailableError("down", "refused"))
    up = _fake("up", kinds=[_kind("eip155:*")])
    composite = CompositeFacilitatorClient([down, up])

    supported = await composite.supported()

    assert [k.network for k in supported.kinds] == ["eip155:*"]


@pytest.mark.anyio
async def test_slow_facilitator_times_out():
    async def never_answers():
        await asyncio.sleep(10)

    slow = _fake("slow")
    slow.supported.side_effect = never_answers
    up = _fake("up", kinds=[_kind("eip155:*")])
    composite = CompositeFacilitatorClient([slow, up], init_timeout=0.05)

    supported = await composite.initialize()
    assert len(supported.kinds) == 1


@pytest.mark.anyio
async def test_all_down_raises():
    composite = CompositeFacilitatorClient(
        [_fake("a", supported_error=ConnectionError("refused"))]
    )
    with pytest.raises(FacilitatorUnavailableError):
        await composite.initialize()


@pytest.mark.anyio
async def test_verify_prefers_advertising_client(usdc_requirements, make_payload):
    solana_only = _fake("svm", kinds=[_kind("solana:*")])
    evm = _fake("evm", kinds=[_kind("eip155:*")])
    composite = CompositeFacilitatorClient([solana_only, evm])
    await composite.initialize()

    result = await composite.verify(make_payload(usdc_requirements), usdc_requirements)

    assert result.payer == "evm"
    solana_only.verify.assert_not_awaited()


@pytest.mark.anyio
async def test_settle_fails_over_once_per_facilitator(usdc_requirements, make_payload):
    broken = _fake("broken", kinds=[_kind("eip155:84532")])
    broken.settle.side_effect = FacilitatorUnavailableError("broken", "HTTP 502")
    backup = _fake("backup", kinds=[_kind("eip155:*")])
    composite = CompositeFacilitatorClient([broken, backup])
    await composite.initialize()
    payload = make_payload(usdc_requirements)

    result = await composite.settle(payload, usdc_requirements)

    assert result.transaction == "0xbackup"
    broken.settle.assert_awaited_once_with(payload, usdc_requirements)
    backup.settle.assert_awaited_once_with(payload, usdc_requirements)


@pytest.mark.anyio
async def test_negative_answer_is_not_retried(usdc_requirements, make_payload):
    first = _fake("first", kinds=[_kind("eip155:*")])
    first.verify.return_value = VerifyResponse(isValid=False, invalidReason="expired")
    second = _fake("second", kinds=[_kind("eip155:*")])
    composite = CompositeFacilitatorClient([first, second])
    await composite.initialize()

    result = await composite.verify(make_payload(usdc_requirements), usdc_requirements)

    assert result.invalid_reason == "expired"
    second.verify.assert_not_awaited()


@pytest.mark.anyio
async def test_every_facilitator_unavailable(usdc_requirements, make_payload):
    clients = [_fake(name, kinds=[_kind("eip155:*")]) for name in ("a", "b")]
    for client in clients:
        client.settle.side_effect = FacilitatorUnavailableError(client.facilitator_id, "timeout")
    composite = CompositeFacilitatorClient(clients)
    await composite.initialize()

    with pytest.raises(FacilitatorUnavailableError) as exc_info:
        await composite.settle(make_payload(usdc_requirements), usdc_requirements)
    assert exc_info.value.facilitator_id == "composite"


@pytest.mark.anyio
async def test_verify_fails_over_on_connection_error(usdc_requirements, make_payload):
    def refuse(request):
        raise httpx.ConnectError("connection refused")

    def answer(request):
        if request.url.path == "/supported":
            return httpx.Response(200, json={"kinds": [], "extensions": [], "signers": {}})
        return httpx.Response(200, json={"isValid": True, "payer": "0xPayer"})

    composite = CompositeFacilitatorClient(
        [
            HTTPFacilitatorClient("http://first", transport=httpx.MockTransport(refuse)),
            HTTPFacilitatorClient("http://second", transport=httpx.MockTransport(answer)),
        ]
    )

    result = await composite.verify(make_payload(usdc_requirements), usdc_requirements)

    assert result.is_valid
    assert result.payer == "0xPayer"


def test_client_from_settings():
    single = facilitator_client_from_settings(
        X402Settings(facilitator_urls=["https://a.example"], facilitator_timeout=5)
    )
    assert isinstance(single, HTTPFacilitatorClient)
    assert single.facilitator_id == "https://a.example"

    several = facilitator_client_from_settings(
        X402Settings(facilitator_urls=["https://a.example", "https://b.example"])
    )
    assert isinstance(several, CompositeFacilitatorClient)
    assert [c.facilitator_id for c in several.clients] == ["https://a.example", "https://b.example"]

    with pytest.raises(ConfigurationError):
        facilitator_client_from_settings(X402Settings())
