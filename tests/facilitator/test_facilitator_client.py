"""
Tests for HTTPFacilitatorClient and LocalFacilitatorClient
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from x402_core.exceptions import FacilitatorResponseError, FacilitatorUnavailableError
from x402_core.facilitator import FacilitatorClient, HTTPFacilitatorClient, LocalFacilitatorClient
from x402_core.types import SettleResponse, SupportedResponse, VerifyResponse

FACILITATOR_URL = "https://facilitator.example.com/"


def _client(handler):
    return HTTPFacilitatorClient(
        FACILITATOR_URL,
        headers={"Authorization": "Bearer secret"},
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.anyio
async def test_supported():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/supported"
        assert request.headers["Authorization"] == "Bearer secret"
        return httpx.Response(
            200,
            json={
                "kinds": [{"x402Version": 2, "scheme": "exact", "network": "eip155:*"}],
                "extensions": [],
                "signers": {"eip155:*": ["0xF"]},
            },
        )

    client = _client(handler)
    result = await client.supported()
    await client.close()

    assert result.kinds[0].network == "eip155:*"
    assert result.signers == {"eip155:*": ["0xF"]}
    assert client.facilitator_id == "https://facilitator.example.com"


@pytest.mark.anyio
async def test_verify_sends_camel_case_body(usdc_requirements, make_payload):
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"isValid": False, "invalidReason": "expired"})

    client = _client(handler)
    result = await client.verify(make_payload(usdc_requirements), usdc_requirements)

    assert captured["path"] == "/verify"
    assert captured["body"]["x402Version"] == 2
    assert captured["body"]["paymentRequirements"]["payTo"] == usdc_requirements.pay_to
    assert captured["body"]["paymentPayload"]["accepted"]["maxTimeoutSeconds"] == 300
    assert result == VerifyResponse(isValid=False, invalidReason="expired")


@pytest.mark.anyio
async def test_settle(usdc_requirements, make_payload):
    def handler(request):
        assert request.url.path == "/settle"
        return httpx.Response(
            200,
            json={"success": True, "transaction": "0xabc", "network": "eip155:84532"},
        )

    result = await _client(handler).settle(make_payload(usdc_requirements), usdc_requirements)
    assert result.success
    assert result.transaction == "0xabc"


@pytest.mark.anyio
@pytest.mark.parametrize("status", [400, 404, 500, 503])
async def test_non_2xx_is_unavailable(status):
    client = _client(lambda request: httpx.Response(status, json={"detail": "nope"}))
    with pytest.raises(FacilitatorUnavailableError) as exc_info:
        await client.supported()
    assert not isinstance(exc_info.value, FacilitatorResponseError)
    assert str(status) in str(exc_info.value)


@pytest.mark.anyio
@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")],
)
async def test_transport_errors_are_unavailable(error):
    def handler(request):
        raise error

    with pytest.raises(FacilitatorUnavailableError):
        await _client(handler).supported()


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>oops</html>"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
async def test_unparseable_body(response, usdc_requirements, make_payload):
    client = _client(lambda request: response)
    with pytest.raises(FacilitatorResponseError):
        await client.verify(make_payload(usdc_requirements), usdc_requirements)


@pytest.mark.anyio
async def test_local_client_delegates(usdc_requirements, make_payload):
    facilitator = MagicMock()
    facilitator.supported.return_value = SupportedResponse()
    facilitator.verify = AsyncMock(return_value=VerifyResponse(isValid=True, payer="0xP"))
    facilitator.settle = AsyncMock(return_value=SettleResponse(success=True, transaction="0x1"))
    client = LocalFacilitatorClient(facilitator)
    payload = make_payload(usdc_requirements)

    assert isinstance(client, FacilitatorClient)
    assert client.facilitator_id == "local"
    assert await client.supported() == SupportedResponse()
    assert (await client.verify(payload, usdc_requirements)).payer == "0xP"
    assert (await client.settle(payload, usdc_requirements)).transaction == "0x1"
    facilitator.settle.assert_awaited_once_with(payload, usdc_requirements)
