"""
Tests for X402HttpClient
"""

import asyncio

import httpx
import pytest

from x402_core.clients import PaymentAttempt, PaymentState, X402Client, X402HttpClient
from x402_core.clients.x402_http_client import parse_payment_required
from x402_core.encoding import (
    decode_payment_signature_header,
    encode_payment_required_header,
    encode_payment_response_header,
)
from x402_core.exceptions import NoCompatiblePaymentRequirementsError, PaymentRejectedError
from x402_core.mechanisms._base.client import ClientMechanism
from x402_core.types import PaymentRequired, PaymentRequirements, SettleResponse

REQUIREMENTS = PaymentRequirements(
    scheme="exact",
    network="eip155:84532",
    asset="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    amount="1000",
    payTo="0x209693Bc6afc0C5328bA36FaF03C514EF312287C",
    extra={"name": "USDC", "version": "2"},
)


class FakeClientMechanism(ClientMechanism):
    def scheme(self):
        return "exact"

    async def create_payment_payload(self, requirements):
        return {"signature": "0xsig"}


def challenge(error="PAYMENT-SIGNATURE header is required"):
    payment_required = PaymentRequired(error=error, accepts=[REQUIREMENTS])
    return httpx.Response(
        402,
        headers={"PAYMENT-REQUIRED": encode_payment_required_header(payment_required)},
        json=payment_required.model_dump(by_alias=True, exclude_none=True),
    )


class PaywalledServer:
    """MockTransport handler that charges for every request"""

    def __init__(self, accept_payment=True):
        self.accept_payment = accept_payment
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        header = request.headers.get("PAYMENT-SIGNATURE")
        if header is None:
            return challenge()
        if not self.accept_payment:
            return challenge(error="insufficient_funds")
        payload = decode_payment_signature_header(header)
        settle = SettleResponse(
            success=True, transaction="0xtx", network=payload.network, payer="0xPayer"
        )
        return httpx.Response(
            200,
            headers={"PAYMENT-RESPONSE": encode_payment_response_header(settle)},
            json={"weather": "sunny"},
        )


def make_client(handler, x402_client=None):
    x402_client = x402_client or X402Client().register("eip155:*", FakeClientMechanism())
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.example.com"
    )
    return X402HttpClient(http_client, x402_client)


@pytest.mark.anyio
async def test_pays_and_retries_once():
    server = PaywalledServer()
    client = make_client(server)

    attempt = PaymentAttempt("GET", "/weather")
    response = await client.get("/weather", attempt=attempt, headers={"X-Trace": "abc"})

    assert response.status_code == 200
    assert response.json() == {"weather": "sunny"}
    assert len(server.requests) == 2
    paid = server.requests[1]
    assert paid.headers["X-Trace"] == "abc"
    payload = decode_payment_signature_header(paid.headers["PAYMENT-SIGNATURE"])
    assert payload.accepted == REQUIREMENTS
    assert payload.payload == {"signature": "0xsig"}
    assert attempt.state == PaymentState.DONE
    assert attempt.retried

    settle = X402HttpClient.get_payment_response(response)
    assert settle.transaction == "0xtx"


@pytest.mark.anyio
async def test_free_resource_is_not_paid():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"free": True})

    client = make_client(handler)
    response = await client.post("/free", json={"q": 1})

    assert response.status_code == 200
    assert len(requests) == 1
    assert X402HttpClient.get_payment_response(response) is None


@pytest.mark.anyio
async def test_second_402_raises():
    server = PaywalledServer(accept_payment=False)
    client = make_client(server)
    attempt = PaymentAttempt("GET", "/weather")

    with pytest.raises(PaymentRejectedError) as exc_info:
        await client.get("/weather", attempt=attempt)

    assert len(server.requests) == 2
    assert exc_info.value.response.status_code == 402
    assert exc_info.value.payment_required.error == "insufficient_funds"
    assert "insufficient_funds" in str(exc_info.value)
    assert attempt.state == PaymentState.DONE
    assert attempt.history.count(PaymentState.RETRIED) == 1


@pytest.mark.anyio
async def test_nothing_payable_raises_before_retry():
    server = PaywalledServer()
    solana_only = X402Client().register("solana:*", FakeClientMechanism())
    client = make_client(server, solana_only)
    attempt = PaymentAttempt("GET", "/weather")

    with pytest.raises(NoCompatiblePaymentRequirementsError):
        await client.get("/weather", attempt=attempt)
    assert len(server.requests) == 1
    assert attempt.state == PaymentState.PAYMENT_REQUIRED
    assert not attempt.retried


@pytest.mark.anyio
async def test_unparseable_402_is_returned():
    client = make_client(lambda request: httpx.Response(402, text="pay up"))
    attempt = PaymentAttempt("GET", "/weather")
    response = await client.get("/weather", attempt=attempt)
    assert response.status_code == 402
    assert attempt.history == [PaymentState.SENT_UNPAID, PaymentState.DONE]


@pytest.mark.anyio
async def test_concurrent_requests_track_their_own_state():
    server = PaywalledServer()

    async def handler(request):
        await asyncio.sleep(0)
        if request.url.path == "/free":
            return httpx.Response(200, json={"free": True})
        return server(request)

    client = make_client(handler)
    paid = PaymentAttempt("GET", "/weather")
    free = PaymentAttempt("GET", "/free")

    paid_response, free_response = await asyncio.gather(
        client.get("/weather", attempt=paid),
        client.get("/free", attempt=free),
    )

    assert paid_response.status_code == 200
    assert free_response.status_code == 200
    assert paid.history == [
        PaymentState.SENT_UNPAID,
        PaymentState.PAYMENT_REQUIRED,
        PaymentState.PAYLOAD_CREATED,
        PaymentState.RETRIED,
        PaymentState.DONE,
    ]
    assert free.history == [PaymentState.SENT_UNPAID, PaymentState.DONE]
    assert not free.retried


def test_parse_payment_required_falls_back_to_body():
    payment_required = PaymentRequired(accepts=[REQUIREMENTS])
    response = httpx.Response(
        402,
        headers={"PAYMENT-REQUIRED": "not base64!"},
        json=payment_required.model_dump(by_alias=True),
    )
    assert parse_payment_required(response).accepts == [REQUIREMENTS]


def test_malformed_payment_response_is_ignored():
    response = httpx.Response(200, headers={"PAYMENT-RESPONSE": "%%%"})
    assert X402HttpClient.get_payment_response(response) is None
