"""
End-to-end payment flow: client -> resource server -> facilitator service.

Everything runs in-process over ASGI; signatures are real, the chain is mocked.
"""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI, Request

from x402_core.clients import X402Client, X402HttpClient
from x402_core.encoding import decode_payment_required_header, decode_payment_signature_header
from x402_core.facilitator import HTTPFacilitatorClient, X402Facilitator
from x402_core.facilitator.app import create_facilitator_app
from x402_core.fastapi import X402Middleware
from x402_core.mechanisms.evm.exact import (
    ExactEvmClientMechanism,
    ExactEvmFacilitatorMechanism,
    ExactEvmServerMechanism,
)
from x402_core.server import X402HTTPResourceServer, X402ResourceServer
from x402_core.signers.client import EvmClientSigner
from x402_core.signers.facilitator import EvmFacilitatorSigner

TX_HASH = "0x" + "cd" * 32


@pytest.fixture
def facilitator_signer(facilitator_account):
    signer = EvmFacilitatorSigner(facilitator_account.key.hex())
    chain = {"authorizationState": False, "balanceOf": 10**9}

    async def read_contract(contract_address, abi, method, args, network):
        return chain[method]

    signer.read_contract = AsyncMock(side_effect=read_contract)
    signer.write_contract = AsyncMock(return_value=TX_HASH)
    signer.wait_for_transaction_receipt = AsyncMock(
        return_value={"hash": TX_HASH, "blockNumber": "1", "status": "confirmed"}
    )
    return signer


@pytest.fixture
def facilitator_client(facilitator_signer):
    facilitator = X402Facilitator().register(
        ["eip155:84532"], ExactEvmFacilitatorMechanism(facilitator_signer)
    )
    facilitator.freeze()
    return HTTPFacilitatorClient(
        "http://facilitator",
        transport=httpx.ASGITransport(app=create_facilitator_app(facilitator)),
    )


@pytest.fixture
def resource_app(facilitator_client, merchant_address):
    server = X402ResourceServer(facilitator_client).register(
        "eip155:*", ExactEvmServerMechanism()
    )
    middleware = X402Middleware(X402HTTPResourceServer(server))
    app = FastAPI()

    @app.get("/weather")
    @middleware.protect(price="$0.001", network="eip155:84532", pay_to=merchant_address)
    async def weather(request: Request):
        return {"weather": "sunny", "temperature": 70}

    return app


@pytest.fixture
def sent_requests():
    return []


@pytest.fixture
def api_client(resource_app, sent_requests):
    async def record(request):
        sent_requests.append(request)

    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=resource_app),
        base_url="http://api",
        event_hooks={"request": [record]},
    )


@pytest.fixture
def payer(payer_account, api_client):
    x402_client = X402Client().register(
        "eip155:*", ExactEvmClientMechanism(EvmClientSigner(payer_account.key.hex()))
    )
    return X402HttpClient(api_client, x402_client)


@pytest.mark.anyio
async def test_unpaid_request_is_challenged(api_client, merchant_address):
    response = await api_client.get("/weather")

    assert response.status_code == 402
    accepts = decode_payment_required_header(response.headers["PAYMENT-REQUIRED"]).accepts
    assert len(accepts) == 1
    assert accepts[0].network == "eip155:84532"
    assert accepts[0].amount == "1000"
    assert accepts[0].pay_to == merchant_address
    assert accepts[0].extra == {"name": "USDC", "version": "2"}


@pytest.mark.anyio
async def test_pay_for_resource(payer, payer_account, facilitator_signer, sent_requests):
    response = await payer.get("/weather")

    assert response.status_code == 200
    assert response.json() == {"weather": "sunny", "temperature": 70}

    settle = X402HttpClient.get_payment_response(response)
    assert settle.success
    assert settle.transaction == TX_HASH
    assert settle.payer == payer_account.address
    assert settle.network == "eip155:84532"

    paid = decode_payment_signature_header(sent_requests[-1].headers["PAYMENT-SIGNATURE"])
    assert paid.payload["authorization"]["from"] == payer_account.address
    assert paid.payload["authorization"]["value"] == "1000"
    facilitator_signer.write_contract.assert_awaited_once()


@pytest.mark.anyio
async def test_replayed_payment_is_rejected(payer, api_client, facilitator_signer, sent_requests):
    assert (await payer.get("/weather")).status_code == 200
    header = sent_requests[-1].headers["PAYMENT-SIGNATURE"]

    replay = await api_client.get("/weather", headers={"PAYMENT-SIGNATURE": header})

    assert replay.status_code == 402
    assert replay.json()["error"] == "nonce_already_used"
    assert "PAYMENT-RESPONSE" not in replay.headers
    facilitator_signer.write_contract.assert_awaited_once()
