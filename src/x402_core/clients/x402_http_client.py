"""
X402HttpClient - HTTP client adapter with automatic 402 payment handling
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from pydantic import ValidationError

from x402_core.clients.x402_client import X402Client
from x402_core.encoding import (
    decode_payment_required_header,
    decode_payment_response_header,
    encode_payment_signature_header,
)
from x402_core.exceptions import InvalidPaymentHeaderError, PaymentRejectedError
from x402_core.types import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    PaymentRequired,
    SettleResponse,
)

logger = logging.getLogger(__name__)


class PaymentState(str, Enum):
    INITIAL = "initial"
    SENT_UNPAID = "sent_unpaid"
    PAYMENT_REQUIRED = "payment_required"
    PAYLOAD_CREATED = "payload_created"
    RETRIED = "retried"
    DONE = "done"


@dataclass
class PaymentAttempt:
    """Progress of one request_with_payment call"""

    method: str
    url: str
    state: PaymentState = PaymentState.INITIAL
    history: list[PaymentState] = field(default_factory=list)

    @property
    def retried(self) -> bool:
        return PaymentState.RETRIED in self.history

    def transition(self, state: PaymentState) -> None:
        logger.debug(
            f"Payment state ({self.method} {self.url}): {self.state.value} -> {state.value}"
        )
        self.history.append(state)
        self.state = state


def parse_payment_required(response: httpx.Response) -> PaymentRequired | None:
    """Parse PaymentRequired from a 402 response, header first, then JSON body"""
    header_value = response.headers.get(PAYMENT_REQUIRED_HEADER)
    if header_value:
        try:
            return decode_payment_required_header(header_value)
        except InvalidPaymentHeaderError as e:
            logger.warning(f"Failed to decode PaymentRequired from header: {e}")

    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("accepts"), list):
        try:
            return PaymentRequired.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Body is not a valid PaymentRequired: {e.error_count()} errors")
    return None


class X402HttpClient:
    """
    HTTP client adapter with automatic 402 payment handling.

    Wraps httpx.AsyncClient. A request is retried at most once, with a payment;
    a second 402 raises PaymentRejectedError instead of paying again. Progress
    lives in a PaymentAttempt per call, so one instance serves concurrent requests.
    """

    def __init__(self, http_client: httpx.AsyncClient, x402_client: X402Client) -> None:
        """
        Initialize HTTP client adapter.

        Args:
            http_client: httpx.AsyncClient instance
            x402_client: X402Client instance
        """
        self._http_client = http_client
        self._x402_client = x402_client

    async def request_with_payment(
        self,
        method: str,
        url: str,
        attempt: PaymentAttempt | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make HTTP request with automatic 402 payment handling.

        Flow:
            1. Send original request
            2. If 402, parse PaymentRequired
            3. Create payment payload
            4. Retry once with PAYMENT-SIGNATURE header

        Pass *attempt* to observe the call's state transitions.

        Raises:
            NoCompatiblePaymentRequirementsError: nothing offered can be paid
            PaymentRejectedError: the paid retry was answered with 402 again
        """
        if attempt is None:
            attempt = PaymentAttempt(method, url)
        logger.info(f"Making {method} request to {url}")
        response = await self._http_client.request(method, url, **kwargs)
        attempt.transition(PaymentState.SENT_UNPAID)

        if response.status_code != 402:
            attempt.transition(PaymentState.DONE)
            return response

        payment_required = parse_payment_required(response)
        if payment_required is None:
            logger.error("402 response carries no usable PaymentRequired")
            attempt.transition(PaymentState.DONE)
            return response
        attempt.transition(PaymentState.PAYMENT_REQUIRED)
        logger.info(f"Payment required: {len(payment_required.accepts)} payment options")

        payment_payload = await self._x402_client.create_payment_payload(payment_required)
        attempt.transition(PaymentState.PAYLOAD_CREATED)

        headers = dict(kwargs.pop("headers", None) or {})
        headers[PAYMENT_SIGNATURE_HEADER] = encode_payment_signature_header(payment_payload)
        retry_response = await self._http_client.request(method, url, headers=headers, **kwargs)
        attempt.transition(PaymentState.RETRIED)
        logger.info(f"Payment retry response: status={retry_response.status_code}")

        if retry_response.status_code == 402:
            rejected = parse_payment_required(retry_response)
            reason = rejected.error if rejected and rejected.error else "payment rejected"
            attempt.transition(PaymentState.DONE)
            raise PaymentRejectedError(
                f"Server rejected payment for {url}: {reason}",
                response=retry_response,
                payment_required=rejected,
            )

        attempt.transition(PaymentState.DONE)
        return retry_response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET request with payment handling"""
        return await self.request_with_payment("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """POST request with payment handling"""
        return await self.request_with_payment("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        """PUT request with payment handling"""
        return await self.request_with_payment("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """DELETE request with payment handling"""
        return await self.request_with_payment("DELETE", url, **kwargs)

    @staticmethod
    def get_payment_response(response: httpx.Response) -> SettleResponse | None:
        """Settlement proof attached to a paid response, if any"""
        value = response.headers.get(PAYMENT_RESPONSE_HEADER)
        if not value:
            return None
        try:
            return decode_payment_response_header(value)
        except InvalidPaymentHeaderError as e:
            logger.warning(f"Ignoring malformed {PAYMENT_RESPONSE_HEADER} header: {e}")
            return None
