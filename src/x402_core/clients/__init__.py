"""
Client: requirement selection, payment creation and the 402-retrying HTTP client
"""

from x402_core.clients.policies import (
    MaxAmountPolicy,
    PreferNetworkPolicy,
    SufficientBalancePolicy,
)
from x402_core.clients.x402_client import (
    PaymentPolicy,
    PaymentRequirementsSelector,
    X402Client,
)
from x402_core.clients.x402_http_client import PaymentAttempt, PaymentState, X402HttpClient

__all__ = [
    "MaxAmountPolicy",
    "PaymentAttempt",
    "PaymentPolicy",
    "PaymentRequirementsSelector",
    "PaymentState",
    "PreferNetworkPolicy",
    "SufficientBalancePolicy",
    "X402Client",
    "X402HttpClient",
]
