"""Test double for the payment gateway.

Configured through settings.PAYMENT_GATEWAY in the test settings. Every
instance shares the class-level call log, so tests can inspect calls made by
gateways the handlers built themselves. Call reset() in setUp.
"""

from __future__ import annotations

import itertools

from apps.payments.exceptions import GatewayDeclined, GatewayUnavailable
from apps.payments.gateways import HoldReceipt, PaymentGateway

_counter = itertools.count(1)


class RecordingPaymentGateway(PaymentGateway):
    calls: list = []
    # operation name -> exception instance to raise
    failures: dict = {}

    @classmethod
    def reset(cls):
        cls.calls = []
        cls.failures = {}

    @classmethod
    def fail(cls, operation: str, error=None):
        cls.failures[operation] = error or GatewayDeclined(f"{operation} declined", code="card_declined")

    @classmethod
    def fail_unavailable(cls, operation: str):
        cls.failures[operation] = GatewayUnavailable(f"{operation} timed out")

    @classmethod
    def operations(cls) -> list[str]:
        return [call[0] for call in cls.calls]

    def _maybe_fail(self, operation: str):
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def open_hold(self, amount, metadata, idempotency_key):
        self.calls.append(("open_hold", amount, idempotency_key))
        self._maybe_fail("open_hold")
        ref = f"pi_test_{next(_counter)}"
        return HoldReceipt(ref=ref, client_secret=f"{ref}_secret")

    def capture(self, hold_ref, idempotency_key):
        self.calls.append(("capture", hold_ref, idempotency_key))
        self._maybe_fail("capture")
        return hold_ref

    def release(self, hold_ref):
        self.calls.append(("release", hold_ref, None))
        self._maybe_fail("release")

    def refund(self, charge_ref, amount, idempotency_key):
        self.calls.append(("refund", charge_ref, idempotency_key))
        self._maybe_fail("refund")
        return f"re_test_{next(_counter)}"
