"""
Payment gateway adapters.

Every adapter exposes the same four primitives; amounts are Money values and
errors are mapped to GatewayDeclined (permanent) or GatewayUnavailable
(transient). settings.PAYMENT_GATEWAY selects the adapter.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe
from django.conf import settings
from django.utils.module_loading import import_string

from shared.domain.value_objects import Money

from .exceptions import GatewayDeclined, GatewayUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HoldReceipt:
    ref: str
    client_secret: str = ""


class PaymentGateway(ABC):
    """Contract the orchestrator relies on."""

    @abstractmethod
    def open_hold(self, amount: Money, metadata: dict, idempotency_key: str) -> HoldReceipt:
        """Authorize `amount` without moving funds."""

    @abstractmethod
    def capture(self, hold_ref: str, idempotency_key: str) -> str:
        """Capture the full held amount. Returns the charge reference."""

    @abstractmethod
    def release(self, hold_ref: str) -> None:
        """Cancel an un-captured hold. Releasing twice is not an error."""

    @abstractmethod
    def refund(self, charge_ref: str, amount: Money, idempotency_key: str) -> str:
        """Refund a captured charge. Returns the refund reference."""


class StripePaymentGateway(PaymentGateway):
    """
    Stripe PaymentIntents with capture_method=manual.

    The hold is the PaymentIntent itself; the charge reference stored after
    capture is the same intent id, which Refund.create accepts.
    """

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY

    def _call(self, operation: str, func, *args, **kwargs):
        try:
            return func(*args, api_key=self.api_key, **kwargs)
        except (stripe.CardError, stripe.InvalidRequestError) as e:
            logger.warning(f"Stripe {operation} declined: {e.user_message or e}")
            raise GatewayDeclined(str(e.user_message or e), code=e.code or "") from e
        except (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError) as e:
            logger.error(f"Stripe {operation} unavailable: {e}")
            raise GatewayUnavailable(str(e)) from e
        except stripe.StripeError as e:
            logger.error(f"Stripe {operation} failed: {e}", exc_info=True)
            raise GatewayUnavailable(str(e)) from e

    def open_hold(self, amount: Money, metadata: dict, idempotency_key: str) -> HoldReceipt:
        intent = self._call(
            "open_hold",
            stripe.PaymentIntent.create,
            amount=amount.in_minor_units(),
            currency=(amount.currency or settings.STRIPE_CURRENCY).lower(),
            capture_method="manual",
            metadata={k: str(v) for k, v in metadata.items()},
            description=f"Deposit for booking {metadata.get('confirmation_code', '')}".strip(),
            idempotency_key=idempotency_key,
        )
        logger.info(f"Opened Stripe hold {intent.id} for {amount}")
        return HoldReceipt(ref=intent.id, client_secret=intent.client_secret or "")

    def capture(self, hold_ref: str, idempotency_key: str) -> str:
        intent = self._call(
            "capture",
            stripe.PaymentIntent.capture,
            hold_ref,
            idempotency_key=idempotency_key,
        )
        if intent.status != "succeeded":
            raise GatewayDeclined(f"PaymentIntent {hold_ref} is {intent.status} after capture", code=intent.status)
        return intent.id

    def release(self, hold_ref: str) -> None:
        intent = self._call("release", stripe.PaymentIntent.retrieve, hold_ref)
        if intent.status == "canceled":
            logger.info(f"Stripe hold {hold_ref} already released")
            return
        self._call("release", stripe.PaymentIntent.cancel, hold_ref)

    def refund(self, charge_ref: str, amount: Money, idempotency_key: str) -> str:
        refund = self._call(
            "refund",
            stripe.Refund.create,
            payment_intent=charge_ref,
            amount=amount.in_minor_units(),
            idempotency_key=idempotency_key,
        )
        return refund.id


class EmulatedPaymentGateway(PaymentGateway):
    """
    Local stand-in used in development or when no Stripe key is configured.

    Always succeeds and never moves money.
    """

    def _ref(self, prefix: str) -> str:
        return f"emu_{prefix}_{uuid.uuid4().hex[:16]}"

    def open_hold(self, amount: Money, metadata: dict, idempotency_key: str) -> HoldReceipt:
        logger.warning("Using emulated payment gateway (DEBUG mode or no STRIPE_SECRET_KEY)")
        ref = self._ref("pi")
        logger.info(f"Emulated hold {ref} for {amount}, booking {metadata.get('booking_id')}")
        return HoldReceipt(ref=ref, client_secret=f"{ref}_secret")

    def capture(self, hold_ref: str, idempotency_key: str) -> str:
        logger.info(f"Emulated capture of {hold_ref}")
        return hold_ref

    def release(self, hold_ref: str) -> None:
        logger.info(f"Emulated release of {hold_ref}")

    def refund(self, charge_ref: str, amount: Money, idempotency_key: str) -> str:
        logger.info(f"Emulated refund of {amount} on {charge_ref}")
        return self._ref("re")


def get_payment_gateway() -> PaymentGateway:
    gateway_class = import_string(settings.PAYMENT_GATEWAY)
    return gateway_class()
