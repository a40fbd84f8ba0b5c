"""Tests for the Stripe adapter's request shape and error mapping."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

import stripe
from django.test import SimpleTestCase, override_settings

from apps.payments.exceptions import GatewayDeclined, GatewayUnavailable
from apps.payments.gateways import (
    EmulatedPaymentGateway,
    StripePaymentGateway,
    get_payment_gateway,
)
from apps.payments.tests.fakes import RecordingPaymentGateway
from shared.domain.value_objects import Money


class StripePaymentGatewayTests(SimpleTestCase):
    def setUp(self) -> None:
        self.gateway = StripePaymentGateway(api_key="sk_test_123")

    @mock.patch("stripe.PaymentIntent.create")
    def test_open_hold_creates_manual_capture_intent(self, create) -> None:
        create.return_value = SimpleNamespace(id="pi_123", client_secret="pi_123_secret_abc")

        receipt = self.gateway.open_hold(
            Money(Decimal("80.00")),
            {"booking_id": "b-1", "confirmation_code": "RFD-AB12CD34"},
            "booking-b-1-hold",
        )

        self.assertEqual(receipt.ref, "pi_123")
        self.assertEqual(receipt.client_secret, "pi_123_secret_abc")
        kwargs = create.call_args.kwargs
        self.assertEqual(kwargs["amount"], 8000)
        self.assertEqual(kwargs["currency"], "usd")
        self.assertEqual(kwargs["capture_method"], "manual")
        self.assertEqual(kwargs["idempotency_key"], "booking-b-1-hold")
        self.assertEqual(kwargs["api_key"], "sk_test_123")

    @mock.patch("stripe.PaymentIntent.capture")
    def test_capture_returns_intent_id(self, capture) -> None:
        capture.return_value = SimpleNamespace(id="pi_123", status="succeeded")
        self.assertEqual(self.gateway.capture("pi_123", "booking-b-1-capture"), "pi_123")

    @mock.patch("stripe.PaymentIntent.capture")
    def test_capture_in_unexpected_state_is_declined(self, capture) -> None:
        capture.return_value = SimpleNamespace(id="pi_123", status="requires_payment_method")
        with self.assertRaises(GatewayDeclined):
            self.gateway.capture("pi_123", "booking-b-1-capture")

    @mock.patch("stripe.PaymentIntent.capture")
    def test_card_error_maps_to_declined(self, capture) -> None:
        capture.side_effect = stripe.CardError("Your card was declined.", None, "card_declined")
        with self.assertRaises(GatewayDeclined) as ctx:
            self.gateway.capture("pi_123", "key")
        self.assertEqual(ctx.exception.code, "card_declined")

    @mock.patch("stripe.PaymentIntent.capture")
    def test_connection_error_maps_to_unavailable(self, capture) -> None:
        capture.side_effect = stripe.APIConnectionError("Network down")
        with self.assertRaises(GatewayUnavailable):
            self.gateway.capture("pi_123", "key")

    @mock.patch("stripe.PaymentIntent.cancel")
    @mock.patch("stripe.PaymentIntent.retrieve")
    def test_release_skips_cancelled_intent(self, retrieve, cancel) -> None:
        retrieve.return_value = SimpleNamespace(id="pi_123", status="canceled")
        self.gateway.release("pi_123")
        cancel.assert_not_called()

    @mock.patch("stripe.PaymentIntent.cancel")
    @mock.patch("stripe.PaymentIntent.retrieve")
    def test_release_cancels_open_intent(self, retrieve, cancel) -> None:
        retrieve.return_value = SimpleNamespace(id="pi_123", status="requires_capture")
        self.gateway.release("pi_123")
        cancel.assert_called_once()

    @mock.patch("stripe.Refund.create")
    def test_refund_targets_the_payment_intent(self, create) -> None:
        create.return_value = SimpleNamespace(id="re_1")

        ref = self.gateway.refund("pi_123", Money(Decimal("80.00")), "booking-b-1-refund")

        self.assertEqual(ref, "re_1")
        self.assertEqual(create.call_args.kwargs["payment_intent"], "pi_123")
        self.assertEqual(create.call_args.kwargs["amount"], 8000)


class GatewaySelectionTests(SimpleTestCase):
    def test_test_settings_use_recording_gateway(self) -> None:
        self.assertIsInstance(get_payment_gateway(), RecordingPaymentGateway)

    @override_settings(PAYMENT_GATEWAY="apps.payments.gateways.EmulatedPaymentGateway")
    def test_emulated_gateway_always_succeeds(self) -> None:
        gateway = get_payment_gateway()
        self.assertIsInstance(gateway, EmulatedPaymentGateway)
        receipt = gateway.open_hold(Money(Decimal("10.00")), {"booking_id": "x"}, "k")
        self.assertEqual(gateway.capture(receipt.ref, "k2"), receipt.ref)
        self.assertTrue(gateway.refund(receipt.ref, Money(Decimal("10.00")), "k3").startswith("emu_re_"))
