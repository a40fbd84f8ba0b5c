"""Stripe webhook endpoint."""

from __future__ import annotations

import logging

import stripe
from django.conf import settings
from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .webhooks import reconcile_stripe_event

logger = logging.getLogger(__name__)


class StripeWebhookView(APIView):
    """
    Receive Stripe events. Authenticated by the Stripe-Signature header only.

    The raw request body is verified before anything is parsed.
    """

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def post(self, request):  # type: ignore
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            logger.error("Stripe webhook called but STRIPE_WEBHOOK_SECRET is not configured")
            return Response({"detail": "Webhook not configured."}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        try:
            event = stripe.Webhook.construct_event(request.body, signature, secret)
        except ValueError:
            logger.warning("Stripe webhook with invalid payload")
            return Response({"detail": "Invalid payload."}, status=status.HTTP_400_BAD_REQUEST)
        except stripe.SignatureVerificationError:
            logger.warning("Stripe webhook with invalid signature")
            return Response({"detail": "Invalid signature."}, status=status.HTTP_400_BAD_REQUEST)

        outcome = reconcile_stripe_event(event)
        return Response({"received": True, "applied": outcome is not None and not outcome.skipped})
