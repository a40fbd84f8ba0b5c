"""Integration tests for the anonymous guest API."""

from __future__ import annotations

from datetime import timedelta

from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.payments.tests.fakes import RecordingPaymentGateway
from apps.properties.models import Property

from .factories import days_from_today, make_property

BOOKINGS_URL = "/api/v1/public/bookings/"


class PublicBookingAPITests(APITestCase):
    def setUp(self) -> None:
        RecordingPaymentGateway.reset()
        self.property = make_property()

    def _payload(self, check_in, check_out, **overrides) -> dict:
        payload = {
            "property_id": self.property.id,
            "check_in": str(check_in),
            "check_out": str(check_out),
            "guests_count": 2,
            "guest_name": "Ada Guest",
            "guest_email": "ada@example.com",
        }
        payload.update(overrides)
        return payload

    def _request(self, check_in_days: int = 10, nights: int = 4, **overrides):
        check_in = days_from_today(check_in_days)
        return self.client.post(
            BOOKINGS_URL,
            self._payload(check_in, check_in + timedelta(days=nights), **overrides),
            format="json",
        )

    def test_guest_can_request_a_stay(self) -> None:
        response = self._request()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        booking = response.data["booking"]
        self.assertEqual(booking["status"], "requested")
        self.assertEqual(booking["total_amount"], "800.00")
        self.assertEqual(booking["deposit_amount"], "80.00")
        self.assertNotIn("id", booking)
        self.assertNotIn("gateway_hold_ref", booking)
        self.assertTrue(response.data["payment"]["hold_opened"])
        self.assertTrue(response.data["payment"]["client_secret"])

    def test_overlapping_request_returns_conflict_without_details(self) -> None:
        self.assertEqual(self._request().status_code, status.HTTP_201_CREATED)

        response = self._request(check_in_days=12, guest_name="Other", guest_email="other@example.com")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "date_conflict")
        self.assertNotIn("Ada", str(response.data))
        self.assertNotIn(str(days_from_today(10)), str(response.data))

    def test_back_to_back_requests_are_accepted(self) -> None:
        self.assertEqual(self._request(check_in_days=10, nights=4).status_code, status.HTTP_201_CREATED)
        self.assertEqual(self._request(check_in_days=14, nights=2).status_code, status.HTTP_201_CREATED)

    def test_invalid_range_is_bad_request(self) -> None:
        check_in = days_from_today(10)
        response = self.client.post(BOOKINGS_URL, self._payload(check_in, check_in), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_range")

    def test_stay_length_violation_is_bad_request(self) -> None:
        response = self._request(nights=20)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "stay_length_violation")

    def test_unknown_property_is_not_found(self) -> None:
        response = self._request(property_id=987654)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_inactive_property_is_conflict(self) -> None:
        self.property.status = Property.Status.INACTIVE
        self.property.save()
        response = self._request()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unpriceable_currency_is_conflict(self) -> None:
        Property.objects.filter(pk=self.property.pk).update(currency="KZT")
        response = self._request()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "property_unavailable")

    def test_missing_fields_are_validated(self) -> None:
        response = self.client.post(BOOKINGS_URL, {"property_id": self.property.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("guest_email", response.data)

    def test_lookup_by_confirmation_code(self) -> None:
        code = self._request().data["booking"]["confirmation_code"]

        response = self.client.get(f"{BOOKINGS_URL}{code.lower()}/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["confirmation_code"], code)
        self.assertEqual(self.client.get(f"{BOOKINGS_URL}RFD-00000000/").status_code, status.HTTP_404_NOT_FOUND)

    def test_guest_cancel_requires_matching_email(self) -> None:
        code = self._request().data["booking"]["confirmation_code"]
        cancel_url = f"{BOOKINGS_URL}{code}/cancel/"

        wrong = self.client.post(cancel_url, {"guest_email": "someone@example.com"}, format="json")
        self.assertEqual(wrong.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.post(
            cancel_url, {"guest_email": "ADA@example.com", "reason": "Plans changed"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["booking"]["status"], "cancelled")
        self.assertFalse(response.data["refunded"])
        self.assertEqual(Booking.objects.get(confirmation_code=code).cancelled_by, "guest")

    def test_cancelling_twice_reports_current_status(self) -> None:
        code = self._request().data["booking"]["confirmation_code"]
        cancel_url = f"{BOOKINGS_URL}{code}/cancel/"
        self.client.post(cancel_url, {"guest_email": "ada@example.com"}, format="json")

        response = self.client.post(cancel_url, {"guest_email": "ada@example.com"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["current_status"], "cancelled")


class PropertyQuoteAPITests(APITestCase):
    def setUp(self) -> None:
        RecordingPaymentGateway.reset()
        self.property = make_property()
        self.url = f"/api/v1/public/properties/{self.property.id}/quote/"

    def test_quote_for_free_dates(self) -> None:
        check_in = days_from_today(5)
        response = self.client.get(self.url, {"check_in": str(check_in), "check_out": str(check_in + timedelta(days=4))})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["available"])
        self.assertEqual(response.data["breakdown"]["total_amount"], "800.00")
        self.assertEqual(response.data["breakdown"]["balance_amount"], "720.00")

    def test_quote_for_taken_dates(self) -> None:
        check_in = days_from_today(5)
        self.client.post(BOOKINGS_URL, {
            "property_id": self.property.id,
            "check_in": str(check_in),
            "check_out": str(check_in + timedelta(days=4)),
            "guest_name": "Ada Guest",
            "guest_email": "ada@example.com",
        }, format="json")

        response = self.client.get(self.url, {"check_in": str(check_in + timedelta(days=1)), "check_out": str(check_in + timedelta(days=3))})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["available"])
        self.assertEqual(response.data["reason"], "date_conflict")

    def test_quote_requires_dates(self) -> None:
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
