"""Integration tests for the host credential API."""

from __future__ import annotations

from rest_framework import status
from rest_framework.test import APITestCase

from apps.access.models import AccessCredential
from apps.access.services import assign_credential
from apps.bookings.tests.factories import days_from_today, make_booking, make_credentials, make_owner, make_property


class CredentialAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = make_owner()
        self.property = make_property(owner=self.owner, rotating_codes_enabled=True)
        self.url = f"/api/v1/properties/{self.property.id}/credentials/"
        self.client.force_authenticate(self.owner)

    def test_owner_adds_codes_in_order(self) -> None:
        first = self.client.post(self.url, {"code": "4821", "label": "Front door"}, format="json")
        second = self.client.post(self.url, {"code": "9034"}, format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(first.data["order_index"], 0)
        self.assertEqual(second.data["order_index"], 1)

        listing = self.client.get(self.url)
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertTrue(listing.data["rotating_codes_enabled"])
        self.assertEqual(listing.data["cursor"], 0)
        self.assertEqual([c["code"] for c in listing.data["credentials"]], ["4821", "9034"])

    def test_short_code_is_rejected(self) -> None:
        response = self.client.post(self.url, {"code": "12"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("code", response.data)

    def test_other_hosts_are_forbidden(self) -> None:
        make_credentials(self.property, "4821")
        self.client.force_authenticate(make_owner())

        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            self.client.post(self.url, {"code": "0000"}, format="json").status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_unknown_property(self) -> None:
        response = self.client.get("/api/v1/properties/999999/credentials/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_notes_and_active_flag(self) -> None:
        (credential,) = make_credentials(self.property, "4821")

        response = self.client.patch(
            f"{self.url}{credential.id}/", {"notes": "Battery replaced", "is_active": False}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        credential.refresh_from_db()
        self.assertEqual(credential.notes, "Battery replaced")
        self.assertFalse(credential.is_active)

    def test_code_of_used_credential_cannot_change(self) -> None:
        (credential,) = make_credentials(self.property, "4821")
        AccessCredential.objects.filter(pk=credential.pk).update(usage_count=1)

        response = self.client.patch(f"{self.url}{credential.id}/", {"code": "5555"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_deactivates(self) -> None:
        (credential,) = make_credentials(self.property, "4821")

        response = self.client.delete(f"{self.url}{credential.id}/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["is_active"])
        self.assertTrue(AccessCredential.objects.filter(pk=credential.pk).exists())

    def test_reorder(self) -> None:
        a, b = make_credentials(self.property, "4821", "9034")

        response = self.client.post(f"{self.url}reorder/", {"credential_ids": [b.id, a.id]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual([c["code"] for c in response.data], ["9034", "4821"])

    def test_reorder_with_foreign_id_is_bad_request(self) -> None:
        make_credentials(self.property, "4821")
        (foreign,) = make_credentials(make_property(), "7777")

        response = self.client.post(f"{self.url}reorder/", {"credential_ids": [foreign.id]}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_history_lists_assignments(self) -> None:
        make_credentials(self.property, "4821")
        booking = make_booking(
            self.property,
            check_in=days_from_today(3),
            status="approved",
            payment_status="partial",
            deposit_paid=True,
        )
        assign_credential(booking.id)

        response = self.client.get(f"{self.url}history/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["confirmation_code"], booking.confirmation_code)
        self.assertNotIn("code", response.data[0])
