"""
Credential Rotation Assigner

Hands the next active credential of a property to a booking. The
read-advance-write of the cursor runs in one transaction with the rotation
row locked where the backend supports it, and the cursor update is a
compare-and-swap, so two workers racing on the same property can never pick
the same stale cursor value. A lost swap is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.bookings.domain.events import CredentialAssigned
from apps.bookings.domain.exceptions import IllegalTransition, NotFound, RotationContention
from apps.bookings.domain.state_machine import BookingStatus
from apps.bookings.models import Booking
from shared.application.uow import DjangoUnitOfWork
from shared.infrastructure.db import lock_if_possible

from .models import AccessCredential, CredentialRotation

logger = logging.getLogger(__name__)

MAX_ROTATION_ATTEMPTS = 5

ASSIGNABLE_STATUSES = (BookingStatus.APPROVED.value, BookingStatus.CONFIRMED.value)


@dataclass(frozen=True)
class CredentialAssignment:
    booking_id: UUID
    credential_id: int
    label: str
    code: str
    assigned_at: datetime
    newly_assigned: bool

    assigned = True


@dataclass(frozen=True)
class NoCredentialAvailable:
    """Informational: rotation is off or the property has no active codes."""
    booking_id: UUID
    reason: str

    assigned = False


AssignmentResult = Union[CredentialAssignment, NoCredentialAvailable]


class _CursorMoved(Exception):
    pass


def _existing(booking: Booking) -> CredentialAssignment:
    credential = booking.access_credential
    return CredentialAssignment(
        booking_id=booking.id,
        credential_id=credential.id,
        label=credential.label,
        code=credential.code,
        assigned_at=booking.credential_assigned_at,
        newly_assigned=False,
    )


def _assign_once(booking_id, now: datetime) -> AssignmentResult:
    with DjangoUnitOfWork() as uow:
        booking = (
            lock_if_possible(
                Booking.objects.filter(pk=booking_id).select_related("property__owner", "access_credential"),
                of=("self",),
            )
            .first()
        )
        if booking is None:
            raise NotFound("Booking", booking_id)

        if booking.access_credential_id:
            return _existing(booking)

        if booking.status not in ASSIGNABLE_STATUSES:
            raise IllegalTransition(booking.status, "assign_credential")

        if not booking.property.rotating_codes_enabled:
            return NoCredentialAvailable(booking.id, "rotation disabled for property")

        credentials = list(
            AccessCredential.objects.filter(property_id=booking.property_id).active().rotation_order()
        )
        if not credentials:
            logger.info(f"No active access credentials for property {booking.property_id}")
            return NoCredentialAvailable(booking.id, "no active credentials")

        rotation, _ = CredentialRotation.objects.get_or_create(property_id=booking.property_id)
        rotation = lock_if_possible(CredentialRotation.objects.filter(pk=rotation.pk)).get()

        cursor = rotation.cursor
        chosen = credentials[cursor % len(credentials)]
        swapped = CredentialRotation.objects.filter(pk=rotation.pk, cursor=cursor).update(
            cursor=(cursor + 1) % len(credentials),
            updated_at=now,
        )
        if not swapped:
            raise _CursorMoved()

        AccessCredential.objects.filter(pk=chosen.pk).update(
            usage_count=F("usage_count") + 1,
            last_used_at=now,
        )

        booking.access_credential = chosen
        booking.credential_assigned_at = now
        booking.save(update_fields=["access_credential", "credential_assigned_at", "updated_at"])
        booking.add_event(
            CredentialAssigned(
                **booking.event_payload(),
                credential_id=chosen.id,
                credential_label=chosen.label,
                code=chosen.code,
            )
        )
        uow.collect_events(booking)

        logger.info(
            f"Assigned credential #{chosen.order_index} to booking {booking.confirmation_code} "
            f"(cursor {cursor} -> {(cursor + 1) % len(credentials)})"
        )
        return CredentialAssignment(
            booking_id=booking.id,
            credential_id=chosen.id,
            label=chosen.label,
            code=chosen.code,
            assigned_at=now,
            newly_assigned=True,
        )


def assign_credential(booking_id, now: Optional[datetime] = None) -> AssignmentResult:
    """
    Assign the next credential in rotation to a booking, exactly once.

    A booking that already has a credential gets it back unchanged.
    """
    now = now or timezone.now()
    for attempt in range(1, MAX_ROTATION_ATTEMPTS + 1):
        try:
            return _assign_once(booking_id, now)
        except _CursorMoved:
            logger.info(f"Rotation cursor moved while assigning booking {booking_id}, retry {attempt}")
    raise RotationContention(booking_id, MAX_ROTATION_ATTEMPTS)


def next_order_index(property_id) -> int:
    last = (
        AccessCredential.objects.filter(property_id=property_id)
        .order_by("-order_index")
        .values_list("order_index", flat=True)
        .first()
    )
    return 0 if last is None else last + 1


def reorder_credentials(property_id, credential_ids: list[int]) -> list[AccessCredential]:
    """
    Give the listed credentials order_index 0..n-1 in the given order.

    Unlisted credentials keep their relative order after the listed ones.
    The cursor is reset so the new first code is handed out next.
    """
    with transaction.atomic():
        credentials = {
            c.pk: c
            for c in lock_if_possible(AccessCredential.objects.filter(property_id=property_id))
        }
        listed = set(credential_ids)
        unknown = listed - set(credentials)
        if unknown:
            raise NotFound("AccessCredential", sorted(unknown)[0])
        if len(set(credential_ids)) != len(credential_ids):
            raise ValueError("Duplicate credential ids in new order")

        rest = sorted(
            (c for pk, c in credentials.items() if pk not in listed),
            key=lambda c: c.order_index,
        )
        ordered = [credentials[pk] for pk in credential_ids] + rest

        # Two passes so the unique (property, order_index) constraint never sees a duplicate
        offset = len(ordered) + max((c.order_index for c in ordered), default=0) + 1
        for index, credential in enumerate(ordered):
            AccessCredential.objects.filter(pk=credential.pk).update(order_index=offset + index)
        for index, credential in enumerate(ordered):
            AccessCredential.objects.filter(pk=credential.pk).update(order_index=index)
            credential.order_index = index

        CredentialRotation.objects.filter(property_id=property_id).update(cursor=0, updated_at=timezone.now())

    logger.info(f"Reordered {len(ordered)} credentials for property {property_id}")
    return ordered
