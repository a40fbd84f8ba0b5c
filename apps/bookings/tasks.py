"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.db.models import Max  # type: ignore
from django.utils import timezone  # type: ignore

from apps.properties.models import Property
from shared.application.uow import DjangoUnitOfWork
from shared.infrastructure.db import lock_if_possible

from .application.command_handlers import CompleteBookingCommand, CompleteBookingHandler
from .domain.events import PreStayWindowReached
from .domain.state_machine import BookingStatus
from .models import Booking
from .services import local_today

logger = logging.getLogger(__name__)

PRE_STAY_STATUSES = (BookingStatus.APPROVED.value, BookingStatus.CONFIRMED.value)


def _mark_pre_stay_processed(booking_id, days_until: int, newly_assigned: bool) -> bool:
    """Stamp the booking so later sweeps skip it. False if another sweep got there first."""
    with DjangoUnitOfWork() as uow:
        booking = (
            lock_if_possible(
                Booking.objects.select_related("property__owner", "access_credential").filter(pk=booking_id),
                of=("self",),
            )
            .first()
        )
        if booking is None or booking.pre_stay_processed_at is not None:
            return False

        booking.pre_stay_processed_at = timezone.now()
        booking.save(update_fields=["pre_stay_processed_at", "updated_at"])

        if not newly_assigned:
            code = booking.access_credential.code if booking.access_credential_id else ''
            booking.add_event(PreStayWindowReached(
                **booking.event_payload(),
                days_until_check_in=days_until,
                code=code,
            ))
            uow.collect_events(booking)
    return True


# ============================================================================
# PERIODIC TASKS (run by Celery Beat, see config/celery.py)
# ============================================================================

@shared_task(name="bookings.process_pre_stay_window")
def process_pre_stay_window() -> dict[str, int]:
    """
    Assign access codes and send arrival notices for upcoming stays.

    Picks approved and confirmed bookings whose check-in is between today and
    today + the property's pre_stay_notice_days and that no sweep handled
    yet. Each booking is processed on its own; one failure does not stop
    the rest and an interrupted run resumes where it left off.

    Runs daily at 09:00.

    Returns:
        dict: processed / assigned / no_credential / failed counts
    """
    from apps.access.services import assign_credential

    today = local_today()
    widest_window = Property.objects.aggregate(days=Max("pre_stay_notice_days"))["days"] or 0

    candidates = (
        Booking.objects.filter(
            status__in=PRE_STAY_STATUSES,
            pre_stay_processed_at__isnull=True,
            check_in__gte=today,
            check_in__lte=today + timedelta(days=widest_window),
        )
        .select_related("property")
        .order_by("check_in")
    )

    stats = {"processed": 0, "assigned": 0, "no_credential": 0, "failed": 0}

    for booking in candidates:
        days_until = (booking.check_in - today).days
        if days_until > booking.property.pre_stay_notice_days:
            continue
        try:
            newly_assigned = False
            if booking.property.rotating_codes_enabled:
                result = assign_credential(booking.id)
                if result.assigned:
                    newly_assigned = result.newly_assigned
                    stats["assigned"] += int(newly_assigned)
                else:
                    stats["no_credential"] += 1
                    logger.warning(
                        f"No access code for booking {booking.confirmation_code}: {result.reason}"
                    )

            if _mark_pre_stay_processed(booking.id, days_until, newly_assigned):
                stats["processed"] += 1
                logger.info(f"Pre-stay processing done for booking {booking.confirmation_code}")
        except Exception as e:
            stats["failed"] += 1
            logger.error(f"Error in pre-stay processing for booking {booking.id}: {e}", exc_info=True)

    if stats["processed"]:
        logger.info(f"Pre-stay sweep: {stats}")

    return stats


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Complete confirmed stays whose checkout date has been reached.

    Runs every hour.

    Returns:
        dict: {"completed": count, "failed": count}
    """
    today = local_today()
    handler = CompleteBookingHandler()
    completed = failed = 0

    booking_ids = Booking.objects.filter(
        status=BookingStatus.CONFIRMED.value,
        check_out__lte=today,
    ).values_list("id", flat=True)

    for booking_id in list(booking_ids):
        try:
            handler.handle(CompleteBookingCommand(booking_id=booking_id, today=today))
            completed += 1
        except Exception as e:
            failed += 1
            logger.error(f"Error completing booking {booking_id}: {e}", exc_info=True)

    if completed:
        logger.info(f"Completed {completed} finished bookings")

    return {"completed": completed, "failed": failed}
