"""Notification services: compose booking messages and deliver them.

Messages are plain text; the dispatcher works only from the denormalized
event payload and never queries the booking engine for more data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.core.mail import send_mail  # type: ignore

from shared.infrastructure.encryption import mask_secret

from .models import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutgoingEmail:
    recipient: str
    subject: str
    body: str


@dataclass(frozen=True)
class HostNotice:
    title: str
    message: str


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(recipient_email: str, subject: str, message: str) -> bool:
    """
    Send a plain-text email.

    Returns:
        bool: True if the message was handed to the mail backend
    """
    if not recipient_email:
        logger.warning(f"No recipient for email '{subject}', skipping")
        return False
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            fail_silently=False,
        )
        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def _stay_summary(p: dict) -> str:
    return (
        f"Property: {p['property_title']}\n"
        f"Check-in: {p['check_in']}\n"
        f"Check-out: {p['check_out']} ({p['nights']} nights)\n"
        f"Total: {p['total_amount']} {p['currency']} "
        f"(deposit {p['deposit_amount']}, balance {p['balance_amount']})\n"
        f"Confirmation code: {p['confirmation_code']}"
    )


def compose_messages(event_type: str, payload: dict) -> tuple[list[OutgoingEmail], Optional[HostNotice]]:
    """Map a booking event to guest/host emails and an optional in-app notice for the host."""
    code = payload["confirmation_code"]
    guest = payload["guest_email"]
    host = payload["host_email"]
    greeting = f"Hello {payload['guest_name']},\n\n"
    summary = _stay_summary(payload)
    emails: list[OutgoingEmail] = []
    notice: Optional[HostNotice] = None

    if event_type == "BookingRequested":
        emails.append(OutgoingEmail(
            guest,
            f"Booking request {code} received",
            greeting + "We received your request. The host will approve or decline it shortly.\n\n" + summary,
        ))
        emails.append(OutgoingEmail(
            host,
            f"New booking request {code}",
            f"{payload['guest_name']} ({guest}) requested a stay.\n\n{summary}\n\n"
            f"Message from guest: {payload.get('guest_message') or '-'}",
        ))
        notice = HostNotice(f"New booking request {code}", f"{payload['guest_name']}: {payload['check_in']} - {payload['check_out']}")

    elif event_type == "BookingApproved":
        emails.append(OutgoingEmail(
            guest,
            f"Booking {code} approved",
            greeting + "Good news: your booking was approved.\n\n" + summary,
        ))
        if payload.get("payment_issue"):
            notice = HostNotice(
                f"Payment issue on {code}",
                payload.get("payment_issue_detail") or "Deposit capture failed; collect manually.",
            )

    elif event_type == "BookingDeclined":
        reason = payload.get("reason") or "The dates are no longer available."
        emails.append(OutgoingEmail(
            guest,
            f"Booking request {code} declined",
            greeting + f"Unfortunately the host declined your request.\n\nMessage from host: {reason}\n\n"
            "Any authorization on your card has been released.",
        ))

    elif event_type == "BookingConfirmed":
        emails.append(OutgoingEmail(
            guest,
            f"Booking {code} confirmed",
            greeting + "Your payment is complete and your stay is confirmed.\n\n" + summary,
        ))

    elif event_type == "BookingCancelled":
        refund_line = "Your deposit will be refunded.\n\n" if payload.get("refunded") else ""
        emails.append(OutgoingEmail(
            guest,
            f"Booking {code} cancelled",
            greeting + f"Your booking was cancelled.\n\n{refund_line}{summary}",
        ))
        emails.append(OutgoingEmail(
            host,
            f"Booking {code} cancelled",
            f"Booking {code} was cancelled by {payload.get('cancelled_by') or 'unknown'}.\n"
            f"Reason: {payload.get('reason') or '-'}\n\n{summary}",
        ))
        notice = HostNotice(f"Booking {code} cancelled", payload.get("reason") or "No reason given")

    elif event_type == "CredentialAssigned":
        emails.append(OutgoingEmail(
            guest,
            f"Your access code for {payload['property_title']}",
            greeting + f"Your door code is: {payload['code']}\n\n"
            "It is valid for your stay only. Please do not share it.\n\n" + summary,
        ))
        notice = HostNotice(
            f"Access code assigned to {code}",
            f"{payload.get('credential_label') or 'Code'} {mask_secret(payload['code'])} for {payload['check_in']}",
        )

    elif event_type == "PreStayWindowReached":
        code_line = f"Your door code is: {payload['code']}\n\n" if payload.get("code") else ""
        emails.append(OutgoingEmail(
            guest,
            f"Your stay at {payload['property_title']} is coming up",
            greeting + f"Your check-in is in {payload['days_until_check_in']} day(s).\n\n{code_line}{summary}",
        ))

    elif event_type == "BookingCompleted":
        emails.append(OutgoingEmail(
            guest,
            f"Thanks for staying at {payload['property_title']}",
            greeting + "We hope you enjoyed your stay.",
        ))

    else:
        logger.warning(f"No messages defined for event {event_type}")

    return emails, notice


def create_host_notice(payload: dict, event_type: str, notice: HostNotice) -> Optional[Notification]:
    User = get_user_model()
    owner = User.objects.filter(properties__id=payload["property_id"]).first()
    if owner is None:
        logger.warning(f"No owner found for property {payload['property_id']}")
        return None
    return Notification.objects.create(
        user=owner,
        event_type=event_type,
        booking_code=payload["confirmation_code"],
        title=notice.title,
        message=notice.message,
    )


def deliver_event(event_type: str, payload: dict) -> dict[str, int]:
    """Send every message for one event. Individual failures are logged, not raised."""
    emails, notice = compose_messages(event_type, payload)
    sent = sum(1 for email in emails if send_email_notification(email.recipient, email.subject, email.body))
    notices = 0
    if notice is not None:
        try:
            notices = int(create_host_notice(payload, event_type, notice) is not None)
        except Exception as e:
            logger.error(f"Failed to store host notice for {payload['confirmation_code']}: {e}", exc_info=True)
    return {"emails": sent, "failed": len(emails) - sent, "notices": notices}
