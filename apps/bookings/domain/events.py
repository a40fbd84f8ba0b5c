"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits and carry enough
denormalized data (guest contact, dates, amounts) for the notification
dispatcher to compose a message without querying back.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class BookingLifecycleEvent(DomainEvent):
    """Fields shared by every booking event; see Booking.event_payload()."""
    booking_id: UUID
    confirmation_code: str
    property_id: int
    property_title: str
    guest_name: str
    guest_email: str
    host_email: str
    check_in: date
    check_out: date
    nights: int
    total_amount: Decimal
    deposit_amount: Decimal
    balance_amount: Decimal
    currency: str


@dataclass(kw_only=True)
class BookingRequested(BookingLifecycleEvent):
    """
    Event: A guest requested a stay

    Triggers:
    - Acknowledge the request to the guest
    - Ask the host to approve or decline
    """
    guest_message: str = ''


@dataclass(kw_only=True)
class BookingApproved(BookingLifecycleEvent):
    """
    Event: Host approved the request (REQUESTED -> APPROVED)

    payment_issue is True when the deposit capture failed and the host has
    to collect manually.
    """
    payment_issue: bool = False
    payment_issue_detail: str = ''


@dataclass(kw_only=True)
class BookingDeclined(BookingLifecycleEvent):
    """Event: Host declined the request (REQUESTED -> DECLINED)"""
    reason: str = ''


@dataclass(kw_only=True)
class BookingConfirmed(BookingLifecycleEvent):
    """Event: Balance settled (APPROVED -> CONFIRMED)"""
    payment_method: str = ''


@dataclass(kw_only=True)
class BookingCancelled(BookingLifecycleEvent):
    """
    Event: Booking cancelled by guest, host or system

    Triggers:
    - Tell the other party
    """
    reason: str = ''
    cancelled_by: str = ''
    refunded: bool = False


@dataclass(kw_only=True)
class BookingCompleted(BookingLifecycleEvent):
    """Event: Stay is over (CONFIRMED -> COMPLETED)"""


@dataclass(kw_only=True)
class CredentialAssigned(BookingLifecycleEvent):
    """
    Event: An access code was assigned to the stay

    Carries the plaintext code; the dispatcher mails it to the guest and
    must not log it.
    """
    credential_id: int
    credential_label: str = ''
    code: str = ''


@dataclass(kw_only=True)
class PreStayWindowReached(BookingLifecycleEvent):
    """
    Event: Check-in is within the property's notice window

    Emitted by the daily sweep when no credential was newly assigned in the
    same pass (a new assignment already produces CredentialAssigned).
    code is set when a credential was assigned earlier.
    """
    days_until_check_in: int
    code: str = ''
