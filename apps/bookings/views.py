"""API views for the booking engine.

Two surfaces: an anonymous guest API (request, look up, cancel, quote) and
the owner's host API (list, approve, decline, mark balance paid, cancel).
Domain errors are mapped to HTTP here; payment outcomes are reported in the
response body and never turn into HTTP errors.
"""

from __future__ import annotations

import logging

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .application.command_handlers import (
    ApproveBookingCommand,
    ApproveBookingHandler,
    BookingResult,
    CancelBookingCommand,
    CancelBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    DeclineBookingCommand,
    DeclineBookingHandler,
    MarkBalancePaidCommand,
    MarkBalancePaidHandler,
)
from .domain.exceptions import (
    BookingError,
    DateConflict,
    GuestLimitExceeded,
    IllegalTransition,
    InvalidRange,
    NotFound,
    PropertyUnavailable,
    RotationContention,
    StayLengthViolation,
)
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    BookingRequestSerializer,
    CancelSerializer,
    DeclineSerializer,
    GuestCancelSerializer,
    HostBookingSerializer,
    MarkBalancePaidSerializer,
    PublicBookingSerializer,
    QuoteQuerySerializer,
)
from .services import get_bookable_property, quote_stay

logger = logging.getLogger(__name__)

NOT_AVAILABLE_MESSAGE = "The selected dates are not available."


def booking_error_response(exc: BookingError) -> Response:
    """Translate a domain error into an API response."""
    if isinstance(exc, DateConflict):
        # Never expose anything about the booking that holds the dates
        return Response({"detail": NOT_AVAILABLE_MESSAGE, "code": "date_conflict"}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, IllegalTransition):
        return Response(
            {"detail": str(exc), "code": "illegal_transition", "current_status": str(exc.current)},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, NotFound):
        return Response({"detail": f"{exc.kind} not found.", "code": "not_found"}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, PropertyUnavailable):
        return Response({"detail": str(exc), "code": "property_unavailable"}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, RotationContention):
        return Response({"detail": "Access codes are busy, try again.", "code": "rotation_busy"}, status=status.HTTP_409_CONFLICT)

    codes = {
        InvalidRange: "invalid_range",
        StayLengthViolation: "stay_length_violation",
        GuestLimitExceeded: "guest_limit_exceeded",
    }
    code = next((c for cls, c in codes.items() if isinstance(exc, cls)), "booking_error")
    return Response({"detail": str(exc), "code": code}, status=status.HTTP_400_BAD_REQUEST)


def _payment_payload(result: BookingResult):
    return result.payment.as_dict() if result.payment else None


def _credential_payload(result: BookingResult):
    credential = result.credential
    if credential is None:
        return None
    if not credential.assigned:
        return {"assigned": False, "reason": credential.reason}
    return {"assigned": True, "credential_id": credential.credential_id, "label": credential.label}


# ============================================================================
# GUEST API
# ============================================================================

class PublicBookingCreateView(APIView):
    """POST a stay request. Returns the redacted booking and the deposit client secret."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def post(self, request):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        command = CreateBookingCommand(**serializer.validated_data)

        try:
            result = CreateBookingHandler().handle(command)
        except BookingError as exc:
            if isinstance(exc, DateConflict):
                logger.info(f"Rejected request for property {command.property_id}: {exc}")
            return booking_error_response(exc)

        payment = result.payment
        data = {
            "booking": PublicBookingSerializer(result.booking).data,
            "payment": {
                "hold_opened": bool(result.booking.gateway_hold_ref),
                "client_secret": payment.client_secret if payment else "",
            },
        }
        return Response(data, status=status.HTTP_201_CREATED)


class PublicBookingDetailView(APIView):
    """GET a booking by its confirmation code."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get(self, request, code: str):  # type: ignore
        booking = Booking.objects.select_related("property").filter(confirmation_code=code.upper()).first()
        if booking is None:
            return booking_error_response(NotFound("Booking", code))
        return Response(PublicBookingSerializer(booking).data)


class PublicBookingCancelView(APIView):
    """POST to cancel a booking; the guest proves ownership with the booking email."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def post(self, request, code: str):  # type: ignore
        serializer = GuestCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = Booking.objects.filter(
            confirmation_code=code.upper(),
            guest_email__iexact=serializer.validated_data["guest_email"],
        ).first()
        if booking is None:
            return booking_error_response(NotFound("Booking", code))

        try:
            result = CancelBookingHandler().handle(CancelBookingCommand(
                booking_id=booking.id,
                reason=serializer.validated_data["reason"],
                cancelled_by=Booking.CancelledBy.GUEST,
            ))
        except BookingError as exc:
            return booking_error_response(exc)

        return Response({
            "booking": PublicBookingSerializer(result.booking).data,
            "refunded": bool(result.payment and result.payment.refunded),
        })


class PropertyQuoteView(APIView):
    """GET availability and price breakdown for candidate dates."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get(self, request, property_id: int):  # type: ignore
        serializer = QuoteQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        check_in = serializer.validated_data["check_in"]
        check_out = serializer.validated_data["check_out"]

        try:
            property_obj = get_bookable_property(property_id)
            _, quote = quote_stay(property_obj, check_in, check_out)
        except (NotFound, PropertyUnavailable) as exc:
            return booking_error_response(exc)
        except BookingError as exc:
            code = booking_error_response(exc).data["code"]
            detail = NOT_AVAILABLE_MESSAGE if isinstance(exc, DateConflict) else str(exc)
            return Response({"available": False, "reason": code, "detail": detail})

        return Response({"available": True, "breakdown": quote.as_dict()})


# ============================================================================
# HOST API
# ============================================================================

class IsPropertyOwner(permissions.BasePermission):
    """Hosts only see and act on bookings of their own properties."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if getattr(user, "is_staff", False):
            return True
        return obj.property.owner_id == user.id


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """Owner's bookings plus the workflow commands."""

    serializer_class = HostBookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsPropertyOwner]
    filterset_class = BookingFilterSet

    def get_queryset(self):  # type: ignore
        qs = Booking.objects.select_related("property", "access_credential")
        user = self.request.user
        if getattr(user, "is_staff", False):
            return qs
        return qs.for_owner(user)

    def _respond(self, result: BookingResult) -> Response:
        return Response({
            "booking": HostBookingSerializer(result.booking, context=self.get_serializer_context()).data,
            "payment": _payment_payload(result),
            "credential": _credential_payload(result),
        })

    def _run(self, handler, command) -> Response:
        try:
            result = handler.handle(command)
        except BookingError as exc:
            return booking_error_response(exc)
        return self._respond(result)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        return self._run(ApproveBookingHandler(), ApproveBookingCommand(booking_id=booking.id))

    @action(detail=True, methods=["post"])
    def decline(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        serializer = DeclineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            DeclineBookingHandler(),
            DeclineBookingCommand(booking_id=booking.id, reason=serializer.validated_data["reason"]),
        )

    @action(detail=True, methods=["post"], url_path="mark-balance-paid")
    def mark_balance_paid(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        serializer = MarkBalancePaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            MarkBalancePaidHandler(),
            MarkBalancePaidCommand(booking_id=booking.id, **serializer.validated_data),
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            CancelBookingHandler(),
            CancelBookingCommand(
                booking_id=booking.id,
                reason=serializer.validated_data["reason"],
                cancelled_by=Booking.CancelledBy.HOST,
            ),
        )

    @action(detail=True, methods=["post"], url_path="assign-credential")
    def assign_credential(self, request, pk=None):  # type: ignore
        from apps.access.services import assign_credential

        booking = self.get_object()
        try:
            credential = assign_credential(booking.id)
        except BookingError as exc:
            return booking_error_response(exc)
        booking.refresh_from_db()
        return self._respond(BookingResult(booking=booking, credential=credential))
