"""FilterSet for the host booking list."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import PAYMENT_STATUS_CHOICES, STATUS_CHOICES, Booking


class BookingFilterSet(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=PAYMENT_STATUS_CHOICES)
    property = django_filters.NumberFilter(field_name="property_id")
    payment_issue = django_filters.BooleanFilter()
    check_in_from = django_filters.DateFilter(field_name="check_in", lookup_expr="gte")
    check_in_to = django_filters.DateFilter(field_name="check_in", lookup_expr="lte")
    code = django_filters.CharFilter(field_name="confirmation_code", lookup_expr="iexact")

    class Meta:
        model = Booking
        fields = ["status", "payment_status", "property", "payment_issue"]
