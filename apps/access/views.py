"""Host API for a property's access credentials."""

from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.domain.exceptions import NotFound
from apps.bookings.models import Booking
from apps.properties.models import Property

from .models import AccessCredential, CredentialRotation
from .serializers import (
    AccessCredentialSerializer,
    AccessCredentialWriteSerializer,
    CredentialHistorySerializer,
    CredentialReorderSerializer,
)
from .services import next_order_index, reorder_credentials

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


class IsPropertyOwnerOrStaff(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):  # type: ignore
        user = request.user
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        property_obj = obj if isinstance(obj, Property) else obj.property
        return property_obj.owner_id == user.id


class AccessCredentialViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Door codes of one property, in rotation order.

    Credentials are never deleted: DELETE deactivates, so past bookings keep
    pointing at the code they were given.
    """

    property_lookup_url_kwarg = "property_id"
    permission_classes = [permissions.IsAuthenticated, IsPropertyOwnerOrStaff]
    pagination_class = None

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        property_id = kwargs.get(self.property_lookup_url_kwarg)
        self.property_object = get_object_or_404(Property, pk=property_id)
        self.check_object_permissions(request, self.property_object)

    def get_property(self) -> Property:
        return self.property_object

    def get_queryset(self):  # type: ignore
        qs = AccessCredential.objects.filter(property=self.get_property()).rotation_order()
        if self.request.query_params.get("active") == "true":
            qs = qs.active()
        return qs

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return AccessCredentialWriteSerializer
        return AccessCredentialSerializer

    def list(self, request, *args, **kwargs):  # type: ignore
        property_obj = self.get_property()
        rotation = CredentialRotation.objects.filter(property=property_obj).first()
        credentials = AccessCredentialSerializer(self.get_queryset(), many=True).data
        return Response({
            "rotating_codes_enabled": property_obj.rotating_codes_enabled,
            "cursor": rotation.cursor if rotation else 0,
            "credentials": credentials,
        })

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        property_obj = self.get_property()
        credential = serializer.save(property=property_obj, order_index=next_order_index(property_obj.pk))
        logger.info(f"Added credential #{credential.order_index} to property {property_obj.pk}")
        return Response(AccessCredentialSerializer(credential).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):  # type: ignore
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(AccessCredentialSerializer(serializer.instance).data)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        credential = self.get_object()
        if credential.is_active:
            credential.is_active = False
            credential.save(update_fields=["is_active", "updated_at"])
            logger.info(f"Deactivated credential {credential.pk} of property {credential.property_id}")
        return Response(AccessCredentialSerializer(credential).data)

    @action(detail=False, methods=["post"])
    def reorder(self, request, property_id=None):  # type: ignore
        serializer = CredentialReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            ordered = reorder_credentials(self.get_property().pk, serializer.validated_data["credential_ids"])
        except NotFound as exc:
            return Response(
                {"detail": f"Credential {exc.key} does not belong to this property."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(AccessCredentialSerializer(ordered, many=True).data)

    @action(detail=False, methods=["get"])
    def history(self, request, property_id=None):  # type: ignore
        bookings = (
            Booking.objects.filter(property=self.get_property(), access_credential__isnull=False)
            .select_related("access_credential")
            .order_by("-credential_assigned_at")[:HISTORY_LIMIT]
        )
        return Response(CredentialHistorySerializer(bookings, many=True).data)
