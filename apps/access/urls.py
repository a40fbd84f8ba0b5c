"""URL routing for a property's access credentials."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import AccessCredentialViewSet

credential_list = AccessCredentialViewSet.as_view({"get": "list", "post": "create"})
credential_detail = AccessCredentialViewSet.as_view(
    {"get": "retrieve", "patch": "partial_update", "put": "update", "delete": "destroy"}
)
credential_reorder = AccessCredentialViewSet.as_view({"post": "reorder"})
credential_history = AccessCredentialViewSet.as_view({"get": "history"})

urlpatterns = [
    path("", credential_list, name="access-credential-list"),
    path("reorder/", credential_reorder, name="access-credential-reorder"),
    path("history/", credential_history, name="access-credential-history"),
    path("<int:pk>/", credential_detail, name="access-credential-detail"),
]
