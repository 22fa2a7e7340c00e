"""Property API views."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.subscriptions.services import consume_listing

from .models import Property, RatePlan
from .serializers import PropertySerializer, RatePlanSerializer


def _is_staff(user) -> bool:
    return getattr(user, "is_staff", False) or getattr(user, "is_superuser", False)


class IsPropertyOwnerOrAdmin(permissions.BasePermission):
    """Позволяет управлять объектом его владельцу и персоналу."""

    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj: Property):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        return _is_staff(user) or obj.owner_id == user.id


class PropertyViewSet(viewsets.ModelViewSet):
    """Viewset для управления объектами недвижимости."""

    queryset = Property.objects.select_related("owner").prefetch_related("rate_plans__blackout_dates")
    serializer_class = PropertySerializer
    permission_classes = [IsPropertyOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["city", "status"]
    ordering_fields = ["created_at", "title"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_authenticated:
            return qs.filter(status=Property.Status.ACTIVE)
        if _is_staff(user):
            return qs
        return qs.filter(Q(status=Property.Status.ACTIVE) | Q(owner=user))

    def perform_create(self, serializer):  # type: ignore
        serializer.save(owner=self.request.user)

    @action(detail=True, methods=["post"])
    def activate(self, request, pk=None):  # type: ignore
        """Публикация объекта: после этого его можно бронировать."""
        prop: Property = self.get_object()  # type: ignore
        if prop.status != Property.Status.ACTIVE and not _is_staff(request.user):
            if consume_listing(request.user.id) is None:
                raise PermissionDenied("No listings left: buy or renew a subscription to publish.")
        prop.activate()
        return Response(self.get_serializer(prop).data, status=status.HTTP_200_OK)


class RatePlanViewSet(viewsets.ReadOnlyModelViewSet):
    """Active rate plans: visit fees, stay prices and subscription packages."""

    serializer_class = RatePlanSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["kind", "property", "is_default"]
    lookup_field = "code"

    def get_queryset(self):  # type: ignore
        return (
            RatePlan.objects.filter(is_active=True)
            .exclude(property__status__in=[Property.Status.DRAFT, Property.Status.INACTIVE])
            .select_related("property")
            .prefetch_related("blackout_dates")
        )
