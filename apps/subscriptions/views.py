"""Subscription status API."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .services import subscription_status


class SubscriptionStatusView(APIView):
    """Текущая подписка пользователя и остаток объявлений."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        return Response(subscription_status(request.user.id))
