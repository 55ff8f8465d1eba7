"""Account API views."""

from __future__ import annotations

from rest_framework.mixins import ListModelMixin
from rest_framework.viewsets import GenericViewSet

from modules.accounts.models import Address
from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.accounts.serializers import AddressSerializer


class AddressViewSet(ListModelMixin, GenericViewSet):
    """GET /api/v1/addresses/: the caller's saved addresses."""

    queryset = Address.objects.none()
    serializer_class = AddressSerializer
    pagination_class = None

    def get_queryset(self):
        return AccountDjangoRepository().list_addresses(self.request.user.pk)
