"""Account DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.models import Address


class AddressInputSerializer(serializers.Serializer):
    """Validates an address submitted at checkout."""

    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=120)
    state = serializers.CharField(max_length=120)
    zip_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=120)
    is_default = serializers.BooleanField(required=False, default=False)


class ProfileInputSerializer(serializers.Serializer):
    """Profile fields checkout is allowed to change."""

    first_name = serializers.CharField(max_length=150, required=False)
    last_name = serializers.CharField(max_length=150, required=False)


class AddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = Address
        fields = [
            "id",
            "street",
            "city",
            "state",
            "zip_code",
            "country",
            "is_default",
            "created_at",
        ]
        read_only_fields = fields
