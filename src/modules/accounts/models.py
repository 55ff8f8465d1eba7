"""Saved customer addresses.

Users themselves are Django's ``auth.User``; this module only adds the
address book that checkout fills in.  Addresses are de-duplicated by
street at checkout time (see ``OrderService.checkout``), other fields
are not compared.
"""

from __future__ import annotations

from typing import Any, Dict

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class Address(BaseModel):
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    street = models.CharField(max_length=255)
    city = models.CharField(max_length=120)
    state = models.CharField(max_length=120)
    zip_code = models.CharField(max_length=20)
    country = models.CharField(max_length=120)
    is_default = models.BooleanField(default=False)

    class Meta:
        db_table = "addresses"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["user", "street"], name="addresses_user_street_idx"),
        ]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "is_default": self.is_default,
        }

    def __str__(self) -> str:
        return f"{self.street}, {self.city} ({self.country})"
