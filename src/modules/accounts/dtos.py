"""Account DTOs.

- ``AddressDTO``: a postal address as submitted at checkout.
- ``ProfileUpdateDTO``: the whitelisted profile fields checkout may
  change.  Anything not declared here is never written to the user.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class AddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: str
    city: str
    state: str
    zip_code: str
    country: str
    is_default: bool = False

    @field_validator("street", "city", "state", "zip_code", "country")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Address fields must not be blank.")
        return v.strip()

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class ProfileUpdateDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def changes(self) -> Dict[str, str]:
        """Fields that were actually supplied."""
        return {k: v for k, v in self.model_dump().items() if v is not None}
