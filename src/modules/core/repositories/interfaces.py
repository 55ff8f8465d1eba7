"""Base contract for the storefront repositories.

``OrderService`` receives repositories through its constructor and only
talks to these abstractions, so unit tests can hand it fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar
from uuid import UUID

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Load and store one aggregate type ``T``."""

    @abstractmethod
    def get_by_id(self, id: UUID | str) -> Optional[T]:
        """``None`` when no row has that primary key."""

    @abstractmethod
    def save(self, entity: T) -> T: ...
