"""Account domain exceptions."""

from __future__ import annotations


class UserNotFound(Exception):
    """The user referenced by a request does not exist or is inactive."""
