"""Webhook signature verification.

The gateway signs the raw request body with HMAC-SHA512 keyed by the
merchant secret and sends the hex digest in a header.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def is_valid_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Constant-time check of ``signature`` against the body's HMAC.

    An empty secret never validates anything.
    """
    if not signature or not secret:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())
