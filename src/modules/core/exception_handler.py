"""DRF exception handler.

Expected failures (validation, auth, domain errors translated by the
views) keep DRF's default response.  Anything else is logged with its
traceback and answered with a generic 500 body so internal details
never reach the client.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

GENERIC_ERROR_DETAIL = "Internal server error."


def api_exception_handler(
    exc: Exception, context: Dict[str, Any]
) -> Optional[Response]:
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    logger.exception(
        "api.unhandled_exception",
        view=view.__class__.__name__ if view is not None else None,
        error_type=type(exc).__name__,
    )
    return Response(
        {"detail": GENERIC_ERROR_DETAIL},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
