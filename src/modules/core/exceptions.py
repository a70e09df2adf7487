"""JSON error envelope for every API failure.

Every error leaves the API as ``{"success": false, "error": "<message>"}``.
DRF's own exceptions keep their status code; anything DRF does not know
about becomes a 500 carrying the raw exception text.
"""

from __future__ import annotations

from typing import Any

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


def error_response(message: str, status_code: int) -> Response:
    """Build the standard failure payload."""
    return Response({"success": False, "error": message}, status=status_code)


def _flatten_detail(detail: Any) -> str:
    """Collapse DRF's nested ``detail`` structures into one readable line."""
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            message = _flatten_detail(value)
            parts.append(message if field == "non_field_errors" else f"{field}: {message}")
        return "; ".join(parts)
    if isinstance(detail, list):
        return " ".join(_flatten_detail(item) for item in detail)
    return str(detail)


def envelope_exception_handler(exc: Exception, context: dict) -> Response:
    response = exception_handler(exc, context)

    if response is not None:
        response.data = {
            "success": False,
            "error": _flatten_detail(getattr(exc, "detail", response.data)),
        }
        return response

    view = context.get("view")
    logger.exception(
        "api.unhandled_error",
        view=view.__class__.__name__ if view else None,
        error=str(exc),
    )
    return error_response(str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
