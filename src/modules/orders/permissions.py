"""Permission guarding the status override endpoint."""

from __future__ import annotations

import hmac

import structlog
from django.conf import settings
from rest_framework.permissions import BasePermission

logger = structlog.get_logger(__name__)

OVERRIDE_TOKEN_HEADER = "X-Order-Override-Token"


class HasOrderOverrideToken(BasePermission):
    """Allow the request only when it carries the configured override token.

    An empty ``ORDER_OVERRIDE_TOKEN`` setting refuses every request.
    """

    message = "A valid order override token is required"

    def has_permission(self, request, view) -> bool:
        expected = settings.ORDER_OVERRIDE_TOKEN
        supplied = request.headers.get(OVERRIDE_TOKEN_HEADER, "")
        if not expected or not supplied:
            allowed = False
        else:
            allowed = hmac.compare_digest(supplied.encode(), expected.encode())
        if not allowed:
            logger.warning("order.override_refused", path=request.path)
        return allowed
