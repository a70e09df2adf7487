"""Limit/offset pagination for the admin list endpoints."""

from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import LimitOffsetPagination


class StandardLimitOffsetPagination(LimitOffsetPagination):
    """``?limit=&offset=`` paging with a configurable default and hard cap.

    Invalid or missing values fall back to the defaults; ``limit`` above
    the cap is clamped rather than rejected.
    """

    default_limit = settings.ORDER_LIST_DEFAULT_LIMIT
    max_limit = settings.ORDER_LIST_MAX_LIMIT

    def has_more(self, page_length: int) -> bool:
        return self.offset + page_length < self.count
