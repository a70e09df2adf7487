"""Unit tests for the delivery status progression table."""

from __future__ import annotations

import pytest

from modules.orders.constants import ORDER_STATUSES, is_valid_status, next_status

pytestmark = pytest.mark.unit


class TestNextStatus:
    @pytest.mark.parametrize(
        ("current", "expected"),
        [
            ("new", "confirmed"),
            ("confirmed", "delivery_booked"),
            ("delivery_booked", "in_transit"),
            ("in_transit", "delivered"),
        ],
    )
    def test_returns_following_status(self, current, expected):
        assert next_status(current) == expected

    def test_delivered_is_final(self):
        assert next_status("delivered") is None

    @pytest.mark.parametrize("unknown", ["shipped", "NEW", "", None, "cancelled"])
    def test_unknown_status_has_no_next(self, unknown):
        assert next_status(unknown) is None

    def test_walking_the_table_visits_every_status_once(self):
        seen = ["new"]
        upcoming = next_status("new")
        while upcoming is not None:
            seen.append(upcoming)
            upcoming = next_status(upcoming)
        assert tuple(seen) == ORDER_STATUSES


class TestIsValidStatus:
    def test_known_statuses_are_valid(self):
        assert all(is_valid_status(status) for status in ORDER_STATUSES)

    def test_other_strings_are_invalid(self):
        assert not is_valid_status("pending")
        assert not is_valid_status(None)
