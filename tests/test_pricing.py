"""Unit tests for nights counting and cart pricing."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from guesthouse.services.pricing import (
    DEFAULT_GST_PERCENTAGE,
    compute_special_discount_totals,
    compute_totals,
    count_nights,
    money,
)


def at(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


class TestCountNights:
    """Tests for count_nights."""

    def test_partial_day_rounds_up(self):
        """14:00 on the 15th to 11:00 on the 18th is three started nights."""
        assert count_nights(at("2025-11-15T14:00"), at("2025-11-18T11:00")) == 3

    def test_exact_days(self):
        assert count_nights(at("2025-11-15T12:00"), at("2025-11-17T12:00")) == 2

    @pytest.mark.parametrize("delta", [timedelta(0), timedelta(hours=-1), timedelta(days=-3)])
    def test_non_positive_range_is_zero(self, delta):
        """Reversed or empty ranges never produce negative nights."""
        check_in = at("2025-11-15T14:00")
        assert count_nights(check_in, check_in + delta) == 0

    def test_missing_dates(self):
        assert count_nights(None, at("2025-11-15T14:00")) == 0
        assert count_nights(at("2025-11-15T14:00"), None) == 0

    def test_naive_and_aware_are_comparable(self):
        """Naive timestamps are read as UTC."""
        assert count_nights(datetime(2025, 1, 1, 12), at("2025-01-02T12:00")) == 1


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_single_room_three_nights(self):
        """One 2500 room at 12% over three nights."""
        totals = compute_totals(
            [{"room_id": "r1", "price": 2500, "quantity": 1}],
            at("2025-11-15T14:00"),
            at("2025-11-18T11:00"),
            {"r1": Decimal("12")},
        )
        assert totals.nights == 3
        assert totals.subtotal == Decimal("7500")
        assert totals.tax == Decimal("900")
        assert totals.grand_total == Decimal("8400")

    def test_two_lines_with_default_gst(self):
        """Two lines totalling 3000 a night, two nights, GST unknown so 12% applies."""
        totals = compute_totals(
            [
                {"roomId": "a", "price": 1000, "quantity": 2},
                {"roomId": "b", "price": 1000, "quantity": 1},
            ],
            at("2025-11-15T12:00"),
            at("2025-11-17T12:00"),
        )
        assert totals.subtotal == Decimal("6000")
        assert totals.tax == Decimal("720")
        assert totals.grand_total == Decimal("6720")

    def test_mixed_prices_scale_by_nights(self):
        """Every line is price x quantity x nights."""
        totals = compute_totals(
            [
                {"roomId": "a", "price": 1000, "quantity": 2},
                {"roomId": "b", "price": 2000, "quantity": 1},
            ],
            at("2025-11-15T12:00"),
            at("2025-11-17T12:00"),
        )
        assert totals.subtotal == Decimal("8000")
        assert totals.tax == Decimal("960")
        assert totals.grand_total == Decimal("8960")

    def test_grand_total_is_subtotal_plus_tax(self):
        """Per-room GST is applied per line and summed."""
        entries = [
            {"room_id": "a", "price": "1999.99", "quantity": 3},
            {"room_id": "b", "price": "3333.33", "quantity": 1},
            {"room_id": "c", "price": "750", "quantity": 2},
        ]
        details = {"a": Decimal("5"), "b": {"gst_percentage": Decimal("18")}}
        totals = compute_totals(entries, at("2025-03-01T14:00"), at("2025-03-05T11:00"), details)

        expected_tax = sum(
            (line.subtotal * line.gst_percentage / 100 for line in totals.lines), Decimal("0")
        )
        assert totals.tax == expected_tax
        assert totals.grand_total == totals.subtotal + totals.tax
        assert [line.gst_percentage for line in totals.lines] == [
            Decimal("5"), Decimal("18"), DEFAULT_GST_PERCENTAGE,
        ]

    def test_zero_nights_is_empty(self):
        check_in = at("2025-11-15T14:00")
        totals = compute_totals([{"room_id": "a", "price": 1000, "quantity": 1}], check_in, check_in)
        assert totals.nights == 0
        assert totals.grand_total == Decimal("0")
        assert totals.lines == []

    def test_zero_quantity_lines_are_ignored(self):
        totals = compute_totals(
            [{"room_id": "a", "price": 1000, "quantity": 0}],
            at("2025-11-15T12:00"),
            at("2025-11-16T12:00"),
        )
        assert totals.lines == []
        assert totals.subtotal == Decimal("0")

    def test_as_dict_is_json_friendly(self):
        totals = compute_totals(
            [{"room_id": "a", "price": 1000, "quantity": 1}],
            at("2025-11-15T12:00"),
            at("2025-11-16T12:00"),
        )
        assert totals.as_dict() == {"nights": 1, "subtotal": 1000.0, "tax": 120.0, "grandTotal": 1120.0}


class TestSpecialDiscount:
    """Tests for the zero-price offline booking mode."""

    def test_everything_is_free(self):
        totals = compute_special_discount_totals(
            [{"room_id": "a", "price": 4000, "quantity": 2}, {"room_id": "b", "price": 2500, "quantity": 1}],
            at("2025-11-15T14:00"),
            at("2025-11-18T11:00"),
        )
        assert totals.nights == 3
        assert totals.subtotal == Decimal("0")
        assert totals.tax == Decimal("0")
        assert totals.grand_total == Decimal("0")
        assert len(totals.lines) == 2


class TestMoney:
    def test_rounds_half_up_to_paise(self):
        assert money(Decimal("10.005")) == Decimal("10.01")
        assert money("7.004") == Decimal("7.00")
