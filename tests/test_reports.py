"""Tests for dashboard and report aggregation."""

from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from guesthouse.services.reports_service import (
    ReportData,
    dashboard_stats,
    load_report_data,
    revenue_series,
    room_type_ranking,
    status_distribution,
)

TODAY = date(2025, 11, 16)


def room(room_id, room_type="Deluxe", active=True):
    return SimpleNamespace(id=room_id, room_type=room_type, is_active=active)


def booking(booking_id, check_in, check_out, status="confirmed", payment_status="paid", total="5600", nights=None):
    return SimpleNamespace(
        id=booking_id,
        check_in=check_in,
        check_out=check_out,
        status=status,
        payment_status=payment_status,
        total_amount=total,
        total_nights=nights,
    )


def item(booking_id, room_id, subtotal="5000", tax="600", status="reserved"):
    return SimpleNamespace(booking_id=booking_id, room_id=room_id, line_subtotal=subtotal, line_tax=tax, status=status)


def dt(text):
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


@pytest.fixture
def data():
    return ReportData(
        bookings=[
            booking("b1", dt("2025-11-15T14:00"), dt("2025-11-17T11:00"), nights=2),
            booking("b2", dt("2025-11-16T14:00"), dt("2025-11-18T11:00"), status="pending",
                    payment_status="pending", total="4480", nights=2),
            booking("b3", dt("2025-10-01T14:00"), dt("2025-10-02T11:00"), status="checked-out",
                    total="2240", nights=1),
            booking("b4", dt("2025-11-16T14:00"), dt("2025-11-17T11:00"), status="cancelled", total="9999"),
        ],
        items=[
            item("b1", "r1"),
            item("b2", "r2", subtotal="4000", tax="480"),
            item("b3", "r3", subtotal="2000", tax="240"),
            item("b4", "r1", status="cancelled"),
        ],
        rooms=[room("r1"), room("r2", "Standard"), room("r3", "Standard"), room("r4", "Suite", active=False)],
    )


class TestDashboardStats:
    """Tests for dashboard_stats."""

    def test_counts(self, data):
        stats = dashboard_stats(data, today=TODAY)
        assert stats["totalBookings"] == 4
        assert stats["activeBookings"] == 1
        assert stats["pendingBookings"] == 1
        assert stats["totalRooms"] == 4
        assert stats["activeRooms"] == 3
        assert stats["todayCheckIns"] == 1
        assert stats["todayCheckOuts"] == 0
        assert stats["occupiedTonight"] == 2
        assert stats["occupancyToday"] == pytest.approx(0.6667)
        assert stats["occupancyTodayPercent"] == pytest.approx(66.7)
        assert stats["monthlyRevenue"] == 5600.0

    def test_no_rooms_no_division_error(self):
        stats = dashboard_stats(ReportData(bookings=[], items=[], rooms=[]), today=TODAY)
        assert stats["occupancyToday"] == 0
        assert stats["monthlyRevenue"] == 0.0

    def test_malformed_records_count_as_zero(self):
        broken = [
            SimpleNamespace(id="x1", check_in=None, check_out=None, status="confirmed",
                            payment_status="paid", total_amount="n/a", total_nights=None),
            SimpleNamespace(id="x2", check_in="not a date", check_out="2025-11-20", status="confirmed",
                            payment_status="paid", total_amount=None, total_nights=None),
        ]
        stats = dashboard_stats(ReportData(bookings=broken, items=[], rooms=[room("r1")]), today=TODAY)
        assert stats["totalBookings"] == 2
        assert stats["monthlyRevenue"] == 0.0
        assert stats["occupiedTonight"] == 0


class TestRevenueSeries:
    def test_monthly(self, data):
        series = revenue_series(data, "monthly", today=TODAY)
        assert len(series) == 12
        assert series[-1]["period"] == "2025-11"
        assert series[-1]["revenue"] == 5600.0
        assert series[-1]["bookings"] == 2
        assert series[-1]["bookedRoomNights"] == 4
        assert series[-2]["period"] == "2025-10"
        assert series[-2]["revenue"] == 2240.0
        # 1 room-night over 3 active rooms x 31 days
        assert series[-2]["occupancy"] == pytest.approx(1 / 93, abs=1e-4)
        assert series[-2]["occupancyPercent"] == pytest.approx(1.1)

    def test_weekly_buckets_start_on_monday(self, data):
        series = revenue_series(data, "weekly", today=TODAY)
        assert len(series) == 8
        assert series[-1]["start"] == "2025-11-10"
        assert series[-1]["end"] == "2025-11-17"

    def test_yearly(self, data):
        series = revenue_series(data, "yearly", today=TODAY)
        assert [p["period"] for p in series] == ["2021", "2022", "2023", "2024", "2025"]
        assert series[-1]["revenue"] == 7840.0

    def test_unknown_period(self, data):
        with pytest.raises(ValueError):
            revenue_series(data, "daily", today=TODAY)

    def test_no_rooms(self):
        series = revenue_series(ReportData(bookings=[], items=[], rooms=[]), "monthly", today=TODAY)
        assert all(p["occupancy"] == 0 and p["occupancyPercent"] == 0 for p in series)


class TestRoomTypeRanking:
    def test_ranked_by_paid_revenue(self, data):
        ranking = room_type_ranking(data)
        assert [r["roomType"] for r in ranking] == ["Deluxe", "Standard"]
        assert ranking[0] == {"roomType": "Deluxe", "bookings": 1, "revenue": 5600.0, "roomNights": 2}
        assert ranking[1] == {"roomType": "Standard", "bookings": 2, "revenue": 2240.0, "roomNights": 3}

    def test_items_for_deleted_rooms_are_skipped(self, data):
        data.items.append(item("b1", "gone"))
        assert {r["roomType"] for r in room_type_ranking(data)} == {"Deluxe", "Standard"}


class TestStatusDistribution:
    def test_every_status_is_listed(self, data):
        dist = {d["status"]: d for d in status_distribution(data)}
        assert set(dist) == {"pending", "confirmed", "checked-in", "checked-out", "cancelled"}
        assert dist["confirmed"]["count"] == 1
        assert dist["confirmed"]["percentage"] == 25.0
        assert dist["checked-in"]["count"] == 0

    def test_empty(self):
        assert all(d["percentage"] == 0 for d in status_distribution(ReportData([], [], [])))


class TestLoadReportData:
    def test_reads_tables(self, db, rooms):
        data = load_report_data(db)
        assert len(data.rooms) == 6
        assert data.bookings == []
        assert dashboard_stats(data)["activeRooms"] == 6
