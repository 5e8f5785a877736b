"""Tests for the background expiry job, seeding and invoice rendering."""

from datetime import datetime, timedelta, timezone

from conftest import stay

from guesthouse.models.booking import Booking
from guesthouse.models.permission import Permission
from guesthouse.models.room import Room
from guesthouse.models.user import User
from guesthouse.seed import ROOMS, run as run_seed
from guesthouse.services.booking_service import BookingLine, BookingRequest, booking_out, create_booking
from guesthouse.services.invoice_service import render_invoice_pdf_bytes
from guesthouse.tasks import worker_jobs


class TestExpireJob:
    def test_cancels_stale_holds(self, db, rooms, customer):
        check_in, check_out = stay()
        booking = create_booking(db, BookingRequest(check_in, check_out, [BookingLine("room-301")]), customer)
        booking.created_at = datetime.now(timezone.utc) - timedelta(hours=1)
        db.commit()

        assert worker_jobs.expire_pending_bookings(db) == {"expired": 1}
        assert db.get(Booking, booking.id).status == "cancelled"

    def test_nothing_to_do(self, db):
        assert worker_jobs.expire_pending_bookings(db) == {"expired": 0}


class TestSeed:
    def test_seed_is_repeatable(self, db):
        run_seed(db)
        run_seed(db)
        assert db.query(Room).count() == sum(len(numbers) for *_, numbers in ROOMS)
        assert {u.role for u in db.query(User).all()} == {"owner", "manager", "staff", "accountant"}
        assert db.query(Permission).count() > 0


class TestInvoice:
    def test_renders_pdf(self, db, rooms, customer):
        check_in, check_out = stay()
        booking = create_booking(db, BookingRequest(check_in, check_out, [BookingLine("room-201", 2)]), customer)
        pdf = render_invoice_pdf_bytes(booking=booking_out(db, booking), property_info={"name": "Hill View"})
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 500


class TestCeleryConfig:
    def test_plain_redis_url_untouched(self):
        from guesthouse.tasks.celery_app import broker_url

        assert broker_url("redis://localhost:6379/0") == "redis://localhost:6379/0"

    def test_tls_url_gets_cert_reqs(self):
        from guesthouse.tasks.celery_app import broker_url

        assert "ssl_cert_reqs=CERT_NONE" in broker_url("rediss://cache.example:6380/0")
        assert broker_url("rediss://h:6380/0?ssl_cert_reqs=CERT_REQUIRED").count("ssl_cert_reqs") == 1

    def test_beat_runs_hold_expiry(self):
        from guesthouse.tasks.celery_app import celery

        entry = celery.conf.beat_schedule["expire-pending-bookings"]
        assert entry["task"] == "guesthouse.tasks.jobs.expire_pending_bookings"
        assert entry["schedule"] == 60.0


class TestBootScript:
    """start_api runs migrations against the configured database, then execs uvicorn."""

    def test_migrate_targets_head(self, monkeypatch):
        import start_api

        seen = []
        monkeypatch.setattr(start_api.command, "upgrade", lambda cfg, rev: seen.append((cfg, rev)))
        start_api.migrate()

        cfg, rev = seen[0]
        assert rev == "head"
        assert cfg.get_main_option("sqlalchemy.url") == start_api.settings.DATABASE_URL

    def test_serve_execs_uvicorn_on_port(self, monkeypatch):
        import start_api

        seen = []
        monkeypatch.setenv("PORT", "9100")
        monkeypatch.setattr(start_api.os, "execv", lambda path, argv: seen.append(argv))
        start_api.serve()

        assert seen[0][-5:] == ["guesthouse.main:app", "--host", "0.0.0.0", "--port", "9100"]
