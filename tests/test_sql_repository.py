"""Tests for the SQLAlchemy booking store on SQLite."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta, timezone
from threading import Barrier

import pytest
from sqlalchemy.exc import IntegrityError

from courtbook.errors import ConflictError, NotFoundError
from courtbook.schemas.booking_schema import BookingStatus, NewBooking, SkillLevel, StudentType
from courtbook.storage import create_repository
from courtbook.storage.memory import InMemoryBookingRepository
from courtbook.storage.sql import SqlBookingRepository, _is_overlap_violation
from courtbook.tools.booking import BookingService
from tests.conftest import COACH_ID, TZ, at, booking_payload, make_config


def make_candidate(start, minutes=60, coach_id=COACH_ID) -> NewBooking:
    return NewBooking(
        coach_id=coach_id,
        student_name="Ana Costa",
        student_type=StudentType.ADULT,
        group_size=2,
        contact_phone="0412345678",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
    )


@pytest.fixture
def sql_repository(tmp_path) -> SqlBookingRepository:
    repository = SqlBookingRepository.from_url(f"sqlite:///{tmp_path / 'bookings.db'}")
    yield repository
    repository.engine.dispose()


class TestSqlBookingRepository:
    def test_insert_and_get_roundtrip(self, sql_repository):
        booking = sql_repository.insert(make_candidate(at(3, 10)))
        loaded = sql_repository.get(COACH_ID, booking.id)
        assert loaded.id == booking.id
        assert loaded.status == BookingStatus.CONFIRMED
        assert loaded.student_type == StudentType.ADULT
        assert loaded.start_time == at(3, 10)
        assert loaded.end_time == at(3, 11)
        assert loaded.start_time.tzinfo is not None
        assert loaded.created_at.utcoffset() == timedelta(0)

    def test_overlap_rejected(self, sql_repository):
        first = sql_repository.insert(make_candidate(at(3, 10)))
        with pytest.raises(ConflictError) as exc_info:
            sql_repository.insert(make_candidate(at(3, 10, 30)))
        assert exc_info.value.details == {"conflicting_booking_id": first.id}

    def test_back_to_back_allowed(self, sql_repository):
        sql_repository.insert(make_candidate(at(3, 10)))
        sql_repository.insert(make_candidate(at(3, 11)))
        assert len(sql_repository.list_confirmed(COACH_ID, at(3, 0), at(4, 0))) == 2

    def test_overlap_detected_across_offsets(self, sql_repository):
        sql_repository.insert(make_candidate(at(3, 10)))
        with pytest.raises(ConflictError):
            sql_repository.insert(make_candidate(at(3, 10, 30).astimezone(timezone.utc)))

    def test_other_coach_does_not_conflict(self, sql_repository):
        sql_repository.insert(make_candidate(at(3, 10)))
        sql_repository.insert(make_candidate(at(3, 10), coach_id="coach-2"))
        assert len(sql_repository.list_all("coach-2")) == 1

    def test_list_confirmed_filters_and_sorts(self, sql_repository):
        late = sql_repository.insert(make_candidate(at(3, 15)))
        early = sql_repository.insert(make_candidate(at(3, 9)))
        cancelled = sql_repository.insert(make_candidate(at(3, 12)))
        sql_repository.update(COACH_ID, cancelled.id, {"status": BookingStatus.CANCELLED})
        sql_repository.insert(make_candidate(at(5, 9)))

        bookings = sql_repository.list_confirmed(COACH_ID, at(3, 0), at(4, 0))
        assert [b.id for b in bookings] == [early.id, late.id]
        assert len(sql_repository.list_all(COACH_ID)) == 4

    def test_cancelled_booking_frees_interval(self, sql_repository):
        booking = sql_repository.insert(make_candidate(at(3, 10)))
        sql_repository.update(COACH_ID, booking.id, {"status": BookingStatus.CANCELLED})
        assert sql_repository.insert(make_candidate(at(3, 10))).id != booking.id

    def test_update_enum_fields(self, sql_repository):
        booking = sql_repository.insert(make_candidate(at(3, 10)))
        updated = sql_repository.update(
            COACH_ID, booking.id, {"skill_level": SkillLevel.PRO, "student_type": StudentType.KID}
        )
        assert updated.skill_level == SkillLevel.PRO
        assert sql_repository.get(COACH_ID, booking.id).student_type == StudentType.KID

    def test_missing_booking(self, sql_repository):
        with pytest.raises(NotFoundError):
            sql_repository.get(COACH_ID, "missing")
        with pytest.raises(NotFoundError):
            sql_repository.update(COACH_ID, "missing", {"group_size": 2})
        with pytest.raises(NotFoundError):
            sql_repository.delete(COACH_ID, "missing")

    def test_delete_twice(self, sql_repository):
        booking = sql_repository.insert(make_candidate(at(3, 10)))
        sql_repository.delete(COACH_ID, booking.id)
        with pytest.raises(NotFoundError):
            sql_repository.delete(COACH_ID, booking.id)

    def test_wrong_coach_is_not_found(self, sql_repository):
        booking = sql_repository.insert(make_candidate(at(3, 10)))
        with pytest.raises(NotFoundError):
            sql_repository.get("coach-2", booking.id)

    def test_racing_inserts_serialize(self, sql_repository):
        attempts = 6
        barrier = Barrier(attempts)

        def attempt(_):
            barrier.wait()
            try:
                return sql_repository.insert(make_candidate(at(3, 10)))
            except ConflictError:
                return None

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            results = list(pool.map(attempt, range(attempts)))

        assert len([r for r in results if r is not None]) == 1
        assert len(sql_repository.list_confirmed(COACH_ID, at(3, 0), at(4, 0))) == 1


class TestOverlapViolationDetection:
    def test_constraint_name_in_driver_message(self):
        exc = IntegrityError(
            "INSERT INTO bookings ...",
            {},
            Exception('conflicting key value violates exclusion constraint "bookings_no_overlap_per_coach"'),
        )
        assert _is_overlap_violation(exc)

    def test_postgres_exclusion_code(self):
        orig = Exception("exclusion violation")
        orig.pgcode = "23P01"
        assert _is_overlap_violation(IntegrityError("INSERT", {}, orig))

    def test_other_integrity_errors(self):
        exc = IntegrityError("INSERT", {}, Exception("CHECK constraint failed: bookings_group_size_positive"))
        assert not _is_overlap_violation(exc)


class TestCreateRepository:
    def test_memory_url(self):
        assert isinstance(create_repository("memory://"), InMemoryBookingRepository)

    def test_sqlite_url_creates_schema(self, tmp_path):
        repository = create_repository(f"sqlite:///{tmp_path / 'fresh.db'}")
        assert isinstance(repository, SqlBookingRepository)
        assert repository.list_all(COACH_ID) == []
        repository.engine.dispose()


class TestServiceOnSql:
    def test_full_booking_flow(self, sql_repository, now):
        service = BookingService(sql_repository, make_config(), COACH_ID)
        booking = service.create_booking(booking_payload(), now=now)
        with pytest.raises(ConflictError):
            service.create_booking(booking_payload(at(3, 10, 30)), now=now)

        slots = service.get_day_slots(at(3, 0).date(), now=now).slots
        assert len(slots) == 20
        assert all(slot.tzinfo is not None for slot in slots)

        service.cancel_booking(booking.id)
        assert service.get_booking(booking.id).status == BookingStatus.CANCELLED
        assert len(service.get_day_slots(at(3, 0).date(), now=now).slots) == 23
        assert service.list_bookings(at(3, 0), at(4, 0)) == []

    def test_returned_times_compare_with_local_times(self, sql_repository, now):
        service = BookingService(sql_repository, make_config(), COACH_ID)
        booking = service.create_booking(booking_payload(), now=now)
        stored = service.get_booking(booking.id)
        assert stored.start_time.astimezone(TZ) == at(3, 10)
