"""
SQLAlchemy-backed booking store.

The overlap guarantee is pushed into the database:

- PostgreSQL: an ``EXCLUDE USING gist`` constraint rejects a second confirmed
  booking whose ``[start_time, end_time)`` range overlaps another one of the
  same coach. The losing transaction gets an IntegrityError, mapped to
  ConflictError.
- SQLite: every transaction starts with ``BEGIN IMMEDIATE``, so check-then-
  insert runs with the write lock held and concurrent writers serialize.

Timestamps are stored as naive UTC and returned as aware UTC.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    DDL,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    TypeDecorator,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from courtbook.errors import ConflictError, NotFoundError, StorageError
from courtbook.schemas.booking_schema import Booking, BookingStatus, NewBooking

logger = logging.getLogger(__name__)

NO_OVERLAP_CONSTRAINT = "bookings_no_overlap_per_coach"
PG_EXCLUSION_VIOLATION = "23P01"


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Aware datetime stored as naive UTC on every backend."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("UTCDateTime requires a timezone-aware datetime")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class BookingRow(Base):
    """One lesson on the coach's calendar."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("group_size >= 1", name="bookings_group_size_positive"),
        CheckConstraint("end_time > start_time", name="bookings_end_after_start"),
        Index("ix_bookings_coach_start", "coach_id", "start_time"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    coach_id: Mapped[str] = mapped_column(String(64), nullable=False)
    student_name: Mapped[str] = mapped_column(String(100), nullable=False)
    skill_level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    student_type: Mapped[str] = mapped_column(String(10), nullable=False)
    group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=BookingStatus.CONFIRMED.value
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


event.listen(
    BookingRow.__table__,
    "after_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    BookingRow.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE bookings ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (coach_id WITH =, tsrange(start_time, end_time) WITH &&) "
        "WHERE (status = 'confirmed')"
    ).execute_if(dialect="postgresql"),
)


def _enable_sqlite_write_locks(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        # Hand transaction control to SQLAlchemy instead of pysqlite.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(connection: Any) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def _is_overlap_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == PG_EXCLUSION_VIOLATION:
        return True
    diag = getattr(orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", "") == NO_OVERLAP_CONSTRAINT:
        return True
    return NO_OVERLAP_CONSTRAINT in str(orig)


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_booking(row: BookingRow) -> Booking:
    return Booking.model_validate(row)


class SqlBookingRepository:
    """Repository over a SQLAlchemy engine (SQLite or PostgreSQL)."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        if engine.dialect.name == "sqlite":
            _enable_sqlite_write_locks(engine)
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "SqlBookingRepository":
        """Create an engine for ``database_url`` and make sure the schema exists."""
        repository = cls(create_engine(database_url, echo=echo))
        repository.create_schema()
        return repository

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Creating booking schema failed")
            raise StorageError("Unable to prepare booking storage") from exc

    def _get_row(self, session: Session, coach_id: str, booking_id: str) -> BookingRow:
        row = session.get(BookingRow, booking_id)
        if row is None or row.coach_id != coach_id:
            raise NotFoundError(booking_id)
        return row

    def list_confirmed(self, coach_id: str, start: datetime, end: datetime) -> list[Booking]:
        query = (
            select(BookingRow)
            .where(
                BookingRow.coach_id == coach_id,
                BookingRow.status == BookingStatus.CONFIRMED.value,
                BookingRow.start_time >= start,
                BookingRow.start_time < end,
            )
            .order_by(BookingRow.start_time)
        )
        try:
            with self._session_factory() as session:
                return [_to_booking(row) for row in session.scalars(query)]
        except SQLAlchemyError as exc:
            logger.exception("Listing bookings failed")
            raise StorageError("Unable to load bookings") from exc

    def list_all(self, coach_id: str) -> list[Booking]:
        query = (
            select(BookingRow)
            .where(BookingRow.coach_id == coach_id)
            .order_by(BookingRow.start_time)
        )
        try:
            with self._session_factory() as session:
                return [_to_booking(row) for row in session.scalars(query)]
        except SQLAlchemyError as exc:
            logger.exception("Listing bookings failed")
            raise StorageError("Unable to load bookings") from exc

    def get(self, coach_id: str, booking_id: str) -> Booking:
        try:
            with self._session_factory() as session:
                return _to_booking(self._get_row(session, coach_id, booking_id))
        except SQLAlchemyError as exc:
            logger.exception("Loading booking %s failed", booking_id)
            raise StorageError("Unable to load booking") from exc

    def insert(self, candidate: NewBooking) -> Booking:
        row = BookingRow(
            id=uuid.uuid4().hex,
            status=BookingStatus.CONFIRMED.value,
            created_at=datetime.now(timezone.utc),
            **{k: _column_value(v) for k, v in candidate.model_dump().items()},
        )
        conflict_query = (
            select(BookingRow.id)
            .where(
                BookingRow.coach_id == candidate.coach_id,
                BookingRow.status == BookingStatus.CONFIRMED.value,
                BookingRow.start_time < candidate.end_time,
                BookingRow.end_time > candidate.start_time,
            )
            .limit(1)
        )
        try:
            with self._session_factory() as session, session.begin():
                conflicting_id = session.scalars(conflict_query).first()
                if conflicting_id is not None:
                    raise ConflictError(details={"conflicting_booking_id": conflicting_id})
                session.add(row)
        except IntegrityError as exc:
            if _is_overlap_violation(exc):
                raise ConflictError() from exc
            logger.exception("Insert booking failed")
            raise StorageError("Unable to create booking") from exc
        except SQLAlchemyError as exc:
            logger.exception("Insert booking failed")
            raise StorageError("Unable to create booking") from exc
        return _to_booking(row)

    def update(self, coach_id: str, booking_id: str, fields: dict[str, Any]) -> Booking:
        try:
            with self._session_factory() as session, session.begin():
                row = self._get_row(session, coach_id, booking_id)
                for name, value in fields.items():
                    setattr(row, name, _column_value(value))
        except SQLAlchemyError as exc:
            logger.exception("Update booking %s failed", booking_id)
            raise StorageError("Unable to update booking") from exc
        return _to_booking(row)

    def delete(self, coach_id: str, booking_id: str) -> None:
        try:
            with self._session_factory() as session, session.begin():
                session.delete(self._get_row(session, coach_id, booking_id))
        except SQLAlchemyError as exc:
            logger.exception("Delete booking %s failed", booking_id)
            raise StorageError("Unable to delete booking") from exc
