from courtbook.config import MEMORY_DATABASE_URL
from courtbook.storage.base import BookingRepository
from courtbook.storage.memory import InMemoryBookingRepository
from courtbook.storage.sql import SqlBookingRepository


def create_repository(database_url: str, echo: bool = False) -> BookingRepository:
    """Pick a repository implementation from a database URL.

    ``memory://`` keeps bookings in process; anything else is handed to SQLAlchemy.
    """
    if database_url == MEMORY_DATABASE_URL:
        return InMemoryBookingRepository()
    return SqlBookingRepository.from_url(database_url, echo=echo)


__all__ = [
    "BookingRepository",
    "InMemoryBookingRepository",
    "SqlBookingRepository",
    "create_repository",
]
