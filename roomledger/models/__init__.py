"""SQLAlchemy base, domain value objects and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all ORM models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models after Base is defined to avoid circular imports
from roomledger.models.period import Period  # noqa: E402
from roomledger.models.reading import MeterReadings, ReadingRecord, ReadingRow  # noqa: E402
from roomledger.models.room import Room  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "Period",
    "Room",
    "MeterReadings",
    "ReadingRecord",
    "ReadingRow",
]
