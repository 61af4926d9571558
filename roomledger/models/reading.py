"""Monthly meter reading records and their ORM row."""

from dataclasses import dataclass, fields
from typing import Any

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from roomledger.models import Base, BaseModel
from roomledger.models.period import Period
from roomledger.services.errors import ValidationError
from roomledger.services.parsers import is_blank, to_int

# (new, old, human label) pairs checked before a record is accepted
_METER_PAIRS = (
    ("elec_new", "elec_old", "electricity"),
    ("water_new", "water_old", "water"),
)


@dataclass(frozen=True)
class MeterReadings:
    """Opening/closing meter values and unit prices for one room-month.

    Attributes:
        elec_old: Electricity meter at period start
        elec_new: Electricity meter at period end
        water_old: Water meter at period start
        water_new: Water meter at period end
        elec_price: Currency per electricity unit
        water_price: Currency per water unit
    """

    elec_old: int = 0
    elec_new: int = 0
    water_old: int = 0
    water_new: int = 0
    elec_price: int = 0
    water_price: int = 0

    @classmethod
    def from_input(
        cls,
        *,
        elec_old: Any,
        elec_new: Any,
        water_old: Any,
        water_new: Any,
        elec_price: Any,
        water_price: Any,
    ) -> "MeterReadings":
        """Build readings from raw form values.

        Values are truncated to integers; garbage degrades to 0.

        Raises:
            ValidationError: If a closing (new) reading was left blank
        """
        missing = tuple(
            name
            for name, value in (("elec_new", elec_new), ("water_new", water_new))
            if is_blank(value)
        )
        if missing:
            raise ValidationError(
                "Enter the new electricity and water readings", fields=missing
            )

        return cls(
            elec_old=to_int(elec_old),
            elec_new=to_int(elec_new),
            water_old=to_int(water_old),
            water_new=to_int(water_new),
            elec_price=to_int(elec_price),
            water_price=to_int(water_price),
        )

    def validate(self) -> None:
        """Check the readings can be stored.

        Raises:
            ValidationError: If any value is negative or a new reading is
                below the old one (names the offending field pair)
        """
        for field in fields(self):
            value = getattr(self, field.name)
            if value < 0:
                raise ValidationError(
                    f"{field.name} must not be negative (got {value})",
                    fields=(field.name,),
                )

        for new_name, old_name, label in _METER_PAIRS:
            new_value = getattr(self, new_name)
            old_value = getattr(self, old_name)
            if new_value < old_value:
                raise ValidationError(
                    f"New {label} reading ({new_name}={new_value}) is less than "
                    f"old reading ({old_name}={old_value})",
                    fields=(new_name, old_name),
                )


@dataclass(frozen=True)
class ReadingRecord:
    """Readings of one room for one period; (room_id, period) is the key."""

    room_id: str
    period: Period
    readings: MeterReadings

    @property
    def key(self) -> tuple[str, Period]:
        return (self.room_id, self.period)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReadingRecord":
        """Build a record from the flat store format.

        Raises:
            KeyError: If roomId or month is missing
            ValueError: If month is not a valid YYYY-MM period
        """
        return cls(
            room_id=str(data["roomId"]),
            period=Period.parse(data["month"]),
            readings=MeterReadings(
                elec_old=to_int(data.get("elec_old")),
                elec_new=to_int(data.get("elec_new")),
                water_old=to_int(data.get("water_old")),
                water_new=to_int(data.get("water_new")),
                elec_price=to_int(data.get("elec_price")),
                water_price=to_int(data.get("water_price")),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the flat store format."""
        readings = self.readings
        return {
            "roomId": self.room_id,
            "month": str(self.period),
            "elec_old": readings.elec_old,
            "elec_new": readings.elec_new,
            "water_old": readings.water_old,
            "water_new": readings.water_new,
            "elec_price": readings.elec_price,
            "water_price": readings.water_price,
        }


class ReadingRow(Base, BaseModel):
    """Persisted reading record (one row per room and month)."""

    __tablename__ = "reading_records"
    __table_args__ = (UniqueConstraint("room_id", "period", name="uq_reading_room_period"),)

    room_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    period: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="Calendar month, YYYY-MM",
    )
    elec_old: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    elec_new: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    water_old: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    water_new: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    elec_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    water_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @classmethod
    def from_record(cls, record: ReadingRecord) -> "ReadingRow":
        readings = record.readings
        return cls(
            room_id=record.room_id,
            period=str(record.period),
            elec_old=readings.elec_old,
            elec_new=readings.elec_new,
            water_old=readings.water_old,
            water_new=readings.water_new,
            elec_price=readings.elec_price,
            water_price=readings.water_price,
        )

    def to_record(self) -> ReadingRecord:
        return ReadingRecord(
            room_id=self.room_id,
            period=Period.parse(self.period),
            readings=MeterReadings(
                elec_old=self.elec_old,
                elec_new=self.elec_new,
                water_old=self.water_old,
                water_new=self.water_new,
                elec_price=self.elec_price,
                water_price=self.water_price,
            ),
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<ReadingRow(id={self.id}, room={self.room_id}, period={self.period})>"
