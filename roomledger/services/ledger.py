"""In-memory reading ledger with carry-forward queries."""

import logging
from dataclasses import dataclass
from typing import Iterable

from roomledger.models.period import Period
from roomledger.models.reading import MeterReadings, ReadingRecord

logger = logging.getLogger(__name__)


@dataclass
class ReadingDefaults:
    """Suggested form values for a room-month.

    New readings are None when nothing has been recorded for the period yet.
    """

    elec_old: int = 0
    water_old: int = 0
    elec_new: int | None = None
    water_new: int | None = None
    elec_price: int = 0
    water_price: int = 0
    existing: bool = False
    carried_from: Period | None = None


class ReadingLedger:
    """Chronological reading records per room.

    Records are keyed by (room_id, period); writes replace whole records.
    Storage order is irrelevant, every query re-derives ordering from Period.
    The ledger never touches storage itself: it is seeded from a repository's
    load_all() and hands the full collection back after each mutation.
    """

    def __init__(self, records: Iterable[ReadingRecord] = ()) -> None:
        """Initialize from previously persisted records.

        Args:
            records: Persisted records; for duplicated keys the last one wins
        """
        self._records: dict[tuple[str, Period], ReadingRecord] = {}
        for record in records:
            if record.key in self._records:
                logger.warning(
                    "Duplicate reading record for room=%s period=%s, keeping the later one",
                    record.room_id,
                    record.period,
                )
            self._records[record.key] = record

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[ReadingRecord]:
        """Snapshot of all records ordered by room then period."""
        return sorted(self._records.values(), key=lambda r: (r.room_id, r.period))

    def upsert(
        self,
        room_id: str,
        period: Period | str,
        readings: MeterReadings,
    ) -> list[ReadingRecord]:
        """Insert or replace the record for (room_id, period).

        Args:
            room_id: Owning room identifier
            period: Calendar month (Period or "YYYY-MM")
            readings: Complete readings for the month

        Returns:
            Full updated record list for the persistence collaborator

        Raises:
            ValidationError: If readings are inconsistent; the ledger is unchanged
        """
        period = Period.parse(period)
        readings.validate()

        record = ReadingRecord(room_id=room_id, period=period, readings=readings)
        replaced = record.key in self._records
        self._records[record.key] = record

        logger.info(
            "%s reading record: room=%s period=%s elec=%d->%d water=%d->%d",
            "Replaced" if replaced else "Added",
            room_id,
            period,
            readings.elec_old,
            readings.elec_new,
            readings.water_old,
            readings.water_new,
        )

        return self.records()

    def get(self, room_id: str, period: Period | str) -> ReadingRecord | None:
        """Get the record for an exact (room_id, period) key, or None."""
        return self._records.get((room_id, Period.parse(period)))

    def latest_before(self, room_id: str, period: Period | str) -> ReadingRecord | None:
        """Get the room's record with the greatest period strictly before `period`.

        This is the carry-forward query: its closing readings become the next
        period's opening readings and its prices become the next period's prices.

        Returns:
            Latest earlier ReadingRecord or None if the room has no earlier record
        """
        period = Period.parse(period)
        earlier = [
            record
            for record in self._records.values()
            if record.room_id == room_id and record.period < period
        ]
        if not earlier:
            return None
        return max(earlier, key=lambda r: r.period)

    def restore(
        self,
        room_id: str,
        period: Period | str,
        record: ReadingRecord | None,
    ) -> None:
        """Put back a snapshot of one key taken before a failed write.

        Args:
            room_id: Room identifier
            period: Calendar month
            record: Previous record, or None if the key did not exist
        """
        key = (room_id, Period.parse(period))
        if record is None:
            self._records.pop(key, None)
        else:
            self._records[key] = record

    def delete_room(self, room_id: str) -> list[ReadingRecord]:
        """Remove every record of a room (cascade from room deletion).

        Returns:
            Full updated record list for the persistence collaborator
        """
        keys = [key for key in self._records if key[0] == room_id]
        for key in keys:
            del self._records[key]

        logger.info("Deleted %d reading records for room=%s", len(keys), room_id)
        return self.records()

    def defaults_for(
        self,
        room_id: str,
        period: Period | str,
        default_elec_price: int = 0,
        default_water_price: int = 0,
    ) -> ReadingDefaults:
        """Get form defaults for a room-month.

        - An existing record for the period is returned as is
        - Otherwise the latest earlier record carries forward: its new readings
          become the old readings and its prices are kept
        - Without any earlier record, readings start at 0 with default prices

        Args:
            room_id: Room identifier
            period: Calendar month
            default_elec_price: Electricity price when nothing carries forward
            default_water_price: Water price when nothing carries forward

        Returns:
            ReadingDefaults for pre-filling the input form
        """
        period = Period.parse(period)

        existing = self.get(room_id, period)
        if existing:
            readings = existing.readings
            return ReadingDefaults(
                elec_old=readings.elec_old,
                water_old=readings.water_old,
                elec_new=readings.elec_new,
                water_new=readings.water_new,
                elec_price=readings.elec_price,
                water_price=readings.water_price,
                existing=True,
            )

        previous = self.latest_before(room_id, period)
        if previous:
            readings = previous.readings
            return ReadingDefaults(
                elec_old=readings.elec_new,
                water_old=readings.water_new,
                elec_price=readings.elec_price,
                water_price=readings.water_price,
                carried_from=previous.period,
            )

        return ReadingDefaults(
            elec_price=default_elec_price,
            water_price=default_water_price,
        )


__all__ = ["ReadingDefaults", "ReadingLedger"]
