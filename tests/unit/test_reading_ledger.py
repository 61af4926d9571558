"""Unit tests for ReadingLedger."""

import logging

import pytest

from roomledger.models import MeterReadings, Period, ReadingRecord
from roomledger.services.errors import ValidationError
from roomledger.services.ledger import ReadingLedger


def _readings(elec_new: int, water_new: int, elec_old: int = 0, water_old: int = 0,
              elec_price: int = 3500, water_price: int = 14000) -> MeterReadings:
    return MeterReadings(
        elec_old=elec_old,
        elec_new=elec_new,
        water_old=water_old,
        water_new=water_new,
        elec_price=elec_price,
        water_price=water_price,
    )


@pytest.fixture
def quarter_ledger() -> ReadingLedger:
    """Ledger with January to March 2024 recorded for room-01."""
    ledger = ReadingLedger()
    ledger.upsert("room-01", "2024-01", _readings(100, 10))
    ledger.upsert("room-01", "2024-02", _readings(150, 15, 100, 10))
    ledger.upsert("room-01", "2024-03", _readings(210, 22, 150, 15, elec_price=3800))
    return ledger


class TestUpsert:
    """Tests for upsert."""

    def test_insert_returns_full_collection(self):
        ledger = ReadingLedger()
        records = ledger.upsert("room-01", "2024-01", _readings(100, 10))

        assert len(records) == 1
        assert records[0].period == Period(2024, 1)
        assert records[0].room_id == "room-01"

    def test_replace_same_key(self):
        """Test a second write for the same room-month replaces the first."""
        ledger = ReadingLedger()
        ledger.upsert("room-01", "2024-01", _readings(100, 10))
        records = ledger.upsert("room-01", "2024-01", _readings(120, 12))

        assert len(records) == 1
        assert ledger.get("room-01", "2024-01").readings.elec_new == 120

    def test_idempotent(self):
        """Test repeating an identical upsert leaves the same state."""
        ledger = ReadingLedger()
        first = ledger.upsert("room-01", "2024-01", _readings(100, 10))
        second = ledger.upsert("room-01", "2024-01", _readings(100, 10))

        assert first == second
        assert len(ledger) == 1

    def test_rejected_write_leaves_ledger_unchanged(self):
        """Test elec_new=10, elec_old=20 fails and keeps the prior record."""
        ledger = ReadingLedger()
        ledger.upsert("room-01", "2024-01", _readings(100, 10))

        with pytest.raises(ValidationError) as exc_info:
            ledger.upsert("room-01", "2024-01", _readings(10, 10, elec_old=20))

        assert exc_info.value.fields == ("elec_new", "elec_old")
        assert ledger.get("room-01", "2024-01").readings.elec_new == 100

    def test_rejected_first_write_stays_absent(self):
        ledger = ReadingLedger()

        with pytest.raises(ValidationError):
            ledger.upsert("room-01", "2024-01", _readings(10, 10, elec_old=20))

        assert ledger.get("room-01", "2024-01") is None
        assert len(ledger) == 0

    def test_rooms_are_independent(self):
        ledger = ReadingLedger()
        ledger.upsert("room-01", "2024-01", _readings(100, 10))
        ledger.upsert("room-02", "2024-01", _readings(300, 30))

        assert ledger.get("room-01", "2024-01").readings.elec_new == 100
        assert ledger.get("room-02", "2024-01").readings.elec_new == 300


class TestGet:
    """Tests for get."""

    def test_absent_is_none(self):
        assert ReadingLedger().get("room-01", "2024-01") is None

    def test_accepts_period_or_string(self, quarter_ledger):
        assert quarter_ledger.get("room-01", Period(2024, 2)) == quarter_ledger.get("room-01", "2024-2")


class TestLatestBefore:
    """Tests for the carry-forward query."""

    def test_returns_previous_month(self, quarter_ledger):
        record = quarter_ledger.latest_before("room-01", "2024-03")

        assert record.period == Period(2024, 2)

    def test_none_before_first_month(self, quarter_ledger):
        assert quarter_ledger.latest_before("room-01", "2024-01") is None

    def test_skips_gaps(self, quarter_ledger):
        """Test a later month without records carries forward from the latest one."""
        record = quarter_ledger.latest_before("room-01", "2024-07")

        assert record.period == Period(2024, 3)

    def test_other_room_ignored(self, quarter_ledger):
        assert quarter_ledger.latest_before("room-02", "2024-03") is None

    def test_independent_of_insertion_order(self):
        ledger = ReadingLedger()
        ledger.upsert("room-01", "2024-03", _readings(210, 22, 150, 15))
        ledger.upsert("room-01", "2023-12", _readings(50, 5))
        ledger.upsert("room-01", "2024-02", _readings(150, 15, 100, 10))

        assert ledger.latest_before("room-01", "2024-03").period == Period(2024, 2)

    def test_month_ten_after_month_nine(self):
        """Test ordering is chronological even for unpadded months."""
        ledger = ReadingLedger()
        ledger.upsert("room-01", "2024-9", _readings(90, 9))
        ledger.upsert("room-01", "2024-10", _readings(100, 10, 90, 9))

        assert ledger.latest_before("room-01", "2024-11").period == Period(2024, 10)


class TestDeleteRoom:
    """Tests for delete_room cascade."""

    def test_removes_only_that_room(self, quarter_ledger):
        quarter_ledger.upsert("room-02", "2024-01", _readings(5, 5))

        records = quarter_ledger.delete_room("room-01")

        assert [r.room_id for r in records] == ["room-02"]
        assert quarter_ledger.get("room-01", "2024-01") is None


class TestRestore:
    """Tests for restoring a key snapshot."""

    def test_restore_previous_record(self, quarter_ledger):
        snapshot = quarter_ledger.get("room-01", "2024-03")
        quarter_ledger.upsert("room-01", "2024-03", _readings(999, 99, 150, 15))

        quarter_ledger.restore("room-01", "2024-03", snapshot)

        assert quarter_ledger.get("room-01", "2024-03") == snapshot

    def test_restore_none_removes_key(self, quarter_ledger):
        quarter_ledger.upsert("room-01", "2024-04", _readings(250, 30, 210, 22))

        quarter_ledger.restore("room-01", Period(2024, 4), None)

        assert quarter_ledger.get("room-01", "2024-04") is None
        assert len(quarter_ledger) == 3


class TestDefaultsFor:
    """Tests for carry-forward form defaults."""

    def test_existing_record_is_loaded(self, quarter_ledger):
        defaults = quarter_ledger.defaults_for("room-01", "2024-02")

        assert defaults.existing is True
        assert defaults.elec_old == 100
        assert defaults.elec_new == 150

    def test_carries_forward_readings_and_prices(self, quarter_ledger):
        """Test last month's new readings become old readings and prices stick."""
        defaults = quarter_ledger.defaults_for("room-01", "2024-04", 3500, 14000)

        assert defaults.existing is False
        assert defaults.carried_from == Period(2024, 3)
        assert defaults.elec_old == 210
        assert defaults.water_old == 22
        assert defaults.elec_new is None
        assert defaults.water_new is None
        assert defaults.elec_price == 3800

    def test_first_month_uses_default_prices(self):
        defaults = ReadingLedger().defaults_for("room-01", "2024-01", 3500, 14000)

        assert defaults.elec_old == 0
        assert defaults.water_old == 0
        assert defaults.elec_price == 3500
        assert defaults.water_price == 14000
        assert defaults.carried_from is None


class TestConstruction:
    """Tests for seeding the ledger from persisted records."""

    def test_records_sorted_by_room_then_period(self):
        records = [
            ReadingRecord("b", Period(2024, 1), _readings(1, 1)),
            ReadingRecord("a", Period(2024, 2), _readings(1, 1)),
            ReadingRecord("a", Period(2024, 1), _readings(1, 1)),
        ]

        ledger = ReadingLedger(records)

        assert [(r.room_id, str(r.period)) for r in ledger.records()] == [
            ("a", "2024-01"),
            ("a", "2024-02"),
            ("b", "2024-01"),
        ]

    def test_duplicate_keys_keep_last(self, caplog):
        records = [
            ReadingRecord("a", Period(2024, 1), _readings(1, 1)),
            ReadingRecord("a", Period(2024, 1), _readings(2, 2)),
        ]

        with caplog.at_level(logging.WARNING):
            ledger = ReadingLedger(records)

        assert len(ledger) == 1
        assert ledger.get("a", "2024-01").readings.elec_new == 2
        assert "Duplicate reading record" in caplog.text
