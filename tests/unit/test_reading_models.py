"""Unit tests for MeterReadings and ReadingRecord."""

import pytest

from roomledger.models import MeterReadings, Period, ReadingRecord, Room
from roomledger.services.errors import ValidationError


class TestMeterReadingsValidate:
    """Tests for MeterReadings.validate."""

    def test_valid_readings_pass(self, march_readings):
        march_readings.validate()

    def test_equal_readings_pass(self):
        """Test zero consumption is allowed."""
        MeterReadings(elec_old=5, elec_new=5, water_old=3, water_new=3).validate()

    def test_electricity_backwards_rejected(self):
        """Test elec_new < elec_old names the electricity field pair."""
        with pytest.raises(ValidationError, match="electricity") as exc_info:
            MeterReadings(elec_old=20, elec_new=10).validate()

        assert exc_info.value.fields == ("elec_new", "elec_old")

    def test_water_backwards_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            MeterReadings(water_old=15, water_new=14).validate()

        assert exc_info.value.fields == ("water_new", "water_old")

    def test_negative_value_rejected(self):
        with pytest.raises(ValidationError, match="must not be negative") as exc_info:
            MeterReadings(elec_price=-1).validate()

        assert exc_info.value.fields == ("elec_price",)


class TestMeterReadingsFromInput:
    """Tests for MeterReadings.from_input."""

    def test_coerces_form_values(self):
        readings = MeterReadings.from_input(
            elec_old="100",
            elec_new="150.7",
            water_old=10,
            water_new="15",
            elec_price="3500",
            water_price="abc",
        )

        assert readings == MeterReadings(100, 150, 10, 15, 3500, 0)

    def test_blank_new_readings_rejected(self):
        """Test blank closing readings are refused before saving or exporting."""
        with pytest.raises(ValidationError, match="Enter the new") as exc_info:
            MeterReadings.from_input(
                elec_old=100,
                elec_new="",
                water_old=10,
                water_new=None,
                elec_price=3500,
                water_price=14000,
            )

        assert exc_info.value.fields == ("elec_new", "water_new")


class TestReadingRecordSerialization:
    """Tests for the flat store format."""

    def test_to_dict_uses_store_keys(self, march_readings):
        record = ReadingRecord(room_id="room-01", period=Period(2024, 3), readings=march_readings)

        assert record.to_dict() == {
            "roomId": "room-01",
            "month": "2024-03",
            "elec_old": 100,
            "elec_new": 150,
            "water_old": 10,
            "water_new": 15,
            "elec_price": 3500,
            "water_price": 14000,
        }

    def test_from_dict_restores_record(self, march_readings):
        record = ReadingRecord(room_id="room-01", period=Period(2024, 3), readings=march_readings)

        assert ReadingRecord.from_dict(record.to_dict()) == record

    def test_from_dict_requires_month(self):
        with pytest.raises(KeyError):
            ReadingRecord.from_dict({"roomId": "room-01"})


class TestRoom:
    """Tests for Room catalog format."""

    def test_from_dict(self):
        room = Room.from_dict({"id": "x", "code": " 02 ", "rent": "3000000", "trash_security": 30000.5})

        assert room == Room(id="x", code="02", rent=3_000_000, trash_security=30_000)
        assert room.to_dict()["code"] == "02"
