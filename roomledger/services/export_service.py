"""Receipt export: validate readings, build the PDF, then record the readings."""

import logging
from typing import NamedTuple

from roomledger.models.period import Period
from roomledger.models.reading import MeterReadings, ReadingRecord
from roomledger.models.room import Room
from roomledger.services.config import Settings, get_settings
from roomledger.services.errors import RepositoryError
from roomledger.services.ledger import ReadingLedger
from roomledger.services.locale_service import format_month_caption
from roomledger.services.logging import setup_logging
from roomledger.services.receipt_builder import (
    PaymentDetails,
    ReceiptDocumentBuilder,
    ReceiptInput,
)
from roomledger.services.repository import LedgerRepository, create_repository
from roomledger.services.typeface_loader import TypefaceLoader

logger = logging.getLogger(__name__)


class ExportedReceipt(NamedTuple):
    """Finished receipt ready for delivery."""

    filename: str
    content: bytes
    records: list[ReadingRecord]


def receipt_filename(room: Room, period: Period) -> str:
    """Download name for a receipt (e.g., 'Receipt_Room01_2024-03.pdf')."""
    return f"Receipt_Room{room.code}_{period}.pdf"


def receipt_input_for(room: Room, period: Period, readings: MeterReadings) -> ReceiptInput:
    """Bundle a room-month into receipt content."""
    return ReceiptInput(
        room_text=f"Room: {room.code}",
        month_text=format_month_caption(period),
        elec_old=readings.elec_old,
        elec_new=readings.elec_new,
        water_old=readings.water_old,
        water_new=readings.water_new,
        elec_price=readings.elec_price,
        water_price=readings.water_price,
        rent=room.rent,
        trash_security=room.trash_security,
    )


class ReceiptExportService:
    """Coordinates the ledger, the receipt builder and the ledger store.

    Every mutation hands the full record collection to the repository
    (when one is configured). If the store rejects the write, the ledger
    change is rolled back so memory and storage never diverge.
    """

    def __init__(
        self,
        ledger: ReadingLedger,
        builder: ReceiptDocumentBuilder,
        repository: LedgerRepository | None = None,
    ) -> None:
        self.ledger = ledger
        self.builder = builder
        self.repository = repository

    @classmethod
    def from_repository(
        cls,
        repository: LedgerRepository,
        builder: ReceiptDocumentBuilder,
    ) -> "ReceiptExportService":
        """Create a service whose ledger is seeded from the repository."""
        return cls(ReadingLedger(repository.load_all()), builder, repository)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        configure_logging: bool = False,
    ) -> "ReceiptExportService":
        """Create a fully configured service for an application process.

        Args:
            settings: Settings to use (default: get_settings())
            configure_logging: Install stdout and LOG_FILE handlers first

        Returns:
            Service with the configured ledger store, fonts, locale and
            payment details

        Raises:
            RepositoryError: If the configured store cannot be loaded
        """
        settings = settings or get_settings()
        if configure_logging:
            setup_logging(settings.log_file, settings.log_level)

        builder = ReceiptDocumentBuilder(
            loader=TypefaceLoader(timeout=settings.font_fetch_timeout),
            regular_font_path=settings.font_regular_path,
            bold_font_path=settings.font_bold_path,
            payment=PaymentDetails(
                account_number=settings.bank_account_number,
                account_name=settings.bank_account_name,
                bank_name=settings.bank_name,
            ),
            locale=settings.locale,
        )
        service = cls.from_repository(create_repository(settings), builder)
        logger.info("Receipt export ready with %d reading records", len(service.ledger))
        return service

    async def export(
        self,
        room: Room,
        period: Period | str,
        readings: MeterReadings,
    ) -> ExportedReceipt:
        """Build a receipt and record the month's readings.

        Readings are validated before any font is fetched. The ledger is only
        written after the document was built, so a failed export leaves it
        untouched.

        Args:
            room: Billed room
            period: Billed month
            readings: Month readings and unit prices

        Returns:
            ExportedReceipt with file name, PDF bytes and the updated records

        Raises:
            ValidationError: If readings are inconsistent
            FetchError: If a receipt font cannot be retrieved
            FormatError: If a receipt font is invalid
            RepositoryError: If the store rejects the write; the ledger is unchanged
        """
        period = Period.parse(period)
        readings.validate()

        content = await self.builder.build_receipt(receipt_input_for(room, period, readings))
        records = self._record(room, period, readings)

        filename = receipt_filename(room, period)
        logger.info("Exported %s (%d bytes)", filename, len(content))
        return ExportedReceipt(filename=filename, content=content, records=records)

    def save_reading(
        self,
        room: Room,
        period: Period | str,
        readings: MeterReadings,
    ) -> list[ReadingRecord]:
        """Record the month's readings without producing a receipt.

        Raises:
            ValidationError: If readings are inconsistent
            RepositoryError: If the store rejects the write; the ledger is unchanged
        """
        return self._record(room, Period.parse(period), readings)

    def remove_room(self, room_id: str) -> list[ReadingRecord]:
        """Drop all readings of a deleted room and persist the result.

        Raises:
            RepositoryError: If the store rejects the write; the ledger is unchanged
        """
        removed = [record for record in self.ledger.records() if record.room_id == room_id]
        records = self.ledger.delete_room(room_id)
        try:
            self._persist(records)
        except RepositoryError:
            for record in removed:
                self.ledger.restore(record.room_id, record.period, record)
            logger.warning(
                "Restored %d reading records for room=%s after failed save",
                len(removed),
                room_id,
            )
            raise
        return records

    def _record(
        self,
        room: Room,
        period: Period,
        readings: MeterReadings,
    ) -> list[ReadingRecord]:
        previous = self.ledger.get(room.id, period)
        records = self.ledger.upsert(room.id, period, readings)
        try:
            self._persist(records)
        except RepositoryError:
            self.ledger.restore(room.id, period, previous)
            logger.warning(
                "Rolled back reading for room=%s period=%s after failed save",
                room.id,
                period,
            )
            raise
        return records

    def _persist(self, records: list[ReadingRecord]) -> None:
        if self.repository is not None:
            self.repository.save_all(records)


__all__ = [
    "ExportedReceipt",
    "ReceiptExportService",
    "receipt_filename",
    "receipt_input_for",
]
