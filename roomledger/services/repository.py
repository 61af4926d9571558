"""Ledger persistence boundary.

The ledger is seeded with load_all() at start-up and hands the complete
record collection to save_all() after every mutation. There is no delta
protocol: each save replaces the whole collection.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from roomledger.models.reading import ReadingRecord, ReadingRow
from roomledger.services.config import Settings, get_settings
from roomledger.services.db import create_session_factory
from roomledger.services.errors import RepositoryError

logger = logging.getLogger(__name__)


class LedgerRepository(Protocol):
    """Whole-collection store for reading records."""

    def load_all(self) -> list[ReadingRecord]: ...

    def save_all(self, records: Iterable[ReadingRecord]) -> None: ...


class InMemoryLedgerRepository:
    """Repository keeping the last saved collection in memory."""

    def __init__(self, records: Iterable[ReadingRecord] = ()) -> None:
        self._records = list(records)
        self.save_count = 0

    def load_all(self) -> list[ReadingRecord]:
        return list(self._records)

    def save_all(self, records: Iterable[ReadingRecord]) -> None:
        self._records = list(records)
        self.save_count += 1


class JsonFileLedgerRepository:
    """Repository storing records as a JSON array in a flat file.

    Each element uses the flat store format of ReadingRecord.to_dict().
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load_all(self) -> list[ReadingRecord]:
        """Load all records; a missing file is an empty ledger.

        Raises:
            RepositoryError: If the file is unreadable or not a valid record list
        """
        if not self.path.exists():
            logger.info("Ledger file %s not found, starting with an empty ledger", self.path)
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RepositoryError(
                f"Ledger file is not valid JSON: {self.path}. Error: {str(e)}"
            ) from e
        except OSError as e:
            raise RepositoryError(f"Cannot read ledger file: {self.path}. Error: {str(e)}") from e

        if not isinstance(data, list):
            raise RepositoryError(f"Ledger file must contain a JSON array: {self.path}")

        try:
            records = [ReadingRecord.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise RepositoryError(f"Invalid reading record in {self.path}: {e}") from e

        logger.info("Loaded %d reading records from %s", len(records), self.path)
        return records

    def save_all(self, records: Iterable[ReadingRecord]) -> None:
        """Write all records, replacing the file atomically.

        Raises:
            RepositoryError: If the file cannot be written
        """
        payload = [record.to_dict() for record in records]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise RepositoryError(f"Cannot write ledger file: {self.path}. Error: {str(e)}") from e

        logger.debug("Saved %d reading records to %s", len(payload), self.path)


class SqlAlchemyLedgerRepository:
    """Repository storing records in the reading_records table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def load_all(self) -> list[ReadingRecord]:
        """Load all records.

        Raises:
            RepositoryError: On database errors
        """
        try:
            with self.session_factory() as session:
                rows = session.execute(select(ReadingRow)).scalars().all()
                return [row.to_record() for row in rows]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Cannot load reading records: {e}") from e

    def save_all(self, records: Iterable[ReadingRecord]) -> None:
        """Replace the stored collection in a single transaction.

        Raises:
            RepositoryError: On database errors (the transaction is rolled back)
        """
        rows = [ReadingRow.from_record(record) for record in records]
        try:
            with self.session_factory() as session, session.begin():
                session.execute(delete(ReadingRow))
                session.add_all(rows)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Cannot save reading records: {e}") from e

        logger.debug("Saved %d reading records to database", len(rows))


def create_repository(settings: Settings | None = None) -> LedgerRepository:
    """Create the configured ledger store.

    DATABASE_URL selects the SQL store; otherwise LEDGER_FILE is used.
    """
    settings = settings or get_settings()
    if settings.database_url:
        logger.info("Using database ledger store")
        return SqlAlchemyLedgerRepository(create_session_factory(settings.database_url))
    logger.info("Using JSON ledger store at %s", settings.ledger_file)
    return JsonFileLedgerRepository(settings.ledger_file)


__all__ = [
    "LedgerRepository",
    "InMemoryLedgerRepository",
    "JsonFileLedgerRepository",
    "SqlAlchemyLedgerRepository",
    "create_repository",
]
