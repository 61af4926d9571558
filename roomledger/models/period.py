"""Calendar-month period value used as the ledger's ordering key."""

from dataclasses import dataclass
from datetime import date

from roomledger.services.parsers import parse_month


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month, totally ordered by (year, month).

    Ordering never relies on string comparison, so "2024-3" and "2024-03"
    parse to the same period.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be in 1..12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"Year must be in 1..9999, got {self.year}")

    @classmethod
    def parse(cls, value: "str | Period") -> "Period":
        """Parse a "YYYY-MM" string (an existing Period is returned as is)."""
        if isinstance(value, Period):
            return value
        year, month = parse_month(value)
        return cls(year, month)

    @classmethod
    def from_date(cls, day: date) -> "Period":
        """Period containing the given date."""
        return cls(day.year, day.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
