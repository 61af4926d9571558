"""Room reference owned by the external room catalog."""

from dataclasses import dataclass
from typing import Any

from roomledger.services.parsers import to_int


@dataclass(frozen=True)
class Room:
    """Rented room as seen by the billing core.

    Attributes:
        id: Opaque unique identifier generated by the room catalog
        code: Short human-facing label (e.g. "01"), unique across rooms
        rent: Fixed monthly rent
        trash_security: Fixed monthly trash/security fee
    """

    id: str
    code: str
    rent: int = 0
    trash_security: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Room":
        """Build a Room from the catalog's flat store format."""
        return cls(
            id=str(data["id"]),
            code=str(data.get("code", "")).strip(),
            rent=to_int(data.get("rent")),
            trash_security=to_int(data.get("trash_security")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "rent": self.rent,
            "trash_security": self.trash_security,
        }
