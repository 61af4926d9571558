"""Pure bill calculation from meter readings, unit prices and fixed fees."""

from typing import TYPE_CHECKING, Any, Mapping, NamedTuple

from roomledger.services.parsers import to_int

if TYPE_CHECKING:
    from roomledger.models import MeterReadings, Room


class BillBreakdown(NamedTuple):
    """Consumption and cost breakdown for one room-month (never persisted)."""

    elec_old: int
    elec_new: int
    elec_total: int
    elec_price: int
    elec_cost: int
    water_old: int
    water_new: int
    water_total: int
    water_price: int
    water_cost: int
    rent: int
    trash_security: int
    total: int


def compute_bill(
    reading: Mapping[str, Any],
    prices: Mapping[str, Any],
    fixed_fees: Mapping[str, Any],
) -> BillBreakdown:
    """Compute the monthly bill.

    Formula: total = rent + trash_security + elec_total × elec_price + water_total × water_price

    Every input is truncated toward zero; missing, non-numeric and non-finite
    values count as 0. Consumption is clamped at zero so a new reading below
    the old one never yields a negative charge. Never raises.

    Args:
        reading: elec_old, elec_new, water_old, water_new
        prices: elec_price, water_price
        fixed_fees: rent, trash_security

    Returns:
        BillBreakdown with consumption totals, costs and grand total

    Example:
        >>> compute_bill(
        ...     {"elec_old": 100, "elec_new": 150, "water_old": 10, "water_new": 15},
        ...     {"elec_price": 3500, "water_price": 14000},
        ...     {"rent": 3500000, "trash_security": 30000},
        ... ).total
        3775000
    """
    elec_old = to_int(reading.get("elec_old"))
    elec_new = to_int(reading.get("elec_new"))
    water_old = to_int(reading.get("water_old"))
    water_new = to_int(reading.get("water_new"))

    elec_price = max(0, to_int(prices.get("elec_price")))
    water_price = max(0, to_int(prices.get("water_price")))

    rent = max(0, to_int(fixed_fees.get("rent")))
    trash_security = max(0, to_int(fixed_fees.get("trash_security")))

    elec_total = max(0, elec_new - elec_old)
    water_total = max(0, water_new - water_old)

    elec_cost = elec_total * elec_price
    water_cost = water_total * water_price

    return BillBreakdown(
        elec_old=elec_old,
        elec_new=elec_new,
        elec_total=elec_total,
        elec_price=elec_price,
        elec_cost=elec_cost,
        water_old=water_old,
        water_new=water_new,
        water_total=water_total,
        water_price=water_price,
        water_cost=water_cost,
        rent=rent,
        trash_security=trash_security,
        total=rent + trash_security + elec_cost + water_cost,
    )


def compute_bill_for(readings: "MeterReadings", room: "Room") -> BillBreakdown:
    """Compute the bill for stored readings and a room's fixed fees."""
    return compute_bill(
        {
            "elec_old": readings.elec_old,
            "elec_new": readings.elec_new,
            "water_old": readings.water_old,
            "water_new": readings.water_new,
        },
        {"elec_price": readings.elec_price, "water_price": readings.water_price},
        {"rent": room.rent, "trash_security": room.trash_security},
    )


__all__ = ["BillBreakdown", "compute_bill", "compute_bill_for"]
