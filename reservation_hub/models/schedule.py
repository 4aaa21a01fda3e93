"""Weekly occupancy grid for a single resource."""

from __future__ import annotations

from typing import Optional

from .errors import Conflict, IndexOutOfRange

DAYS_PER_WEEK = 5
SLOTS_PER_DAY = 8

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
SLOT_TIMES = (
    "8:00-10:00",
    "10:00-12:00",
    "13:00-15:00",
    "15:00-17:00",
    "17:00-19:00",
    "19:00-21:00",
    "21:00-23:00",
    "23:00-1:00",
)


def is_valid_day(day) -> bool:
    return isinstance(day, int) and not isinstance(day, bool) and 0 <= day < DAYS_PER_WEEK


def is_valid_slot(slot) -> bool:
    return isinstance(slot, int) and not isinstance(slot, bool) and 0 <= slot < SLOTS_PER_DAY


class ResourceSchedule:
    """Fixed 5x8 grid of reservation keys for one resource.

    A cell holds the key of an active reservation or ``None``. The
    reservation records themselves live in the directory's reservation
    store; the grid only answers occupancy questions.
    """

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        self._cells: list[list[Optional[str]]] = [
            [None] * SLOTS_PER_DAY for _ in range(DAYS_PER_WEEK)
        ]

    def occupy(self, day: int, slot: int, reservation_id: str) -> None:
        """Place a reservation key in an empty cell."""

        self._check_indices(day, slot)
        holder = self._cells[day][slot]
        if holder is not None:
            raise Conflict(
                f"{DAY_NAMES[day]} {SLOT_TIMES[slot]} on {self.resource_id} is already held by {holder}."
            )
        self._cells[day][slot] = reservation_id

    def clear(self, day: int, slot: int) -> None:
        self._check_indices(day, slot)
        self._cells[day][slot] = None

    def reservation_at(self, day: int, slot: int) -> Optional[str]:
        self._check_indices(day, slot)
        return self._cells[day][slot]

    def is_active_at(self, day: int, slot: int) -> bool:
        return self.reservation_at(day, slot) is not None

    def has_any_active(self) -> bool:
        return any(cell is not None for row in self._cells for cell in row)

    def active_reservations(self) -> list[str]:
        """Return held reservation keys ordered by day, then slot."""

        return [cell for row in self._cells for cell in row if cell is not None]

    def _check_indices(self, day: int, slot: int) -> None:
        if not is_valid_day(day):
            raise IndexOutOfRange(f"Invalid day index: {day}. Must be 0-{DAYS_PER_WEEK - 1}.")
        if not is_valid_slot(slot):
            raise IndexOutOfRange(f"Invalid time slot: {slot}. Must be 0-{SLOTS_PER_DAY - 1}.")

    def __repr__(self) -> str:
        return f"ResourceSchedule({self.resource_id!r}, active={len(self.active_reservations())})"
