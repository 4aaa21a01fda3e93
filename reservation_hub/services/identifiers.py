"""Monotonic ``PREFIX-<n>`` identifier sequences."""

from __future__ import annotations

import re
from typing import Iterable, Optional


class IdentifierSequence:
    """Issue strictly increasing ids of the form ``<prefix>-<n>``.

    The sequence never hands out a number at or below ``floor``, and any id
    it observes raises the floor. Ids that do not match the pattern are
    ignored.
    """

    def __init__(self, prefix: str, floor: int = 0) -> None:
        self.prefix = prefix
        self._pattern = re.compile(rf"{re.escape(prefix)}-([0-9]+)")
        self._last = floor

    @classmethod
    def seeded(
        cls,
        prefix: str,
        existing_ids: Iterable[str],
        floor: int = 0,
        next_value: Optional[int] = None,
    ) -> "IdentifierSequence":
        """Build a sequence that continues after every id seen so far."""

        sequence = cls(prefix, floor)
        if next_value is not None:
            sequence._last = max(sequence._last, next_value - 1)
        for identifier in existing_ids:
            sequence.observe(identifier)
        return sequence

    def parse(self, identifier: str) -> Optional[int]:
        match = self._pattern.fullmatch(identifier or "")
        return int(match.group(1)) if match else None

    def observe(self, identifier: str) -> None:
        number = self.parse(identifier)
        if number is not None and number > self._last:
            self._last = number

    def peek(self) -> int:
        """Return the number the next call to ``next_id`` will use."""

        return self._last + 1

    def next_id(self) -> str:
        self._last += 1
        return f"{self.prefix}-{self._last}"

    def __repr__(self) -> str:
        return f"IdentifierSequence({self.prefix!r}, next={self.peek()})"


RESERVATION_PREFIX = "RES"
USER_PREFIX = "USER"
USER_ID_FLOOR = 1000


def reservation_sequence(existing_ids: Iterable[str] = (), next_value: Optional[int] = None) -> IdentifierSequence:
    return IdentifierSequence.seeded(RESERVATION_PREFIX, existing_ids, next_value=next_value)


def user_sequence(existing_ids: Iterable[str] = (), next_value: Optional[int] = None) -> IdentifierSequence:
    return IdentifierSequence.seeded(USER_PREFIX, existing_ids, floor=USER_ID_FLOOR, next_value=next_value)
