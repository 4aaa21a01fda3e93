"""Dataclass-style entity representations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from flask_login import UserMixin

from .errors import InvalidInput
from .schedule import DAY_NAMES, SLOT_TIMES


class Role(str, Enum):
    """Closed set of principal roles."""

    ADMINISTRATOR = "Administrator"
    STUDENT = "Student"


class ResourceType(str, Enum):
    """Closed set of resource variants."""

    ROOM = "Room"
    EQUIPMENT = "Equipment"

    @property
    def label(self) -> str:
        return "Study Room" if self is ResourceType.ROOM else "Lab Equipment"

    @classmethod
    def parse(cls, value: str) -> Optional["ResourceType"]:
        """Match a tag or display label case-insensitively."""

        needle = (value or "").strip().lower()
        for member in cls:
            if needle in (member.value.lower(), member.label.lower()):
                return member
        return None


@dataclass
class Principal(UserMixin):
    """Role-tagged user compatible with Flask-Login."""

    username: str
    user_id: str
    role: Role

    def get_id(self) -> str:
        return self.username

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMINISTRATOR

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "user_id": self.user_id, "role": self.role.value}


def _validated_capacity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInput(f"Capacity must be a positive integer, got {value!r}.")
    return value


def _validated_category(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput("Equipment category cannot be empty.")
    return value.strip()


@dataclass
class Room:
    """Study room with a seating capacity."""

    resource_id: str
    name: str
    capacity: int

    def __post_init__(self) -> None:
        self.capacity = _validated_capacity(self.capacity)

    def type_tag(self) -> ResourceType:
        return ResourceType.ROOM

    def describe(self) -> str:
        return f"Capacity: {self.capacity} people"

    def rename(self, name: str) -> None:
        self.name = name.strip()

    def set_capacity(self, capacity: int) -> None:
        self.capacity = _validated_capacity(capacity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "type": self.type_tag().value,
            "capacity": self.capacity,
            "details": self.describe(),
        }


@dataclass
class Equipment:
    """Lab equipment grouped by a free-text category."""

    resource_id: str
    name: str
    category: str

    def __post_init__(self) -> None:
        self.category = _validated_category(self.category)

    def type_tag(self) -> ResourceType:
        return ResourceType.EQUIPMENT

    def describe(self) -> str:
        return f"Category: {self.category}"

    def rename(self, name: str) -> None:
        self.name = name.strip()

    def set_category(self, category: str) -> None:
        self.category = _validated_category(category)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "type": self.type_tag().value,
            "category": self.category,
            "details": self.describe(),
        }


Resource = Union[Room, Equipment]


@dataclass
class Reservation:
    """Booking of one resource cell; only the active flag ever changes."""

    reservation_id: str
    resource_id: str
    username: str
    day: int
    slot: int
    active: bool = True

    def cancel(self) -> None:
        self.active = False

    @property
    def status(self) -> str:
        return "ACTIVE" if self.active else "CANCELLED"

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day]

    @property
    def time_range(self) -> str:
        return SLOT_TIMES[self.slot]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "username": self.username,
            "day": self.day,
            "slot": self.slot,
            "day_name": self.day_name,
            "time_range": self.time_range,
            "status": self.status,
        }
