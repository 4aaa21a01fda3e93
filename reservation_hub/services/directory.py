"""Campus directory: the reservation engine behind every request.

The directory owns the resource catalog, the principal registry, the
reservation store and one ``ResourceSchedule`` per resource. Every public
method runs under a single re-entrant lock so that the "check occupancy,
then occupy" and "count active bookings, then remove" sequences stay atomic
when the engine is served by a threaded WSGI server.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from functools import wraps
from typing import Callable, Iterable, NamedTuple, Optional, TypeVar

from ..models.entities import Equipment, Principal, Reservation, Resource, ResourceType, Role, Room
from ..models.errors import (
    Conflict,
    DuplicateIdentity,
    HasActiveBookings,
    InvalidInput,
    InvalidTimeSlot,
    NotFound,
    Unauthorized,
    WrongResourceType,
)
from ..models.schedule import DAYS_PER_WEEK, SLOTS_PER_DAY, ResourceSchedule, is_valid_day, is_valid_slot
from .identifiers import IdentifierSequence, reservation_sequence, user_sequence

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def synchronized(method: F) -> F:
    """Run a directory method inside the directory lock."""

    @wraps(method)
    def wrapped(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapped  # type: ignore[return-value]


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class DirectoryState(NamedTuple):
    """Copy of the whole directory taken under one lock acquisition."""

    resources: list[Resource]
    principals: list[Principal]
    reservations: list[Reservation]
    sequences: dict[str, int]

    def is_available(self, resource_id: str) -> bool:
        return not any(item.active and item.resource_id == resource_id for item in self.reservations)


class CampusDirectory:
    """Registry of resources, principals and reservations."""

    def __init__(
        self,
        reservation_ids: Optional[IdentifierSequence] = None,
        user_ids: Optional[IdentifierSequence] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._resources: dict[str, Resource] = {}
        self._schedules: dict[str, ResourceSchedule] = {}
        self._principals: dict[str, Principal] = {}
        self._reservations: dict[str, Reservation] = {}
        self._reservation_ids = reservation_ids or reservation_sequence()
        self._user_ids = user_ids or user_sequence()

    @classmethod
    def restore(
        cls,
        resources: Iterable[Resource],
        principals: Iterable[Principal],
        reservations: Iterable[Reservation],
        next_reservation: Optional[int] = None,
        next_user: Optional[int] = None,
    ) -> "CampusDirectory":
        """Rebuild a directory from persisted entities.

        Schedules are re-derived from the active reservations and both id
        sequences continue after the highest id present (or the stored next
        value, whichever is larger) so persisted ids are never reissued.
        Raises ``DuplicateIdentity``, ``NotFound`` or ``Conflict`` when the
        entities contradict each other.
        """

        principals = list(principals)
        reservations = list(reservations)
        directory = cls(
            reservation_ids=reservation_sequence(
                (item.reservation_id for item in reservations), next_value=next_reservation
            ),
            user_ids=user_sequence((item.user_id for item in principals), next_value=next_user),
        )
        for resource in resources:
            if resource.resource_id in directory._resources:
                raise DuplicateIdentity(f"Resource ID '{resource.resource_id}' appears twice.")
            directory._store_resource(resource)
        for principal in principals:
            if principal.username in directory._principals:
                raise DuplicateIdentity(f"Username '{principal.username}' appears twice.")
            directory._principals[principal.username] = principal
        for reservation in reservations:
            if reservation.reservation_id in directory._reservations:
                raise DuplicateIdentity(f"Reservation ID '{reservation.reservation_id}' appears twice.")
            if reservation.active:
                schedule = directory._schedules.get(reservation.resource_id)
                if schedule is None:
                    raise NotFound(
                        f"Active reservation {reservation.reservation_id} targets unknown resource "
                        f"'{reservation.resource_id}'."
                    )
                schedule.occupy(reservation.day, reservation.slot, reservation.reservation_id)
            directory._reservations[reservation.reservation_id] = reservation
        return directory

    # ------------------------------------------------------------------ principals

    @synchronized
    def add_user(self, name: str, is_admin: bool = False) -> Principal:
        """Register a new principal with an explicit role."""

        if _is_blank(name):
            raise InvalidInput("Username cannot be empty.")
        username = name.strip()
        if username in self._principals:
            raise DuplicateIdentity(f"Username '{username}' already exists.")
        principal = Principal(
            username=username,
            user_id=self._user_ids.next_id(),
            role=Role.ADMINISTRATOR if is_admin else Role.STUDENT,
        )
        self._principals[username] = principal
        logger.info("Registered %s %s as %s", principal.role.value, username, principal.user_id)
        return principal

    @synchronized
    def find_principal(self, username: str) -> Optional[Principal]:
        return self._principals.get(username)

    @synchronized
    def require_principal(self, username: str) -> Principal:
        principal = self._principals.get(username)
        if principal is None:
            raise NotFound(f"User '{username}' not found.")
        return principal

    @synchronized
    def list_principals(self) -> list[Principal]:
        return list(self._principals.values())

    @synchronized
    def is_admin(self, username: str) -> bool:
        """Administrator status comes from the role flag alone."""

        principal = self._principals.get(username)
        return principal is not None and principal.is_admin

    def _require_admin(self, acting_user: str, action: str) -> None:
        if not self.is_admin(acting_user):
            raise Unauthorized(f"Only administrators can {action} resources.")

    def _resolve_or_provision(self, username: str) -> Principal:
        # Booking under an unknown username registers it as a Student.
        # Repeated calls return the same principal.
        principal = self._principals.get(username)
        if principal is None:
            principal = self.add_user(username, is_admin=False)
            logger.info("Auto-provisioned %s while booking", username)
        return principal

    # ------------------------------------------------------------------ resources

    def _store_resource(self, resource: Resource) -> None:
        self._resources[resource.resource_id] = resource
        self._schedules[resource.resource_id] = ResourceSchedule(resource.resource_id)

    @synchronized
    def add_resource(self, resource: Resource, acting_user: str) -> Resource:
        """Add a resource and its empty schedule (administrators only)."""

        self._require_admin(acting_user, "add")
        if _is_blank(resource.resource_id):
            raise InvalidInput("Resource ID cannot be empty.")
        if resource.resource_id in self._resources:
            raise DuplicateIdentity(f"Resource ID '{resource.resource_id}' already exists.")
        self._store_resource(resource)
        logger.info("%s added %s %s", acting_user, resource.type_tag().value, resource.resource_id)
        return resource

    @synchronized
    def edit_resource(
        self,
        resource_id: str,
        acting_user: str,
        new_name: Optional[str] = None,
        capacity: Optional[int] = None,
        category: Optional[str] = None,
    ) -> Resource:
        """Apply the supplied non-empty fields to a resource.

        Every value is validated before any is applied, so a rejected edit
        leaves the resource untouched.
        """

        self._require_admin(acting_user, "edit")
        if _is_blank(resource_id):
            raise InvalidInput("Resource ID cannot be empty.")
        resource = self.require_resource(resource_id)

        name_value = None if _is_blank(new_name) else new_name.strip()
        category_value = None if _is_blank(category) else category
        if isinstance(resource, Room):
            if category_value is not None:
                raise WrongResourceType(f"{resource_id} is a room; equipment category does not apply.")
            if capacity is not None:
                # Validate on a throwaway copy before touching the stored entity.
                Room(resource.resource_id, resource.name, capacity)
        elif isinstance(resource, Equipment):
            if capacity is not None:
                raise WrongResourceType(f"{resource_id} is equipment; room capacity does not apply.")
            if category_value is not None:
                Equipment(resource.resource_id, resource.name, category_value)
        else:
            raise WrongResourceType(f"Unsupported resource variant for {resource_id}.")

        if name_value is not None:
            resource.rename(name_value)
        if isinstance(resource, Room) and capacity is not None:
            resource.set_capacity(capacity)
        if isinstance(resource, Equipment) and category_value is not None:
            resource.set_category(category_value)
        logger.info("%s edited %s", acting_user, resource_id)
        return resource

    @synchronized
    def remove_resource(self, resource_id: str, acting_user: str) -> Resource:
        """Remove a resource with no active reservations (administrators only)."""

        self._require_admin(acting_user, "remove")
        if _is_blank(resource_id):
            raise InvalidInput("Resource ID cannot be empty.")
        resource = self.require_resource(resource_id)
        if self._schedules[resource_id].has_any_active():
            raise HasActiveBookings(
                f"Cannot remove resource '{resource.name}'. It has active reservations. Cancel them first."
            )
        del self._resources[resource_id]
        del self._schedules[resource_id]
        logger.info("%s removed %s", acting_user, resource_id)
        return resource

    @synchronized
    def get_resource(self, resource_id: str) -> Optional[Resource]:
        return self._resources.get(resource_id)

    @synchronized
    def require_resource(self, resource_id: str) -> Resource:
        resource = self._resources.get(resource_id)
        if resource is None:
            raise NotFound(f"Resource '{resource_id}' not found.")
        return resource

    @synchronized
    def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    # ------------------------------------------------------------------ reservations

    @synchronized
    def make_reservation(self, resource_id: str, username: str, day: int, slot: int) -> Reservation:
        """Book one cell of a resource's weekly grid.

        All checks run before anything is written: a failed booking consumes
        no id, touches no cell and provisions no principal.
        """

        if not is_valid_day(day):
            raise InvalidTimeSlot(
                f"Invalid day {day!r}. Must be 0-{DAYS_PER_WEEK - 1} (0=Monday ... 4=Friday)."
            )
        if not is_valid_slot(slot):
            raise InvalidTimeSlot(
                f"Invalid time slot {slot!r}. Must be 0-{SLOTS_PER_DAY - 1} (0=8:00-10:00, 1=10:00-12:00, ...)."
            )
        if _is_blank(username):
            raise InvalidInput("Username cannot be empty.")
        if _is_blank(resource_id):
            raise InvalidInput("Resource ID cannot be empty.")
        resource = self.require_resource(resource_id)
        schedule = self._schedules[resource_id]
        if schedule.is_active_at(day, slot):
            raise Conflict(f"Time slot already reserved for {resource.name}.")

        principal = self._resolve_or_provision(username.strip())
        reservation = Reservation(
            reservation_id=self._reservation_ids.next_id(),
            resource_id=resource_id,
            username=principal.username,
            day=day,
            slot=slot,
        )
        schedule.occupy(day, slot, reservation.reservation_id)
        self._reservations[reservation.reservation_id] = reservation
        logger.info(
            "%s booked %s %s %s as %s",
            principal.username,
            resource_id,
            reservation.day_name,
            reservation.time_range,
            reservation.reservation_id,
        )
        return reservation

    @synchronized
    def cancel_reservation(self, reservation_id: str, acting_user: str) -> Reservation:
        """Cancel a reservation owned by the caller, or any one for administrators."""

        if _is_blank(reservation_id):
            raise InvalidInput("Reservation ID cannot be empty.")
        if _is_blank(acting_user):
            raise InvalidInput("Username cannot be empty.")
        reservation = self.require_reservation(reservation_id)
        if reservation.username != acting_user and not self.is_admin(acting_user):
            raise Unauthorized("You can only cancel your own reservations.")
        if not reservation.active:
            raise InvalidInput(f"Reservation {reservation_id} is already cancelled.")

        schedule = self._schedules.get(reservation.resource_id)
        if schedule is not None and schedule.reservation_at(reservation.day, reservation.slot) == reservation_id:
            schedule.clear(reservation.day, reservation.slot)
        reservation.cancel()
        logger.info("%s cancelled %s", acting_user, reservation_id)
        return reservation

    @synchronized
    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self._reservations.get(reservation_id)

    @synchronized
    def require_reservation(self, reservation_id: str) -> Reservation:
        reservation = self._reservations.get(reservation_id)
        if reservation is None:
            raise NotFound(f"Reservation not found: {reservation_id}")
        return reservation

    @synchronized
    def list_reservations(self) -> list[Reservation]:
        """Every reservation ever made, cancelled ones included, oldest first."""

        return list(self._reservations.values())

    @synchronized
    def resource_reservations(self, resource_id: str) -> list[Reservation]:
        return [
            item for item in self._reservations.values() if item.resource_id == resource_id and item.active
        ]

    @synchronized
    def principal_reservations(self, username: str) -> list[Reservation]:
        return [item for item in self._reservations.values() if item.username == username and item.active]

    @synchronized
    def weekly_schedule(self, resource_id: str) -> list[Reservation]:
        """Active reservations of a resource in day, then slot, order."""

        self.require_resource(resource_id)
        keys = self._schedules[resource_id].active_reservations()
        return [self._reservations[key] for key in keys]

    # ------------------------------------------------------------------ availability

    @synchronized
    def is_resource_available(self, resource_id: str) -> bool:
        self.require_resource(resource_id)
        return not self._schedules[resource_id].has_any_active()

    @synchronized
    def is_slot_available(self, resource_id: str, day: int, slot: int) -> bool:
        if not is_valid_day(day) or not is_valid_slot(slot):
            raise InvalidTimeSlot(f"Invalid day/slot ({day!r}, {slot!r}).")
        self.require_resource(resource_id)
        return not self._schedules[resource_id].is_active_at(day, slot)

    @synchronized
    def filter_by_availability(self, available: bool) -> list[Resource]:
        return [
            resource
            for resource in self._resources.values()
            if (not self._schedules[resource.resource_id].has_any_active()) == available
        ]

    # ------------------------------------------------------------------ search

    @synchronized
    def search_by_name(self, text: str) -> list[Resource]:
        if _is_blank(text):
            return []
        needle = text.strip().lower()
        return [resource for resource in self._resources.values() if needle in resource.name.lower()]

    @synchronized
    def search_by_key(self, text: str) -> list[Resource]:
        if _is_blank(text):
            return []
        needle = text.strip().lower()
        return [resource for resource in self._resources.values() if needle in resource.resource_id.lower()]

    @synchronized
    def filter_by_type(self, type_tag) -> list[Resource]:
        """Resources of one variant; accepts a ``ResourceType``, tag or display label."""

        wanted = type_tag if isinstance(type_tag, ResourceType) else ResourceType.parse(type_tag)
        if wanted is None:
            return []
        return [resource for resource in self._resources.values() if resource.type_tag() is wanted]

    @synchronized
    def rooms_with_min_capacity(self, min_capacity: int) -> list[Room]:
        return [
            resource
            for resource in self._resources.values()
            if isinstance(resource, Room) and resource.capacity >= min_capacity
        ]

    @synchronized
    def equipment_by_category(self, text: str) -> list[Equipment]:
        if _is_blank(text):
            return []
        needle = text.strip().lower()
        return [
            resource
            for resource in self._resources.values()
            if isinstance(resource, Equipment) and needle in resource.category.lower()
        ]

    # ------------------------------------------------------------------ snapshot support

    @synchronized
    def snapshot_state(self) -> DirectoryState:
        """Consistent copy of every collection plus the id sequence positions."""

        return DirectoryState(
            resources=[replace(item) for item in self._resources.values()],
            principals=[replace(item) for item in self._principals.values()],
            reservations=[replace(item) for item in self._reservations.values()],
            sequences=self.sequence_state(),
        )

    @synchronized
    def sequence_state(self) -> dict[str, int]:
        """Next numbers of both id sequences, for the persistence adapter."""

        return {
            self._reservation_ids.prefix: self._reservation_ids.peek(),
            self._user_ids.prefix: self._user_ids.peek(),
        }

    def __repr__(self) -> str:
        return (
            f"CampusDirectory(resources={len(self._resources)}, principals={len(self._principals)}, "
            f"reservations={len(self._reservations)})"
        )
