"""Save and restore the full directory state as a SQLite snapshot."""

from __future__ import annotations

import logging
import sqlite3
from typing import Mapping, Optional

from ..models.entities import Equipment, Principal, Reservation, Resource, ResourceType, Role, Room
from ..models.errors import ReservationHubError
from ..services.directory import CampusDirectory
from ..services.identifiers import RESERVATION_PREFIX, USER_PREFIX
from .db import get_db, query_all, query_one, schema_ready, write_many

logger = logging.getLogger(__name__)

_SCHEMA_INSTRUCTIONS = (
    "Snapshot tables are missing. Initialize the database with "
    "`flask --app reservation_hub.app init-db` before saving or loading."
)


class SnapshotError(RuntimeError):
    """Raised when a snapshot cannot be written or read back."""


def _resource_row(position: int, resource: Resource) -> tuple:
    if isinstance(resource, Room):
        return (position, resource.resource_id, resource.name, ResourceType.ROOM.value, resource.capacity, None)
    if isinstance(resource, Equipment):
        return (
            position,
            resource.resource_id,
            resource.name,
            ResourceType.EQUIPMENT.value,
            None,
            resource.category,
        )
    raise SnapshotError(f"Unsupported resource variant: {type(resource).__name__}")


def _row_to_resource(row) -> Resource:
    resource_type = ResourceType.parse(row["resource_type"])
    if resource_type is ResourceType.ROOM:
        return Room(resource_id=row["resource_id"], name=row["name"], capacity=row["capacity"])
    if resource_type is ResourceType.EQUIPMENT:
        return Equipment(resource_id=row["resource_id"], name=row["name"], category=row["category"])
    raise SnapshotError(f"Unknown resource type '{row['resource_type']}' for {row['resource_id']}.")


def _row_to_principal(row) -> Principal:
    return Principal(username=row["username"], user_id=row["user_id"], role=Role(row["role"]))


def _row_to_reservation(row) -> Reservation:
    return Reservation(
        reservation_id=row["reservation_id"],
        resource_id=row["resource_id"],
        username=row["username"],
        day=row["day_index"],
        slot=row["slot_index"],
        active=bool(row["active"]),
    )


def save_snapshot(directory: CampusDirectory, connection: Optional[sqlite3.Connection] = None) -> None:
    """Replace the stored snapshot with the directory's current state."""

    db = connection or get_db()
    resources, principals, reservations, sequences = directory.snapshot_state()
    try:
        write_many(
            db,
            [
                ("DELETE FROM resources", [()]),
                ("DELETE FROM principals", [()]),
                ("DELETE FROM reservations", [()]),
                ("DELETE FROM id_sequences", [()]),
                (
                    """
                    INSERT INTO resources (position, resource_id, name, resource_type, capacity, category)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [_resource_row(position, resource) for position, resource in enumerate(resources)],
                ),
                (
                    "INSERT INTO principals (position, username, user_id, role) VALUES (?, ?, ?, ?)",
                    [
                        (position, item.username, item.user_id, item.role.value)
                        for position, item in enumerate(principals)
                    ],
                ),
                (
                    """
                    INSERT INTO reservations (
                        position, reservation_id, resource_id, username, day_index, slot_index, active
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            position,
                            item.reservation_id,
                            item.resource_id,
                            item.username,
                            item.day,
                            item.slot,
                            int(item.active),
                        )
                        for position, item in enumerate(reservations)
                    ],
                ),
                (
                    "INSERT INTO id_sequences (prefix, next_value) VALUES (?, ?)",
                    list(sequences.items()),
                ),
            ],
        )
    except sqlite3.OperationalError as exc:
        raise SnapshotError(_SCHEMA_INSTRUCTIONS) from exc
    logger.info(
        "Saved snapshot: %d resources, %d principals, %d reservations",
        len(resources),
        len(principals),
        len(reservations),
    )


def snapshot_exists(connection: Optional[sqlite3.Connection] = None) -> bool:
    """Return True when a previously saved snapshot is available."""

    db = connection or get_db()
    if not schema_ready(db):
        return False
    row = query_one(db, "SELECT COUNT(*) AS total FROM id_sequences")
    return bool(row and row["total"])


def load_snapshot(
    connection: Optional[sqlite3.Connection] = None,
    floors: Optional[Mapping[str, int]] = None,
) -> CampusDirectory:
    """Rebuild a directory from the stored snapshot.

    ``floors`` maps an id prefix to the lowest next value the restored
    sequence may use. Pass the running directory's ``sequence_state()`` so
    ids issued since the last save are not handed out again.
    """

    db = connection or get_db()
    if not schema_ready(db):
        raise SnapshotError(_SCHEMA_INSTRUCTIONS)
    try:
        resource_rows = query_all(db, "SELECT * FROM resources ORDER BY position")
        principal_rows = query_all(db, "SELECT * FROM principals ORDER BY position")
        reservation_rows = query_all(db, "SELECT * FROM reservations ORDER BY position")
        sequence_rows = query_all(db, "SELECT prefix, next_value FROM id_sequences")
    except sqlite3.OperationalError as exc:
        raise SnapshotError(_SCHEMA_INSTRUCTIONS) from exc

    sequences = {row["prefix"]: row["next_value"] for row in sequence_rows}
    for prefix, floor in (floors or {}).items():
        sequences[prefix] = max(sequences.get(prefix, floor), floor)
    try:
        directory = CampusDirectory.restore(
            resources=[_row_to_resource(row) for row in resource_rows],
            principals=[_row_to_principal(row) for row in principal_rows],
            reservations=[_row_to_reservation(row) for row in reservation_rows],
            next_reservation=sequences.get(RESERVATION_PREFIX),
            next_user=sequences.get(USER_PREFIX),
        )
    except (ReservationHubError, ValueError) as exc:
        logger.error("Rejected snapshot: %s", exc)
        raise SnapshotError(f"Snapshot is inconsistent: {exc}") from exc
    logger.info("Loaded snapshot: %r", directory)
    return directory
