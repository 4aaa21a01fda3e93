"""Human-readable text export of the directory (write-only)."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from ..services.directory import CampusDirectory, DirectoryState

RESOURCES_FILE = "resources.txt"
RESERVATIONS_FILE = "reservations.txt"
USERS_FILE = "users.txt"


def resource_lines(state: DirectoryState) -> list[str]:
    lines = []
    for resource in state.resources:
        available = state.is_available(resource.resource_id)
        lines.append(
            " | ".join(
                [
                    resource.resource_id,
                    resource.name,
                    resource.type_tag().value,
                    str(available).lower(),
                    resource.describe(),
                ]
            )
        )
    return lines


def reservation_lines(state: DirectoryState) -> list[str]:
    return [
        f"{item.reservation_id} | {item.resource_id} | {item.username} | {item.day} | {item.slot} | {item.status}"
        for item in state.reservations
    ]


def user_lines(state: DirectoryState) -> list[str]:
    return [f"{item.username} | {item.role.value} | {item.user_id}" for item in state.principals]


def _write_listing(path: Path, title: str, columns: str, lines: list[str]) -> None:
    stamp = datetime.now().isoformat(timespec="seconds")
    with path.open("w", encoding="utf-8") as handle:
        handle.write(f"# {title} - Export Date: {stamp}\n")
        handle.write(f"# Format: {columns}\n")
        handle.write("#" + "=" * 60 + "\n")
        for line in lines:
            handle.write(line + "\n")


def export_text_files(directory: CampusDirectory, folder: str | Path) -> dict[str, Path]:
    """Write the three listings into ``folder`` and return their paths."""

    state = directory.snapshot_state()
    target = Path(folder)
    target.mkdir(parents=True, exist_ok=True)
    listings = {
        RESOURCES_FILE: ("Campus Resources", "ID | Name | Type | Available | Details", resource_lines(state)),
        RESERVATIONS_FILE: (
            "Reservations",
            "ReservationID | ResourceID | Username | Day | Slot | Status",
            reservation_lines(state),
        ),
        USERS_FILE: ("System Users", "Username | Role | UserID", user_lines(state)),
    }
    written = {}
    for filename, (title, columns, lines) in listings.items():
        path = target / filename
        _write_listing(path, title, columns, lines)
        written[filename] = path
    return written
