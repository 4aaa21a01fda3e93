"""Deterministic default data for the campus reservation directory."""

from __future__ import annotations

from dataclasses import replace

from ..models.entities import Equipment, Room
from ..services.directory import CampusDirectory

DEFAULT_ADMIN = "admin"

DEFAULT_STUDENTS = ("student1", "student2")

DEFAULT_RESOURCES = (
    Room("SR101", "Computer Lab", 20),
    Room("SR102", "Group Study Room", 8),
    Room("SR103", "Presentation Room", 12),
    Equipment("LE201", "Microscopes", "Biology"),
    Equipment("LE202", "Bunsen Burners", "Chemistry"),
    Equipment("LE203", "3D Printers", "Engineering"),
)


def seed(directory: CampusDirectory) -> CampusDirectory:
    """Populate a directory with the demo catalog and principals.

    Entries that already exist are left as they are, so seeding twice is
    harmless.
    """

    if directory.find_principal(DEFAULT_ADMIN) is None:
        directory.add_user(DEFAULT_ADMIN, is_admin=True)
    for username in DEFAULT_STUDENTS:
        if directory.find_principal(username) is None:
            directory.add_user(username, is_admin=False)

    for template in DEFAULT_RESOURCES:
        if directory.get_resource(template.resource_id) is not None:
            continue
        # Copy so every directory gets its own mutable entities.
        directory.add_resource(replace(template), DEFAULT_ADMIN)
    return directory
