"""Per-application directory instance."""

from __future__ import annotations

from flask import Flask, current_app

from ..data_access import seed
from ..data_access.db import get_db
from ..data_access.snapshot_dao import load_snapshot, snapshot_exists
from .directory import CampusDirectory

EXTENSION_KEY = "campus_directory"


def get_directory() -> CampusDirectory:
    """Return the directory serving the current application."""

    return current_app.extensions[EXTENSION_KEY]


def set_directory(directory: CampusDirectory, app: Flask | None = None) -> None:
    """Swap in a new directory, e.g. after loading a snapshot."""

    app = app or current_app
    app.extensions[EXTENSION_KEY] = directory


def build_directory(app: Flask) -> CampusDirectory:
    """Load the saved snapshot when allowed, otherwise start fresh."""

    with app.app_context():
        if app.config.get("LOAD_SNAPSHOT_ON_START") and snapshot_exists(get_db()):
            app.logger.info("Restoring directory from %s", app.config["DATABASE_URL"])
            return load_snapshot(get_db())
    directory = CampusDirectory()
    if app.config.get("SEED_DEFAULT_DATA"):
        seed.seed(directory)
    return directory


def init_app(app: Flask) -> None:
    set_directory(build_directory(app), app)
