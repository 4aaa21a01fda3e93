"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Generator

import pytest
from flask import Flask

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reservation_hub.app import create_app
from reservation_hub.config import TestingConfig
from reservation_hub.data_access import seed
from reservation_hub.services.directory import CampusDirectory
from reservation_hub.services.state import get_directory


class _TestConfig(TestingConfig):
    DATABASE_URL: str = ""
    EXPORT_FOLDER: str = ""
    SEED_DEFAULT_DATA = True


@pytest.fixture()
def app(tmp_path: Path) -> Generator[Flask, None, None]:
    """Configure a Flask application for testing with a temp SQLite snapshot."""

    _TestConfig.DATABASE_URL = f"sqlite:///{tmp_path / 'test.db'}"
    _TestConfig.EXPORT_FOLDER = str(tmp_path / "exports")
    application = create_app(_TestConfig)
    yield application


@pytest.fixture()
def client(app: Flask):
    """Flask test client."""

    return app.test_client()


@pytest.fixture()
def runner(app: Flask):
    """Flask CLI runner."""

    return app.test_cli_runner()


@pytest.fixture()
def app_directory(app: Flask) -> CampusDirectory:
    """The directory instance served by the test app."""

    with app.app_context():
        return get_directory()


@pytest.fixture()
def directory() -> CampusDirectory:
    """A standalone directory holding the default catalog and principals."""

    return seed.seed(CampusDirectory())


@pytest.fixture()
def empty_directory() -> CampusDirectory:
    return CampusDirectory()
