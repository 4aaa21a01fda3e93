"""SQLite plumbing for the directory snapshot."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable, Sequence

import click
from flask import Flask, current_app, g

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"
SNAPSHOT_TABLES = ("resources", "principals", "reservations", "id_sequences")

_URL_PREFIXES = ("sqlite:///", "sqlite://")


def _create_connection(database_url: str) -> sqlite3.Connection:
    """Open the SQLite database named by a ``sqlite://`` URL."""

    for prefix in _URL_PREFIXES:
        if database_url.startswith(prefix):
            target = database_url[len(prefix):] or ":memory:"
            break
    else:
        raise ValueError(f"Unsupported DATABASE_URL {database_url!r}; expected sqlite:///<path>.")

    connection = sqlite3.connect(target, check_same_thread=False)
    connection.row_factory = sqlite3.Row
    return connection


def get_db() -> sqlite3.Connection:
    """Connection bound to the current app context."""

    if "db_conn" not in g:
        g.db_conn = _create_connection(current_app.config["DATABASE_URL"])
    return g.db_conn  # type: ignore[return-value]


def close_db(exception: Exception | None = None) -> None:
    connection = g.pop("db_conn", None)
    if connection is not None:
        connection.close()


def query_all(db: sqlite3.Connection, query: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
    return db.execute(query, params or []).fetchall()


def query_one(db: sqlite3.Connection, query: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
    return db.execute(query, params or []).fetchone()


def write_many(db: sqlite3.Connection, statements: Iterable[tuple[str, Sequence[Sequence[Any]]]]) -> None:
    """Run several ``executemany`` batches as one transaction.

    Either every batch lands or, on any sqlite error, none of them do.
    """

    with db:
        for query, rows in statements:
            db.executemany(query, rows)


def open_database(target: str) -> sqlite3.Connection:
    """Open a snapshot database given as a sqlite URL or a plain file path."""

    if not target.startswith(_URL_PREFIXES):
        target = f"sqlite:///{Path(target).expanduser()}"
    return _create_connection(target)


def ensure_schema(db: sqlite3.Connection) -> None:
    db.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
    db.commit()


def schema_ready(db: sqlite3.Connection) -> bool:
    """True when every snapshot table exists."""

    rows = query_all(db, "SELECT name FROM sqlite_master WHERE type = 'table'")
    present = {row["name"] for row in rows}
    return all(table in present for table in SNAPSHOT_TABLES)


def init_db(app: Flask | None = None) -> None:
    """Create any missing snapshot tables; existing rows are kept."""

    app = app or current_app
    with app.app_context():
        ensure_schema(get_db())


def init_app(app: Flask) -> None:
    app.teardown_appcontext(close_db)

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Create the snapshot tables."""

        init_db(app)
        click.echo(f"Snapshot tables ready in {app.config['DATABASE_URL']}.")
