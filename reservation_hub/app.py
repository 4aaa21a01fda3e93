"""Application factory for the Campus Reservation Hub."""

from __future__ import annotations

import logging
from contextlib import closing
from typing import Any

import click
from flask import Flask, current_app, jsonify
from flask_login import LoginManager
from flask_wtf import CSRFProtect

from .config import BaseConfig, get_config
from .data_access import seed
from .data_access.db import ensure_schema, get_db, init_app as init_db_app, init_db, open_database
from .data_access.export import export_text_files
from .data_access.snapshot_dao import SnapshotError, load_snapshot, save_snapshot
from .models.entities import Principal
from .models.errors import ReservationHubError
from .services.state import get_directory, init_app as init_directory_app, set_directory

csrf = CSRFProtect()
login_manager = LoginManager()


@login_manager.user_loader
def load_user(username: str) -> Principal | None:
    """Look up a principal for Flask-Login session handling."""
    if not username:
        return None
    return get_directory().find_principal(username)


@login_manager.unauthorized_handler
def unauthorized() -> tuple[Any, int]:
    return jsonify(error="Unauthenticated", message="Sign in to continue."), 401


def create_app(config_object: type[BaseConfig] | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__)

    config_cls = config_object or get_config()
    app.config.from_object(config_cls)
    configure_logging(app)

    csrf.init_app(app)
    login_manager.init_app(app)
    init_db_app(app)
    init_db(app)
    init_directory_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route("/")
    def index():
        """Summarize the catalog for the landing page."""

        directory = get_directory()
        resources = directory.list_resources()
        return jsonify(
            resources=len(resources),
            available=len(directory.filter_by_availability(True)),
            active_reservations=sum(1 for item in directory.list_reservations() if item.active),
        )

    return app


def configure_logging(app: Flask) -> None:
    """Apply LOG_LEVEL to the Flask logger and the engine loggers."""

    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    logging.getLogger("reservation_hub").setLevel(level)


def register_blueprints(app: Flask) -> None:
    """Import and register application blueprints."""

    from .controllers import (  # pylint: disable=import-outside-toplevel
        admin,
        auth,
        bookings,
        resources,
    )

    app.register_blueprint(auth.bp)
    app.register_blueprint(resources.bp)
    app.register_blueprint(bookings.bp)
    app.register_blueprint(admin.bp)


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers."""

    @app.errorhandler(ReservationHubError)
    def engine_error(error: ReservationHubError) -> tuple[Any, int]:
        current_app.logger.warning("Rejected request: %s: %s", error.kind, error.message)
        return jsonify(error=error.kind, message=error.message), error.status_code

    @app.errorhandler(SnapshotError)
    def snapshot_error(error: SnapshotError) -> tuple[Any, int]:
        current_app.logger.error("Snapshot failure: %s", error)
        return jsonify(error="SnapshotError", message=str(error)), 500

    @app.errorhandler(403)
    def forbidden(error: Exception) -> tuple[Any, int]:
        return jsonify(error="Unauthorized", message="You do not have permission to do that."), 403

    @app.errorhandler(404)
    def not_found(error: Exception) -> tuple[Any, int]:
        return jsonify(error="NotFound", message="We could not locate the page you requested."), 404

    @app.errorhandler(500)
    def server_error(error: Exception) -> tuple[Any, int]:
        return jsonify(error="ServerError", message="An unexpected error occurred."), 500


def register_commands(app: Flask) -> None:
    """Persistence and export hooks for the ``flask`` command line."""

    @app.cli.command("seed-data")
    def seed_data_command() -> None:
        """Add the default catalog and principals."""

        seed.seed(get_directory())
        save_snapshot(get_directory(), get_db())
        click.echo("Seed data applied.")

    database_option = click.option(
        "--database",
        default=None,
        help="Snapshot file or sqlite URL to use instead of DATABASE_URL, e.g. a backup copy.",
    )

    @app.cli.command("save-snapshot")
    @database_option
    def save_snapshot_command(database: str | None) -> None:
        """Write the current directory to DATABASE_URL or --database."""

        try:
            if database is None:
                save_snapshot(get_directory(), get_db())
            else:
                with closing(open_database(database)) as db:
                    ensure_schema(db)
                    save_snapshot(get_directory(), db)
        except SnapshotError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"Snapshot saved to {database or app.config['DATABASE_URL']}.")

    @app.cli.command("load-snapshot")
    @database_option
    def load_snapshot_command(database: str | None) -> None:
        """Replace the directory with the snapshot in DATABASE_URL or --database."""

        floors = get_directory().sequence_state()
        try:
            if database is None:
                directory = load_snapshot(get_db(), floors=floors)
            else:
                with closing(open_database(database)) as db:
                    directory = load_snapshot(db, floors=floors)
        except SnapshotError as exc:
            raise click.ClickException(str(exc)) from exc
        set_directory(directory)
        click.echo(f"Snapshot loaded: {directory!r}")

    @app.cli.command("export-text")
    @click.option("--folder", default=None, help="Target folder (defaults to EXPORT_FOLDER).")
    def export_text_command(folder: str | None) -> None:
        """Write the resources, reservations and users listings."""

        written = export_text_files(get_directory(), folder or app.config["EXPORT_FOLDER"])
        for path in written.values():
            click.echo(f"Wrote {path}")
