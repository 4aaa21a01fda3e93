"""Administrative dashboard, principal management and persistence hooks."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user
from flask_wtf import FlaskForm
from wtforms import BooleanField, StringField, SubmitField
from wtforms.validators import InputRequired, Length

from ..data_access.db import get_db
from ..data_access.export import export_text_files
from ..data_access.snapshot_dao import load_snapshot, save_snapshot
from ..models.entities import Role
from ..services.state import get_directory, set_directory
from .auth import form_errors, role_required

bp = Blueprint("admin", __name__, url_prefix="/admin")


class PrincipalForm(FlaskForm):
    """Create a principal with an explicit role."""

    username = StringField("Username", validators=[InputRequired(), Length(max=80)])
    is_admin = BooleanField("Administrator")
    submit = SubmitField("Add user")


@bp.route("/")
@role_required(Role.ADMINISTRATOR)
def dashboard():
    """Overview counts for administrators."""

    directory = get_directory()
    reservations = directory.list_reservations()
    active = sum(1 for item in reservations if item.active)
    return jsonify(
        metrics={
            "resources_total": len(directory.list_resources()),
            "resources_available": len(directory.filter_by_availability(True)),
            "users_total": len(directory.list_principals()),
            "active_reservations": active,
            "cancelled_reservations": len(reservations) - active,
        }
    )


@bp.route("/users")
@role_required(Role.ADMINISTRATOR)
def users():
    """List all principals."""

    return jsonify(users=[principal.to_dict() for principal in get_directory().list_principals()])


@bp.route("/users", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def create_user():
    """Add a student or another administrator."""

    form = PrincipalForm()
    if not form.validate_on_submit():
        return form_errors(form)
    principal = get_directory().add_user(form.username.data, is_admin=form.is_admin.data)
    current_app.logger.info("%s added %s as %s", current_user.username, principal.username, principal.role.value)
    return jsonify(principal.to_dict()), 201


@bp.route("/reservations")
@role_required(Role.ADMINISTRATOR)
def reservations():
    """Every reservation, cancelled ones included."""

    items = get_directory().list_reservations()
    return jsonify(
        reservations=[item.to_dict() for item in items],
        active=sum(1 for item in items if item.active),
        cancelled=sum(1 for item in items if not item.active),
    )


@bp.route("/snapshot/save", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def save():
    """Persist the full directory state."""

    save_snapshot(get_directory(), get_db())
    current_app.logger.info("Snapshot saved by %s", current_user.username)
    return jsonify(message="Snapshot saved.")


@bp.route("/snapshot/load", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def load():
    """Replace the in-memory directory with the stored snapshot."""

    directory = load_snapshot(get_db(), floors=get_directory().sequence_state())
    set_directory(directory)
    current_app.logger.info("Snapshot loaded by %s", current_user.username)
    return jsonify(
        message="Snapshot loaded.",
        resources=len(directory.list_resources()),
        users=len(directory.list_principals()),
        reservations=len(directory.list_reservations()),
    )


@bp.route("/export", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def export():
    """Write the three text listings into EXPORT_FOLDER."""

    written = export_text_files(get_directory(), current_app.config["EXPORT_FOLDER"])
    return jsonify(files={name: str(path) for name, path in written.items()})
