"""Resource catalog routes."""

from __future__ import annotations

from typing import Optional

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from flask_wtf import FlaskForm
from wtforms import IntegerField, SelectField, StringField, SubmitField
from wtforms.validators import InputRequired, Length
from wtforms.validators import Optional as OptionalValue

from ..models.entities import Equipment, Resource, ResourceType, Role, Room
from ..models.errors import InvalidInput
from ..services.directory import CampusDirectory
from ..services.state import get_directory
from .auth import form_errors, role_required

bp = Blueprint("resources", __name__, url_prefix="/resources")


class ResourceForm(FlaskForm):
    """Form for creating resources."""

    resource_id = StringField("Resource ID", validators=[InputRequired(), Length(max=40)])
    name = StringField("Name", validators=[InputRequired(), Length(max=150)])
    resource_type = SelectField(
        "Type",
        choices=[(member.value, member.label) for member in ResourceType],
        default=ResourceType.ROOM.value,
    )
    capacity = IntegerField("Capacity", validators=[OptionalValue()])
    category = StringField("Category", validators=[OptionalValue(), Length(max=120)])
    submit = SubmitField("Save resource")


class ResourceEditForm(FlaskForm):
    """Every field is optional; blank fields are left unchanged."""

    name = StringField("Name", validators=[OptionalValue(), Length(max=150)])
    capacity = IntegerField("Capacity", validators=[OptionalValue()])
    category = StringField("Category", validators=[OptionalValue(), Length(max=120)])
    submit = SubmitField("Update resource")


def _resource_payload(directory: CampusDirectory, resource: Resource) -> dict:
    payload = resource.to_dict()
    payload["available"] = directory.is_resource_available(resource.resource_id)
    return payload


def _parse_bool(raw: str) -> Optional[bool]:
    value = raw.strip().lower()
    if value in {"1", "true", "yes"}:
        return True
    if value in {"0", "false", "no"}:
        return False
    return None


def _apply_filters(directory: CampusDirectory) -> list[Resource]:
    """Intersect every filter present in the query string."""

    raw_name = (request.args.get("q") or "").strip()
    raw_key = (request.args.get("key") or "").strip()
    raw_type = (request.args.get("type") or "").strip()
    raw_capacity = (request.args.get("min_capacity") or "").strip()
    raw_category = (request.args.get("category") or "").strip()
    raw_available = (request.args.get("available") or "").strip()

    matches = directory.list_resources()
    selections: list[list[Resource]] = []
    if raw_name:
        selections.append(directory.search_by_name(raw_name))
    if raw_key:
        selections.append(directory.search_by_key(raw_key))
    if raw_type:
        selections.append(directory.filter_by_type(raw_type))
    if raw_capacity:
        try:
            min_capacity = int(raw_capacity)
        except ValueError as exc:
            raise InvalidInput(f"min_capacity must be an integer, got {raw_capacity!r}.") from exc
        selections.append(directory.rooms_with_min_capacity(min_capacity))
    if raw_category:
        selections.append(directory.equipment_by_category(raw_category))
    if raw_available:
        available = _parse_bool(raw_available)
        if available is None:
            raise InvalidInput(f"available must be true or false, got {raw_available!r}.")
        selections.append(directory.filter_by_availability(available))

    for selection in selections:
        keys = {resource.resource_id for resource in selection}
        matches = [resource for resource in matches if resource.resource_id in keys]
    return matches


@bp.route("/")
def list_resources():
    """List the catalog, optionally filtered."""

    directory = get_directory()
    resources = _apply_filters(directory)
    return jsonify(resources=[_resource_payload(directory, resource) for resource in resources])


@bp.route("/new", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def create_resource():
    """Allow administrators to add a room or a piece of equipment."""

    form = ResourceForm()
    if not form.validate_on_submit():
        return form_errors(form)

    resource_type = ResourceType(form.resource_type.data)
    if resource_type is ResourceType.ROOM:
        resource: Resource = Room(form.resource_id.data.strip(), form.name.data.strip(), form.capacity.data)
    elif resource_type is ResourceType.EQUIPMENT:
        resource = Equipment(form.resource_id.data.strip(), form.name.data.strip(), form.category.data or "")
    else:
        raise InvalidInput(f"Unsupported resource type {resource_type.value}.")
    directory = get_directory()
    directory.add_resource(resource, current_user.username)
    current_app.logger.info("Resource %s created by %s", resource.resource_id, current_user.username)
    return jsonify(_resource_payload(directory, resource)), 201


@bp.route("/<resource_id>")
def detail(resource_id: str):
    """Show resource details and its active reservations."""

    directory = get_directory()
    resource = directory.require_resource(resource_id)
    payload = _resource_payload(directory, resource)
    payload["reservations"] = [item.to_dict() for item in directory.resource_reservations(resource_id)]
    return jsonify(payload)


@bp.route("/<resource_id>/schedule")
def schedule(resource_id: str):
    """Weekly schedule of a resource, one entry per booked slot."""

    entries = get_directory().weekly_schedule(resource_id)
    return jsonify(
        resource_id=resource_id,
        bookings=[
            f"{item.day_name} {item.time_range}: {item.username} ({item.reservation_id})" for item in entries
        ],
        reservations=[item.to_dict() for item in entries],
    )


@bp.route("/<resource_id>/slots/<int:day>/<int:slot>")
def slot_availability(resource_id: str, day: int, slot: int):
    """Report whether one cell of the weekly grid is free."""

    available = get_directory().is_slot_available(resource_id, day, slot)
    return jsonify(resource_id=resource_id, day=day, slot=slot, available=available)


@bp.route("/<resource_id>/edit", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def edit(resource_id: str):
    """Edit the name or type-specific field of a resource."""

    form = ResourceEditForm()
    if not form.validate_on_submit():
        return form_errors(form)
    directory = get_directory()
    resource = directory.edit_resource(
        resource_id,
        current_user.username,
        new_name=form.name.data,
        capacity=form.capacity.data,
        category=form.category.data,
    )
    current_app.logger.info("Resource %s updated by %s", resource_id, current_user.username)
    return jsonify(_resource_payload(directory, resource))


@bp.route("/<resource_id>/remove", methods=["POST"])
@role_required(Role.ADMINISTRATOR)
def remove(resource_id: str):
    """Remove a resource that has no active reservations."""

    resource = get_directory().remove_resource(resource_id, current_user.username)
    current_app.logger.info("Resource %s removed by %s", resource_id, current_user.username)
    return jsonify(resource.to_dict())
