"""Booking workflow blueprint."""

from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import IntegerField, SubmitField
from wtforms.validators import InputRequired

from ..services.state import get_directory
from .auth import form_errors

bp = Blueprint("bookings", __name__, url_prefix="/bookings")


class BookingRequestForm(FlaskForm):
    """Form to request one weekly slot.

    Ranges are checked by the directory so that an out-of-grid day or slot
    is always reported as ``InvalidTimeSlot``.
    """

    day = IntegerField("Day (0=Monday ... 4=Friday)", validators=[InputRequired(message="Please choose a day.")])
    slot = IntegerField("Slot (0-7)", validators=[InputRequired(message="Please choose a time slot.")])
    submit = SubmitField("Reserve")


@bp.route("/create/<resource_id>", methods=["POST"])
@login_required
def create(resource_id: str):
    """Reserve a slot of a resource for the signed-in user."""

    form = BookingRequestForm()
    if not form.validate_on_submit():
        return form_errors(form)

    reservation = get_directory().make_reservation(
        resource_id,
        current_user.username,
        form.day.data,
        form.slot.data,
    )
    current_app.logger.info("Reservation %s created by %s", reservation.reservation_id, current_user.username)
    return jsonify(reservation.to_dict()), 201


@bp.route("/my")
@login_required
def my_bookings():
    """Active reservations of the current user."""

    reservations = get_directory().principal_reservations(current_user.username)
    return jsonify(reservations=[item.to_dict() for item in reservations])


@bp.route("/<reservation_id>")
@login_required
def detail(reservation_id: str):
    """Show one reservation to its owner or an administrator."""

    reservation = get_directory().require_reservation(reservation_id)
    if reservation.username != current_user.username and not current_user.is_admin:
        abort(403)
    return jsonify(reservation.to_dict())


@bp.route("/<reservation_id>/cancel", methods=["POST"])
@login_required
def cancel(reservation_id: str):
    """Cancel a reservation; owners and administrators only."""

    reservation = get_directory().cancel_reservation(reservation_id, current_user.username)
    current_app.logger.info("Reservation %s cancelled by %s", reservation_id, current_user.username)
    return jsonify(reservation.to_dict())
