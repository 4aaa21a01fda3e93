"""Authentication blueprint handling registration, login, and logout."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask import Blueprint, abort, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf import FlaskForm
from flask_wtf.csrf import generate_csrf
from wtforms import StringField, SubmitField
from wtforms.validators import InputRequired, Length

from ..models.entities import Role
from ..services.state import get_directory

bp = Blueprint("auth", __name__, url_prefix="/auth")


class RegistrationForm(FlaskForm):
    """Self-service registration; always creates a Student."""

    username = StringField("Username", validators=[InputRequired(), Length(max=80)])
    submit = SubmitField("Create account")


class LoginForm(FlaskForm):
    """Sign in as an existing principal."""

    username = StringField("Username", validators=[InputRequired(), Length(max=80)])
    submit = SubmitField("Sign in")


def form_errors(form: FlaskForm) -> tuple[Any, int]:
    """JSON body describing a form that failed validation."""

    return jsonify(error="InvalidInput", message="Please correct the highlighted fields.", fields=form.errors), 400


def role_required(*roles: Role) -> Callable:
    """Decorator enforcing role-based access control."""

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role not in roles and not current_user.is_admin:
                abort(403)
            return view(*args, **kwargs)

        return wrapped

    return decorator


@bp.route("/csrf-token")
def csrf_token():
    """Hand out a CSRF token for subsequent form posts."""

    return jsonify(csrf_token=generate_csrf())


@bp.route("/register", methods=["POST"])
def register():
    """Register a new student and sign them in."""

    if current_user.is_authenticated:
        return jsonify(error="InvalidInput", message="You are already signed in."), 400

    form = RegistrationForm()
    if not form.validate_on_submit():
        return form_errors(form)
    principal = get_directory().add_user(form.username.data, is_admin=False)
    login_user(principal)
    current_app.logger.info("Registered %s", principal.username)
    return jsonify(principal.to_dict()), 201


@bp.route("/login", methods=["POST"])
def login():
    """Sign in an existing principal."""

    if current_user.is_authenticated:
        return jsonify(error="InvalidInput", message="You are already signed in."), 400

    form = LoginForm()
    if not form.validate_on_submit():
        return form_errors(form)
    principal = get_directory().find_principal(form.username.data.strip())
    if principal is None:
        return jsonify(error="Unauthenticated", message="Unknown username. Register first."), 401
    login_user(principal)
    return jsonify(principal.to_dict())


@bp.route("/logout")
@login_required
def logout():
    """Log out the current user."""

    logout_user()
    return jsonify(message="You have been signed out.")
