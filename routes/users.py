"""Authority-only user administration."""
from flask import Blueprint, current_app
from flask_login import current_user
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional

from models import USER_ROLES, UserRole
from utils import statistics, user_directory
from utils.decorators import authority_required
from utils.responses import TextOnly, form_errors, load_form, strip_value, success_response

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


class UserCreateForm(FlaskForm):
    name = StringField("Name", filters=[strip_value], validators=[TextOnly(), DataRequired(), Length(min=3, max=100)])
    email = StringField("Email", filters=[strip_value], validators=[TextOnly(), DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[TextOnly(), DataRequired()])
    role = StringField("Role", filters=[strip_value], validators=[TextOnly(), Optional(), AnyOf(USER_ROLES, message="Invalid role")])


class UserUpdateForm(FlaskForm):
    name = StringField("Name", filters=[strip_value], validators=[TextOnly(), Optional(), Length(min=3, max=100)])
    role = StringField("Role", filters=[strip_value], validators=[TextOnly(), Optional(), AnyOf(USER_ROLES, message="Invalid role")])
    password = PasswordField("Password", validators=[TextOnly(), Optional()])


@users_bp.route("", methods=["GET"])
@authority_required
def list_users():
    return success_response([u.to_dict() for u in user_directory.list_all()])


@users_bp.route("/estadisticas/usuarios", methods=["GET"])
@authority_required
def user_statistics():
    return success_response(statistics.user_stats(current_app.config.get("STATS_WINDOW_DAYS", 30)))


@users_bp.route("/<string:user_id>", methods=["GET"])
@authority_required
def get_user(user_id):
    return success_response(user_directory.get_or_raise(user_id).to_dict())


@users_bp.route("", methods=["POST"])
@authority_required
def create_user():
    form = load_form(UserCreateForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    user = user_directory.register(
        name=form.name.data,
        email=form.email.data,
        password=form.password.data,
        role=form.role.data or UserRole.CITIZEN,
    )
    return success_response(user.to_dict(), message="User created successfully", http_status=201)


@users_bp.route("/<string:user_id>", methods=["PUT"])
@authority_required
def update_user(user_id):
    # Email is not part of the form, so it can never be changed here.
    form = load_form(UserUpdateForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    user = user_directory.admin_update(
        user_id,
        name=form.name.data or None,
        role=form.role.data or None,
        password=form.password.data or None,
    )
    return success_response(user.to_dict(), message="User updated successfully")


@users_bp.route("/<string:user_id>", methods=["DELETE"])
@authority_required
def delete_user(user_id):
    user_directory.delete(user_id, acting_user_id=current_user.id)
    return success_response(message="User deleted successfully")
