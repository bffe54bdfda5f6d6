"""Registration, login, and profile endpoints."""
from flask import Blueprint
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional

from models import USER_ROLES, UserRole
from utils import google_identity, user_directory
from utils.responses import TextOnly, form_errors, load_form, strip_value, success_response
from utils.tokens import issue_token

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


class RegisterForm(FlaskForm):
    name = StringField(
        "Name",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Name is required"), Length(min=3, max=100)],
    )
    email = StringField(
        "Email",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Email is required"), Email(message="Invalid email"), Length(max=255)],
    )
    password = PasswordField("Password", validators=[TextOnly(), DataRequired(message="Password is required")])
    role = StringField(
        "Role",
        filters=[strip_value],
        validators=[
            TextOnly(),
            Optional(),
            AnyOf([UserRole.CITIZEN.value], message="Public registration creates citizen accounts only"),
        ],
    )


class LoginForm(FlaskForm):
    email = StringField(
        "Email",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Email is required"), Email(message="Invalid email")],
    )
    password = PasswordField("Password", validators=[TextOnly(), DataRequired(message="Password is required")])
    role = StringField(
        "Role",
        filters=[strip_value],
        validators=[TextOnly(), Optional(), AnyOf(USER_ROLES, message="Invalid user type")],
    )


class GoogleLoginForm(FlaskForm):
    credential = StringField("Credential", validators=[TextOnly(), DataRequired(message="Google credential is required")])
    role = StringField(
        "Role",
        filters=[strip_value],
        validators=[TextOnly(), Optional(), AnyOf(USER_ROLES, message="Invalid role")],
    )


class ProfileForm(FlaskForm):
    name = StringField(
        "Name",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Name is required"), Length(min=3, max=100)],
    )


class ChangePasswordForm(FlaskForm):
    current_password = PasswordField("Current password", validators=[TextOnly(), DataRequired()])
    new_password = PasswordField("New password", validators=[TextOnly(), DataRequired()])


def _session_payload(user) -> dict:
    return {"usuario": user.to_dict(), "token": issue_token(user)}


@auth_bp.route("/register", methods=["POST"])
def register():
    form = load_form(RegisterForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    user = user_directory.register(
        name=form.name.data,
        email=form.email.data,
        password=form.password.data,
        role=UserRole.CITIZEN,
    )
    return success_response(_session_payload(user), message="User registered successfully", http_status=201)


@auth_bp.route("/login", methods=["POST"])
def login():
    form = load_form(LoginForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    user = user_directory.authenticate(form.email.data, form.password.data, role=form.role.data or None)
    return success_response(_session_payload(user), message="Login successful")


@auth_bp.route("/google", methods=["POST"])
def google_login():
    form = load_form(GoogleLoginForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    claims = google_identity.verify_credential(form.credential.data)
    name = claims.get("name") or claims.get("given_name")
    user = user_directory.sign_in_with_google(claims.get("email"), name, requested_role=form.role.data or None)
    return success_response(_session_payload(user), message="Google login successful")


@auth_bp.route("/profile", methods=["GET"])
@login_required
def profile():
    return success_response(current_user.to_dict())


@auth_bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    form = load_form(ProfileForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    user = user_directory.update_profile(current_user._get_current_object(), form.name.data)
    return success_response(user.to_dict(), message="Profile updated successfully")


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    form = load_form(ChangePasswordForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    user_directory.change_password(
        current_user._get_current_object(),
        form.current_password.data,
        form.new_password.data,
    )
    return success_response(message="Password updated successfully")
