"""JSON envelope and form plumbing shared by every blueprint."""
from typing import Any, Optional

from flask import jsonify, request
from wtforms.validators import StopValidation

from utils.errors import ValidationError


def success_response(data: Any = None, message: Optional[str] = None, http_status: int = 200, **extra):
    payload = {"success": True}
    if message:
        payload["message"] = message
    if isinstance(data, list):
        payload["count"] = len(data)
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return jsonify(payload), http_status


def load_form(form_class):
    """Build ``form_class`` from the request, rejecting JSON bodies that are not objects."""
    if request.is_json:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
    return form_class()


def form_errors(form) -> ValidationError:
    errors = []
    for field_name, messages in form.errors.items():
        for message in messages:
            errors.append({"field": field_name, "message": message})
    return ValidationError(errors=errors)


def strip_value(value):
    return value.strip() if isinstance(value, str) else value


class TextOnly:
    """Stop the chain when a JSON value arrives as a number, list, or object."""

    def __init__(self, message: str = "Must be a string"):
        self.message = message

    def __call__(self, form, field):
        if field.data is not None and not isinstance(field.data, str):
            raise StopValidation(self.message)
