"""Complaint intake, public listings, state transitions, and owner deletion."""
from flask import Blueprint, current_app, request
from flask_login import current_user
from flask_wtf import FlaskForm
from flask_wtf.file import FileField
from wtforms import StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, Optional

from models import COMPLAINT_CATEGORIES, COMPLAINT_STATES
from utils import complaint_store, follow_up_ledger
from utils.decorators import authority_required, citizen_required
from utils.errors import NotFoundError
from utils.image_utils import remove_photo, save_photo
from utils.responses import TextOnly, form_errors, load_form, strip_value, success_response
from utils.transitions import transition_complaint
from utils.validators import parse_coordinates

complaints_bp = Blueprint("complaints", __name__, url_prefix="/api/complaints")


class ComplaintForm(FlaskForm):
    title = StringField(
        "Title",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Title is required"), Length(min=3, max=200)],
    )
    description = TextAreaField(
        "Description",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Description is required"), Length(min=5, max=5000)],
    )
    category = StringField(
        "Category",
        filters=[strip_value],
        validators=[
            TextOnly(),
            DataRequired(message="Category is required"),
            AnyOf(COMPLAINT_CATEGORIES, message="Invalid category"),
        ],
    )
    address = StringField(
        "Address",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="Address is required"), Length(min=4, max=255)],
    )
    latitude = StringField("Latitude", filters=[strip_value])
    longitude = StringField("Longitude", filters=[strip_value])
    photo = FileField("Photo")


class StateChangeForm(FlaskForm):
    estado = StringField(
        "State",
        filters=[strip_value],
        validators=[TextOnly(), DataRequired(message="State is required"), AnyOf(COMPLAINT_STATES, message="Invalid state")],
    )
    comentario = TextAreaField("Comment", filters=[strip_value], validators=[TextOnly(), Optional(), Length(max=500)])


def _serialize(complaints):
    return [c.to_dict() for c in complaints]


@complaints_bp.route("", methods=["GET"])
def list_complaints():
    return success_response(_serialize(complaint_store.list_all()))


@complaints_bp.route("/search", methods=["GET"])
def search_complaints():
    term = request.args.get("q", "")
    return success_response(_serialize(complaint_store.search(term)))


@complaints_bp.route("/categoria/<string:category>", methods=["GET"])
def complaints_by_category(category):
    return success_response(_serialize(complaint_store.list_by_category(category)))


@complaints_bp.route("/estado/<string:state>", methods=["GET"])
def complaints_by_state(state):
    return success_response(_serialize(complaint_store.list_by_state(state)))


@complaints_bp.route("/usuario/mis-denuncias", methods=["GET"])
@citizen_required
def my_complaints():
    return success_response(_serialize(complaint_store.list_by_submitter(current_user.id)))


@complaints_bp.route("/<string:complaint_id>", methods=["GET"])
def get_complaint(complaint_id):
    complaint = complaint_store.get_or_raise(complaint_id)
    payload = complaint.to_dict()
    payload["seguimiento"] = [entry.to_dict() for entry in follow_up_ledger.list_for_complaint(complaint.id)]
    return success_response(payload)


@complaints_bp.route("/<string:complaint_id>/seguimiento", methods=["GET"])
def complaint_follow_ups(complaint_id):
    complaint = complaint_store.get_or_raise(complaint_id)
    entries = follow_up_ledger.list_for_complaint(complaint.id)
    return success_response([entry.to_dict() for entry in entries])


@complaints_bp.route("", methods=["POST"])
@citizen_required
def create_complaint():
    form = load_form(ComplaintForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    coordinates = parse_coordinates(form.latitude.data, form.longitude.data)

    photo_url = None
    upload = request.files.get("photo") or request.files.get("foto")
    if upload and upload.filename:
        photo_url = save_photo(upload)

    try:
        complaint = complaint_store.create(
            submitter_id=current_user.id,
            title=form.title.data,
            description=form.description.data,
            category=form.category.data,
            address=form.address.data,
            coordinates=coordinates,
            photo_url=photo_url,
        )
    except Exception:
        if photo_url:
            remove_photo(photo_url)
        raise
    return success_response(complaint.to_dict(), message="Complaint created successfully", http_status=201)


@complaints_bp.route("/<string:complaint_id>/estado", methods=["PUT", "PATCH"])
@authority_required
def change_state(complaint_id):
    form = load_form(StateChangeForm)
    if not form.validate_on_submit():
        raise form_errors(form)
    complaint = transition_complaint(
        complaint_id,
        authority_id=current_user.id,
        new_state=form.estado.data,
        comment=form.comentario.data,
    )
    return success_response(complaint.to_dict(include_follow_ups=True), message="State updated successfully")


@complaints_bp.route("/<string:complaint_id>", methods=["DELETE"])
@citizen_required
def delete_complaint(complaint_id):
    if not complaint_store.delete(complaint_id, current_user.id):
        current_app.logger.warning(
            "complaint_delete_refused",
            extra={"complaint_id": complaint_id, "user_id": current_user.id},
        )
        raise NotFoundError("Complaint not found or you do not have permission to delete it")
    return success_response(message="Complaint deleted successfully")
