from flask import Blueprint, jsonify
from wtforms import DateField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length

from ..auth.guards import principal, role_required
from ..forms import ApiForm, Present
from ..services import vets

vets_bp = Blueprint("vets", __name__)


class AppointmentForm(ApiForm):
    vet_id = IntegerField("Vet", validators=[Present()])
    date = DateField("Date", validators=[DataRequired()])
    time = StringField("Time", validators=[DataRequired(), Length(max=20)])
    reason = TextAreaField("Reason", validators=[DataRequired(), Length(max=2000)])


@vets_bp.get("/users/vetinfo")
@role_required("user")
def vet_info():
    result = vets.list_vets(principal())
    return jsonify({
        "nearby_vets": [v.to_dict() for v in result["nearby_vets"]],
        "all_vets": [v.to_dict() for v in result["all_vets"]],
    })


@vets_bp.get("/users/appointments")
@role_required("user")
def my_appointments():
    return jsonify([a.to_dict() for a in vets.list_appointments(principal())])


@vets_bp.post("/users/appointments")
@role_required("user")
def book_appointment():
    form = AppointmentForm().validate_or_raise()
    appointment = vets.create_appointment(principal(), form.data)
    return jsonify(appointment.to_dict()), 201
