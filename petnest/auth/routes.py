from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import BooleanField, FloatField, IntegerField, PasswordField, StringField, TextAreaField
from wtforms.fields import EmailField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional

from ..forms import ApiForm
from ..media import ALLOWED_EXTENSIONS
from ..models.user import Caregiver, User
from ..services import accounts
from .guards import issue_token, principal, role_required

auth_bp = Blueprint("auth", __name__)


class LocationFields:
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    city = StringField("City", validators=[Optional(), Length(max=80)])
    area = StringField("Area", validators=[Optional(), Length(max=80)])


class PreferencesForm(ApiForm):
    daily_availability = IntegerField("Hours available per day", validators=[Optional(), NumberRange(min=0, max=24)])
    has_outdoor_space = BooleanField("Outdoor space")
    has_children = BooleanField("Children at home")
    has_allergies = BooleanField("Allergies")
    experience_level = IntegerField("Experience", validators=[Optional(), NumberRange(min=1, max=5)])


class RegisterUserForm(PreferencesForm, LocationFields):
    name = StringField("Name", validators=[DataRequired(), Length(min=2, max=120)])
    email = EmailField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8)])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])


class RegisterCaregiverForm(ApiForm, LocationFields):
    name = StringField("Name", validators=[DataRequired(), Length(min=2, max=120)])
    email = EmailField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8)])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    bio = TextAreaField("Bio", validators=[Optional(), Length(max=2000)])
    experience_years = IntegerField("Years of experience", validators=[Optional(), NumberRange(min=0, max=80)])
    hourly_rate = FloatField("Hourly rate", validators=[Optional(), NumberRange(min=0)])


class LoginForm(ApiForm):
    email = EmailField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])


class AdminLoginForm(ApiForm):
    username = StringField("Username", validators=[DataRequired()])
    password = PasswordField("Password", validators=[DataRequired()])


class UserProfileForm(ApiForm, LocationFields):
    name = StringField("Name", validators=[Optional(), Length(min=2, max=120)])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])


class CaregiverProfileForm(ApiForm, LocationFields):
    name = StringField("Name", validators=[Optional(), Length(min=2, max=120)])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    bio = TextAreaField("Bio", validators=[Optional(), Length(max=2000)])
    experience_years = IntegerField("Years of experience", validators=[Optional(), NumberRange(min=0, max=80)])
    hourly_rate = FloatField("Hourly rate", validators=[Optional(), NumberRange(min=0)])


class ImageForm(ApiForm):
    image = FileField("Image", validators=[FileRequired(), FileAllowed(sorted(ALLOWED_EXTENSIONS), "Images only!")])


def _session_payload(account, status=200):
    return jsonify({"token": issue_token(account), "role": account.role, "account": account.to_dict()}), status


# users

@auth_bp.post("/users/register")
def register_user():
    form = RegisterUserForm().validate_or_raise()
    user = accounts.register_user(form.data)
    return _session_payload(user, 201)


@auth_bp.post("/users/login")
def login_user():
    form = LoginForm().validate_or_raise()
    user = accounts.authenticate(User, form.email.data, form.password.data)
    return _session_payload(user)


@auth_bp.get("/users/verify-token")
@login_required
def verify_token():
    return jsonify({"valid": True, "role": current_user.role, "id": current_user.id})


@auth_bp.get("/users/userdata")
@role_required("user")
def user_data():
    return jsonify(current_user.to_dict())


@auth_bp.put("/users/update-profile")
@role_required("user")
def update_user_profile():
    form = UserProfileForm().validate_or_raise()
    user = accounts.update_user_profile(principal(), form.provided())
    return jsonify(user.to_dict())


@auth_bp.put("/users/update-preferences")
@role_required("user")
def update_preferences():
    form = PreferencesForm().validate_or_raise()
    user = accounts.update_preferences(principal(), form.provided())
    return jsonify(user.to_dict())


@auth_bp.post("/users/update-image")
@role_required("user")
def update_user_image():
    form = ImageForm().validate_or_raise()
    url = accounts.update_image(principal(), form.image.data)
    return jsonify({"image": url})


# caregivers

@auth_bp.post("/caregivers/register")
def register_caregiver():
    form = RegisterCaregiverForm().validate_or_raise()
    caregiver = accounts.register_caregiver(form.data)
    return _session_payload(caregiver, 201)


@auth_bp.post("/caregivers/login")
def login_caregiver():
    form = LoginForm().validate_or_raise()
    caregiver = accounts.authenticate(Caregiver, form.email.data, form.password.data)
    return _session_payload(caregiver)


@auth_bp.get("/caregivers/caregiverdata")
@role_required("caregiver")
def caregiver_data():
    return jsonify(current_user.to_dict())


@auth_bp.put("/caregivers/update-profile")
@role_required("caregiver")
def update_caregiver_profile():
    form = CaregiverProfileForm().validate_or_raise()
    caregiver = accounts.update_caregiver_profile(principal(), form.provided())
    return jsonify(caregiver.to_dict())


@auth_bp.post("/caregivers/update-image")
@role_required("caregiver")
def update_caregiver_image():
    form = ImageForm().validate_or_raise()
    url = accounts.update_image(principal(), form.image.data)
    return jsonify({"image": url})


# admin

@auth_bp.post("/admin/login")
def login_admin():
    form = AdminLoginForm().validate_or_raise()
    admin = accounts.authenticate_admin(form.username.data, form.password.data)
    return _session_payload(admin)
