from flask import Blueprint, jsonify, request
from flask_wtf.file import FileAllowed, FileField
from wtforms import BooleanField, FloatField, IntegerField, StringField, TextAreaField
from wtforms.fields import URLField
from wtforms.validators import URL, AnyOf, DataRequired, Length, NumberRange, Optional

from ..auth.guards import role_required
from ..forms import ApiForm, NotBlank, Present
from ..media import ALLOWED_EXTENSIONS
from ..models.store import ORDER_STATUSES
from ..services import admin, caregivers

admin_bp = Blueprint("admin", __name__)


class ProductForm(ApiForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    price = FloatField("Price", validators=[Present(), NumberRange(min=0)])
    stock = IntegerField("Stock", validators=[Present(), NumberRange(min=0)])
    category = StringField("Category", validators=[Optional(), Length(max=50)])
    image_url = URLField("Image URL", validators=[Optional(), URL(message="Enter a valid URL")])
    image = FileField("Upload image", validators=[FileAllowed(sorted(ALLOWED_EXTENSIONS), "Images only!")])


class ProductUpdateForm(ProductForm):
    name = StringField("Name", validators=[Optional(), Length(max=200)])
    price = FloatField("Price", validators=[Optional(), NumberRange(min=0)])
    stock = IntegerField("Stock", validators=[Optional(), NumberRange(min=0)])


class ShopPetForm(ApiForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=120)])
    breed = StringField("Breed", validators=[Optional(), Length(max=120)])
    age = IntegerField("Age", validators=[Optional(), NumberRange(min=0, max=100)])
    price = FloatField("Price", validators=[Present(), NumberRange(min=0)])
    bio = StringField("Short bio", validators=[Optional(), Length(max=500)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    energy_level = IntegerField("Energy", validators=[Optional(), NumberRange(min=1, max=5)])
    space_required = IntegerField("Space", validators=[Optional(), NumberRange(min=1, max=5)])
    maintenance = IntegerField("Maintenance", validators=[Optional(), NumberRange(min=1, max=5)])
    child_friendly = BooleanField("Child friendly")
    allergy_safe = BooleanField("Allergy safe")
    image_url = URLField("Image URL", validators=[Optional(), URL(message="Enter a valid URL")])
    image = FileField("Upload image", validators=[FileAllowed(sorted(ALLOWED_EXTENSIONS), "Images only!")])


class ShopPetUpdateForm(ShopPetForm):
    name = StringField("Name", validators=[Optional(), Length(max=120)])
    price = FloatField("Price", validators=[Optional(), NumberRange(min=0)])
    is_available = BooleanField("Available")


class VetForm(ApiForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=120)])
    specialty = StringField("Specialty", validators=[Optional(), Length(max=120)])
    contact = StringField("Contact", validators=[Optional(), Length(max=120)])
    bio = TextAreaField("Bio", validators=[Optional(), Length(max=5000)])
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    city = StringField("City", validators=[DataRequired(), Length(max=80)])
    area = StringField("Area", validators=[DataRequired(), Length(max=80)])
    image_url = URLField("Image URL", validators=[Optional(), URL(message="Enter a valid URL")])
    image = FileField("Upload image", validators=[FileAllowed(sorted(ALLOWED_EXTENSIONS), "Images only!")])


class VetUpdateForm(VetForm):
    name = StringField("Name", validators=[NotBlank(), Optional(), Length(max=120)])
    city = StringField("City", validators=[NotBlank(), Optional(), Length(max=80)])
    area = StringField("Area", validators=[NotBlank(), Optional(), Length(max=80)])


class OrderStatusForm(ApiForm):
    status = StringField("Status", filters=[lambda s: s.upper() if s else s],
                         validators=[DataRequired(), AnyOf(ORDER_STATUSES)])


class VerifyForm(ApiForm):
    verified = BooleanField("Verified", default=True)


def _payload(form):
    data = form.provided()
    data.pop("image", None)
    return data


@admin_bp.get("/dashboard")
@role_required("admin")
def dashboard():
    return jsonify(admin.dashboard())


@admin_bp.get("/users")
@role_required("admin")
def users():
    return jsonify([u.to_dict() for u in admin.list_users()])


@admin_bp.get("/caregivers")
@role_required("admin")
def list_caregivers():
    return jsonify([c.to_dict() for c in caregivers.list_caregivers()])


@admin_bp.post("/caregivers/<int:caregiver_id>/verify")
@role_required("admin")
def verify_caregiver(caregiver_id):
    form = VerifyForm().validate_or_raise()
    verified = form.verified.data if getattr(form.verified, "raw_data", None) else True
    return jsonify(admin.set_caregiver_verified(caregiver_id, verified).to_dict())


# products

@admin_bp.post("/products")
@role_required("admin")
def create_product():
    form = ProductForm().validate_or_raise()
    product = admin.save_product(_payload(form), form.image.data or None)
    return jsonify(product.to_dict()), 201


@admin_bp.put("/products/<int:product_id>")
@role_required("admin")
def update_product(product_id):
    form = ProductUpdateForm().validate_or_raise()
    product = admin.save_product(_payload(form), form.image.data or None, product_id)
    return jsonify(product.to_dict())


@admin_bp.delete("/products/<int:product_id>")
@role_required("admin")
def delete_product(product_id):
    admin.delete_product(product_id)
    return jsonify({"message": "Product deleted"})


# pet shop

@admin_bp.post("/pets")
@role_required("admin")
def create_shop_pet():
    form = ShopPetForm().validate_or_raise()
    pet = admin.save_shop_pet(_payload(form), form.image.data or None)
    return jsonify(pet.to_dict()), 201


@admin_bp.put("/pets/<int:pet_id>")
@role_required("admin")
def update_shop_pet(pet_id):
    form = ShopPetUpdateForm().validate_or_raise()
    pet = admin.save_shop_pet(_payload(form), form.image.data or None, pet_id)
    return jsonify(pet.to_dict())


@admin_bp.delete("/pets/<int:pet_id>")
@role_required("admin")
def delete_shop_pet(pet_id):
    admin.delete_shop_pet(pet_id)
    return jsonify({"message": "Pet deleted"})


# vets

@admin_bp.post("/vets")
@role_required("admin")
def create_vet():
    form = VetForm().validate_or_raise()
    vet = admin.save_vet(_payload(form), form.image.data or None)
    return jsonify(vet.to_dict()), 201


@admin_bp.put("/vets/<int:vet_id>")
@role_required("admin")
def update_vet(vet_id):
    form = VetUpdateForm().validate_or_raise()
    vet = admin.save_vet(_payload(form), form.image.data or None, vet_id)
    return jsonify(vet.to_dict())


@admin_bp.delete("/vets/<int:vet_id>")
@role_required("admin")
def delete_vet(vet_id):
    admin.delete_vet(vet_id)
    return jsonify({"message": "Vet deleted"})


# orders

@admin_bp.get("/orders")
@role_required("admin")
def list_orders():
    return jsonify([o.to_dict() for o in admin.list_orders(request.args.get("status"))])


@admin_bp.patch("/orders/<int:order_id>")
@role_required("admin")
def update_order(order_id):
    form = OrderStatusForm().validate_or_raise()
    return jsonify(admin.update_order_status(order_id, form.status.data).to_dict())
