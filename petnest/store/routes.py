from flask import Blueprint, jsonify, request
from wtforms import IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange

from ..auth.guards import principal, role_required
from ..forms import ApiForm, Present
from ..services import store

store_bp = Blueprint("store", __name__)


class RatingForm(ApiForm):
    product_id = IntegerField("Product", validators=[Present()])
    rating = IntegerField("Rating", validators=[Present(), NumberRange(min=1, max=5)])


class CartAddForm(ApiForm):
    product_id = IntegerField("Product", validators=[Present()])
    quantity = IntegerField("Quantity", default=1, validators=[NumberRange(min=1, max=99)])


class CartQuantityForm(ApiForm):
    quantity = IntegerField("Quantity", validators=[Present(), NumberRange(min=1, max=99)])


class CheckoutForm(ApiForm):
    shipping_address = TextAreaField("Shipping address", validators=[DataRequired(), Length(max=500)])
    phone = StringField("Phone", validators=[DataRequired(), Length(max=40)])


class PetOrderForm(ApiForm):
    pet_id = IntegerField("Pet", validators=[Present()])
    phone = StringField("Phone", validators=[DataRequired(), Length(max=40)])
    address = TextAreaField("Address", validators=[DataRequired(), Length(max=500)])


# catalogue

@store_bp.get("/users/store")
def list_products():
    rows = store.list_products(request.args.get("category"), request.args.get("q"))
    return jsonify([p.to_dict(with_rating=True) for p in rows])


@store_bp.get("/users/store/<int:product_id>")
def product_detail(product_id):
    return jsonify(store.get_product(product_id).to_dict(with_rating=True))


@store_bp.post("/users/ratings")
@role_required("user")
def rate_product():
    form = RatingForm().validate_or_raise()
    return jsonify(store.rate_product(principal(), form.product_id.data, form.rating.data))


# cart

@store_bp.get("/users/cart")
@role_required("user")
def view_cart():
    return jsonify(store.get_cart(principal()).to_dict())


@store_bp.post("/users/cart")
@role_required("user")
def add_to_cart():
    form = CartAddForm().validate_or_raise()
    cart = store.add_to_cart(principal(), form.product_id.data, form.quantity.data or 1)
    return jsonify(cart.to_dict())


@store_bp.put("/users/cart/<int:product_id>")
@role_required("user")
def set_quantity(product_id):
    form = CartQuantityForm().validate_or_raise()
    cart = store.set_cart_quantity(principal(), product_id, form.quantity.data)
    return jsonify(cart.to_dict())


@store_bp.delete("/users/cart/<int:product_id>")
@role_required("user")
def remove_from_cart(product_id):
    return jsonify(store.remove_from_cart(principal(), product_id).to_dict())


# orders

@store_bp.get("/users/orders")
@role_required("user")
def list_orders():
    return jsonify([o.to_dict() for o in store.list_orders(principal())])


@store_bp.post("/users/orders")
@role_required("user")
def checkout():
    form = CheckoutForm().validate_or_raise()
    order = store.checkout(principal(), form.shipping_address.data.strip(), form.phone.data.strip())
    return jsonify(order.to_dict()), 201


@store_bp.post("/users/orders/<int:order_id>/cancel")
@role_required("user")
def cancel_order(order_id):
    return jsonify(store.cancel_order(principal(), order_id).to_dict())


# pet shop

@store_bp.get("/users/petShop")
def list_shop_pets():
    return jsonify([p.to_dict() for p in store.list_shop_pets()])


@store_bp.get("/users/petShop/<int:pet_id>")
def shop_pet_detail(pet_id):
    return jsonify(store.get_shop_pet(pet_id).to_dict())


@store_bp.get("/users/petShop/recommendations")
@role_required("user")
def recommendations():
    limit = min(request.args.get("limit", 5, type=int), 20)
    return jsonify(store.recommend_pets(principal(), limit))


@store_bp.get("/users/petShop/orders")
@role_required("user")
def list_pet_orders():
    return jsonify([o.to_dict() for o in store.list_pet_orders(principal())])


@store_bp.post("/users/petShop/order")
@role_required("user")
def order_pet():
    form = PetOrderForm().validate_or_raise()
    pet_order = store.order_pet(
        principal(), form.pet_id.data, form.phone.data.strip(), form.address.data.strip()
    )
    return jsonify(pet_order.to_dict()), 201
