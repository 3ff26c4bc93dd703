"""Store catalogue, ratings, cart, checkout and the pet shop."""
from __future__ import annotations

import logging

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from ..extensions import db
from ..models.store import (
    ORDER_CANCELLED,
    ORDER_CONFIRMED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_SHIPPED,
    Cart,
    CartItem,
    Order,
    OrderItem,
    PetOrder,
    Product,
    ProductRating,
    ShopPet,
)
from . import recommendations

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS = {
    ORDER_PENDING: {ORDER_CONFIRMED, ORDER_CANCELLED},
    ORDER_CONFIRMED: {ORDER_SHIPPED, ORDER_CANCELLED},
    ORDER_SHIPPED: {ORDER_DELIVERED},
    ORDER_DELIVERED: set(),
    ORDER_CANCELLED: set(),
}


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def list_products(category=None, search=None) -> list:
    q = Product.query
    if category:
        q = q.filter(Product.category == category.strip().lower())
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
    return q.order_by(Product.name.asc()).all()


def rate_product(user, product_id: int, rating: int) -> dict:
    product = get_product(product_id)
    if not 1 <= rating <= 5:
        raise ValidationFailed("Rating must be between 1 and 5")
    row = ProductRating.query.filter_by(user_id=user.id, product_id=product.id).first()
    if row:
        row.rating = rating
    else:
        db.session.add(ProductRating(user_id=user.id, product_id=product.id, rating=rating))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Rating was updated concurrently, please retry")
    return product.to_dict(with_rating=True)


# cart

def get_cart(user) -> Cart:
    cart = Cart.query.filter_by(user_id=user.id).first()
    if cart is None:
        cart = Cart(user_id=user.id)
        db.session.add(cart)
        db.session.commit()
    return cart


def _check_stock(product: Product, quantity: int) -> None:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1")
    if quantity > product.stock:
        raise Conflict(f"Only {product.stock} of {product.name} left in stock")


def add_to_cart(user, product_id: int, quantity: int = 1) -> Cart:
    product = get_product(product_id)
    cart = get_cart(user)
    item = CartItem.query.filter_by(cart_id=cart.id, product_id=product.id).first()
    new_quantity = (item.quantity if item else 0) + quantity
    _check_stock(product, new_quantity)
    if item:
        item.quantity = new_quantity
    else:
        db.session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
    db.session.commit()
    db.session.refresh(cart)
    return cart


def set_cart_quantity(user, product_id: int, quantity: int) -> Cart:
    cart = get_cart(user)
    item = CartItem.query.filter_by(cart_id=cart.id, product_id=product_id).first()
    if item is None:
        raise NotFound("Item is not in your cart")
    _check_stock(item.product, quantity)
    item.quantity = quantity
    db.session.commit()
    db.session.refresh(cart)
    return cart


def remove_from_cart(user, product_id: int) -> Cart:
    cart = get_cart(user)
    item = CartItem.query.filter_by(cart_id=cart.id, product_id=product_id).first()
    if item is None:
        raise NotFound("Item is not in your cart")
    db.session.delete(item)
    db.session.commit()
    db.session.refresh(cart)
    return cart


def checkout(user, shipping_address: str, phone: str) -> Order:
    cart = get_cart(user)
    if not cart.items:
        raise ValidationFailed("Your cart is empty")

    order = Order(user_id=user.id, status=ORDER_PENDING,
                  shipping_address=shipping_address, phone=phone)
    total = 0.0
    try:
        for item in list(cart.items):
            product = item.product
            taken = db.session.execute(
                update(Product)
                .where(Product.id == product.id, Product.stock >= item.quantity)
                .values(stock=Product.stock - item.quantity)
                .execution_options(synchronize_session=False)
            )
            if taken.rowcount != 1:
                raise Conflict(f"Not enough stock for {product.name}")
            order.items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                unit_price=product.price,
                quantity=item.quantity,
            ))
            total += product.price * item.quantity
            db.session.delete(item)
        order.total = round(total, 2)
        db.session.add(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    logger.info("Order %s placed by user %s, total %.2f", order.id, user.id, order.total)
    return order


def list_orders(user) -> list:
    return Order.query.filter_by(user_id=user.id).order_by(Order.created_at.desc()).all()


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def _restock(order: Order) -> None:
    for item in order.items:
        if item.product_id is not None:
            db.session.execute(
                update(Product)
                .where(Product.id == item.product_id)
                .values(stock=Product.stock + item.quantity)
                .execution_options(synchronize_session=False)
            )


def change_order_status(order: Order, status: str) -> Order:
    status = status.upper()
    if status not in ORDER_TRANSITIONS.get(order.status, set()):
        raise Conflict(f"Cannot move an order from {order.status} to {status}")
    previous = order.status
    try:
        flipped = db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == previous)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            raise Conflict("Order was updated concurrently, please retry")
        if status == ORDER_CANCELLED:
            _restock(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    logger.info("Order %s: %s -> %s", order.id, previous, status)
    return order


def cancel_order(user, order_id: int) -> Order:
    order = get_order(order_id)
    if order.user_id != user.id:
        raise PermissionDenied("You can only cancel your own orders")
    if order.status != ORDER_PENDING:
        raise Conflict("Only pending orders can be cancelled")
    return change_order_status(order, ORDER_CANCELLED)


# pet shop

def get_shop_pet(pet_id: int) -> ShopPet:
    pet = db.session.get(ShopPet, pet_id)
    if pet is None:
        raise NotFound("Pet not found")
    return pet


def list_shop_pets(include_sold: bool = False) -> list:
    q = ShopPet.query
    if not include_sold:
        q = q.filter(ShopPet.is_available.is_(True))
    return q.order_by(ShopPet.created_at.desc(), ShopPet.id.desc()).all()


def recommend_pets(user, limit: int = 5) -> list:
    prefs = user.preferences_dict()
    return [
        {**pet.to_dict(), "match_score": score}
        for score, pet in recommendations.rank(prefs, list_shop_pets(), limit)
    ]


def order_pet(user, pet_id: int, phone: str, address: str) -> PetOrder:
    pet = get_shop_pet(pet_id)
    try:
        sold = db.session.execute(
            update(ShopPet)
            .where(ShopPet.id == pet.id, ShopPet.is_available.is_(True))
            .values(is_available=False)
            .execution_options(synchronize_session=False)
        )
        if sold.rowcount != 1:
            raise Conflict("This pet is no longer available")
        pet_order = PetOrder(user_id=user.id, shop_pet_id=pet.id, phone=phone, address=address)
        db.session.add(pet_order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    logger.info("Shop pet %s ordered by user %s", pet.id, user.id)
    return pet_order


def list_pet_orders(user) -> list:
    return PetOrder.query.filter_by(user_id=user.id).order_by(PetOrder.created_at.desc()).all()
