from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint

from ..extensions import db

ORDER_PENDING = "PENDING"
ORDER_CONFIRMED = "CONFIRMED"
ORDER_SHIPPED = "SHIPPED"
ORDER_DELIVERED = "DELIVERED"
ORDER_CANCELLED = "CANCELLED"
ORDER_STATUSES = (ORDER_PENDING, ORDER_CONFIRMED, ORDER_SHIPPED, ORDER_DELIVERED, ORDER_CANCELLED)


def _now():
    return datetime.now(timezone.utc)


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Float, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(512), nullable=True)
    category = db.Column(db.String(50), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )

    def rating_summary(self) -> dict:
        avg, count = (
            db.session.query(db.func.avg(ProductRating.rating), db.func.count(ProductRating.id))
            .filter(ProductRating.product_id == self.id)
            .one()
        )
        return {
            "average_rating": round(float(avg), 2) if avg is not None else None,
            "rating_count": count,
        }

    def to_dict(self, with_rating: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "image": self.image,
            "category": self.category,
        }
        if with_rating:
            data.update(self.rating_summary())
        return data


class ProductRating(db.Model):
    __tablename__ = "product_ratings"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_rating_user_product"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_product_rating_range"),
    )


class Cart(db.Model):
    __tablename__ = "carts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    items = db.relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id"
    )

    @property
    def total(self) -> float:
        return round(sum(i.product.price * i.quantity for i in self.items), 2)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [i.to_dict() for i in self.items],
            "total": self.total,
        }


class CartItem(db.Model):
    __tablename__ = "cart_items"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity = db.Column(db.Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_product"),
        CheckConstraint("quantity > 0", name="ck_cart_quantity_positive"),
    )

    cart = db.relationship("Cart", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "subtotal": round(self.product.price * self.quantity, 2),
        }


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = db.Column(db.String(20), nullable=False, default=ORDER_PENDING, index=True)
    total = db.Column(db.Float, nullable=False, default=0)
    shipping_address = db.Column(db.String(500), nullable=False)
    phone = db.Column(db.String(40), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=_now, onupdate=_now)

    user = db.relationship("User")
    items = db.relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user": self.user.to_public_dict() if self.user else None,
            "status": self.status,
            "total": self.total,
            "shipping_address": self.shipping_address,
            "phone": self.phone,
            "items": [i.to_dict() for i in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    product_name = db.Column(db.String(200), nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
        }


class ShopPet(db.Model):
    __tablename__ = "shop_pets"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    breed = db.Column(db.String(120), nullable=True)
    age = db.Column(db.Integer, nullable=True)
    price = db.Column(db.Float, nullable=False)
    image = db.Column(db.String(512), nullable=True)
    bio = db.Column(db.String(500), nullable=True)
    description = db.Column(db.Text, nullable=True)

    # 1..5 scales
    energy_level = db.Column(db.Integer, nullable=False, default=3)
    space_required = db.Column(db.Integer, nullable=False, default=3)
    maintenance = db.Column(db.Integer, nullable=False, default=3)
    child_friendly = db.Column(db.Boolean, nullable=False, default=True)
    allergy_safe = db.Column(db.Boolean, nullable=False, default=False)

    is_available = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    __table_args__ = (
        CheckConstraint("energy_level BETWEEN 1 AND 5", name="ck_shop_pet_energy"),
        CheckConstraint("space_required BETWEEN 1 AND 5", name="ck_shop_pet_space"),
        CheckConstraint("maintenance BETWEEN 1 AND 5", name="ck_shop_pet_maintenance"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "breed": self.breed,
            "age": self.age,
            "price": self.price,
            "image": self.image,
            "bio": self.bio,
            "description": self.description,
            "energy_level": self.energy_level,
            "space_required": self.space_required,
            "maintenance": self.maintenance,
            "child_friendly": self.child_friendly,
            "allergy_safe": self.allergy_safe,
            "is_available": self.is_available,
        }


class PetOrder(db.Model):
    __tablename__ = "pet_orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    shop_pet_id = db.Column(
        db.Integer, db.ForeignKey("shop_pets.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    phone = db.Column(db.String(40), nullable=False)
    address = db.Column(db.String(500), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ORDER_PENDING)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    shop_pet = db.relationship("ShopPet")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pet": self.shop_pet.to_dict() if self.shop_pet else None,
            "phone": self.phone,
            "address": self.address,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
