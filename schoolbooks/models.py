from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import Enum, Index

from schoolbooks.db import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(dt):
    return dt.isoformat() if dt else None


def _money(v):
    return float(v) if v is not None else None


def _values(enum_cls):
    return [m.value for m in enum_cls]


class ProductStatus(PyEnum):
    SELLING = "selling"
    SOLD = "sold"
    BOUGHT = "bought"


class OrderStatus(PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TrackingStatus(PyEnum):
    ORDER_PLACED = "order_placed"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class PaymentMethod(PyEnum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(PyEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class NotificationType(PyEnum):
    ORDER_CREATED = "order_created"
    ORDER_ACCEPTED = "order_accepted"
    ORDER_REJECTED = "order_rejected"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    ORDER_COMPLETED = "order_completed"


# ---------- Lookups ----------
class Tier(db.Model):
    __tablename__ = "tiers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(8, 2), nullable=False, default=0)
    max_listings = db.Column(db.Integer, nullable=False, default=0)
    featured_listings = db.Column(db.Boolean, nullable=False, default=False)
    priority_support = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": _money(self.price),
            "max_listings": self.max_listings,
            "featured_listings": bool(self.featured_listings),
            "priority_support": bool(self.priority_support),
        }


class City(db.Model):
    __tablename__ = "cities"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class State(db.Model):
    """Condition grade of a listed book (Good, Very Good, ...)."""

    __tablename__ = "states"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}


# ---------- Users ----------
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(20))
    image_url = db.Column(db.String(500))
    personal_details = db.Column(db.Text)
    city_id = db.Column(db.Integer, db.ForeignKey("cities.id"), nullable=True)
    tier_id = db.Column(db.Integer, db.ForeignKey("tiers.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    city = db.relationship("City")
    tier = db.relationship("Tier")
    cards = db.relationship(
        "Card", back_populates="user", cascade="all, delete-orphan", order_by="Card.id"
    )

    def to_dict_basic(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
        }

    def to_dict(self, with_tier=False, with_cards=False):
        d = {
            **self.to_dict_basic(),
            "image_url": self.image_url,
            "personal_details": self.personal_details,
            "city_id": self.city_id,
            "tier_id": self.tier_id,
            "city": self.city.to_dict() if self.city else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_tier:
            d["tier"] = self.tier.to_dict() if self.tier else None
        if with_cards:
            d["cards"] = [c.to_dict() for c in self.cards]
        return d

    def active_listing_count(self) -> int:
        return Product.query.filter_by(
            seller_id=self.id, status=ProductStatus.SELLING
        ).count()


class Card(db.Model):
    __tablename__ = "cards"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    card_type = db.Column(db.String(40))
    last_four = db.Column(db.String(4), nullable=False)
    cardholder_name = db.Column(db.String(255), nullable=False)
    expiry_month = db.Column(db.String(2), nullable=False)
    expiry_year = db.Column(db.String(4), nullable=False)
    payment_token = db.Column(db.String(255))
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="cards")

    def to_dict(self):
        # payment_token stays server-side
        return {
            "id": self.id,
            "user_id": self.user_id,
            "card_type": self.card_type,
            "last_four": self.last_four,
            "cardholder_name": self.cardholder_name,
            "expiry_month": self.expiry_month,
            "expiry_year": self.expiry_year,
            "is_default": bool(self.is_default),
            "created_at": _iso(self.created_at),
        }


# ---------- Listings ----------
class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    author = db.Column(db.String(255))
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    status = db.Column(
        Enum(ProductStatus, name="product_status", values_callable=_values),
        nullable=False,
        default=ProductStatus.SELLING,
        index=True,
    )
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    state_id = db.Column(db.Integer, db.ForeignKey("states.id"), nullable=True)
    image_url = db.Column(db.String(500))
    year_of_publication = db.Column(db.Integer)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    seller = db.relationship("User", foreign_keys=[seller_id])
    buyer = db.relationship("User", foreign_keys=[buyer_id])
    category = db.relationship("Category")
    state = db.relationship("State")

    # UPDATE ... WHERE version = :old; a concurrent writer gets StaleDataError
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self, with_relations=True):
        d = {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "description": self.description,
            "price": _money(self.price),
            "seller_id": self.seller_id,
            "buyer_id": self.buyer_id,
            "status": self.status.value if self.status else None,
            "category_id": self.category_id,
            "state_id": self.state_id,
            "image_url": self.image_url,
            "year_of_publication": self.year_of_publication,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_relations:
            d["category"] = self.category.to_dict() if self.category else None
            d["state"] = self.state.to_dict() if self.state else None
            d["seller"] = self.seller.to_dict_basic() if self.seller else None
            d["buyer"] = self.buyer.to_dict_basic() if self.buyer else None
        return d


# ---------- Orders & payments ----------
class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    order_status = db.Column(
        Enum(OrderStatus, name="order_status", values_callable=_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    tracking_status = db.Column(
        Enum(TrackingStatus, name="tracking_status", values_callable=_values),
        nullable=False,
        default=TrackingStatus.ORDER_PLACED,
    )
    shipping_address = db.Column(db.String(500), nullable=False)
    notes = db.Column(db.Text)
    accepted_at = db.Column(db.DateTime)
    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    buyer = db.relationship("User", foreign_keys=[buyer_id])
    seller = db.relationship("User", foreign_keys=[seller_id])
    product = db.relationship("Product")
    payment = db.relationship("Payment", back_populates="order", uselist=False)

    __table_args__ = (
        Index("ix_order_status_created", "order_status", "created_at"),
    )

    def to_dict(self, with_relations=True):
        d = {
            "id": self.id,
            "buyer_id": self.buyer_id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "total_amount": _money(self.total_amount),
            "order_status": self.order_status.value,
            "tracking_status": self.tracking_status.value,
            "shipping_address": self.shipping_address,
            "notes": self.notes,
            "accepted_at": _iso(self.accepted_at),
            "shipped_at": _iso(self.shipped_at),
            "delivered_at": _iso(self.delivered_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_relations:
            d["product"] = self.product.to_dict(with_relations=False) if self.product else None
            d["buyer"] = self.buyer.to_dict_basic() if self.buyer else None
            d["seller"] = self.seller.to_dict_basic() if self.seller else None
            d["payment"] = self.payment.to_dict() if self.payment else None
        return d


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="SET NULL"), nullable=True)
    payment_method = db.Column(
        Enum(PaymentMethod, name="payment_method", values_callable=_values),
        nullable=False,
        default=PaymentMethod.CASH_ON_DELIVERY,
    )
    payment_status = db.Column(
        Enum(PaymentStatus, name="payment_status", values_callable=_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_amount = db.Column(db.Numeric(10, 2), nullable=False)
    transaction_id = db.Column(db.String(100))
    payment_gateway_response = db.Column(db.JSON)
    paid_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    order = db.relationship("Order", back_populates="payment")
    card = db.relationship("Card")

    __table_args__ = (
        Index("ix_payment_status_created", "payment_status", "created_at"),
    )

    def is_completed(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED

    def is_failed(self) -> bool:
        return self.payment_status == PaymentStatus.FAILED

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "card_id": self.card_id,
            "payment_method": self.payment_method.value,
            "payment_status": self.payment_status.value,
            "payment_amount": _money(self.payment_amount),
            "transaction_id": self.transaction_id,
            "payment_gateway_response": self.payment_gateway_response,
            "paid_at": _iso(self.paid_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(db.String(50), nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order")

    def to_dict(self, with_order=True):
        d = {
            "id": self.id,
            "user_id": self.user_id,
            "message": self.message,
            "notification_type": self.notification_type,
            "is_read": bool(self.is_read),
            "order_id": self.order_id,
            "created_at": _iso(self.created_at),
        }
        if with_order:
            d["order"] = self.order.to_dict(with_relations=False) if self.order else None
        return d


# ---------- Per-user collections ----------
class Cart(db.Model):
    __tablename__ = "carts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow)

    product = db.relationship("Product")

    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_cart_user_product"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": self.product.to_dict() if self.product else None,
            "created_at": _iso(self.created_at),
        }


class Wishlist(db.Model):
    __tablename__ = "wishlists"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    product = db.relationship("Product")

    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "created_at": _iso(self.created_at),
        }


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    review = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Review id={self.id} product_id={self.product_id} rating={self.rating}>"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "rating": self.rating,
            "review": self.review,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class SavedSearch(db.Model):
    __tablename__ = "saved_searches"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    search_query = db.Column(db.String(255), nullable=False)
    search_name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("user_id", "search_query", name="uq_saved_search_user_query"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "search_query": self.search_query,
            "search_name": self.search_name,
            "created_at": _iso(self.created_at),
        }


# ---------- Auth bookkeeping ----------
class PasswordReset(db.Model):
    __tablename__ = "password_resets"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    token = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class RevokedToken(db.Model):
    __tablename__ = "revoked_tokens"

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    revoked_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class CacheEntry(db.Model):
    __tablename__ = "cache_entries"

    key = db.Column(db.String(191), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)


__all__ = [
    "db",
    "utcnow",
    "ProductStatus",
    "OrderStatus",
    "TrackingStatus",
    "PaymentMethod",
    "PaymentStatus",
    "NotificationType",
    "Tier",
    "City",
    "State",
    "Category",
    "User",
    "Card",
    "Product",
    "Order",
    "Payment",
    "Notification",
    "Cart",
    "Wishlist",
    "Review",
    "SavedSearch",
    "PasswordReset",
    "RevokedToken",
    "CacheEntry",
]
