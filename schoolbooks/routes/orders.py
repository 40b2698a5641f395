import time
from decimal import Decimal

from flask import Blueprint, current_app, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import (
    Card,
    Order,
    OrderStatus,
    PaymentMethod,
    Product,
    ProductStatus,
    TrackingStatus,
)
from schoolbooks.services import notification_service as notify
from schoolbooks.services import payment_service
from schoolbooks.services.order_lifecycle import apply_transition
from schoolbooks.utils.responses import commit_or_rollback, err, invalid, ok

bp_orders = Blueprint("orders", __name__, url_prefix="/orders")

CARD_FIELDS = ("card_number", "expiry_month", "expiry_year", "cvv", "cardholder_name")


def _validate_order(d: dict) -> dict:
    errors = {}
    if d.get("product_id") is None:
        errors["product_id"] = ["The product id field is required."]
    elif not db.session.get(Product, d["product_id"]):
        errors["product_id"] = ["The selected product id is invalid."]
    if not isinstance(d.get("shipping_address"), str) or not d["shipping_address"].strip():
        errors["shipping_address"] = ["The shipping address field is required."]
    if d.get("payment_method") not in {m.value for m in PaymentMethod}:
        errors["payment_method"] = ["The selected payment method is invalid."]
    if d.get("notes") is not None and not isinstance(d["notes"], str):
        errors["notes"] = ["The notes must be a string."]
    return errors


def _validate_card_details(d: dict) -> dict:
    errors = {}
    sizes = {"card_number": (16, 16), "expiry_month": (2, 2), "expiry_year": (4, 4), "cvv": (3, 4)}
    for k, (lo, hi) in sizes.items():
        v = d.get(k)
        if v and not (lo <= len(str(v)) <= hi):
            errors[k] = [f"The {k.replace('_', ' ')} field has an invalid length."]
    name = d.get("cardholder_name")
    if name and len(str(name)) > 255:
        errors["cardholder_name"] = ["The cardholder name must not be greater than 255 characters."]
    return errors


def _owned(order: Order, party: str):
    u = current_user()
    owner_id = order.seller_id if party == "seller" else order.buyer_id
    if owner_id != u.id:
        return err("Unauthorized", 403)
    return None


def _fresh(order: Order):
    db.session.refresh(order)
    return order.to_dict()


@bp_orders.get("")
@require_auth
def list_orders():
    uid = current_user().id
    q = (
        Order.query.filter(db.or_(Order.buyer_id == uid, Order.seller_id == uid))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return ok([o.to_dict() for o in q.all()])


@bp_orders.get("/<int:oid>")
@require_auth
def get_order(oid: int):
    o = db.get_or_404(Order, oid)
    uid = current_user().id
    if uid not in (o.buyer_id, o.seller_id):
        return err("Unauthorized", 403)
    return ok(o.to_dict())


@bp_orders.post("")
@require_auth
def create_order():
    u = current_user()
    d = request.get_json(silent=True) or {}

    errors = _validate_order(d)
    method = d.get("payment_method")
    pays_by_card = method in {m.value for m in payment_service.CARD_METHODS}
    if pays_by_card:
        errors.update(_validate_card_details(d))
        if d.get("card_id") is not None and not db.session.get(Card, d["card_id"]):
            errors["card_id"] = ["The selected card id is invalid."]
    if errors:
        return invalid(errors)

    card_id = None
    if pays_by_card:
        has_card_id = bool(d.get("card_id"))
        has_details = all(d.get(k) for k in CARD_FIELDS)
        if not has_card_id and not has_details:
            return err(
                "Either card_id or complete card details (card_number, expiry_month, "
                "expiry_year, cvv, cardholder_name) must be provided",
                400,
            )
        if has_card_id and has_details:
            return err("Provide either card_id OR card details, not both", 400)
        if has_card_id:
            card = Card.query.filter_by(id=d["card_id"], user_id=u.id).first()
            if not card:
                return err("Card not found or unauthorized", 404)
            card_id = card.id

    product = db.session.get(Product, d["product_id"])
    if product.status != ProductStatus.SELLING:
        return err("Product is not available", 400)
    if product.seller_id == u.id:
        return err("Cannot purchase your own product", 400)

    # order + payment + seller notification commit together
    try:
        if pays_by_card and card_id is None and d.get("save_card"):
            card_id = payment_service.save_card(u.id, d, commit=False).id

        order = Order(
            buyer_id=u.id,
            seller_id=product.seller_id,
            product_id=product.id,
            total_amount=Decimal(str(product.price)),
            order_status=OrderStatus.PENDING,
            tracking_status=TrackingStatus.ORDER_PLACED,
            shipping_address=d["shipping_address"],
            notes=d.get("notes"),
        )
        db.session.add(order)
        db.session.flush()

        payment_service.create_payment(order, PaymentMethod(method), card_id, commit=False)
        db.session.flush()
        notify.notify_order_created(order, commit=False)
        commit_or_rollback()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Order creation failed")
        return err("Failed to create order", 500)

    return ok({"message": "Order placed successfully", "order": _fresh(order)}, 201)


@bp_orders.post("/<int:oid>/accept")
@require_auth
def accept_order(oid: int):
    o = db.get_or_404(Order, oid)
    denied = _owned(o, "seller")
    if denied:
        return denied
    if not apply_transition(o, "accept"):
        return err("Order cannot be accepted", 400)
    notify.notify_order_accepted(o)
    return ok({"message": "Order accepted successfully", "order": _fresh(o)})


@bp_orders.post("/<int:oid>/reject")
@require_auth
def reject_order(oid: int):
    o = db.get_or_404(Order, oid)
    denied = _owned(o, "seller")
    if denied:
        return denied
    if not apply_transition(o, "reject"):
        return err("Order cannot be rejected", 400)
    notify.notify_order_rejected(o)
    return ok({"message": "Order rejected successfully", "order": _fresh(o)})


@bp_orders.post("/<int:oid>/ship")
@require_auth
def ship_order(oid: int):
    o = db.get_or_404(Order, oid)
    denied = _owned(o, "seller")
    if denied:
        return denied
    if not apply_transition(o, "ship"):
        return err("Order cannot be shipped", 400)
    notify.notify_order_shipped(o)
    return ok({"message": "Order marked as shipped", "order": _fresh(o)})


@bp_orders.post("/<int:oid>/complete")
@require_auth
def complete_order(oid: int):
    """Buyer confirms receipt: delivered + completed + payment settled in one commit."""
    o = db.get_or_404(Order, oid)
    denied = _owned(o, "buyer")
    if denied:
        return denied

    apply_transition(o, "mark_as_delivered", commit=False)
    if not apply_transition(o, "complete", commit=False):
        db.session.rollback()
        return err("Order cannot be completed", 400)
    if o.payment is not None:
        payment_service.mark_as_completed(o.payment, f"txn_{int(time.time())}", commit=False)
    commit_or_rollback()

    notify.notify_order_completed(o)
    return ok({"message": "Order completed successfully", "order": _fresh(o)})
