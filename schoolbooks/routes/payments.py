from decimal import Decimal, InvalidOperation

from flask import Blueprint, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import Card, Order, Payment, PaymentMethod, PaymentStatus
from schoolbooks.services import payment_service
from schoolbooks.utils.responses import commit_or_rollback, err, invalid, ok

bp_payments = Blueprint("payments", __name__, url_prefix="/payments")


def _party_or_403(pay: Payment):
    uid = current_user().id
    if uid not in (pay.order.buyer_id, pay.order.seller_id):
        return err("Unauthorized", 403)
    return None


@bp_payments.get("")
@require_auth
def list_payments():
    uid = current_user().id
    q = (
        Payment.query.join(Order, Payment.order_id == Order.id)
        .filter(db.or_(Order.buyer_id == uid, Order.seller_id == uid))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return ok([p.to_dict() for p in q.all()])


@bp_payments.post("")
@require_auth
def create_payment():
    d = request.get_json(silent=True) or {}
    errors = {}
    order = db.session.get(Order, d["order_id"]) if d.get("order_id") is not None else None
    if not order:
        errors["order_id"] = ["The selected order id is invalid."]
    elif order.payment is not None:
        errors["order_id"] = ["The order already has a payment."]
    try:
        method = PaymentMethod(d.get("payment_method", PaymentMethod.CASH_ON_DELIVERY.value))
    except ValueError:
        errors["payment_method"] = ["The selected payment method is invalid."]
    card_id = d.get("card_id")
    if card_id is not None:
        card = db.session.get(Card, card_id)
        if not card or card.user_id != current_user().id:
            errors["card_id"] = ["The selected card id is invalid."]
    if errors:
        return invalid(errors)

    if order.buyer_id != current_user().id:
        return err("Unauthorized", 403)

    pay = payment_service.create_payment(order, method, card_id)
    return ok(pay.to_dict(), 201)


@bp_payments.get("/<int:pid>")
@require_auth
def get_payment(pid: int):
    pay = db.get_or_404(Payment, pid)
    denied = _party_or_403(pay)
    if denied:
        return denied
    return ok(pay.to_dict())


@bp_payments.put("/<int:pid>")
@require_auth
def update_payment(pid: int):
    pay = db.get_or_404(Payment, pid)
    denied = _party_or_403(pay)
    if denied:
        return denied

    d = request.get_json(silent=True) or {}
    status = d.get("payment_status")
    if status is not None:
        try:
            status = PaymentStatus(status)
        except ValueError:
            return invalid({"payment_status": ["The selected payment status is invalid."]})
    if "payment_amount" in d:
        try:
            pay.payment_amount = Decimal(str(d["payment_amount"]))
        except InvalidOperation:
            return invalid({"payment_amount": ["The payment amount must be a number."]})

    if status == PaymentStatus.COMPLETED:
        payment_service.mark_as_completed(pay, d.get("transaction_id"), commit=False)
    elif status == PaymentStatus.FAILED:
        payment_service.mark_as_failed(pay, d.get("payment_gateway_response"), commit=False)
    else:
        if status is not None:
            pay.payment_status = status
        if "transaction_id" in d:
            pay.transaction_id = d["transaction_id"]
        if "payment_gateway_response" in d:
            pay.payment_gateway_response = d["payment_gateway_response"]
    commit_or_rollback()
    return ok(pay.to_dict())


@bp_payments.delete("/<int:pid>")
@require_auth
def delete_payment(pid: int):
    pay = db.get_or_404(Payment, pid)
    if pay.order.buyer_id != current_user().id:
        return err("Unauthorized", 403)
    if pay.is_completed():
        return err("Completed payments cannot be deleted", 400)
    db.session.delete(pay)
    commit_or_rollback()
    return ok({"deleted": True})
