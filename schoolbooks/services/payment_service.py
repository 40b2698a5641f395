import hmac
import re
import uuid
from decimal import Decimal

from flask import current_app

from schoolbooks.db import db
from schoolbooks.models import (
    Card,
    Order,
    Payment,
    PaymentMethod,
    PaymentStatus,
    utcnow,
)
from schoolbooks.utils.responses import commit_or_rollback

CARD_METHODS = (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)

_CARD_TYPES = {
    "4": "Visa",
    "5": "MasterCard",
    "3": "American Express",
    "6": "Discover",
}


def detect_card_type(card_number: str) -> str:
    digits = re.sub(r"\D", "", card_number or "")
    return _CARD_TYPES.get(digits[:1], "Unknown")


def payment_token(card_number: str) -> str:
    """Opaque token standing in for the card number; the PAN is never stored."""
    secret = current_app.config["SECRET_KEY"]
    return hmac.new(secret.encode(), card_number.encode(), "sha256").hexdigest()


def simulated_token() -> str:
    return "tok_" + uuid.uuid4().hex[:13]


def save_card(user_id: int, data: dict, make_default: bool | None = None, commit=True) -> Card:
    """Store a card from raw details. Only the last four digits survive."""
    number = str(data["card_number"])
    if make_default is None:
        # first card becomes the default
        make_default = Card.query.filter_by(user_id=user_id).count() == 0
    elif make_default:
        Card.query.filter_by(user_id=user_id).update({"is_default": False})

    card = Card(
        user_id=user_id,
        card_type=detect_card_type(number),
        last_four=number[-4:],
        cardholder_name=data["cardholder_name"],
        expiry_month=str(data["expiry_month"]),
        expiry_year=str(data["expiry_year"]),
        payment_token=payment_token(number),
        is_default=bool(make_default),
    )
    db.session.add(card)
    if commit:
        commit_or_rollback()
    else:
        db.session.flush()
    return card


def create_payment(order: Order, method: PaymentMethod, card_id=None, commit=True) -> Payment:
    pay = Payment(
        order_id=order.id,
        card_id=card_id,
        payment_method=method,
        payment_status=PaymentStatus.PENDING,
        payment_amount=Decimal(str(order.total_amount)),
    )
    db.session.add(pay)
    if commit:
        commit_or_rollback()
    return pay


# Neither mark_* checks the current status or the order: a failed payment can
# be completed later and vice versa.

def mark_as_completed(payment: Payment, transaction_id: str | None = None, commit=True) -> bool:
    payment.payment_status = PaymentStatus.COMPLETED
    payment.transaction_id = transaction_id
    payment.paid_at = utcnow()
    if commit:
        commit_or_rollback()
    return True


def mark_as_failed(payment: Payment, gateway_response=None, commit=True) -> bool:
    payment.payment_status = PaymentStatus.FAILED
    payment.payment_gateway_response = gateway_response
    if commit:
        commit_or_rollback()
    return True
