import hmac

import pytest

from schoolbooks.db import db
from schoolbooks.models import Order, Payment, PaymentMethod, PaymentStatus
from schoolbooks.services import payment_service


@pytest.fixture
def order(buyer, product):
    o = Order(
        buyer_id=buyer.id,
        seller_id=product.seller_id,
        product_id=product.id,
        total_amount=product.price,
        shipping_address="Main St 1",
    )
    db.session.add(o)
    db.session.commit()
    return o


@pytest.fixture
def payment(order):
    return payment_service.create_payment(order, PaymentMethod.CASH_ON_DELIVERY)


def test_create_payment_copies_order_amount(payment, order):
    assert payment.payment_status == PaymentStatus.PENDING
    assert payment.payment_amount == order.total_amount
    assert payment.order_id == order.id


@pytest.mark.parametrize("prior", list(PaymentStatus))
def test_mark_as_completed_ignores_prior_state(payment, prior):
    payment.payment_status = prior
    db.session.commit()

    assert payment_service.mark_as_completed(payment, "txn_123") is True
    db.session.refresh(payment)
    assert payment.payment_status == PaymentStatus.COMPLETED
    assert payment.transaction_id == "txn_123"
    assert payment.paid_at is not None
    assert payment.is_completed()


def test_mark_as_failed_keeps_gateway_response(payment):
    assert payment_service.mark_as_failed(payment, {"code": "card_declined"}) is True
    db.session.refresh(payment)
    assert payment.is_failed()
    assert payment.payment_gateway_response == {"code": "card_declined"}


def test_failed_payment_can_still_be_completed(payment):
    payment_service.mark_as_failed(payment)
    payment_service.mark_as_completed(payment)
    assert payment.is_completed()
    assert payment.transaction_id is None


@pytest.mark.parametrize("number,kind", [
    ("4111111111111111", "Visa"),
    ("5500000000000004", "MasterCard"),
    ("340000000000009", "American Express"),
    ("6011000000000004", "Discover"),
    ("9999999999999999", "Unknown"),
    ("", "Unknown"),
])
def test_detect_card_type(number, kind):
    assert payment_service.detect_card_type(number) == kind


# ---------- HTTP ----------

def test_payments_index_only_shows_own_orders(client, auth_headers, payment, buyer, seller, make_user):
    assert [p["id"] for p in client.get("/payments", headers=auth_headers(buyer)).get_json()] == [payment.id]
    assert [p["id"] for p in client.get("/payments", headers=auth_headers(seller)).get_json()] == [payment.id]
    stranger = make_user(email="x@example.com")
    assert client.get("/payments", headers=auth_headers(stranger)).get_json() == []
    assert client.get(f"/payments/{payment.id}", headers=auth_headers(stranger)).status_code == 403


def test_create_payment_once_per_order(client, auth_headers, order, buyer):
    h = auth_headers(buyer)
    r = client.post("/payments", json={"order_id": order.id, "payment_method": "debit_card"}, headers=h)
    assert r.status_code == 201
    assert r.get_json()["payment_method"] == "debit_card"

    r = client.post("/payments", json={"order_id": order.id}, headers=h)
    assert r.status_code == 422
    assert "order_id" in r.get_json()["errors"]


def test_update_to_completed_goes_through_mark_as_completed(client, auth_headers, payment, buyer):
    r = client.put(
        f"/payments/{payment.id}",
        json={"payment_status": "completed", "transaction_id": "txn_9"},
        headers=auth_headers(buyer),
    )
    assert r.status_code == 200
    body = r.get_json()
    assert body["payment_status"] == "completed"
    assert body["transaction_id"] == "txn_9"
    assert body["paid_at"] is not None


def test_update_rejects_unknown_status(client, auth_headers, payment, buyer):
    r = client.put(f"/payments/{payment.id}", json={"payment_status": "lost"}, headers=auth_headers(buyer))
    assert r.status_code == 422


def test_completed_payment_cannot_be_deleted(client, auth_headers, payment, buyer):
    payment_service.mark_as_completed(payment, "txn_1")
    r = client.delete(f"/payments/{payment.id}", headers=auth_headers(buyer))
    assert r.status_code == 400
    assert db.session.get(Payment, payment.id) is not None


def test_payment_token_is_keyed_by_secret(app):
    token = payment_service.payment_token("4111111111111111")
    expected = hmac.new(b"test-secret-key", b"4111111111111111", "sha256").hexdigest()
    assert token == expected
    assert "4111111111111111" not in token

    app.config["SECRET_KEY"] = "another-secret"
    assert payment_service.payment_token("4111111111111111") != token
