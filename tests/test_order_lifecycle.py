from datetime import datetime

import pytest
from sqlalchemy import text

from schoolbooks.db import db
from schoolbooks.errors import ConflictError
from schoolbooks.models import Order, OrderStatus, ProductStatus, TrackingStatus
from schoolbooks.services import order_lifecycle as lc
from schoolbooks.services.order_lifecycle import OrderSnapshot

NOW = datetime(2024, 5, 1, 12, 0, 0)


def snap(order_status=OrderStatus.PENDING, tracking=TrackingStatus.ORDER_PLACED, buyer_id=7):
    return OrderSnapshot(order_status=order_status, tracking_status=tracking, buyer_id=buyer_id)


# ---------- pure rules ----------

@pytest.mark.parametrize("status", list(OrderStatus))
def test_accept_only_from_pending(status):
    out = lc.accept(snap(order_status=status), NOW)
    if status == OrderStatus.PENDING:
        assert out.order == {
            "order_status": OrderStatus.ACCEPTED,
            "tracking_status": TrackingStatus.PREPARING,
            "accepted_at": NOW,
        }
        assert out.product == {}
    else:
        assert out is None


@pytest.mark.parametrize("status", list(OrderStatus))
def test_reject_only_from_pending_and_relists_product(status):
    out = lc.reject(snap(order_status=status), NOW)
    if status == OrderStatus.PENDING:
        assert out.order == {"order_status": OrderStatus.REJECTED}
        assert out.product == {"status": ProductStatus.SELLING, "buyer_id": None}
    else:
        assert out is None


@pytest.mark.parametrize("status", list(OrderStatus))
@pytest.mark.parametrize("tracking", list(TrackingStatus))
def test_ship_needs_accepted_and_preparing(status, tracking):
    out = lc.ship(snap(status, tracking), NOW)
    expected = status == OrderStatus.ACCEPTED and tracking == TrackingStatus.PREPARING
    assert (out is not None) == expected
    if out:
        assert out.order == {"tracking_status": TrackingStatus.SHIPPED, "shipped_at": NOW}


@pytest.mark.parametrize("status", list(OrderStatus))
@pytest.mark.parametrize("tracking", list(TrackingStatus))
def test_complete_needs_accepted_and_delivered(status, tracking):
    out = lc.complete(snap(status, tracking, buyer_id=42), NOW)
    expected = status == OrderStatus.ACCEPTED and tracking == TrackingStatus.DELIVERED
    assert (out is not None) == expected
    if out:
        assert out.order == {"order_status": OrderStatus.COMPLETED}
        assert out.product == {"status": ProductStatus.SOLD, "buyer_id": 42}


@pytest.mark.parametrize("status", list(OrderStatus))
def test_mark_as_delivered_has_no_precondition(status):
    out = lc.mark_as_delivered(snap(order_status=status), NOW)
    assert out.order == {"tracking_status": TrackingStatus.DELIVERED, "delivered_at": NOW}


def test_happy_path_through_pure_rules():
    s = snap()
    fields = {}
    for name in ("accept", "ship", "mark_as_delivered", "complete"):
        out = lc.TRANSITIONS[name](s, NOW)
        assert out is not None, name
        fields.update(out.order)
        s = OrderSnapshot(fields.get("order_status", s.order_status),
                          fields.get("tracking_status", s.tracking_status), s.buyer_id)
    assert s.order_status == OrderStatus.COMPLETED
    assert s.tracking_status == TrackingStatus.DELIVERED


# ---------- persistence adapter ----------

def _order(buyer, product):
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


def test_apply_accept_persists_and_second_accept_is_refused(buyer, product):
    o = _order(buyer, product)
    assert lc.apply_transition(o, "accept") is True
    accepted_at = o.accepted_at
    assert o.order_status == OrderStatus.ACCEPTED
    assert o.tracking_status == TrackingStatus.PREPARING
    assert accepted_at is not None

    assert lc.apply_transition(o, "accept") is False
    db.session.refresh(o)
    assert o.order_status == OrderStatus.ACCEPTED
    assert o.accepted_at == accepted_at


def test_full_lifecycle_sells_product_to_buyer(buyer, product):
    o = _order(buyer, product)
    for name in ("accept", "ship", "mark_as_delivered", "complete"):
        assert lc.apply_transition(o, name), name

    db.session.refresh(product)
    assert o.order_status == OrderStatus.COMPLETED
    assert o.tracking_status == TrackingStatus.DELIVERED
    assert product.status == ProductStatus.SOLD
    assert product.buyer_id == buyer.id


def test_reject_leaves_product_for_sale(buyer, product):
    o = _order(buyer, product)
    assert lc.apply_transition(o, "reject")
    db.session.refresh(product)
    assert o.order_status == OrderStatus.REJECTED
    assert product.status == ProductStatus.SELLING
    assert product.buyer_id is None


def test_ship_before_accept_fails(buyer, product):
    o = _order(buyer, product)
    assert lc.apply_transition(o, "ship") is False
    assert o.tracking_status == TrackingStatus.ORDER_PLACED
    assert o.shipped_at is None


def test_concurrent_product_update_rolls_back_the_transition(buyer, product):
    o = _order(buyer, product)
    assert lc.apply_transition(o, "accept")
    assert lc.apply_transition(o, "mark_as_delivered")
    assert o.product.version == 1

    # another writer bumps the row behind the ORM's back
    db.session.execute(
        text("UPDATE products SET version = version + 1 WHERE id = :id"), {"id": product.id}
    )

    with pytest.raises(ConflictError):
        lc.apply_transition(o, "complete")

    db.session.refresh(o)
    db.session.refresh(product)
    assert o.order_status == OrderStatus.ACCEPTED
    assert product.status == ProductStatus.SELLING
    assert product.buyer_id is None


def test_rejecting_a_competing_order_relists_a_sold_product(buyer, product, make_user):
    winner = _order(buyer, product)
    other = _order(make_user(email="late@example.com"), product)
    for name in ("accept", "ship", "mark_as_delivered", "complete"):
        assert lc.apply_transition(winner, name), name
    db.session.refresh(product)
    assert product.status == ProductStatus.SOLD

    # reject always writes the product back to selling
    assert lc.apply_transition(other, "reject")
    db.session.refresh(product)
    assert product.status == ProductStatus.SELLING
    assert product.buyer_id is None
