"""
Order lifecycle.

Status flow::

    pending --accept--> accepted (tracking: preparing)
    pending --reject--> rejected           product back to "selling"
    accepted/preparing --ship--> shipped
    any --mark_as_delivered--> delivered
    accepted/delivered --complete--> completed   product "sold" to the buyer

The rules are plain functions over an ``OrderSnapshot`` and return an
``Outcome`` (the field changes for the order and its product) or ``None``
when the precondition does not hold. ``apply_transition`` is the adapter
that reads a row, applies the outcome and commits order + product together.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from schoolbooks.models import (
    Order,
    OrderStatus,
    ProductStatus,
    TrackingStatus,
    utcnow,
)
from schoolbooks.utils.responses import commit_or_rollback


@dataclass(frozen=True)
class OrderSnapshot:
    order_status: OrderStatus
    tracking_status: TrackingStatus
    buyer_id: int


@dataclass(frozen=True)
class Outcome:
    order: dict
    product: dict = field(default_factory=dict)


# ── preconditions ──────────────────────────────────

def can_be_accepted(s: OrderSnapshot) -> bool:
    return s.order_status == OrderStatus.PENDING


def can_be_shipped(s: OrderSnapshot) -> bool:
    return (
        s.order_status == OrderStatus.ACCEPTED
        and s.tracking_status == TrackingStatus.PREPARING
    )


def can_be_completed(s: OrderSnapshot) -> bool:
    return (
        s.order_status == OrderStatus.ACCEPTED
        and s.tracking_status == TrackingStatus.DELIVERED
    )


# ── transitions ────────────────────────────────────

def accept(s: OrderSnapshot, now: datetime) -> Optional[Outcome]:
    if not can_be_accepted(s):
        return None
    return Outcome(order={
        "order_status": OrderStatus.ACCEPTED,
        "tracking_status": TrackingStatus.PREPARING,
        "accepted_at": now,
    })


def reject(s: OrderSnapshot, now: datetime) -> Optional[Outcome]:
    if not can_be_accepted(s):
        return None
    return Outcome(
        order={"order_status": OrderStatus.REJECTED},
        product={"status": ProductStatus.SELLING, "buyer_id": None},
    )


def ship(s: OrderSnapshot, now: datetime) -> Optional[Outcome]:
    if not can_be_shipped(s):
        return None
    return Outcome(order={
        "tracking_status": TrackingStatus.SHIPPED,
        "shipped_at": now,
    })


def mark_as_delivered(s: OrderSnapshot, now: datetime) -> Optional[Outcome]:
    # No precondition: a carrier confirmation can always land.
    return Outcome(order={
        "tracking_status": TrackingStatus.DELIVERED,
        "delivered_at": now,
    })


def complete(s: OrderSnapshot, now: datetime) -> Optional[Outcome]:
    if not can_be_completed(s):
        return None
    return Outcome(
        order={"order_status": OrderStatus.COMPLETED},
        product={"status": ProductStatus.SOLD, "buyer_id": s.buyer_id},
    )


TRANSITIONS: dict[str, Callable[[OrderSnapshot, datetime], Optional[Outcome]]] = {
    "accept": accept,
    "reject": reject,
    "ship": ship,
    "mark_as_delivered": mark_as_delivered,
    "complete": complete,
}


# ── persistence adapter ────────────────────────────

def snapshot(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        order_status=order.order_status,
        tracking_status=order.tracking_status,
        buyer_id=order.buyer_id,
    )


def apply_transition(order: Order, name: str, now: datetime | None = None, commit: bool = True) -> bool:
    """Run transition ``name`` against a persisted order.

    Returns False (and touches nothing) when the precondition fails. With
    ``commit`` the order and product writes land in one commit; a concurrent
    product update raises ``ConflictError`` and both writes are rolled back.
    """
    outcome = TRANSITIONS[name](snapshot(order), now or utcnow())
    if outcome is None:
        return False

    for k, v in outcome.order.items():
        setattr(order, k, v)
    if outcome.product:
        product = order.product
        for k, v in outcome.product.items():
            setattr(product, k, v)

    if commit:
        commit_or_rollback()
    return True
