"""
Order notifications: one persisted row per event plus a real-time push on
``user.<id>``. There is no dedup: calling a notifier twice stores and
publishes twice.
"""

import logging
from datetime import datetime, timezone

from flask import current_app

from schoolbooks.db import db
from schoolbooks.models import Notification, NotificationType, Order
from schoolbooks.utils.broadcast import user_channel
from schoolbooks.utils.responses import commit_or_rollback

log = logging.getLogger(__name__)


def broadcast_to_user(user_id: int, message: str, type_: str = "info"):
    payload = {
        "message": message,
        "type": type_,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    broadcaster = current_app.extensions["broadcaster"]
    try:
        broadcaster.publish(user_channel(user_id), payload)
    except Exception as e:
        # a missed push leaves the stored row in place
        log.warning("broadcast to user %s failed: %s", user_id, e)
    return payload


def create_order_notification(order: Order, type_: NotificationType, user_id: int, message: str, commit=True) -> Notification:
    n = Notification(
        user_id=user_id,
        message=message,
        notification_type=type_.value,
        order_id=order.id,
        is_read=False,
    )
    db.session.add(n)
    if commit:
        commit_or_rollback()
    broadcast_to_user(user_id, message, type_.value)
    return n


def notify_order_created(order: Order, commit=True):
    msg = f"New order received for your product: {order.product.name}"
    return create_order_notification(order, NotificationType.ORDER_CREATED, order.seller_id, msg, commit)


def notify_order_accepted(order: Order, commit=True):
    msg = f"Your order for {order.product.name} has been accepted by the seller"
    return create_order_notification(order, NotificationType.ORDER_ACCEPTED, order.buyer_id, msg, commit)


def notify_order_rejected(order: Order, commit=True):
    msg = f"Your order for {order.product.name} has been rejected by the seller"
    return create_order_notification(order, NotificationType.ORDER_REJECTED, order.buyer_id, msg, commit)


def notify_order_shipped(order: Order, commit=True):
    msg = f"Your order for {order.product.name} has been shipped"
    return create_order_notification(order, NotificationType.ORDER_SHIPPED, order.buyer_id, msg, commit)


def notify_order_delivered(order: Order, commit=True):
    msg = f"Your order for {order.product.name} has been delivered"
    return create_order_notification(order, NotificationType.ORDER_DELIVERED, order.buyer_id, msg, commit)


def notify_order_completed(order: Order, commit=True):
    msg = f"Order for {order.product.name} has been completed"
    return create_order_notification(order, NotificationType.ORDER_COMPLETED, order.seller_id, msg, commit)
