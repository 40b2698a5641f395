from flask import Blueprint, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import Notification
from schoolbooks.utils.responses import err, ok

bp_notifications = Blueprint("notifications", __name__, url_prefix="/notifications")

TRUTHY = {"1", "true", "True", "yes", "on"}


def _mine(nid: int):
    n = db.get_or_404(Notification, nid)
    if n.user_id != current_user().id:
        return None, err("Unauthorized", 403)
    return n, None


@bp_notifications.get("")
@require_auth
def list_notifications():
    uid = current_user().id
    q = Notification.query.filter_by(user_id=uid)
    if request.args.get("unread_only") in TRUTHY:
        q = q.filter_by(is_read=False)
    items = q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    unread = Notification.query.filter_by(user_id=uid, is_read=False).count()
    return ok({"notifications": [n.to_dict() for n in items], "unread_count": unread})


@bp_notifications.post("/mark-all-read")
@require_auth
def mark_all_read():
    Notification.query.filter_by(user_id=current_user().id, is_read=False).update({"is_read": True})
    db.session.commit()
    return ok({"message": "All notifications marked as read"})


@bp_notifications.post("/<int:nid>/mark-read")
@require_auth
def mark_read(nid: int):
    n, denied = _mine(nid)
    if denied:
        return denied
    n.is_read = True
    db.session.commit()
    return ok({"message": "Notification marked as read"})


@bp_notifications.get("/<int:nid>")
@require_auth
def get_notification(nid: int):
    n, denied = _mine(nid)
    if denied:
        return denied
    return ok(n.to_dict())


@bp_notifications.delete("/<int:nid>")
@require_auth
def delete_notification(nid: int):
    n, denied = _mine(nid)
    if denied:
        return denied
    db.session.delete(n)
    db.session.commit()
    return ok({"deleted": True})
