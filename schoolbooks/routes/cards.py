from flask import Blueprint, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import Card
from schoolbooks.services.payment_service import detect_card_type, simulated_token
from schoolbooks.utils.responses import commit_or_rollback, err, invalid, ok

bp_cards = Blueprint("cards", __name__, url_prefix="/credit-cards")

# field -> (min length, max length)
STORE_RULES = {
    "card_number": (13, 19),
    "cardholder_name": (1, 255),
    "expiry_month": (1, 2),
    "expiry_year": (2, 4),
    "cvv": (3, 4),
}
UPDATE_RULES = {k: STORE_RULES[k] for k in ("cardholder_name", "expiry_month", "expiry_year")}


def _check(d: dict, rules: dict, partial: bool) -> dict:
    errors = {}
    for k, (lo, hi) in rules.items():
        if k not in d:
            if not partial:
                errors[k] = [f"The {k.replace('_', ' ')} field is required."]
            continue
        v = d[k]
        if not isinstance(v, str) or not (lo <= len(v) <= hi):
            errors[k] = [f"The {k.replace('_', ' ')} must be a string of {lo} to {hi} characters."]
    if "is_default" in d and not isinstance(d["is_default"], bool):
        errors["is_default"] = ["The is default field must be true or false."]
    return errors


def _unset_defaults(user_id: int, except_id: int | None = None):
    q = Card.query.filter_by(user_id=user_id)
    if except_id is not None:
        q = q.filter(Card.id != except_id)
    q.update({"is_default": False})


def _mine(cid: int):
    card = db.get_or_404(Card, cid)
    if card.user_id != current_user().id:
        return None, err("Unauthorized", 403)
    return card, None


@bp_cards.get("")
@require_auth
def list_cards():
    return ok([c.to_dict() for c in current_user().cards])


@bp_cards.post("")
@require_auth
def store_card():
    u = current_user()
    d = request.get_json(silent=True) or {}
    errors = _check(d, STORE_RULES, partial=False)
    if errors:
        return invalid(errors)

    card = Card(
        user_id=u.id,
        card_type=detect_card_type(d["card_number"]),
        last_four=d["card_number"][-4:],
        cardholder_name=d["cardholder_name"],
        expiry_month=d["expiry_month"],
        expiry_year=d["expiry_year"],
        payment_token=simulated_token(),
        is_default=d.get("is_default", False),
    )
    if card.is_default:
        _unset_defaults(u.id)
    db.session.add(card)
    commit_or_rollback()
    return ok(card.to_dict(), 201)


@bp_cards.get("/<int:cid>")
@require_auth
def show_card(cid: int):
    card, denied = _mine(cid)
    if denied:
        return denied
    return ok(card.to_dict())


@bp_cards.put("/<int:cid>")
@require_auth
def update_card(cid: int):
    card, denied = _mine(cid)
    if denied:
        return denied
    d = request.get_json(silent=True) or {}
    errors = _check(d, UPDATE_RULES, partial=True)
    if errors:
        return invalid(errors)

    if d.get("is_default"):
        _unset_defaults(card.user_id, except_id=card.id)
    for k in ("cardholder_name", "expiry_month", "expiry_year", "is_default"):
        if k in d:
            setattr(card, k, d[k])
    commit_or_rollback()
    return ok(card.to_dict())


@bp_cards.delete("/<int:cid>")
@require_auth
def delete_card(cid: int):
    card, denied = _mine(cid)
    if denied:
        return denied
    was_default = card.is_default
    user_id = card.user_id
    db.session.delete(card)
    db.session.flush()

    if was_default:
        successor = Card.query.filter_by(user_id=user_id).order_by(Card.id).first()
        if successor:
            successor.is_default = True
    commit_or_rollback()
    return "", 204


@bp_cards.post("/<int:cid>/make-default")
@require_auth
def make_default(cid: int):
    card, denied = _mine(cid)
    if denied:
        return denied
    _unset_defaults(card.user_id)
    card.is_default = True
    commit_or_rollback()
    return ok(card.to_dict())
