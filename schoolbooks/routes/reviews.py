from flask import Blueprint, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import Product, Review
from schoolbooks.utils.responses import commit_or_rollback, err, invalid, ok, parse_int

bp_reviews = Blueprint("reviews", __name__, url_prefix="/reviews")


def _check(d: dict, partial=False) -> dict:
    errors = {}
    if not partial or "rating" in d:
        if parse_int(d.get("rating"), None, 1, 5) is None:
            errors["rating"] = ["The rating must be an integer between 1 and 5."]
    if d.get("review") is not None and not isinstance(d["review"], str):
        errors["review"] = ["The review must be a string."]
    return errors


@bp_reviews.get("")
def list_reviews():
    q = Review.query
    product_id = parse_int(request.args.get("product_id"))
    if product_id is not None:
        q = q.filter_by(product_id=product_id)
    return ok([r.to_dict() for r in q.order_by(Review.created_at.desc(), Review.id.desc()).all()])


@bp_reviews.get("/<int:rid>")
def get_review(rid: int):
    return ok(db.get_or_404(Review, rid).to_dict())


@bp_reviews.post("")
@require_auth
def create_review():
    d = request.get_json(silent=True) or {}
    errors = _check(d)
    product_id = parse_int(d.get("product_id"))
    if product_id is None or not db.session.get(Product, product_id):
        errors["product_id"] = ["The selected product id is invalid."]
    if errors:
        return invalid(errors)

    r = Review(
        user_id=current_user().id,
        product_id=product_id,
        rating=int(d["rating"]),
        review=d.get("review"),
    )
    db.session.add(r)
    commit_or_rollback()
    return ok(r.to_dict(), 201)


@bp_reviews.put("/<int:rid>")
@require_auth
def update_review(rid: int):
    r = db.get_or_404(Review, rid)
    if r.user_id != current_user().id:
        return err("Unauthorized", 403)
    d = request.get_json(silent=True) or {}
    errors = _check(d, partial=True)
    if errors:
        return invalid(errors)
    if "rating" in d:
        r.rating = int(d["rating"])
    if "review" in d:
        r.review = d["review"]
    commit_or_rollback()
    return ok(r.to_dict())


@bp_reviews.delete("/<int:rid>")
@require_auth
def delete_review(rid: int):
    r = db.get_or_404(Review, rid)
    if r.user_id != current_user().id:
        return err("Unauthorized", 403)
    db.session.delete(r)
    commit_or_rollback()
    return ok({"deleted": True})
