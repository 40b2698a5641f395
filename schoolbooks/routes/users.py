from flask import Blueprint, request
from werkzeug.security import generate_password_hash

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import City, Product, ProductStatus, Tier, User
from schoolbooks.services.notification_service import broadcast_to_user
from schoolbooks.utils.responses import commit_or_rollback, err, invalid, ok

bp_users = Blueprint("users", __name__)

WELCOME_MESSAGE = "Welcome to SchoolBooks! Your account has been created successfully."

# columns a client may write through the generic user endpoints
USER_FIELDS = ("full_name", "email", "phone_number", "image_url", "personal_details", "city_id")
PROFILE_FIELDS = ("full_name", "phone_number", "city_id", "personal_details", "image_url")


def _apply(u: User, d: dict, fields):
    for k in fields:
        if k in d:
            setattr(u, k, d[k])


def _check_profile(d: dict) -> dict:
    errors = {}
    if "full_name" in d and (not isinstance(d["full_name"], str) or len(d["full_name"]) > 255):
        errors["full_name"] = ["The full name must be a string of at most 255 characters."]
    if "phone_number" in d and (not isinstance(d["phone_number"], str) or len(d["phone_number"]) > 20):
        errors["phone_number"] = ["The phone number must be a string of at most 20 characters."]
    if d.get("city_id") is not None and not db.session.get(City, d["city_id"]):
        errors["city_id"] = ["The selected city id is invalid."]
    url = d.get("image_url")
    if url and not str(url).startswith(("http://", "https://")):
        errors["image_url"] = ["The image url must be a valid URL."]
    return errors


def _tier_from_body():
    d = request.get_json(silent=True) or {}
    tier = db.session.get(Tier, d["tier_id"]) if d.get("tier_id") is not None else None
    if not tier:
        return None, invalid({"tier_id": ["The selected tier id is invalid."]})
    return tier, None


# ---------- Users ----------
@bp_users.get("/users")
@require_auth
def list_users():
    return ok([u.to_dict() for u in User.query.order_by(User.id).all()])


@bp_users.post("/users")
@require_auth
def create_user():
    d = request.get_json(silent=True) or {}
    miss = [k for k in ("full_name", "email", "password") if not d.get(k)]
    if miss:
        return invalid({k: [f"The {k.replace('_', ' ')} field is required."] for k in miss})
    if User.query.filter_by(email=d["email"].strip().lower()).first():
        return invalid({"email": ["The email has already been taken."]})

    u = User(password=generate_password_hash(d["password"]), tier_id=d.get("tier_id", 1))
    _apply(u, d, USER_FIELDS)
    u.email = u.email.strip().lower()
    db.session.add(u)
    commit_or_rollback()

    broadcast_to_user(u.id, WELCOME_MESSAGE, "info")
    return ok(u.to_dict(), 201)


@bp_users.get("/users/<int:uid>")
@require_auth
def get_user(uid: int):
    return ok(db.get_or_404(User, uid).to_dict())


@bp_users.put("/users/<int:uid>")
@require_auth
def update_user(uid: int):
    u = db.get_or_404(User, uid)
    if u.id != current_user().id:
        return err("Unauthorized", 403)
    d = request.get_json(silent=True) or {}
    _apply(u, d, USER_FIELDS)
    if d.get("password"):
        u.password = generate_password_hash(d["password"])
    commit_or_rollback()
    return ok(u.to_dict())


@bp_users.delete("/users/<int:uid>")
@require_auth
def delete_user(uid: int):
    u = db.get_or_404(User, uid)
    if u.id != current_user().id:
        return err("Unauthorized", 403)
    db.session.delete(u)
    commit_or_rollback()
    return ok({"deleted": True})


@bp_users.get("/users/<int:uid>/selling-products")
def selling_products(uid: int):
    db.get_or_404(User, uid)
    q = Product.query.filter_by(seller_id=uid, status=ProductStatus.SELLING)
    return ok([p.to_dict() for p in q.order_by(Product.created_at.desc()).all()])


@bp_users.get("/users/<int:uid>/bought-products")
def bought_products(uid: int):
    db.get_or_404(User, uid)
    q = Product.query.filter_by(buyer_id=uid)
    return ok([p.to_dict() for p in q.order_by(Product.updated_at.desc()).all()])


@bp_users.get("/users/<int:uid>/sold-products")
def sold_products(uid: int):
    db.get_or_404(User, uid)
    q = Product.query.filter_by(seller_id=uid, status=ProductStatus.SOLD)
    return ok([p.to_dict() for p in q.order_by(Product.updated_at.desc()).all()])


@bp_users.put("/users/<int:uid>/tier")
@require_auth
def update_tier(uid: int):
    u = db.get_or_404(User, uid)
    tier, bad = _tier_from_body()
    if bad:
        return bad
    u.tier_id = tier.id
    commit_or_rollback()
    return ok(u.to_dict(with_tier=True))


# ---------- Profile (current user) ----------
@bp_users.put("/profile")
@require_auth
def update_profile():
    u = current_user()
    d = request.get_json(silent=True) or {}
    errors = _check_profile(d)
    if errors:
        return invalid(errors)
    _apply(u, d, PROFILE_FIELDS)
    commit_or_rollback()
    return ok(u.to_dict(with_tier=True, with_cards=True))


@bp_users.put("/profile/tier")
@require_auth
def update_profile_tier():
    u = current_user()
    tier, bad = _tier_from_body()
    if bad:
        return bad
    u.tier_id = tier.id
    commit_or_rollback()
    return ok(u.to_dict(with_tier=True))


@bp_users.get("/profile/listing-status")
@require_auth
def listing_status():
    u = current_user()
    tier = u.tier
    max_listings = tier.max_listings if tier else 0
    current = u.active_listing_count()
    return ok({
        "tier_name": tier.name if tier else None,
        "max_listings": max_listings,
        "current_listings": current,
        "remaining_listings": max(0, max_listings - current),
        "can_post": max_listings > 0 and current < max_listings,
        "featured_listings_allowed": bool(tier and tier.featured_listings),
        "priority_support": bool(tier and tier.priority_support),
    })
