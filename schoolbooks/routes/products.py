from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import Cart, Category, Order, Product, ProductStatus, State, User, Wishlist
from schoolbooks.utils.responses import (
    commit_or_rollback,
    err,
    invalid,
    ok,
    page_json,
    parse_float,
    parse_int,
)

bp_products = Blueprint("products", __name__, url_prefix="/products")

WRITABLE = ("name", "author", "description", "price", "category_id", "state_id",
            "image_url", "year_of_publication")


def filtered_query(args):
    """Listing search shared by the products index and saved searches."""
    q = Product.query

    status = args.get("status", ProductStatus.SELLING.value)
    if status != "all":
        try:
            q = q.filter(Product.status == ProductStatus(status))
        except ValueError:
            # unknown status matches nothing
            return q.filter(db.false())

    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(db.or_(
            db.func.lower(Product.name).like(like),
            db.func.lower(Product.description).like(like),
            db.func.lower(Product.author).like(like),
        ))

    category_id = parse_int(args.get("category_id"))
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)

    min_price = parse_float(args.get("min_price"))
    if min_price is not None:
        q = q.filter(Product.price >= min_price)
    max_price = parse_float(args.get("max_price"))
    if max_price is not None:
        q = q.filter(Product.price <= max_price)

    seller_id = parse_int(args.get("seller_id"))
    if seller_id is not None:
        q = q.filter(Product.seller_id == seller_id)

    # city of the seller
    city_id = parse_int(args.get("city_id"))
    if city_id is not None:
        q = q.filter(Product.seller.has(User.city_id == city_id))

    buyer_id = parse_int(args.get("buyer_id"))
    if buyer_id is not None:
        q = q.filter(Product.buyer_id == buyer_id)

    sort = (args.get("sort_price") or "").lower()
    if sort:
        q = q.order_by(Product.price.desc() if sort == "desc" else Product.price.asc())
    else:
        q = q.order_by(Product.created_at.desc(), Product.id.desc())
    return q


def _validate(d: dict, partial=False) -> dict:
    errors = {}
    if not partial or "name" in d:
        name = d.get("name")
        if not isinstance(name, str) or not name.strip():
            errors["name"] = ["The name field is required."]
        elif len(name) > 255:
            errors["name"] = ["The name must not be greater than 255 characters."]
    if not partial or "price" in d:
        try:
            if Decimal(str(d.get("price"))) < 0:
                errors["price"] = ["The price must be at least 0."]
        except (InvalidOperation, ValueError):
            errors["price"] = ["The price must be a number."]
    if d.get("category_id") is not None and not db.session.get(Category, d["category_id"]):
        errors["category_id"] = ["The selected category id is invalid."]
    if d.get("state_id") is not None and not db.session.get(State, d["state_id"]):
        errors["state_id"] = ["The selected state id is invalid."]
    year = d.get("year_of_publication")
    if year is not None and parse_int(year, None, 1000, 9999) is None:
        errors["year_of_publication"] = ["The year of publication must be a valid year."]
    return errors


def _apply(p: Product, d: dict):
    for k in WRITABLE:
        if k in d:
            v = d[k]
            if k == "price":
                v = Decimal(str(v))
            setattr(p, k, v)


@bp_products.get("")
def list_products():
    page = parse_int(request.args.get("page"), 1, 1)
    per_page = parse_int(request.args.get("per_page"), current_app.config["DEFAULT_PER_PAGE"], 1, 100)
    page_obj = filtered_query(request.args).paginate(page=page, per_page=per_page, error_out=False)
    return ok(page_json(page_obj, lambda p: p.to_dict()))


@bp_products.get("/<int:pid>")
def get_product(pid: int):
    return ok(db.get_or_404(Product, pid).to_dict())


@bp_products.post("")
@require_auth
def create_product():
    u = current_user()
    tier = u.tier
    max_listings = tier.max_listings if tier else 0
    tier_name = tier.name if tier else "none"

    if max_listings == 0:
        return err(
            f"Your current tier ({tier_name}) does not allow posting products. "
            "Please upgrade your subscription.",
            403,
        )
    current = u.active_listing_count()
    if current >= max_listings:
        return err(
            f"You have reached your tier limit of {max_listings} active listings. "
            "Please upgrade your subscription or remove some existing listings.",
            403,
            current_listings=current,
            max_listings=max_listings,
        )

    d = request.get_json(silent=True) or {}
    errors = _validate(d)
    if errors:
        return invalid(errors)

    p = Product(seller_id=u.id, status=ProductStatus.SELLING)
    _apply(p, d)
    db.session.add(p)
    commit_or_rollback()
    return ok(p.to_dict(), 201)


@bp_products.put("/<int:pid>")
@require_auth
def update_product(pid: int):
    p = db.get_or_404(Product, pid)
    if p.seller_id != current_user().id:
        return err("Unauthorized", 403)
    d = request.get_json(silent=True) or {}
    errors = _validate(d, partial=True)
    if errors:
        return invalid(errors)
    _apply(p, d)
    commit_or_rollback()
    return ok(p.to_dict())


@bp_products.delete("/<int:pid>")
@require_auth
def delete_product(pid: int):
    p = db.get_or_404(Product, pid)
    if p.seller_id != current_user().id:
        return err("Unauthorized", 403)
    if p.status != ProductStatus.SELLING:
        return err("Only products that are still for sale can be deleted", 400)
    if Order.query.filter_by(product_id=p.id).first():
        return err("Products with orders cannot be deleted", 400)
    Cart.query.filter_by(product_id=p.id).delete()
    Wishlist.query.filter_by(product_id=p.id).delete()
    db.session.delete(p)
    commit_or_rollback()
    return ok({"deleted": True})
