"""
Cart and wishlist: per-user product lists with the same endpoints.

A product appears at most once per list (also enforced by a unique
constraint), must still be for sale and may not be the user's own.
"""
from flask import Blueprint, request
from sqlalchemy.exc import IntegrityError

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import Cart, Product, ProductStatus, Wishlist
from schoolbooks.utils.responses import err, invalid, ok, parse_int


def make_list_bp(name: str, model, url_prefix: str, label: str, item_label: str,
                 unavailable_msg: str) -> Blueprint:
    bp = Blueprint(name, __name__, url_prefix=url_prefix)

    def _mine():
        return model.query.filter_by(user_id=current_user().id)

    def _own_item(item_id: int):
        item = db.session.get(model, item_id)
        if not item or item.user_id != current_user().id:
            return None
        return item

    @bp.get("")
    @require_auth
    def index():
        return ok([i.to_dict() for i in _mine().order_by(model.created_at.desc(), model.id.desc()).all()])

    @bp.get("/count")
    @require_auth
    def count():
        return ok({"count": _mine().count()})

    @bp.post("/add-product")
    @require_auth
    def add_product():
        d = request.get_json(silent=True) or {}
        product_id = parse_int(d.get("product_id"))
        if product_id is None:
            return invalid({"product_id": ["The product id field is required."]})
        product = db.session.get(Product, product_id)
        if not product:
            return err("Product not found", 404)
        if product.status != ProductStatus.SELLING:
            return err(unavailable_msg, 400)
        if product.seller_id == current_user().id:
            return err(f"You cannot add your own product to {label}", 400)
        if _mine().filter_by(product_id=product_id).first():
            return err(f"Product is already in your {label}", 400)

        fields = {"user_id": current_user().id, "product_id": product_id}
        if model is Cart:
            fields["quantity"] = 1
        item = model(**fields)
        db.session.add(item)
        try:
            db.session.commit()
        except IntegrityError:
            # lost a race with a concurrent add of the same product
            db.session.rollback()
            return err(f"Product is already in your {label}", 400)
        return ok(item.to_dict(), 201)

    @bp.delete("/remove-product/<int:product_id>")
    @require_auth
    def remove_product(product_id: int):
        item = _mine().filter_by(product_id=product_id).first()
        if not item:
            return err(f"Product not found in {label}", 404)
        db.session.delete(item)
        db.session.commit()
        return ok({"message": f"Product removed from {label} successfully"})

    @bp.delete("/clear")
    @require_auth
    def clear():
        _mine().delete()
        db.session.commit()
        return ok({"message": f"{label.capitalize()} cleared successfully"})

    @bp.get("/<int:item_id>")
    @require_auth
    def show(item_id: int):
        item = _own_item(item_id)
        if not item:
            return err(f"{item_label} not found", 404)
        return ok(item.to_dict())

    @bp.delete("/<int:item_id>")
    @require_auth
    def destroy(item_id: int):
        item = _own_item(item_id)
        if not item:
            return err(f"{item_label} not found", 404)
        db.session.delete(item)
        db.session.commit()
        return ok({"message": f"{item_label} deleted successfully"})

    return bp


bp_carts = make_list_bp(
    "carts", Cart, "/carts", "cart", "Cart item", "Product is not available for purchase"
)
bp_wishlist = make_list_bp(
    "wishlist", Wishlist, "/wishlist", "wishlist", "Wishlist item", "Product is not available"
)
