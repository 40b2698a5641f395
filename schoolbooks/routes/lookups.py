"""Reference tables: cities, book states, categories (CRUD) and tiers (read only)."""
from flask import Blueprint, request

from schoolbooks.auth_mw import require_auth
from schoolbooks.db import db
from schoolbooks.models import Category, City, State, Tier
from schoolbooks.utils.responses import commit_or_rollback, invalid, ok

bp_lookups = Blueprint("lookups", __name__)


def _validate(model, d: dict, unique_name: bool, current=None) -> dict:
    name = d.get("name")
    if not isinstance(name, str) or not name.strip():
        return {"name": ["The name field is required."]}
    if len(name) > 255:
        return {"name": ["The name must not be greater than 255 characters."]}
    if unique_name:
        clash = model.query.filter_by(name=name).first()
        if clash and clash is not current:
            return {"name": ["The name has already been taken."]}
    if "description" in d and d["description"] is not None and not isinstance(d["description"], str):
        return {"description": ["The description must be a string."]}
    return {}


def register_lookup(model, plural: str, unique_name: bool, has_description: bool, all_map: bool):
    """Wire index/show (+ optional id->name map) and authenticated writes for one table."""

    def index():
        return ok([x.to_dict() for x in model.query.order_by(model.id).all()])

    def show(xid: int):
        return ok(db.get_or_404(model, xid).to_dict())

    def names():
        # JSON object keys are strings: {"1": "Sarajevo", ...}
        return ok({str(x.id): x.name for x in model.query.order_by(model.id).all()})

    @require_auth
    def store():
        d = request.get_json(silent=True) or {}
        errors = _validate(model, d, unique_name)
        if errors:
            return invalid(errors)
        x = model(name=d["name"])
        if has_description:
            x.description = d.get("description")
        db.session.add(x)
        commit_or_rollback()
        return ok(x.to_dict(), 201)

    @require_auth
    def update(xid: int):
        x = db.get_or_404(model, xid)
        d = request.get_json(silent=True) or {}
        errors = _validate(model, d, unique_name, current=x)
        if errors:
            return invalid(errors)
        x.name = d["name"]
        if has_description and "description" in d:
            x.description = d["description"]
        commit_or_rollback()
        return ok(x.to_dict())

    @require_auth
    def destroy(xid: int):
        x = db.get_or_404(model, xid)
        db.session.delete(x)
        commit_or_rollback()
        return "", 204

    bp_lookups.add_url_rule(f"/{plural}", f"{plural}_index", index, methods=["GET"])
    bp_lookups.add_url_rule(f"/{plural}/<int:xid>", f"{plural}_show", show, methods=["GET"])
    if all_map:
        bp_lookups.add_url_rule(f"/all-{plural}", f"{plural}_all", names, methods=["GET"])
    if model is not Tier:
        bp_lookups.add_url_rule(f"/{plural}", f"{plural}_store", store, methods=["POST"])
        bp_lookups.add_url_rule(f"/{plural}/<int:xid>", f"{plural}_update", update, methods=["PUT"])
        bp_lookups.add_url_rule(f"/{plural}/<int:xid>", f"{plural}_destroy", destroy, methods=["DELETE"])


register_lookup(City, "cities", unique_name=True, has_description=False, all_map=True)
register_lookup(State, "states", unique_name=True, has_description=True, all_map=True)
register_lookup(Category, "categories", unique_name=False, has_description=True, all_map=False)
register_lookup(Tier, "tiers", unique_name=False, has_description=True, all_map=True)
