from flask import Blueprint, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.db import db
from schoolbooks.models import SavedSearch
from schoolbooks.utils.responses import err, invalid, ok

bp_saved = Blueprint("saved_searches", __name__, url_prefix="/saved-searches")


def _text(v, required: bool, field: str) -> str | None:
    if v is None or v == "":
        return f"The {field} field is required." if required else None
    if not isinstance(v, str):
        return f"The {field} must be a string."
    if len(v) > 255:
        return f"The {field} must not be greater than 255 characters."
    return None


def _mine():
    return SavedSearch.query.filter_by(user_id=current_user().id)


def _own(sid: int):
    s = db.session.get(SavedSearch, sid)
    if not s or s.user_id != current_user().id:
        return None
    return s


@bp_saved.get("")
@require_auth
def index():
    items = _mine().order_by(SavedSearch.created_at.desc(), SavedSearch.id.desc()).all()
    return ok([s.to_dict() for s in items])


@bp_saved.get("/count")
@require_auth
def count():
    return ok({"count": _mine().count()})


@bp_saved.post("")
@require_auth
def store():
    d = request.get_json(silent=True) or {}
    errors = {}
    for field, required in (("search_query", True), ("search_name", False)):
        msg = _text(d.get(field), required, field.replace("_", " "))
        if msg:
            errors[field] = [msg]
    if errors:
        return invalid(errors)

    query = d["search_query"]
    if _mine().filter_by(search_query=query).first():
        return err("This search is already saved", 400)

    s = SavedSearch(
        user_id=current_user().id,
        search_query=query,
        search_name=d.get("search_name") or query,
    )
    db.session.add(s)
    db.session.commit()
    return ok(s.to_dict(), 201)


@bp_saved.delete("/clear/all")
@require_auth
def clear():
    _mine().delete()
    db.session.commit()
    return ok({"message": "All saved searches cleared successfully"})


@bp_saved.get("/<int:sid>")
@require_auth
def show(sid: int):
    s = _own(sid)
    if not s:
        return err("Saved search not found", 404)
    return ok(s.to_dict())


@bp_saved.put("/<int:sid>")
@require_auth
def update(sid: int):
    s = _own(sid)
    if not s:
        return err("Saved search not found", 404)
    d = request.get_json(silent=True) or {}
    msg = _text(d.get("search_name"), True, "search name")
    if msg:
        return invalid({"search_name": [msg]})
    s.search_name = d["search_name"]
    db.session.commit()
    return ok(s.to_dict())


@bp_saved.delete("/<int:sid>")
@require_auth
def destroy(sid: int):
    s = _own(sid)
    if not s:
        return err("Saved search not found", 404)
    db.session.delete(s)
    db.session.commit()
    return ok({"message": "Saved search deleted successfully"})
