from flask import jsonify
from sqlalchemy.orm.exc import StaleDataError

from schoolbooks.db import db
from schoolbooks.errors import ConflictError


def ok(data=None, code=200):
    return jsonify(data if data is not None else {}), code


def err(msg, code=400, **extra):
    return jsonify({"error": msg, **extra}), code


def invalid(errors: dict):
    return jsonify({"errors": errors}), 422


def commit_or_rollback():
    try:
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        raise ConflictError(str(e)) from e
    except Exception:
        db.session.rollback()
        raise


def page_json(pagination, serialize):
    return {
        "data": [serialize(x) for x in pagination.items],
        "pagination": {
            "page": pagination.page,
            "per_page": pagination.per_page,
            "total": pagination.total,
            "pages": pagination.pages,
        },
    }


def parse_int(v, default=None, minv=None, maxv=None):
    if v is None or v == "":
        return default
    try:
        n = int(v)
    except (TypeError, ValueError):
        return default
    if minv is not None and n < minv:
        return default
    if maxv is not None and n > maxv:
        return default
    return n


def parse_float(v, default=None):
    if v is None or v == "":
        return default
    try:
        return float(v)
    except (TypeError, ValueError):
        return default
