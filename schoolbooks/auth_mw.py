import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request, jsonify

from schoolbooks.db import db
from schoolbooks.models import RevokedToken, User


def make_token(u: User) -> str:
    cfg = current_app.config
    payload = {
        "sub": str(u.id),
        "jti": uuid.uuid4().hex,
        "email": u.email,
        "full_name": u.full_name,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=cfg["JWT_TTL_MINUTES"]),
    }
    return jwt.encode(payload, cfg["JWT_SECRET"], algorithm=cfg["JWT_ALGO"])


def decode_token(token: str) -> dict:
    cfg = current_app.config
    return jwt.decode(token, cfg["JWT_SECRET"], algorithms=[cfg["JWT_ALGO"]])


def bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1]


def revoke(payload: dict):
    jti = payload.get("jti")
    if jti and not RevokedToken.query.filter_by(jti=jti).first():
        db.session.add(RevokedToken(jti=jti))
        db.session.commit()


def require_auth(func):
    """Bearer JWT guard. Sets ``g.current_user`` and ``g.token_payload``."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Unauthenticated."}), 401
        try:
            payload = decode_token(token)
        except jwt.ExpiredSignatureError:
            return jsonify({"error": "Token has expired"}), 401
        except jwt.InvalidTokenError:
            return jsonify({"error": "Invalid token"}), 401

        if RevokedToken.query.filter_by(jti=payload.get("jti")).first():
            return jsonify({"error": "Token has been revoked"}), 401

        u = db.session.get(User, int(payload["sub"]))
        if not u:
            return jsonify({"error": "User not found"}), 401

        g.current_user = u
        g.token_payload = payload
        return func(*args, **kwargs)

    return wrapper


def current_user() -> User:
    return g.current_user
