import secrets
from datetime import timedelta

from flask import Blueprint, current_app, g, render_template, request
from werkzeug.security import check_password_hash, generate_password_hash

from schoolbooks.auth_mw import current_user, make_token, require_auth, revoke
from schoolbooks.db import db
from schoolbooks.errors import HttpClientError
from schoolbooks.models import PasswordReset, User, utcnow
from schoolbooks.services.tld_service import get_tlds
from schoolbooks.utils import validator
from schoolbooks.utils.mailer import send_mail
from schoolbooks.utils.responses import err, invalid, ok

bp_auth = Blueprint("auth", __name__, url_prefix="/auth")

FREE_TIER_ID = 1


def _token_response(token: str, u: User | None = None):
    d = {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": current_app.config["JWT_TTL_MINUTES"] * 60,
    }
    if u:
        d["user"] = u.to_dict_basic()
    return d


@bp_auth.post("/login")
def login():
    d = request.get_json(silent=True) or {}
    email = (d.get("email") or "").strip().lower()
    password = d.get("password") or ""

    errors = {}
    if not email:
        errors["email"] = ["The email field is required."]
    elif validator.email(email):
        errors["email"] = ["The email field must be a valid email address."]
    if not password:
        errors["password"] = ["The password field is required."]
    if errors:
        return invalid(errors)

    u = User.query.filter_by(email=email).first()
    if not u or not check_password_hash(u.password, password):
        return err("Unauthorized", 401)

    return ok(_token_response(make_token(u), u))


@bp_auth.post("/register")
def register():
    d = request.get_json(silent=True) or {}
    errors = validator.validate_register(d, get_tlds()) or {}

    email = (d.get("email") or "").strip().lower()
    if "email" not in errors and User.query.filter_by(email=email).first():
        errors["email"] = ["The email has already been taken."]

    if "password" not in errors and current_app.config["PWNED_CHECK_ENABLED"]:
        try:
            safe = current_app.extensions["pwned"].check_password(d["password"])
        except HttpClientError as e:
            # breach lookup unavailable: do not block registration on it
            current_app.logger.warning("pwned password check failed: %s", e)
            safe = True
        if not safe:
            errors["password"] = ["This password has appeared in a data breach. Choose another one."]

    if errors:
        return invalid(errors)

    u = User(
        full_name=d["fullName"].strip(),
        email=email,
        password=generate_password_hash(d["password"]),
        phone_number=d.get("phoneNumber") or None,
        tier_id=FREE_TIER_ID,
    )
    try:
        db.session.add(u)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error("User registration failed: %s", e)
        return ok({"message": "Registration failed. Please try again later."}, 500)

    return ok({
        "message": "Registration successful!",
        "user": {"id": u.id, "full_name": u.full_name, "email": u.email},
    }, 201)


@bp_auth.get("/me")
@require_auth
def me():
    return ok(current_user().to_dict(with_tier=True, with_cards=True))


@bp_auth.post("/logout")
@require_auth
def logout():
    revoke(g.token_payload)
    return ok({"message": "Successfully logged out"})


@bp_auth.post("/refresh")
@require_auth
def refresh():
    # old token stops working once the new one is issued
    revoke(g.token_payload)
    return ok(_token_response(make_token(current_user())))


@bp_auth.get("/validate-token")
@require_auth
def validate_token():
    return ok({"message": "Token is valid"})


@bp_auth.post("/forgot-password")
def forgot_password():
    d = request.get_json(silent=True) or {}
    email = (d.get("email") or "").strip().lower()
    if not email or validator.email(email):
        return invalid({"email": ["The email field must be a valid email address."]})
    if not User.query.filter_by(email=email).first():
        return invalid({"email": ["We can't find a user with that email address."]})

    token = secrets.token_urlsafe(48)
    PasswordReset.query.filter_by(email=email).delete()
    db.session.add(PasswordReset(email=email, token=token))
    db.session.commit()

    cfg = current_app.config
    html = render_template(
        "emails/reset_password.html",
        email=email,
        reset_url=f"{cfg['FRONTEND_URL']}/reset-password?token={token}&email={email}",
        ttl_minutes=cfg["PASSWORD_RESET_TTL_MINUTES"],
    )
    if not send_mail(email, "Reset Password Notification", html):
        return ok({"message": "Unable to send reset email. Please try again later."}, 500)
    return ok({"message": "We have emailed your password reset link!"})


@bp_auth.post("/reset-password")
def reset_password():
    d = request.get_json(silent=True) or {}
    email = (d.get("email") or "").strip().lower()
    token = d.get("token") or ""
    password = d.get("password") or ""

    errors = {}
    pw_error = validator.password(password) if password else "The password field is required."
    if pw_error:
        errors["password"] = [pw_error]
    elif password != d.get("password_confirmation"):
        errors["password"] = ["The password confirmation does not match."]
    if not token:
        errors["token"] = ["The token field is required."]
    if errors:
        return invalid(errors)

    cutoff = utcnow() - timedelta(minutes=current_app.config["PASSWORD_RESET_TTL_MINUTES"])
    reset = PasswordReset.query.filter(
        PasswordReset.email == email,
        PasswordReset.token == token,
        PasswordReset.created_at > cutoff,
    ).first()
    u = User.query.filter_by(email=email).first()
    if not reset or not u:
        return err("This password reset token is invalid or has expired.", 400)

    u.password = generate_password_hash(password)
    PasswordReset.query.filter_by(email=email).delete()
    db.session.commit()
    return ok({"message": "Your password has been reset successfully!"})
