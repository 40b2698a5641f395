from flask import Blueprint, current_app, request

from schoolbooks.auth_mw import current_user, require_auth
from schoolbooks.errors import HttpClientError
from schoolbooks.services.notification_service import broadcast_to_user
from schoolbooks.utils import validator
from schoolbooks.utils.mailer import render_mail, send_mail
from schoolbooks.utils.responses import err, invalid, ok

bp_messaging = Blueprint("messaging", __name__)


@bp_messaging.post("/send-email")
@require_auth
def send_email():
    d = request.get_json(silent=True) or {}
    errors = {}
    to = (d.get("to") or "").strip()
    if not to or validator.email(to):
        errors["to"] = ["The to field must be a valid email address."]
    if not d.get("subject"):
        errors["subject"] = ["The subject field is required."]
    if not d.get("body"):
        errors["body"] = ["The body field is required."]
    if errors:
        return invalid(errors)

    if not send_mail(to, d["subject"], render_mail(d["subject"], d["body"])):
        return ok({"message": "Failed to send email."}, 500)
    return ok({"message": "Email sent successfully."})


@bp_messaging.post("/send-sms")
@require_auth
def send_sms():
    d = request.get_json(silent=True) or {}
    number = str(d.get("number") or "")
    message = d.get("message") or ""
    errors = {}
    if not number or validator.phone_number(number):
        errors["number"] = ["The number must have between 5 and 20 digits."]
    if not message:
        errors["message"] = ["The message field is required."]
    if errors:
        return invalid(errors)

    sms = current_app.extensions["text_message"]
    try:
        body = sms.send(current_app.config["SMS_SENDER"], message, number)
    except HttpClientError as e:
        return err(str(e), 502)
    return ok({"message": "SMS sent successfully.", "gateway_response": body})


@bp_messaging.post("/test-notification")
@require_auth
def test_notification():
    d = request.get_json(silent=True) or {}
    payload = broadcast_to_user(
        current_user().id, d.get("message") or "Test notification", d.get("type") or "info"
    )
    return ok(payload)
