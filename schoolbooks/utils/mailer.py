import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app, render_template

log = logging.getLogger(__name__)


def render_mail(subject: str, body: str) -> str:
    return render_template("emails/message.html", subject=subject, body=body)


def send_mail(to: str, subject: str, html: str) -> bool:
    """Send one HTML mail over SMTP + STARTTLS. Returns False on failure."""
    cfg = current_app.config
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = formataddr((cfg["MAIL_FROM_NAME"], cfg["MAIL_FROM_ADDRESS"]))
    msg["To"] = to
    msg.set_content("This message requires an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(cfg["SMTP_SERVER"], cfg["SMTP_PORT"], timeout=cfg["HTTP_TIMEOUT"]) as smtp:
            smtp.starttls()
            smtp.login(cfg["SMTP_LOGIN"], cfg["SMTP_PASSWORD"])
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        log.error("Failed to send mail to %s: %s", to, e)
        return False
    return True
