import re

FULL_NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*\W)\S{8,}$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.([A-Za-z]{2,63})$")

RESERVED_NAMES = {"admin", "root", "superuser"}


def min_len(value: str, n: int) -> bool:
    return len(value) >= n


def max_len(value: str, n: int) -> bool:
    return len(value) <= n


def is_not_reserved(value: str) -> bool:
    return value.strip().lower() not in RESERVED_NAMES


def full_name(value: str) -> str | None:
    if not min_len(value, 3):
        return "Full name must be at least 3 characters long."
    if not max_len(value, 100):
        return "Full name must be at most 100 characters long."
    if not FULL_NAME_RE.match(value):
        return "Full name must contain only letters and spaces."
    if not is_not_reserved(value):
        return "Full name is reserved."
    return None


def password(value: str) -> str | None:
    if not min_len(value, 8):
        return "Password must be at least 8 characters long."
    if not max_len(value, 30):
        return "Password must be at most 30 characters long."
    if not PASSWORD_RE.match(value):
        return (
            "Password must contain at least one lowercase letter, one uppercase letter, "
            "one digit, one special character and no spaces."
        )
    return None


def email(value: str, tlds=None) -> str | None:
    """Structural check; with a TLD list, the domain suffix must be in it."""
    if not max_len(value, 255):
        return "Email must be at most 255 characters long."
    m = EMAIL_RE.match(value)
    if not m:
        return "Invalid email address."
    if tlds:
        if m.group(2).upper() not in {t.strip().upper() for t in tlds if t.strip()}:
            return "Invalid email address."
    return None


def phone_number(value: str) -> str | None:
    digits = re.sub(r"\D", "", value)
    if 5 <= len(digits) <= 20:
        return None
    return "Phone number must have between 5 and 20 digits."


def validate_register(data: dict, tlds=None) -> dict | None:
    """Field-keyed error map for a registration payload, or None when valid."""
    errors: dict[str, list[str]] = {}

    def add(field, msg):
        if msg:
            errors.setdefault(field, []).append(msg)

    name = (data.get("fullName") or "").strip()
    add("fullName", "The full name field is required." if not name else full_name(name))

    mail = (data.get("email") or "").strip()
    add("email", "The email field is required." if not mail else email(mail, tlds))

    pw = data.get("password") or ""
    if not pw:
        add("password", "The password field is required.")
    else:
        add("password", password(pw))
        if pw != data.get("password_confirmation"):
            add("password", "The password confirmation does not match.")

    phone = data.get("phoneNumber")
    if phone:
        add("phoneNumber", phone_number(str(phone)))

    return errors or None
