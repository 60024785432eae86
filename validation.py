"""Field validators for registration and profile forms."""
import math
import re
from typing import Any, List, Mapping, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[0-9]{10}$")

MIN_PASSWORD_LENGTH = 6


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.fullmatch(email) is not None


def validate_password(password: str) -> bool:
    return password is not None and len(password) >= MIN_PASSWORD_LENGTH


def validate_phone(phone: str) -> bool:
    return bool(phone) and PHONE_RE.fullmatch(phone) is not None


def validate_form(form_data: Mapping[str, Any]) -> List[str]:
    """
    Run every applicable check and collect the error messages.

    Email and password are always checked, phone only when present. Messages
    come back in that order (email, password, phone); an empty list means the
    form is valid.
    """
    errors = []

    if not validate_email(form_data.get("email") or ""):
        errors.append("Invalid email address")

    if not validate_password(form_data.get("password") or ""):
        errors.append("Password must be at least 6 characters")

    phone = form_data.get("phone")
    if phone and not validate_phone(phone):
        errors.append("Invalid phone number (10 digits required)")

    return errors


def parse_amount(value: Any) -> Optional[float]:
    """Non-negative finite number from user input, or None if malformed."""
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount < 0:
        return None
    return amount
