"""Small request-body helpers. Each collects field errors instead of failing fast."""
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation

from flask import request

from domain.errors import ValidationFailed


def json_body() -> dict:
    """The request's JSON object. No body reads as empty; any other JSON value is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailed({"body": "Must be a JSON object"})
    return data


def text_value(data: dict, field: str, default: str = "") -> str:
    value = data.get(field)
    return value if isinstance(value, str) else default


def email_value(data: dict, field: str = "email") -> str:
    return text_value(data, field).strip().lower()


def parse_date(value, field: str, errors: dict):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat((value or "").strip())
    except (TypeError, ValueError, AttributeError):
        errors[field] = "Use YYYY-MM-DD"
        return None


def parse_time(value, field: str, errors: dict):
    if isinstance(value, time):
        return value
    text = (value or "").strip() if isinstance(value, str) else ""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    errors[field] = "Use HH:MM"
    return None


def parse_money(value, field: str, errors: dict):
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError):
        errors[field] = "Must be a number"
        return None
    if amount < 0:
        errors[field] = "Must not be negative"
        return None
    return amount


def parse_int(value, field: str, errors: dict, minimum=None, maximum=None):
    if isinstance(value, bool):
        errors[field] = "Must be a whole number"
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors[field] = "Must be a whole number"
        return None
    if minimum is not None and number < minimum:
        errors[field] = f"Must be at least {minimum}"
        return None
    if maximum is not None and number > maximum:
        errors[field] = f"Must be at most {maximum}"
        return None
    return number


def required_text(data: dict, field: str, errors: dict, max_len: int):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        errors[field] = "Required"
        return None
    value = value.strip()
    if len(value) > max_len:
        errors[field] = f"Must be at most {max_len} characters"
        return None
    return value


def optional_text(data: dict, field: str, errors: dict, max_len: int):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        errors[field] = "Must be text"
        return None
    value = value.strip()
    if len(value) > max_len:
        errors[field] = f"Must be at most {max_len} characters"
        return None
    return value or None


def raise_if(errors: dict):
    if errors:
        raise ValidationFailed(errors)
