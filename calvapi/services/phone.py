import re

from calvapi.errors import ValidationError

# E.164: leading +, country code without a zero, at most 15 digits.
_E164_RE = re.compile(r"^\+[1-9]\d{1,14}$")


def normalize_phone(raw: str) -> str:
    """Strip spaces, dashes, dots and parentheses."""
    return re.sub(r"[\s\-().]", "", raw or "")


def validate_phone_number(phone: str) -> str:
    """Return the normalized number or raise if it is not E.164."""
    normalized = normalize_phone(phone)
    if not _E164_RE.match(normalized):
        raise ValidationError(
            "Invalid phone number format. Must be in E.164 format (e.g., +1234567890)",
            "phoneNumber",
        )
    return normalized
