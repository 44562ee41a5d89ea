import re
from typing import Any, Optional

from ..core.errors import ValidationFailed

# Largest value a signed 64-bit INTEGER column can hold
MAX_ID = 2 ** 63 - 1

# Arabic block letters plus whitespace
ARABIC_ONLY_PATTERN = re.compile(r"^[\u0600-\u06FF\s]+$")


def parse_positive_int(value: Any) -> Optional[int]:
    """Return ``value`` as an integer in 1..MAX_ID, or ``None`` when it is not one."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        number = int(value.strip())
    else:
        return None

    return number if 1 <= number <= MAX_ID else None


def is_arabic_text(value: str) -> bool:
    return bool(ARABIC_ONLY_PATTERN.match(value))


def require_arabic_text(value: Any, required_message: str, required_code: str, invalid_message: str) -> str:
    """Trim and validate a script-restricted name or title."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(required_message, required_code)

    trimmed = value.strip()
    if not is_arabic_text(trimmed):
        raise ValidationFailed(invalid_message, "INVALID_CHARACTERS")
    return trimmed
