"""
Roost Validation Module
Input validation for master passwords and account fields
"""

import re
from typing import Any, Dict, Tuple

import email_validator

from .config import MIN_MASTER_PASSWORD_LENGTH
from .errors import InvalidAccountError
from .model import EDITABLE_FIELDS

# Per-field length ceilings (characters)
MAX_FIELD_LENGTHS = {
    'platform': 200,
    'username': 320,
    'email': 320,
    'url': 2048,
    'notes': 10000,
    'group': 100,
}

URL_PATTERN = re.compile(
    r'^(https?://)?'  # Optional protocol
    r'(([a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}'  # Domain
    r'|localhost|\d{1,3}(\.\d{1,3}){3})'  # or localhost / IPv4
    r'(:\d+)?'  # Optional port
    r'(/[-a-zA-Z0-9@:%_\+.~#?&/=]*)?$'  # Path
)


def validate_master_password(password: str) -> Tuple[bool, str]:
    """
    Check a new master password against the minimum policy

    Returns:
        (is_valid, validation_message)
    """
    if not password:
        return False, "Master password cannot be empty"

    if len(password) < MIN_MASTER_PASSWORD_LENGTH:
        return False, f"Minimum {MIN_MASTER_PASSWORD_LENGTH} characters"

    if not password.strip():
        return False, "Master password cannot be only whitespace"

    return True, "Master password accepted"


def validate_url(url: str) -> bool:
    """
    Validate URL format

    Returns:
        True if URL is empty or well formed
    """
    if not url:
        return True

    return bool(URL_PATTERN.match(url.strip()))


def validate_email(email: str) -> bool:
    """
    Validate email using python-email-validator

    Returns:
        True if email is empty or valid
    """
    if not email:
        return True

    try:
        email_validator.validate_email(email, check_deliverability=False)
        return True
    except email_validator.EmailNotValidError:
        return False


def validate_account_fields(fields: Dict[str, Any], require_platform: bool = True) -> Dict[str, Any]:
    """
    Validate and normalize caller-supplied account fields

    Unknown keys are rejected, text values are stripped and length-checked.

    Args:
        fields: Mapping of editable account fields
        require_platform: Whether a non-empty platform must be present

    Returns:
        Normalized copy of ``fields``

    Raises:
        InvalidAccountError: On the first rule the input breaks
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidAccountError(f"unknown account fields: {', '.join(sorted(unknown))}")

    cleaned: Dict[str, Any] = {}
    for name, value in fields.items():
        if name == 'sort_order':
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidAccountError("sort_order must be an integer")
            cleaned[name] = value
            continue

        if value is None:
            value = ''
        if not isinstance(value, str):
            raise InvalidAccountError(f"{name} must be text")

        # Notes keep their inner formatting
        value = value if name == 'notes' else value.strip()
        if len(value) > MAX_FIELD_LENGTHS[name]:
            raise InvalidAccountError(f"{name} exceeds {MAX_FIELD_LENGTHS[name]} characters")
        cleaned[name] = value

    if require_platform or 'platform' in cleaned:
        if not cleaned.get('platform'):
            raise InvalidAccountError("platform is required")

    if not validate_email(cleaned.get('email', '')):
        raise InvalidAccountError("invalid email format")

    if not validate_url(cleaned.get('url', '')):
        raise InvalidAccountError("invalid URL format")

    return cleaned


__all__ = [
    'validate_master_password',
    'validate_url',
    'validate_email',
    'validate_account_fields',
]
