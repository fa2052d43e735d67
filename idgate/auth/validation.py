"""
Shape checks for credentials and profile fields.
"""

from email_validator import EmailNotValidError, validate_email

from idgate.auth.exceptions import ValidationError
from idgate.auth.field_errors import INVALID_EMAIL, MISSING_EMAIL, MISSING_PASSWORD


def normalize_email(value) -> str:
    """
    Check email syntax and return the lower-cased normalized address.

    Raises:
        ValidationError: With code MISSING_EMAIL or INVALID_EMAIL
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Email is required", field='email', code=MISSING_EMAIL)
    try:
        validated = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(str(e), field='email', code=INVALID_EMAIL) from e
    return validated.normalized.lower()


def require_password(value) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Password is required", field='password', code=MISSING_PASSWORD)
    return value
