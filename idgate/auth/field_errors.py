"""
Request-scoped collection of field-level failures for one auth attempt.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

EMAIL_EXISTS = 'auth.EMAIL_EXISTS'
UNKNOWN_USER = 'auth.UNKNOWN_USER'
INVALID_PASSWORD = 'auth.INVALID_PASSWORD'
UNKNOWN = 'auth.UNKNOWN'
MISSING_EMAIL = 'auth.MISSING_EMAIL'
INVALID_EMAIL = 'auth.INVALID_EMAIL'
MISSING_PASSWORD = 'auth.MISSING_PASSWORD'
PROVIDER_FAILED = 'auth.PROVIDER_FAILED'

MESSAGES = {
    EMAIL_EXISTS: 'A user with that email has already registered.',
    UNKNOWN_USER: 'There is no user with that email. Would you like to register?',
    INVALID_PASSWORD: 'That password is not correct.',
    UNKNOWN: 'Something went wrong. Please try again.',
    MISSING_EMAIL: 'Please enter your email address.',
    INVALID_EMAIL: "It looks like there's something wrong with that email address.",
    MISSING_PASSWORD: 'Please enter your password.',
    PROVIDER_FAILED: 'We could not sign you in with that provider.',
}

STATUS_CODES = {
    EMAIL_EXISTS: 400,
    UNKNOWN_USER: 404,
    INVALID_PASSWORD: 400,
    UNKNOWN: 500,
    PROVIDER_FAILED: 401,
}


@dataclass(frozen=True)
class FieldError:
    field: Optional[str]
    code: str
    message: str

    @property
    def status(self) -> int:
        return STATUS_CODES.get(self.code, 400)

    def to_dict(self) -> dict:
        return {'field': self.field, 'code': self.code, 'message': self.message}


class FieldErrorSet:
    """
    Ordered (field, code, message) entries plus the path to send the caller
    back to. Converted into a response exactly once by the blueprint.
    """

    def __init__(self, redirect_to: str):
        self.redirect_to = redirect_to
        self._errors: List[FieldError] = []

    def add(self, code: str, field: Optional[str] = None, message: Optional[str] = None) -> 'FieldErrorSet':
        self._errors.append(FieldError(field, code, message or MESSAGES.get(code, code)))
        return self

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def status(self) -> int:
        """Highest HTTP status among the entries (400 when empty)."""
        return max((e.status for e in self._errors), default=400)

    def codes(self) -> List[str]:
        return [e.code for e in self._errors]

    def for_field(self, field: str) -> List[FieldError]:
        return [e for e in self._errors if e.field == field]

    def to_dict(self) -> dict:
        return {
            'errors': [e.to_dict() for e in self._errors],
            'redirect': self.redirect_to,
        }

    def __iter__(self) -> Iterator[FieldError]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __repr__(self) -> str:
        return f"FieldErrorSet(redirect_to={self.redirect_to!r}, codes={self.codes()!r})"
