"""
Exception types raised by the auth components.

Business-rule failures (duplicate email, unknown user, wrong password) are
not raised past the orchestrator; they are reported through FieldErrorSet.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for idgate auth errors."""
    pass


class UnknownProviderType(AuthError):
    """Raised when a provider type has no configuration."""

    def __init__(self, provider_type: str):
        super().__init__(f"Unknown provider type: {provider_type}")
        self.provider_type = provider_type


class ValidationError(AuthError):
    """Raised by pre-condition gates for malformed input."""

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.code = code


class EmailExistsError(AuthError):
    """Raised when a user with the email already exists inside a transaction."""
    pass


class CryptoError(AuthError):
    """Raised when hashing or comparing a password fails internally."""
    pass


class PersistenceError(AuthError):
    """Raised when a store transaction or commit fails."""
    pass


class InvalidStateError(AuthError):
    """Raised when the profile accumulator is used out of sequence."""
    pass


class NotFoundError(AuthError):
    """Raised when no in-flight profile exists for the session."""
    pass


class ProviderError(AuthError):
    """Raised when a delegated provider handshake fails."""
    pass
