"""
idgate authentication module

Local email+password accounts and delegated (OAuth) login unified into one
user record.
"""

from idgate.auth.exceptions import (
    AuthError,
    CryptoError,
    EmailExistsError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    UnknownProviderType,
    ValidationError,
)
from idgate.auth.field_errors import FieldError, FieldErrorSet
from idgate.auth.models import Authentication, SessionAuthProfile, User
from idgate.auth.passwords import PasswordHasher
from idgate.auth.profile import AccumulatorState, ProfileAccumulator
from idgate.auth.providers import DelegatedIdentity, ProviderCapability, ProviderRegistry
from idgate.auth.service import AuthOrchestrator, AuthResult
from idgate.auth.store import CredentialStore, MemoryCredentialStore
from idgate.auth.postgres_store import PostgresCredentialStore
from idgate.auth.routes import auth_bp
from idgate.auth.integration import build_orchestrator, setup_auth

__all__ = [
    # Core
    'AuthOrchestrator',
    'AuthResult',
    'FieldError',
    'FieldErrorSet',
    # Records
    'User',
    'Authentication',
    'SessionAuthProfile',
    # Components
    'CredentialStore',
    'MemoryCredentialStore',
    'PostgresCredentialStore',
    'PasswordHasher',
    'ProfileAccumulator',
    'AccumulatorState',
    'ProviderRegistry',
    'ProviderCapability',
    'DelegatedIdentity',
    # Errors
    'AuthError',
    'CryptoError',
    'EmailExistsError',
    'InvalidStateError',
    'NotFoundError',
    'PersistenceError',
    'ProviderError',
    'UnknownProviderType',
    'ValidationError',
    # Integration
    'auth_bp',
    'build_orchestrator',
    'setup_auth',
]
