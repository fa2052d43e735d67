"""
AuthOrchestrator - coordinates one login or registration attempt.

Every public method returns an ``AuthResult``; business-rule failures are
reported through its FieldErrorSet and never raised. Infrastructure
failures (hashing, persistence) collapse into a single ``auth.UNKNOWN``
entry. ``InvalidStateError`` from the profile accumulator is a sequencing
bug and propagates.
"""

from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping, Optional

from idgate.auth import field_errors
from idgate.auth.exceptions import (
    CryptoError,
    EmailExistsError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from idgate.auth.field_errors import FieldErrorSet
from idgate.auth.models import LOCAL_TYPE, User
from idgate.auth.passwords import PasswordHasher
from idgate.auth.profile import AccumulatorState, ProfileAccumulator
from idgate.auth.providers import ProviderRegistry
from idgate.auth.store import CredentialStore
from idgate.auth.validation import normalize_email
from idgate.utils.config import LocalAuthSettings
from idgate.utils.logging import get_logger

logger = get_logger(__name__)

LOGIN_FORM_PATH = '/auth/login'
REGISTER_FORM_PATH = '/auth/register'
EMAIL_FORM_PATH = '/auth/email'
ERROR_PATH = '/auth/error'


def success_path(provider_type: str) -> str:
    return f'/auth/{provider_type}/success'


def failure_path(provider_type: str) -> str:
    return f'/auth/{provider_type}/failure'


@dataclass
class AuthResult:
    """Outcome of one attempt: either a user and a redirect, or errors."""

    redirect: str
    user: Optional[User] = None
    errors: Optional[FieldErrorSet] = None

    @property
    def ok(self) -> bool:
        return self.errors is None or not self.errors.has_errors

    @classmethod
    def failure(cls, errors: FieldErrorSet) -> 'AuthResult':
        return cls(redirect=errors.redirect_to, errors=errors)


class AuthOrchestrator:
    """
    Routes attempts to local credential checks or to delegated profile
    completion, and persists through the CredentialStore.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        registry: ProviderRegistry,
        local: Optional[LocalAuthSettings] = None,
    ):
        self._store = store
        self._hasher = hasher
        self._registry = registry
        self._local = local or LocalAuthSettings()

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def login_redirect(self) -> str:
        return self._local.login_target

    # =========================================================================
    # Delegated login
    # =========================================================================

    def begin_delegated_login(self, provider_type: str, redirect_uri: str):
        """
        Start the provider handshake. No local state changes here.

        Raises:
            UnknownProviderType: If the type is not configured
            ProviderError: If the type has no client credentials
        """
        capability = self._registry.capability_for(provider_type)
        logger.info(f"Starting {provider_type} login, scope={self._registry.scope_for(provider_type)}")
        return capability.authorize_redirect(redirect_uri)

    def complete_delegated_login(self, provider_type: str, session: MutableMapping[str, Any]) -> AuthResult:
        """
        Handle the provider callback.

        A failed handshake redirects to the provider's failure path. A
        subject already linked to a user logs that user in. Otherwise a
        profile without an email is parked in the session and the user is
        sent to the email form; a complete one is persisted immediately.
        """
        capability = self._registry.capability_for(provider_type)
        try:
            identity = capability.complete()
        except ProviderError as e:
            logger.warning(f"{provider_type} callback failed: {e}")
            return AuthResult(redirect=failure_path(provider_type))

        profile = dict(identity.profile)
        if profile.get('email'):
            try:
                profile['email'] = normalize_email(profile['email'])
            except ValidationError:
                logger.warning(f"{provider_type} returned an unusable email, asking the user")
                profile['email'] = None

        accumulator = ProfileAccumulator(session)
        if profile.get('subject'):
            # a known credential signs in whether or not the provider shares an email
            try:
                user = self._store.find_linked_user(provider_type, profile['subject'])
            except PersistenceError as e:
                logger.error(f"{provider_type} credential lookup failed: {e}")
                accumulator.clear()
                return AuthResult.failure(FieldErrorSet(LOGIN_FORM_PATH).add(field_errors.UNKNOWN))
            if user is not None:
                accumulator.clear()
                logger.info(f"Returning {provider_type} user logged in: {user.email}")
                return AuthResult(redirect=success_path(provider_type), user=user)

        state = accumulator.begin(provider_type, identity.access_token, profile)
        if state is AccumulatorState.PARTIAL:
            return AuthResult(redirect=EMAIL_FORM_PATH)

        return self._persist_delegated(accumulator)

    def supply_profile_field(self, session: MutableMapping[str, Any], name: str, value: Any) -> AuthResult:
        """
        Accept a field the provider did not return (currently the email).

        Raises:
            InvalidStateError: If no PARTIAL profile is in flight
        """
        errors = FieldErrorSet(EMAIL_FORM_PATH)
        accumulator = ProfileAccumulator(session)

        if name == 'email':
            try:
                value = normalize_email(value)
                if self._store.find_user_by_email(value) is not None:
                    errors.add(field_errors.EMAIL_EXISTS, 'email')
            except ValidationError as e:
                errors.add(e.code, e.field)
            except PersistenceError as e:
                logger.error(f"Email lookup failed: {e}")
                errors.add(field_errors.UNKNOWN)

        if errors.has_errors:
            return AuthResult.failure(errors)

        state = accumulator.supply_field(name, value)
        if state is AccumulatorState.COMPLETE:
            return self._persist_delegated(accumulator)
        return AuthResult(redirect=EMAIL_FORM_PATH)

    def _persist_delegated(self, accumulator: ProfileAccumulator) -> AuthResult:
        profile = accumulator.consume()
        errors = FieldErrorSet(LOGIN_FORM_PATH)
        try:
            user = self._store.register_or_link_provider_user(profile, profile.type, profile.access_token)
        except EmailExistsError as e:
            logger.warning(f"{profile.type} login rejected: {e}")
            errors.add(field_errors.EMAIL_EXISTS, 'email')
            return AuthResult.failure(errors)
        except PersistenceError as e:
            logger.error(f"Failed to persist {profile.type} user: {e}")
            errors.add(field_errors.UNKNOWN)
            return AuthResult.failure(errors)

        logger.info(f"User logged in via {profile.type}: {user.email}")
        return AuthResult(redirect=success_path(profile.type), user=user)

    # =========================================================================
    # Local credentials
    # =========================================================================

    def register_local(self, fields: Mapping[str, Any], password: str) -> AuthResult:
        """
        Register a user with a local password.

        Args:
            fields: email (already validated), first_name, last_name
            password: Plaintext password
        """
        errors = FieldErrorSet(REGISTER_FORM_PATH)
        email = fields['email']

        try:
            if self._store.find_user_by_email(email) is not None:
                logger.warning(f"Registration rejected, email exists: {email}")
                errors.add(field_errors.EMAIL_EXISTS, 'email')
                return AuthResult.failure(errors)

            # hash before the transaction opens
            hashed = self._hasher.hash(password)
            user = self._store.register_local_user(
                {
                    'email': email,
                    'first_name': fields.get('first_name'),
                    'last_name': fields.get('last_name'),
                },
                hashed,
            )
        except EmailExistsError:
            logger.warning(f"Registration lost race for email: {email}")
            errors.add(field_errors.EMAIL_EXISTS, 'email')
            return AuthResult.failure(errors)
        except (CryptoError, PersistenceError) as e:
            logger.error(f"Registration failed for {email}: {e}")
            errors.add(field_errors.UNKNOWN)
            return AuthResult.failure(errors)

        return AuthResult(redirect=self._local.register_target, user=user)

    def login_local(self, email: str, password: str) -> AuthResult:
        """
        Check a local email+password pair.

        Exactly one outcome: UNKNOWN_USER, UNKNOWN, INVALID_PASSWORD, or
        success.
        """
        errors = FieldErrorSet(LOGIN_FORM_PATH)

        try:
            auth = self._store.find_authentication(LOCAL_TYPE, email)
            if auth is None:
                logger.warning(f"Login failed: user not found - {email}")
                errors.add(field_errors.UNKNOWN_USER, 'email')
                return AuthResult.failure(errors)

            if not self._hasher.compare(password, auth.password):
                logger.warning(f"Login failed: wrong password - {email}")
                errors.add(field_errors.INVALID_PASSWORD, 'password')
                return AuthResult.failure(errors)

            user = self._store.get_user(auth.user_id)
        except (CryptoError, PersistenceError) as e:
            logger.error(f"Login check failed for {email}: {e}")
            errors.add(field_errors.UNKNOWN)
            return AuthResult.failure(errors)

        if user is None:
            logger.error(f"Credential {auth.id} has no user")
            errors.add(field_errors.UNKNOWN)
            return AuthResult.failure(errors)

        logger.info(f"User logged in: {email}")
        return AuthResult(redirect=self._local.login_target, user=user)
