"""
CredentialStore - transactional persistence of users and their credentials.

The registration algorithms live on the base class and run inside one
backend transaction; backends only provide the transaction and the row
primitives.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional

from idgate.auth.exceptions import AuthError, EmailExistsError, PersistenceError
from idgate.auth.models import LOCAL_TYPE, Authentication, SessionAuthProfile, User
from idgate.utils.logging import get_logger

logger = get_logger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class CredentialStore(ABC):
    """
    Base class for credential stores.

    Subclasses implement ``_transaction`` (all-or-nothing unit of work that
    yields a backend handle) and the ``_select_*`` / ``_insert_*``
    primitives, which always run against that handle.
    """

    # =========================================================================
    # Backend primitives
    # =========================================================================

    @abstractmethod
    def _transaction(self) -> Iterator[Any]:
        """Context manager: commit on success, roll back and raise otherwise."""

    @abstractmethod
    def _select_user(self, tx, *, user_id: Optional[str] = None, email: Optional[str] = None) -> Optional[User]:
        ...

    @abstractmethod
    def _select_authentication(
        self, tx, *, type: str, identifier: Optional[str] = None, user_id: Optional[str] = None
    ) -> Optional[Authentication]:
        ...

    @abstractmethod
    def _select_authentications(self, tx, user_id: str) -> List[Authentication]:
        ...

    @abstractmethod
    def _insert_user(self, tx, user: User) -> User:
        ...

    @abstractmethod
    def _insert_authentication(self, tx, auth: Authentication) -> Authentication:
        ...

    # =========================================================================
    # Reads
    # =========================================================================

    def find_authentication(self, type: str, identifier: str) -> Optional[Authentication]:
        """Look up a credential by provider type and identifier."""
        with self._transaction() as tx:
            return self._select_authentication(tx, type=type, identifier=identifier)

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._transaction() as tx:
            return self._select_user(tx, email=email)

    def get_user(self, user_id: str) -> Optional[User]:
        with self._transaction() as tx:
            return self._select_user(tx, user_id=user_id)

    def find_linked_user(self, type: str, identifier: str) -> Optional[User]:
        """
        The user owning the (type, identifier) credential, if one is on file.

        Raises:
            PersistenceError: If the credential exists but its user does not
        """
        with self._transaction() as tx:
            auth = self._select_authentication(tx, type=type, identifier=identifier)
            return self._linked_user(tx, auth) if auth is not None else None

    def _linked_user(self, tx, auth: Authentication) -> User:
        user = self._select_user(tx, user_id=auth.user_id)
        if user is None:
            raise PersistenceError(f"Credential {auth.id} points at missing user {auth.user_id}")
        return user

    def list_authentications(self, user_id: str) -> List[Authentication]:
        with self._transaction() as tx:
            return self._select_authentications(tx, user_id)

    # =========================================================================
    # Registration
    # =========================================================================

    def register_local_user(self, profile_fields: Mapping[str, Any], hashed_password: str) -> User:
        """
        Create a user and its local credential in one transaction.

        The caller's existence check is advisory; the email is checked again
        inside the transaction.

        Args:
            profile_fields: email, first_name, last_name
            hashed_password: Output of PasswordHasher.hash

        Returns:
            Created User

        Raises:
            EmailExistsError: If the email was registered concurrently
            PersistenceError: If either insert or the commit fails
        """
        email = profile_fields['email']

        with self._transaction() as tx:
            if self._select_user(tx, email=email) is not None:
                raise EmailExistsError(f"User with email {email} already exists")

            user = self._insert_user(tx, User(
                id=new_id(),
                email=email,
                first_name=profile_fields.get('first_name'),
                last_name=profile_fields.get('last_name'),
            ))
            self._insert_authentication(tx, Authentication(
                id=new_id(),
                user_id=user.id,
                type=LOCAL_TYPE,
                identifier=email,
                password=hashed_password,
            ))

        logger.info(f"Created local user: {email}")
        return user

    def register_or_link_provider_user(
        self, profile: SessionAuthProfile, type: str, access_token: Optional[str]
    ) -> User:
        """
        Resolve a completed delegated profile to a user in one transaction.

        1. A credential for (type, subject) already exists: return its user.
        2. No user has the email: create the user and the credential.
        3. A user has the email and the provider returned that email: link a
           new credential to the existing user.
        4. A user has the email but it was typed in by the person signing in,
           or the user already has a credential of this type: EmailExistsError.

        Raises:
            EmailExistsError: Case 4
            PersistenceError: If an insert or the commit fails
        """
        email = profile.email
        identifier = profile.subject or email

        with self._transaction() as tx:
            existing = self._select_authentication(tx, type=type, identifier=identifier)
            if existing is not None:
                return self._linked_user(tx, existing)

            user = self._select_user(tx, email=email)
            if user is None:
                user = self._insert_user(tx, User(
                    id=new_id(),
                    email=email,
                    first_name=profile.fields.get('first_name'),
                    last_name=profile.fields.get('last_name'),
                ))
                logger.info(f"Created {type} user: {email}")
            elif not profile.provider_supplied('email'):
                raise EmailExistsError(f"User with email {email} already exists")
            elif self._select_authentication(tx, type=type, user_id=user.id) is not None:
                raise EmailExistsError(f"User {email} is already linked to another {type} account")
            else:
                logger.info(f"Linking {type} account to existing user: {email}")

            self._insert_authentication(tx, Authentication(
                id=new_id(),
                user_id=user.id,
                type=type,
                identifier=identifier,
                access_token=access_token,
            ))

        return user


class MemoryCredentialStore(CredentialStore):
    """
    In-process store for development and tests.

    A transaction holds the store lock for its whole duration and restores a
    snapshot of both tables if anything inside it fails.
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._authentications: Dict[str, Authentication] = {}
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self) -> Iterator['MemoryCredentialStore']:
        with self._lock:
            users = dict(self._users)
            authentications = dict(self._authentications)
            try:
                yield self
            except AuthError:
                self._users, self._authentications = users, authentications
                raise
            except Exception as e:
                self._users, self._authentications = users, authentications
                logger.error(f"Memory transaction rolled back: {e}")
                raise PersistenceError(f"Transaction failed: {e}") from e

    def _select_user(self, tx, *, user_id=None, email=None):
        if user_id is not None:
            return self._users.get(user_id)
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def _select_authentication(self, tx, *, type, identifier=None, user_id=None):
        for auth in self._authentications.values():
            if auth.type != type:
                continue
            if identifier is not None and auth.identifier == identifier:
                return auth
            if user_id is not None and auth.user_id == user_id:
                return auth
        return None

    def _select_authentications(self, tx, user_id):
        return [a for a in self._authentications.values() if a.user_id == user_id]

    def _insert_user(self, tx, user):
        if self._select_user(tx, email=user.email) is not None:
            raise EmailExistsError(f"User with email {user.email} already exists")
        user.created_at = datetime.now(timezone.utc)
        self._users[user.id] = user
        return user

    def _insert_authentication(self, tx, auth):
        if auth.user_id not in self._users:
            raise PersistenceError(f"No user {auth.user_id} for credential")
        if self._select_authentication(tx, type=auth.type, identifier=auth.identifier) is not None:
            raise PersistenceError(f"Duplicate {auth.type} credential")
        if self._select_authentication(tx, type=auth.type, user_id=auth.user_id) is not None:
            raise PersistenceError(f"User already has a {auth.type} credential")
        auth.created_at = datetime.now(timezone.utc)
        self._authentications[auth.id] = auth
        return auth

    def list_users(self) -> List[User]:
        with self._lock:
            return list(self._users.values())
