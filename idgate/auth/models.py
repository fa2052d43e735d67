"""
Record types for users, their credentials, and in-flight delegated profiles.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional

LOCAL_TYPE = 'local'

# Fields that must be present before a delegated profile can be persisted
REQUIRED_PROFILE_FIELDS = ('email',)


@dataclass
class User:
    """
    Identity record shared by local and delegated credentials.
    """

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: Optional[dict]) -> Optional['User']:
        """Create User from database row dictionary."""
        if row is None:
            return None
        return cls(
            id=row['id'],
            email=row['email'],
            first_name=row.get('first_name'),
            last_name=row.get('last_name'),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> dict:
        """Public fields for JSON responses."""
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Authentication:
    """
    One credential of a user: a local password or a delegated provider link.

    ``identifier`` is the email for ``local`` and the provider subject id
    otherwise. ``password`` only holds a hash and only for ``local``.
    """

    id: str
    user_id: str
    type: str
    identifier: str
    password: Optional[str] = None
    access_token: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_local(self) -> bool:
        return self.type == LOCAL_TYPE

    @classmethod
    def from_db_row(cls, row: Optional[dict]) -> Optional['Authentication']:
        if row is None:
            return None
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            type=row['type'],
            identifier=row['identifier'],
            password=row.get('password'),
            access_token=row.get('access_token'),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> dict:
        # password and access_token never leave the store
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'identifier': self.identifier,
        }


@dataclass
class SessionAuthProfile:
    """
    Partial identity collected from a provider and the user.

    ``supplied`` holds the names of fields typed in by the user rather than
    returned by the provider.
    """

    type: str
    access_token: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    supplied: FrozenSet[str] = frozenset()

    @property
    def email(self) -> Optional[str]:
        return self.fields.get('email')

    @property
    def subject(self) -> Optional[str]:
        return self.fields.get('subject')

    @property
    def is_complete(self) -> bool:
        return all(self.fields.get(name) for name in REQUIRED_PROFILE_FIELDS)

    def provider_supplied(self, name: str) -> bool:
        """True when the field came from the provider, not from the user."""
        return bool(self.fields.get(name)) and name not in self.supplied

    def to_session(self) -> dict:
        return {
            'type': self.type,
            'access_token': self.access_token,
            'fields': dict(self.fields),
            'supplied': sorted(self.supplied),
        }

    @classmethod
    def from_session(cls, data: dict) -> 'SessionAuthProfile':
        return cls(
            type=data['type'],
            access_token=data.get('access_token'),
            fields=dict(data.get('fields') or {}),
            supplied=frozenset(data.get('supplied') or ()),
        )
