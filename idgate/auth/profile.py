"""
Session-scoped accumulation of a delegated identity profile.

A provider may not return every field a user record needs (most often the
email). The accumulator keeps what it returned in the session and lets the
user fill in the rest over further requests:

    EMPTY --begin--> PARTIAL --supply_field--> COMPLETE --consume--> CONSUMED
              \\-------------------------------^

Only one profile is in flight per session; ``begin`` replaces any earlier
one. Concurrent requests from the same session are last-write-wins.
"""

from enum import Enum
from typing import Any, Dict, MutableMapping, Optional

from idgate.auth.exceptions import InvalidStateError, NotFoundError
from idgate.auth.models import SessionAuthProfile

SESSION_KEY = '_auth_profile'
CONSUMED_MARKER = {'consumed': True}


class AccumulatorState(str, Enum):
    EMPTY = 'empty'
    PARTIAL = 'partial'
    COMPLETE = 'complete'
    CONSUMED = 'consumed'


class ProfileAccumulator:
    """
    State machine over one session's in-flight SessionAuthProfile.

    Args:
        session: Any mutable mapping scoped to one client session
            (``flask.session`` in the web app).
    """

    def __init__(self, session: MutableMapping[str, Any], key: str = SESSION_KEY):
        self._session = session
        self._key = key

    @property
    def state(self) -> AccumulatorState:
        data = self._session.get(self._key)
        if not data:
            return AccumulatorState.EMPTY
        if data.get('consumed'):
            return AccumulatorState.CONSUMED
        profile = SessionAuthProfile.from_session(data)
        return AccumulatorState.COMPLETE if profile.is_complete else AccumulatorState.PARTIAL

    def begin(self, type: str, access_token: Optional[str], profile: Dict[str, Any]) -> AccumulatorState:
        fields = {name: value for name, value in profile.items() if value is not None}
        self._save(SessionAuthProfile(type=type, access_token=access_token, fields=fields))
        return self.state

    def supply_field(self, name: str, value: Any) -> AccumulatorState:
        """
        Set a user-supplied field. The value must already have passed
        validation.

        Raises:
            InvalidStateError: Unless the profile is PARTIAL
        """
        state = self.state
        if state is not AccumulatorState.PARTIAL:
            raise InvalidStateError(f"Cannot supply '{name}' while profile is {state.value}")

        profile = SessionAuthProfile.from_session(self._session[self._key])
        profile.fields[name] = value
        profile.supplied = profile.supplied | {name}
        self._save(profile)
        return self.state

    def current_profile(self) -> SessionAuthProfile:
        """
        Raises:
            NotFoundError: If no profile is in flight
        """
        if self.state in (AccumulatorState.EMPTY, AccumulatorState.CONSUMED):
            raise NotFoundError("No authentication profile in progress")
        return SessionAuthProfile.from_session(self._session[self._key])

    def consume(self) -> SessionAuthProfile:
        """
        Hand out the completed profile exactly once.

        Raises:
            InvalidStateError: Unless the profile is COMPLETE
        """
        state = self.state
        if state is not AccumulatorState.COMPLETE:
            raise InvalidStateError(f"Cannot consume profile while it is {state.value}")

        profile = SessionAuthProfile.from_session(self._session[self._key])
        self._session[self._key] = dict(CONSUMED_MARKER)
        return profile

    def clear(self) -> None:
        self._session.pop(self._key, None)

    def _save(self, profile: SessionAuthProfile) -> None:
        # reassign so flask.session notices the change
        self._session[self._key] = profile.to_session()
