"""
Pre-condition gates for auth routes.

Requests that fail a gate never reach the orchestrator.
"""

from functools import wraps
from typing import Callable

from flask import abort, current_app, g, redirect, request, session

from idgate.auth.exceptions import ValidationError
from idgate.auth.field_errors import FieldErrorSet
from idgate.auth.profile import AccumulatorState, ProfileAccumulator
from idgate.auth.responses import error_response, request_payload
from idgate.auth.validation import normalize_email, require_password
from idgate.utils.logging import get_logger

logger = get_logger(__name__)

EXTENSION_KEY = 'idgate'


def current_orchestrator():
    """The AuthOrchestrator installed by setup_auth()."""
    return current_app.extensions[EXTENSION_KEY]


def validate_auth_type(f: Callable) -> Callable:
    """
    Decorator rejecting provider types that are not configured.

    Returns 404 for unknown types.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        provider_type = kwargs.get('type')
        if not current_orchestrator().registry.is_known(provider_type):
            logger.warning(f"Rejected unknown provider type: {provider_type}")
            abort(404)
        return f(*args, **kwargs)

    return decorated_function


def validate_auth_profile(f: Callable) -> Callable:
    """
    Decorator requiring an in-flight delegated profile in the session.

    Redirects to /auth/error otherwise.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        state = ProfileAccumulator(session).state
        if state in (AccumulatorState.EMPTY, AccumulatorState.CONSUMED):
            return redirect('/auth/error')
        return f(*args, **kwargs)

    return decorated_function


def validate_local_credentials(f: Callable) -> Callable:
    """
    Decorator checking the email/password shape of a login or registration
    request.

    On success the cleaned values are available as ``g.credentials``; on
    failure every problem is reported back to the form in one response.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        data = request_payload()
        errors = FieldErrorSet(request.path)
        credentials = {
            'first_name': (data.get('first_name') or data.get('firstName') or '').strip() or None,
            'last_name': (data.get('last_name') or data.get('lastName') or '').strip() or None,
        }

        try:
            credentials['email'] = normalize_email(data.get('email'))
        except ValidationError as e:
            errors.add(e.code, e.field)
        try:
            credentials['password'] = require_password(data.get('password'))
        except ValidationError as e:
            errors.add(e.code, e.field)

        if errors.has_errors:
            return error_response(errors)

        g.credentials = credentials
        return f(*args, **kwargs)

    return decorated_function
