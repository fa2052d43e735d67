"""
Authentication routes Flask Blueprint.

- GET  /auth/<type>/login     - Start delegated login with a provider
- GET  /auth/<type>/callback  - Provider callback
- GET  /auth/<type>/success   - Delegated login finished
- GET  /auth/<type>/failure   - Delegated login rejected
- GET  /auth/email            - Ask for the email a provider did not return
- POST /auth/email            - Supply that email
- GET  /auth/register         - Registration form
- POST /auth/register         - Local registration
- GET  /auth/login            - Login form
- POST /auth/login            - Local login
- GET  /auth/finish           - Landing page after login
- GET  /auth/error            - Broken flow
"""

from flask import Blueprint, g, jsonify, redirect, render_template, session, url_for

from idgate.auth import field_errors
from idgate.auth.decorators import (
    current_orchestrator,
    validate_auth_profile,
    validate_auth_type,
    validate_local_credentials,
)
from idgate.auth.exceptions import InvalidStateError, ProviderError
from idgate.auth.field_errors import FieldErrorSet
from idgate.auth.profile import AccumulatorState, ProfileAccumulator
from idgate.auth.responses import (
    SESSION_USER_KEY,
    error_response,
    request_payload,
    respond,
    wants_html,
)
from idgate.auth.service import ERROR_PATH, LOGIN_FORM_PATH
from idgate.utils.logging import get_logger

logger = get_logger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth', template_folder='templates')


# =============================================================================
# Delegated Login Routes
# =============================================================================

@auth_bp.route('/<type>/login', methods=['GET'])
@validate_auth_type
def provider_login(type: str):
    """Redirect to the provider's authorization page."""
    redirect_uri = url_for('auth.provider_callback', type=type, _external=True)
    try:
        return current_orchestrator().begin_delegated_login(type, redirect_uri)
    except ProviderError as e:
        logger.warning(str(e))
        return jsonify({'error': f'{type} login is not configured'}), 501


@auth_bp.route('/<type>/callback', methods=['GET'])
@validate_auth_type
def provider_callback(type: str):
    """Finish the provider handshake and route to success, failure or the email form."""
    try:
        result = current_orchestrator().complete_delegated_login(type, session)
    except ProviderError as e:
        logger.warning(str(e))
        return jsonify({'error': f'{type} login is not configured'}), 501
    return respond(result, negotiate=False)


@auth_bp.route('/<type>/success', methods=['GET'])
@validate_auth_type
def provider_success(type: str):
    return redirect(current_orchestrator().login_redirect)


@auth_bp.route('/<type>/failure', methods=['GET'])
@validate_auth_type
def provider_failure(type: str):
    errors = FieldErrorSet(LOGIN_FORM_PATH).add(field_errors.PROVIDER_FAILED)
    return error_response(errors)


# =============================================================================
# Profile Completion Routes
# =============================================================================

@auth_bp.route('/email', methods=['GET'])
@validate_auth_profile
def email_form():
    accumulator = ProfileAccumulator(session)
    if accumulator.state is AccumulatorState.COMPLETE:
        return redirect(url_for('auth.finish'))
    return render_template('auth/email.html', profile=accumulator.current_profile())


@auth_bp.route('/email', methods=['POST'])
@validate_auth_profile
def email_submit():
    value = request_payload().get('email')
    try:
        result = current_orchestrator().supply_profile_field(session, 'email', value)
    except InvalidStateError as e:
        logger.error(f"Profile completion out of sequence: {e}")
        return redirect(ERROR_PATH)
    return respond(result)


# =============================================================================
# Local Authentication Routes
# =============================================================================

@auth_bp.route('/register', methods=['GET'])
def register_form():
    return render_template('auth/register.html')


@auth_bp.route('/login', methods=['GET'])
def login_form():
    return render_template('auth/login.html', providers=current_orchestrator().registry.types)


@auth_bp.route('/register', methods=['POST'])
@validate_local_credentials
def register():
    """
    Register with email and password.

    Request body (form or JSON):
        {
            "email": "user@example.com",
            "password": "password123",
            "first_name": "Ada",
            "last_name": "Lovelace"
        }

    HTML clients are redirected to the configured register redirect; other
    clients get the new user's public fields.
    """
    credentials = g.credentials
    fields = {k: v for k, v in credentials.items() if k != 'password'}
    result = current_orchestrator().register_local(fields, credentials['password'])
    return respond(result)


@auth_bp.route('/login', methods=['POST'])
@validate_local_credentials
def login():
    """
    Login with email and password.

    HTML clients are redirected to the configured login redirect; other
    clients get the user's public fields.
    """
    credentials = g.credentials
    result = current_orchestrator().login_local(credentials['email'], credentials['password'])
    return respond(result)


@auth_bp.route('/finish', methods=['GET'])
def finish():
    user_id = session.get(SESSION_USER_KEY)
    user = current_orchestrator().store.get_user(user_id) if user_id else None

    if not wants_html():
        return jsonify({
            'user': user.to_dict() if user else None,
            'authenticated': user is not None,
        })
    return render_template('auth/finish.html', user=user)


@auth_bp.route('/error', methods=['GET'])
def error():
    return render_template('auth/error.html'), 400
