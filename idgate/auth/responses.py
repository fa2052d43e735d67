"""
Conversion of AuthResult / FieldErrorSet values into Flask responses.
"""

from flask import flash, jsonify, redirect, request, session

from idgate.auth.field_errors import FieldErrorSet

SESSION_USER_KEY = 'user_id'


def request_payload() -> dict:
    """Form fields or a JSON body, whichever the client sent."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def wants_html() -> bool:
    """True unless the client explicitly prefers something other than HTML."""
    if not request.headers.get('Accept'):
        return True
    return request.accept_mimetypes.accept_html


def error_response(errors: FieldErrorSet):
    """
    HTML clients get every entry flashed (category = field) and one redirect
    back to the form; other clients get one JSON report.
    """
    if wants_html():
        for error in errors:
            flash(error.message, error.field or 'form')
        return redirect(errors.redirect_to)
    return jsonify(errors.to_dict()), errors.status


def respond(result, *, negotiate: bool = True):
    """
    Turn an AuthResult into the single response for the attempt.

    Args:
        result: AuthResult from the orchestrator
        negotiate: When False always redirect (browser-only provider flows)
    """
    if not result.ok:
        return error_response(result.errors)

    if result.user is not None:
        session[SESSION_USER_KEY] = result.user.id

    if not negotiate or wants_html():
        return redirect(result.redirect)
    return jsonify(result.user.to_dict() if result.user else {})
