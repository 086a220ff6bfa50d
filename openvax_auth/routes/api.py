"""Provides Flask integration for the OpenVax account services."""

from typing import Any, Dict, Tuple
from urllib.parse import urlparse
import logging

from flask import Blueprint, Response, current_app, jsonify, \
    make_response, render_template, request, url_for
from werkzeug.exceptions import HTTPException

from ..controllers import accounts, email_change, passcodes
from ..controllers.util import ResponseData

logger = logging.getLogger(__name__)
blueprint = Blueprint('api', __name__, url_prefix='')


def _json(response_data: ResponseData) -> Response:
    data, code, headers = response_data
    response: Response = make_response(jsonify(data), code)
    response.headers.extend(headers)
    return response


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def frontend_base() -> str:
    """Get the base URL of the web UI, for links back to it."""
    configured = (current_app.config.get('FRONTEND_BASE_URL') or '').strip()
    if configured:
        return configured.rstrip('/')
    origin = (request.headers.get('Origin') or '').strip()
    if origin:
        return origin.rstrip('/')
    referer = urlparse(request.headers.get('Referer') or '')
    if referer.scheme and referer.netloc:
        return f'{referer.scheme}://{referer.netloc}'
    return request.host_url.rstrip('/')


@blueprint.app_errorhandler(HTTPException)
def handle_http_exception(error: HTTPException) -> Tuple[Response, int]:
    """Render framework errors (404, 405, ...) as JSON."""
    return jsonify({'success': False, 'message': error.description}), \
        error.code or 500


@blueprint.route('/', methods=['GET'])
def health_check() -> Response:
    """Report that the service is up."""
    return make_response('Server is running', 200)


@blueprint.route('/send-otp', methods=['POST'])
def send_otp() -> Response:
    """Issue a passcode and mail it."""
    return _json(passcodes.send_passcode(_body()))


@blueprint.route('/verify-otp', methods=['POST'])
def verify_otp() -> Response:
    """Verify and consume a passcode."""
    return _json(passcodes.verify_passcode(_body()))


# Not authenticated, and the code is not checked: any caller who knows an
# email can set that account's password.
@blueprint.route('/api/force-password-change', methods=['POST'])
def force_password_change() -> Response:
    """Set a passcode as the account password."""
    return _json(passcodes.force_password_change(_body()))


@blueprint.route('/employee/request-email-change', methods=['POST'])
def request_email_change() -> Response:
    """Mail a verification link for a change of email address."""
    def link_for(token: str) -> str:
        return url_for('api.verify_email_change', token=token,
                       _external=True)

    return _json(email_change.request_change(
        request.headers.get('Authorization'), _body(), link_for
    ))


@blueprint.route('/employee/verify-email-change', methods=['GET'])
def verify_email_change() -> Response:
    """Complete a change of email address from a verification link."""
    data, code, headers = \
        email_change.complete_change(request.args.get('token'))
    data['profile_url'] = f'{frontend_base()}/employee/profile'
    page = render_template(f'pages/email_change_{data["outcome"]}.html',
                           **data)
    response: Response = make_response(page, code)
    response.headers.extend(headers)
    return response


@blueprint.route('/admin/create-admin', methods=['POST'])
def create_admin() -> Response:
    """Create an admin or employee account."""
    return _json(accounts.create_account(
        request.headers.get('Authorization'), _body()
    ))


@blueprint.route('/admin/ensure-auth-user', methods=['POST'])
def ensure_auth_user() -> Response:
    """Ensure that an identity exists for an email."""
    return _json(accounts.ensure_identity(
        request.headers.get('Authorization'), _body()
    ))


@blueprint.route('/admin/delete-admin', methods=['POST'])
def delete_admin() -> Response:
    """Delete an account."""
    return _json(accounts.delete_account(
        request.headers.get('Authorization'), _body()
    ))


@blueprint.route('/admin/archive-admin', methods=['POST'])
def archive_admin() -> Response:
    """Archive or unarchive an account."""
    return _json(accounts.archive_account(
        request.headers.get('Authorization'), _body()
    ))
