"""Controllers for one-time passcodes and passcode-based password resets."""

from typing import Any, Mapping
from http import HTTPStatus as status
import logging

from ..context import current_context
from ..domain import Reason
from ..exceptions import ValidationError
from .util import ResponseData, failure, handle_errors, success

logger = logging.getLogger(__name__)

MESSAGES = {
    Reason.OK: 'OTP verified successfully',
    Reason.NOT_FOUND: 'No OTP found for this email',
    Reason.EXPIRED: 'OTP expired',
    Reason.MISMATCH: 'Invalid OTP',
}


@handle_errors
def send_passcode(data: Mapping[str, Any]) -> ResponseData:
    """
    Issue a passcode and mail it to the requested address.

    Parameters
    ----------
    data : dict
        Must include ``email``.

    Returns
    -------
    dict
        Response body.
    int
        200 if the passcode was sent; 500 if it could not be mailed.
    dict
        Headers to add to the response.

    """
    email = data.get('email')
    if not email:
        raise ValidationError('Email is required')
    context = current_context()
    passcode = context.passcodes.issue(email)
    context.notifier.passcode(passcode.key, passcode.code)
    return success(message='OTP sent to email')


@handle_errors
def verify_passcode(data: Mapping[str, Any]) -> ResponseData:
    """Check and consume a passcode."""
    email, otp = data.get('email'), data.get('otp')
    if not email or not otp:
        raise ValidationError('Email and OTP are required')
    result = current_context().passcodes.verify(email, str(otp))
    if result.ok:
        return success(message=MESSAGES[result.reason])
    response_data, code, headers = failure(MESSAGES[result.reason],
                                           status.BAD_REQUEST)
    response_data['reason'] = result.reason.value
    return response_data, code, headers


@handle_errors
def force_password_change(data: Mapping[str, Any]) -> ResponseData:
    """
    Set the passcode as the password of the account with ``email``.

    The passcode is not checked here: the client verifies it first with
    :func:`verify_passcode`, and issuing it already made it the account's
    recovery credential.

    Anyone who can reach this endpoint can therefore set the password of any
    account whose email they know. Deployments should restrict it, for
    example to the web UI's origin.
    """
    email, otp = data.get('email'), data.get('otp')
    if not email or not otp:
        raise ValidationError('Email and OTP are required.')
    uid = current_context().reconciler.reset_password(email, str(otp))
    logger.info('Password of %s reset from passcode', uid)
    return success()
