"""Controllers for email-address changes."""

from typing import Any, Callable, Mapping, Optional
from http import HTTPStatus as status
import logging

from ..auth import bearer_token
from ..context import current_context
from ..exceptions import EmailInUse, ExpiredError, NotFoundError, \
    TransportError
from .util import ResponseData, handle_errors, success

logger = logging.getLogger(__name__)


@handle_errors
def request_change(authorization: Optional[str], data: Mapping[str, Any],
                   link_for: Callable[[str], str]) -> ResponseData:
    """
    Mail a verification link to the requested new address.

    Parameters
    ----------
    authorization : str
        Value of the ``Authorization`` header.
    data : dict
        Must include ``newEmail``.
    link_for : callable
        Builds the verification URL for a token.

    """
    context = current_context()
    requester = context.authenticator.authenticate(
        bearer_token(authorization)
    )
    context.email_change.request(requester, data.get('newEmail'), link_for)
    return success(message='Verification email sent')


def complete_change(token: Optional[str]) -> ResponseData:
    """
    Apply the email change in a verification link.

    The response data has an ``outcome`` of ``verified``, ``invalid``,
    ``conflict`` or ``failed``, which selects the page shown to the user.
    """
    try:
        result = current_context().email_change.complete(token or '')
    except ExpiredError:
        return {'outcome': 'invalid'}, status.BAD_REQUEST, {}
    except EmailInUse as e:
        logger.info('Email change rejected: %s', e)
        return {'outcome': 'conflict', 'new_email': e.email}, \
            status.CONFLICT, {}
    except (NotFoundError, TransportError) as e:
        logger.error('Failed to complete email change: %s', e)
        return {'outcome': 'failed'}, status.INTERNAL_SERVER_ERROR, {}
    return {'outcome': 'verified', 'new_email': result['newEmail']}, \
        status.OK, {}
