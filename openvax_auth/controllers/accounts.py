"""Admin-only controllers that provision, delete and archive accounts."""

from typing import Any, Mapping, Optional
import logging

from ..auth import bearer_token
from ..context import current_context
from ..domain import Role
from ..exceptions import ValidationError
from .util import ResponseData, as_bool, handle_errors, success

logger = logging.getLogger(__name__)


@handle_errors
def create_account(authorization: Optional[str],
                   data: Mapping[str, Any]) -> ResponseData:
    """
    Create (or recover) an admin or employee account.

    Parameters
    ----------
    authorization : str
        Value of the ``Authorization`` header. The requester must be an admin.
    data : dict
        Profile of the new account. ``email`` is required.

    Returns
    -------
    dict
        Response body, including the ``uid`` of the account.
    int
        Status code.
    dict
        Headers to add to the response.

    """
    context = current_context()
    requester = context.authenticator.authorize(bearer_token(authorization),
                                                Role.ADMIN)
    account, _ = context.lifecycle.create(data)
    logger.info('%s created account %s', requester.email, account.identity_id)
    return success(uid=account.identity_id, message='User created')


@handle_errors
def ensure_identity(authorization: Optional[str],
                    data: Mapping[str, Any]) -> ResponseData:
    """Make sure an identity exists for an email, without an account."""
    context = current_context()
    context.authenticator.authorize(bearer_token(authorization), Role.ADMIN)
    if not data.get('email'):
        raise ValidationError('Email is required')
    result = context.reconciler.ensure(data.get('email'),
                                       data.get('password'),
                                       data.get('birthday'))
    return success(uid=result.identity_id, created=result.created)


@handle_errors
def delete_account(authorization: Optional[str],
                   data: Mapping[str, Any]) -> ResponseData:
    """Delete an account's identity and account document."""
    context = current_context()
    context.authenticator.authorize(bearer_token(authorization), Role.ADMIN)
    context.lifecycle.delete(data.get('uid'))
    return success(message='Admin account deleted')


@handle_errors
def archive_account(authorization: Optional[str],
                    data: Mapping[str, Any]) -> ResponseData:
    """
    Archive or unarchive an account.

    ``disable`` selects the direction. Inventory records created by the
    account are archived along with it, stamped with the requester's email.
    """
    context = current_context()
    requester = context.authenticator.authorize(bearer_token(authorization),
                                                Role.ADMIN)
    if not data.get('uid') or data.get('disable') is None:
        raise ValidationError('Missing uid or disable flag')
    disable = as_bool(data['disable'])
    count = context.lifecycle.archive(data['uid'], disable, requester.email)
    return success(message='Admin archived' if disable else 'Admin unarchived',
                   inventoryUpdated=count)
