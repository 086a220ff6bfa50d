"""
Asynchronous tasks.

Notification mail must never fail the operation that triggered it, so it is
sent by a Celery worker. The worker runs inside an application context (see
:mod:`openvax_auth.worker`), which is where tasks find their collaborators.
"""

import logging

from celery import shared_task
from kombu.exceptions import OperationalError

from .context import current_context
from .exceptions import TransportError

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def notify_account_created(email: str, password: str) -> None:
    """
    Mail a new account holder their email and temporary password.

    Parameters
    ----------
    email : str
    password : str

    """
    try:
        current_context().notifier.account_created(email, password)
    except TransportError as e:
        logger.error('Account-created mail to %s failed: %s', email, e)
        raise


def announce_account(email: str, password: str) -> None:
    """Queue :func:`notify_account_created`; a queueing failure is logged."""
    try:
        notify_account_created.delay(email, password)
    except OperationalError as e:
        logger.error('Could not queue account-created mail to %s: %s',
                     email, e)
