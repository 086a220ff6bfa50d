"""
Email-verified changes of an account's email address.

A change is requested by the account holder and completed when the owner of
the new address follows the link mailed to it. Nothing is stored in between:
the pending change lives in a signed token (see :mod:`.tokens`).
"""

from typing import Callable, Dict, Any
from datetime import datetime
import logging

from pytz import UTC

from . import tokens
from .domain import Requester, normalize_email
from .exceptions import EmailInUse, ExpiredError, IdentityExists, \
    ValidationError
from .notifications import Notifier
from .services import DocumentStore, IdentityProvider

logger = logging.getLogger(__name__)


class EmailChange(object):
    """Requests and completes email changes."""

    def __init__(self, identities: IdentityProvider, store: DocumentStore,
                 notifier: Notifier, secret: str, ttl: int = 172800,
                 users_collection: str = 'users') -> None:
        self._identities = identities
        self._store = store
        self._notifier = notifier
        self._secret = secret
        self._ttl = ttl
        self._users = users_collection

    def request(self, requester: Requester, new_email: str,
                link_for: Callable[[str], str]) -> str:
        """
        Mail a verification link for a change to ``new_email``.

        Parameters
        ----------
        requester : :class:`.Requester`
            The authenticated account holder.
        new_email : str
        link_for : callable
            Builds the verification URL from a token.

        Returns
        -------
        str
            The signed token embedded in the link.

        """
        new_email = normalize_email(new_email)
        if not new_email:
            raise ValidationError('New email is required')
        token = tokens.issue({'uid': requester.identity_id,
                              'newEmail': new_email},
                             self._secret, self._ttl)
        self._notifier.email_change(new_email, link_for(token))
        logger.info('Email change to %s requested by %s', new_email,
                    requester.identity_id)
        return token

    def complete(self, token: str) -> Dict[str, Any]:
        """
        Apply the change carried by ``token``.

        Returns
        -------
        dict
            The validated payload, with ``uid`` and ``newEmail``.

        Raises
        ------
        :class:`.ExpiredError`
            If the token is invalid or expired.
        :class:`.EmailInUse`
            If another identity already has the new email.

        """
        data = tokens.validate(token or '', self._secret)
        if data is None or not data.get('uid') or not data.get('newEmail'):
            raise ExpiredError('Invalid or expired link')
        identity_id = str(data['uid'])
        new_email = normalize_email(data['newEmail'])

        try:
            self._identities.update_identity(identity_id, email=new_email,
                                             email_verified=True)
        except IdentityExists as e:
            raise EmailInUse(new_email) from e
        self._store.set(self._users, identity_id, {
            'email': new_email,
            'isEmailVerified': True,
            'updatedAt': datetime.now(tz=UTC)
        }, merge=True)
        logger.info('Email of %s changed to %s', identity_id, new_email)
        return {'uid': identity_id, 'newEmail': new_email}
