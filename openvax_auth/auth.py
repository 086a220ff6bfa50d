"""Authenticates bearer tokens and checks requester roles."""

from typing import Optional
import logging

from .domain import Requester
from .exceptions import AuthenticationError, AuthorizationError, \
    TransportError
from .services import DocumentStore, IdentityProvider

logger = logging.getLogger(__name__)


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Get the token from an ``Authorization: Bearer <token>`` header."""
    if not header or not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


class Authenticator(object):
    """Resolves bearer tokens to requesters with their account role."""

    def __init__(self, identities: IdentityProvider, store: DocumentStore,
                 users_collection: str = 'users') -> None:
        self._identities = identities
        self._store = store
        self._users = users_collection

    def authenticate(self, token: Optional[str]) -> Requester:
        """
        Verify ``token`` and load the requester's role.

        Raises
        ------
        :class:`.AuthenticationError`
            If the token is missing or invalid.

        """
        if not token:
            raise AuthenticationError('Missing Authorization token')
        try:
            identity = self._identities.verify_bearer_token(token)
            document = self._store.get(self._users, identity.identity_id)
        except (AuthenticationError, TransportError) as e:
            logger.debug('Rejected bearer token: %s', e)
            raise AuthenticationError('Invalid Authorization token') from e
        role = (document or {}).get('role')
        return Requester(identity_id=identity.identity_id,
                         email=identity.email, role=role)

    def authorize(self, token: Optional[str], role: str) -> Requester:
        """
        Authenticate, and require that the requester has exactly ``role``.

        Roles are not hierarchical.

        Raises
        ------
        :class:`.AuthorizationError`
            If the requester has any other role, or none.

        """
        requester = self.authenticate(token)
        if requester.role != role:
            logger.info('Requester %s has role %s; %s required',
                        requester.identity_id, requester.role, role)
            raise AuthorizationError('Forbidden')
        return requester
