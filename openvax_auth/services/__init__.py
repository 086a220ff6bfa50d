"""
Capability interfaces for the external collaborators.

The identity provider, the document store and the outbound mail transport are
owned by other systems. Components in this package depend only on the
protocols defined here; concrete adapters live in :mod:`.firebase`,
:mod:`.mail` and (for development and tests) :mod:`.memory`.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional, \
    Protocol, Tuple

from ..domain import Identity, MailMessage


class _DeleteField(object):
    """Sentinel value that removes a field during a merge or batch update."""

    def __repr__(self) -> str:
        return 'DELETE_FIELD'


DELETE_FIELD = _DeleteField()


class Document(NamedTuple):
    """A document returned from a query."""

    key: str
    data: Dict[str, Any]


class IdentityProvider(Protocol):
    """Manages login credentials and verifies session tokens."""

    def create_identity(self, email: str, password: str,
                        email_verified: bool = True,
                        disabled: bool = False) -> str:
        """
        Create an identity, and return its ID.

        Raises :class:`.IdentityExists` if the email is already in use.
        """

    def get_identity(self, identity_id: str) -> Identity:
        """Raises :class:`.NoSuchIdentity` if there is no such identity."""

    def get_identity_by_email(self, email: str) -> Identity:
        """Raises :class:`.NoSuchIdentity` if there is no such identity."""

    def update_identity(self, identity_id: str, **fields: Any) -> None:
        """
        Update ``password``, ``email``, ``email_verified`` or ``disabled``.

        Raises :class:`.NoSuchIdentity` or, when changing the email,
        :class:`.IdentityExists`.
        """

    def delete_identity(self, identity_id: str) -> None:
        """Raises :class:`.NoSuchIdentity` if there is no such identity."""

    def verify_bearer_token(self, token: str) -> Identity:
        """Raises :class:`.InvalidBearerToken` if the token is not valid."""


class DocumentStore(Protocol):
    """Schemaless per-record persistence."""

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Get a document, or ``None`` if it does not exist."""

    def set(self, collection: str, key: str, fields: Dict[str, Any],
            merge: bool = False) -> None:
        """Write a document, replacing it unless ``merge`` is set."""

    def delete(self, collection: str, key: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""

    def query(self, collection: str, field: str, op: str,
              value: Any) -> List[Document]:
        """Find documents where ``field`` (a dotted path) matches ``value``."""

    def batch_update(self, collection: str,
                     updates: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        """Update several existing documents atomically."""


class MailTransport(Protocol):
    """Delivers outbound email."""

    def send(self, message: MailMessage) -> None:
        """
        Send a message.

        Raises :class:`.MailNotConfigured` or :class:`.MailDeliveryFailed`.
        """
