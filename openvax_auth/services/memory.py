"""
In-process stand-ins for the external collaborators.

Selected with ``ACCOUNTS_BACKEND=memory``. Useful for testing, dev, and demos;
nothing here survives a restart.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
from copy import deepcopy
from threading import RLock
import logging
import secrets
import uuid

from ..domain import Identity, MailMessage
from ..exceptions import IdentityExists, InvalidBearerToken, \
    NoSuchIdentity, StoreError, MailNotConfigured
from . import DELETE_FIELD, Document

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = frozenset(['password', 'email', 'email_verified',
                             'disabled'])


class MemoryIdentityProvider(object):
    """Identity provider backed by a dict, with dev bearer tokens."""

    def __init__(self) -> None:
        self._identities: Dict[str, Dict[str, Any]] = {}
        self._tokens: Dict[str, str] = {}
        self._lock = RLock()

    def create_identity(self, email: str, password: str,
                        email_verified: bool = True,
                        disabled: bool = False) -> str:
        """Create an identity, and return its ID."""
        with self._lock:
            if self._find(email) is not None:
                raise IdentityExists(f'{email} is already in use')
            identity_id = uuid.uuid4().hex
            self._identities[identity_id] = {
                'email': email,
                'password': password,
                'email_verified': email_verified,
                'disabled': disabled
            }
        return identity_id

    def get_identity(self, identity_id: str) -> Identity:
        """Get an identity by ID."""
        with self._lock:
            if identity_id not in self._identities:
                raise NoSuchIdentity(f'No identity {identity_id}')
            return self._to_identity(identity_id)

    def get_identity_by_email(self, email: str) -> Identity:
        """Get an identity by email."""
        with self._lock:
            identity_id = self._find(email)
            if identity_id is None:
                raise NoSuchIdentity(f'No identity for {email}')
            return self._to_identity(identity_id)

    def update_identity(self, identity_id: str, **fields: Any) -> None:
        """Update credential, email or flags of an identity."""
        unknown = set(fields) - IDENTITY_FIELDS
        if unknown:
            raise ValueError(f'Cannot update {", ".join(sorted(unknown))}')
        with self._lock:
            if identity_id not in self._identities:
                raise NoSuchIdentity(f'No identity {identity_id}')
            email = fields.get('email')
            if email is not None:
                owner = self._find(email)
                if owner is not None and owner != identity_id:
                    raise IdentityExists(f'{email} is already in use')
            self._identities[identity_id].update(fields)

    def delete_identity(self, identity_id: str) -> None:
        """Delete an identity."""
        with self._lock:
            if self._identities.pop(identity_id, None) is None:
                raise NoSuchIdentity(f'No identity {identity_id}')
            self._tokens = {token: owner for token, owner
                            in self._tokens.items() if owner != identity_id}

    def verify_bearer_token(self, token: str) -> Identity:
        """Resolve a token generated by :meth:`issue_token`."""
        with self._lock:
            identity_id = self._tokens.get(token)
            if identity_id is None or identity_id not in self._identities:
                raise InvalidBearerToken('Not a valid token')
            return self._to_identity(identity_id)

    def issue_token(self, identity_id: str) -> str:
        """Generate a bearer token for an existing identity."""
        with self._lock:
            if identity_id not in self._identities:
                raise NoSuchIdentity(f'No identity {identity_id}')
            token = secrets.token_urlsafe(24)
            self._tokens[token] = identity_id
        return token

    def password_for(self, identity_id: str) -> str:
        """Get the current credential of an identity."""
        with self._lock:
            return str(self._identities[identity_id]['password'])

    def _find(self, email: str) -> Optional[str]:
        for identity_id, record in self._identities.items():
            if record['email'] == email:
                return identity_id
        return None

    def _to_identity(self, identity_id: str) -> Identity:
        record = self._identities[identity_id]
        return Identity(identity_id=identity_id, email=record['email'],
                        disabled=bool(record['disabled']),
                        email_verified=bool(record['email_verified']))


class MemoryDocumentStore(object):
    """Document store backed by nested dicts."""

    OPERATORS = {
        '==': lambda a, b: a == b,
        '!=': lambda a, b: a != b,
        '<': lambda a, b: a < b,
        '<=': lambda a, b: a <= b,
        '>': lambda a, b: a > b,
        '>=': lambda a, b: a >= b,
        'in': lambda a, b: a in b,
    }

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = RLock()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Get a copy of a document, or ``None``."""
        with self._lock:
            document = self._collections.get(collection, {}).get(key)
            return deepcopy(document) if document is not None else None

    def set(self, collection: str, key: str, fields: Dict[str, Any],
            merge: bool = False) -> None:
        """Write a document, replacing it unless ``merge`` is set."""
        with self._lock:
            documents = self._collections.setdefault(collection, {})
            document = documents.get(key, {}) if merge else {}
            documents[key] = _apply(document, fields)

    def delete(self, collection: str, key: str) -> None:
        """Delete a document, if it exists."""
        with self._lock:
            self._collections.get(collection, {}).pop(key, None)

    def query(self, collection: str, field: str, op: str,
              value: Any) -> List[Document]:
        """Find documents where a dotted field path matches ``value``."""
        if op not in self.OPERATORS:
            raise StoreError(f'Unsupported operator {op}')
        compare = self.OPERATORS[op]
        with self._lock:
            return [
                Document(key=key, data=deepcopy(document))
                for key, document in self._collections.get(collection,
                                                           {}).items()
                if _has_path(document, field)
                and compare(_get_path(document, field), value)
            ]

    def batch_update(self, collection: str,
                     updates: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        """Update existing documents; nothing is written if any is missing."""
        updates = list(updates)
        with self._lock:
            documents = self._collections.get(collection, {})
            missing = [key for key, _ in updates if key not in documents]
            if missing:
                raise StoreError(f'No document {missing[0]} in {collection}')
            staged = {key: _apply(documents[key], fields)
                      for key, fields in updates}
            documents.update(staged)

    def put(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        """Seed a document as-is."""
        with self._lock:
            self._collections.setdefault(collection, {})[key] = \
                deepcopy(document)


class OutboxMailTransport(object):
    """Mail transport that keeps sent messages in a list."""

    def __init__(self, configured: bool = True) -> None:
        self.configured = configured
        self.outbox: List[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        """Append ``message`` to :attr:`outbox`."""
        if not self.configured:
            raise MailNotConfigured('Email sending not configured on server')
        logger.debug('Queued message %r to %s', message.subject, message.to)
        self.outbox.append(message)


def _apply(document: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    updated = deepcopy(document)
    for key, value in fields.items():
        if value is DELETE_FIELD:
            updated.pop(key, None)
        else:
            updated[key] = deepcopy(value)
    return updated


def _has_path(document: Dict[str, Any], path: str) -> bool:
    current: Any = document
    for part in path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return False
        current = current[part]
    return True


def _get_path(document: Dict[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split('.'):
        current = current[part]
    return current
