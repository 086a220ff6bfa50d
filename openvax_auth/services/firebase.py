"""
Integration with Firebase Authentication and Cloud Firestore.

Vendor exceptions are translated into :mod:`openvax_auth.exceptions` so that
callers never depend on the Firebase SDK directly.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import os

import firebase_admin
from firebase_admin import auth, credentials, firestore
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPICallError
from google.cloud.firestore_v1.base_query import FieldFilter

from ..domain import Identity
from ..exceptions import IdentityExists, IdentityProviderError, \
    InvalidBearerToken, NoSuchIdentity, StoreError
from . import DELETE_FIELD, Document

logger = logging.getLogger(__name__)

APP_NAME = 'openvax-auth'

IDENTITY_FIELDS = frozenset(['password', 'email', 'email_verified',
                             'disabled'])


def initialize(credentials_path: Optional[str] = None,
               name: str = APP_NAME) -> firebase_admin.App:
    """
    Get or create the Firebase app used by the adapters in this module.

    Parameters
    ----------
    credentials_path : str
        Path to a service-account JSON key. If it is not set or the file does
        not exist, application default credentials are used.
    name : str
        Firebase app name, so that repeated initialization is harmless.

    """
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        pass
    if credentials_path and os.path.exists(credentials_path):
        credential = credentials.Certificate(credentials_path)
        logger.info('Firebase initialized from %s', credentials_path)
    else:
        logger.error('Service account key %s not found; using application '
                     'default credentials', credentials_path)
        credential = credentials.ApplicationDefault()
    return firebase_admin.initialize_app(credential, name=name)


class FirebaseIdentityProvider(object):
    """Identity provider backed by Firebase Authentication."""

    def __init__(self, app: firebase_admin.App) -> None:
        self._app = app

    def create_identity(self, email: str, password: str,
                        email_verified: bool = True,
                        disabled: bool = False) -> str:
        """Create a Firebase user, and return its UID."""
        try:
            record = auth.create_user(email=email, password=password,
                                      email_verified=email_verified,
                                      disabled=disabled, app=self._app)
        except auth.EmailAlreadyExistsError as e:
            raise IdentityExists(f'{email} is already in use') from e
        except (FirebaseError, ValueError) as e:
            raise IdentityProviderError(f'Failed to create: {e}') from e
        return str(record.uid)

    def get_identity(self, identity_id: str) -> Identity:
        """Get a Firebase user by UID."""
        try:
            record = auth.get_user(identity_id, app=self._app)
        except auth.UserNotFoundError as e:
            raise NoSuchIdentity(f'No identity {identity_id}') from e
        except (FirebaseError, ValueError) as e:
            raise IdentityProviderError(f'Failed to get: {e}') from e
        return _to_identity(record)

    def get_identity_by_email(self, email: str) -> Identity:
        """Get a Firebase user by email address."""
        try:
            record = auth.get_user_by_email(email, app=self._app)
        except auth.UserNotFoundError as e:
            raise NoSuchIdentity(f'No identity for {email}') from e
        except (FirebaseError, ValueError) as e:
            raise IdentityProviderError(f'Failed to get: {e}') from e
        return _to_identity(record)

    def update_identity(self, identity_id: str, **fields: Any) -> None:
        """Update credential, email or flags of a Firebase user."""
        unknown = set(fields) - IDENTITY_FIELDS
        if unknown:
            raise ValueError(f'Cannot update {", ".join(sorted(unknown))}')
        try:
            auth.update_user(identity_id, app=self._app, **fields)
        except auth.UserNotFoundError as e:
            raise NoSuchIdentity(f'No identity {identity_id}') from e
        except auth.EmailAlreadyExistsError as e:
            raise IdentityExists(f'{fields.get("email")} is already in use') \
                from e
        except (FirebaseError, ValueError) as e:
            raise IdentityProviderError(f'Failed to update: {e}') from e

    def delete_identity(self, identity_id: str) -> None:
        """Delete a Firebase user."""
        try:
            auth.delete_user(identity_id, app=self._app)
        except auth.UserNotFoundError as e:
            raise NoSuchIdentity(f'No identity {identity_id}') from e
        except (FirebaseError, ValueError) as e:
            raise IdentityProviderError(f'Failed to delete: {e}') from e

    def verify_bearer_token(self, token: str) -> Identity:
        """Verify a Firebase ID token."""
        try:
            claims = auth.verify_id_token(token, app=self._app)
        except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError,
                auth.RevokedIdTokenError, auth.UserDisabledError,
                auth.CertificateFetchError, ValueError) as e:
            raise InvalidBearerToken(f'Invalid token: {e}') from e
        return Identity(identity_id=claims['uid'],
                        email=claims.get('email'),
                        email_verified=bool(claims.get('email_verified')))


class FirestoreDocumentStore(object):
    """Document store backed by Cloud Firestore."""

    def __init__(self, app: firebase_admin.App) -> None:
        self._db = firestore.client(app)

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Get a document, or ``None`` if it does not exist."""
        try:
            snapshot = self._db.collection(collection).document(key).get()
        except GoogleAPICallError as e:
            raise StoreError(f'Failed to get {collection}/{key}: {e}') from e
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def set(self, collection: str, key: str, fields: Dict[str, Any],
            merge: bool = False) -> None:
        """Write a document, replacing it unless ``merge`` is set."""
        ref = self._db.collection(collection).document(key)
        try:
            ref.set(_translate(fields), merge=merge)
        except GoogleAPICallError as e:
            raise StoreError(f'Failed to set {collection}/{key}: {e}') from e

    def delete(self, collection: str, key: str) -> None:
        """Delete a document. Firestore ignores missing documents."""
        try:
            self._db.collection(collection).document(key).delete()
        except GoogleAPICallError as e:
            raise StoreError(f'Failed to delete {collection}/{key}: {e}') \
                from e

    def query(self, collection: str, field: str, op: str,
              value: Any) -> List[Document]:
        """Find documents where a dotted field path matches ``value``."""
        query = self._db.collection(collection) \
            .where(filter=FieldFilter(field, op, value))
        try:
            return [Document(key=snapshot.id, data=snapshot.to_dict() or {})
                    for snapshot in query.stream()]
        except GoogleAPICallError as e:
            raise StoreError(f'Failed to query {collection}: {e}') from e

    def batch_update(self, collection: str,
                     updates: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        """Update existing documents in a single atomic write batch."""
        batch = self._db.batch()
        for key, fields in updates:
            batch.update(self._db.collection(collection).document(key),
                         _translate(fields))
        try:
            batch.commit()
        except GoogleAPICallError as e:
            raise StoreError(f'Batch update of {collection} failed: {e}') \
                from e


def _to_identity(record: auth.UserRecord) -> Identity:
    return Identity(identity_id=record.uid, email=record.email,
                    disabled=bool(record.disabled),
                    email_verified=bool(record.email_verified))


def _translate(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: firestore.DELETE_FIELD if value is DELETE_FIELD else value
            for key, value in fields.items()}
