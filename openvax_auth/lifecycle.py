"""
Create, delete and archive privileged accounts.

An account spans two records: the identity in the identity provider and the
account document in the users collection, keyed by the identity ID. Archiving
an account also archives the inventory records it created.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from datetime import datetime
import logging

from pytz import UTC

from .domain import Account, Reconciliation, to_document
from .exceptions import NoSuchIdentity, NotFoundError, TransportError, \
    ValidationError
from .reconcile import IdentityReconciler, apply_with_fallback
from .services import DELETE_FIELD, DocumentStore, IdentityProvider

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=UTC)


class AccountLifecycle(object):
    """Coordinates the identity provider, the account store and inventory."""

    def __init__(self, reconciler: IdentityReconciler,
                 identities: IdentityProvider, store: DocumentStore,
                 announce: Callable[[str, str], Any],
                 users_collection: str = 'users',
                 inventory_collection: str = 'vaccineStock') -> None:
        self._reconciler = reconciler
        self._identities = identities
        self._store = store
        self._announce = announce
        self._users = users_collection
        self._inventory = inventory_collection

    def create(self, profile: Mapping[str, Any]) -> Tuple[Account,
                                                          Reconciliation]:
        """
        Provision an admin or employee account.

        Parameters
        ----------
        profile : dict
            Request fields: ``email`` (required), ``password``, ``birthday``,
            ``role``, name fields, and any additional profile fields.

        Returns
        -------
        :class:`.Account`
            The account as persisted.
        :class:`.Reconciliation`
            Includes the credential that the identity now has.

        """
        result = self._reconciler.ensure(profile.get('email'),
                                         profile.get('password'),
                                         profile.get('birthday'))
        account = self._reconciler.compose(result.identity_id, profile)
        self._store.set(self._users, account.identity_id,
                        to_document(account))
        logger.info('Account %s saved for %s with role %s',
                    account.identity_id, account.email, account.role)

        self._announce(account.email, result.password)
        return account, result

    def delete(self, identity_id: str) -> None:
        """
        Delete an account.

        If the identity cannot be deleted by ID, it is deleted by the email in
        the account document instead. The account document is removed in any
        case, so deleting an account whose identity is already gone succeeds.
        """
        if not identity_id:
            raise ValidationError('Missing uid to delete')
        try:
            apply_with_fallback(self._identities,
                                self._identities.delete_identity,
                                identity_id=identity_id,
                                email_lookup=lambda: self._email(identity_id))
        except (NotFoundError, TransportError) as e:
            logger.warning('Could not delete identity for %s: %s',
                           identity_id, e)
        self._store.delete(self._users, identity_id)
        logger.info('Account %s deleted', identity_id)

    def archive(self, identity_id: str, archived: bool,
                archived_by: Optional[str] = None) -> int:
        """
        Archive or unarchive an account, and its inventory records.

        Parameters
        ----------
        identity_id : str
        archived : bool
            ``True`` to archive (disable) the account, ``False`` to restore it.
        archived_by : str
            Email of the requester, stamped on archived inventory records.

        Returns
        -------
        int
            Number of inventory records updated.

        Raises
        ------
        :class:`.NoSuchIdentity`
            If there is no account document for ``identity_id``.

        """
        if not identity_id or archived is None:
            raise ValidationError('Missing uid or disable flag')
        archived = bool(archived)
        document = self._store.get(self._users, identity_id)
        if document is None:
            raise NoSuchIdentity(f'No account {identity_id}')
        email = document.get('email') or None
        try:
            apply_with_fallback(
                self._identities,
                lambda found: self._identities.update_identity(
                    found, disabled=archived
                ),
                identity_id=identity_id,
                email=email
            )
        except (NotFoundError, TransportError) as e:
            logger.warning('Could not update identity for %s: %s',
                           identity_id, e)

        self._store.set(self._users, identity_id, {'isActive': not archived},
                        merge=True)
        if not email:
            logger.info('No email found for account %s', identity_id)
            return 0
        try:
            return self.cascade_archive(email, archived, archived_by)
        except TransportError as e:
            logger.error('Failed to cascade archive state for %s: %s',
                         email, e)
            return 0

    def cascade_archive(self, email: str, archived: bool,
                        archived_by: Optional[str] = None) -> int:
        """
        Apply the archive state to all inventory created by ``email``.

        All matching records are updated in one atomic batch.
        """
        records = self._store.query(self._inventory, 'createdBy.email', '==',
                                    email)
        if not records:
            return 0
        fields: Dict[str, Any]
        if archived:
            fields = {'isArchived': True, 'archivedAt': _now(),
                      'archivedBy': archived_by}
        else:
            fields = {'isArchived': False, 'archivedAt': DELETE_FIELD,
                      'archivedBy': DELETE_FIELD}
        updates: List[Tuple[str, Dict[str, Any]]] = [
            (record.key, dict(fields)) for record in records
        ]
        self._store.batch_update(self._inventory, updates)
        logger.info('%s %i inventory records created by %s',
                    'Archived' if archived else 'Unarchived', len(updates),
                    email)
        return len(updates)

    def _email(self, identity_id: str) -> Optional[str]:
        try:
            document = self._store.get(self._users, identity_id)
        except TransportError as e:
            logger.warning('Failed to look up account %s: %s', identity_id, e)
            return None
        if not document:
            return None
        return document.get('email') or None
