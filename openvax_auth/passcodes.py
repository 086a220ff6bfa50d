"""
One-time passcodes for email verification and forced password resets.

Passcodes are held in the document store, one per normalized email address.
Issuing a new passcode overwrites the previous one. Expiry is checked lazily
when a passcode is verified; an expired record may linger until then or until
it is overwritten.
"""

from typing import Optional
from datetime import datetime, timedelta
from urllib.parse import quote
import hmac
import logging
import secrets

from pytz import UTC

from .domain import Passcode, Reason, Verification, normalize_email
from .exceptions import NotFoundError, TransportError, ValidationError
from .services import DocumentStore, IdentityProvider

logger = logging.getLogger(__name__)

DIGITS = 6


def _now() -> datetime:
    return datetime.now(tz=UTC)


def generate_code(length: int = DIGITS) -> str:
    """Generate a uniformly random numeric code, keeping leading zeros."""
    return str(secrets.randbelow(10 ** length)).zfill(length)


def passcode_key(email: str) -> str:
    """Get the document key for an email; safe for use as a document ID."""
    return quote(normalize_email(email), safe='')


class PasscodeStore(object):
    """Issues, verifies and consumes passcodes."""

    def __init__(self, store: DocumentStore, identities: IdentityProvider,
                 collection: str = 'otps', duration: int = 300) -> None:
        """
        Parameters
        ----------
        store : :class:`.DocumentStore`
            Where passcodes are kept.
        identities : :class:`.IdentityProvider`
            Receives each new passcode as the account's recovery credential.
        collection : str
        duration : int
            Lifetime of a passcode, in seconds.

        """
        self._store = store
        self._identities = identities
        self._collection = collection
        self._duration = duration

    def issue(self, email: str) -> Passcode:
        """
        Generate a new passcode for ``email``, replacing any earlier one.

        The passcode is also set as the credential of the identity with that
        email, if there is one, before the passcode is stored. A failure to do
        so is logged and does not prevent issuance.
        """
        key = normalize_email(email)
        if not key:
            raise ValidationError('Email is required')
        created_at = _now()
        passcode = Passcode(
            key=key,
            code=generate_code(),
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=self._duration)
        )
        self._sync_credential(key, passcode.code)
        self._store.set(self._collection, passcode_key(key), {
            'code': passcode.code,
            'createdAt': passcode.created_at,
            'expiresAt': passcode.expires_at,
        })
        logger.debug('Issued passcode for %s', key)
        return passcode

    def load(self, email: str) -> Optional[Passcode]:
        """Get the active passcode for ``email``, if any."""
        key = normalize_email(email)
        data = self._store.get(self._collection, passcode_key(key))
        if data is None:
            return None
        return Passcode(key=key, code=str(data.get('code', '')),
                        created_at=data.get('createdAt'),
                        expires_at=data.get('expiresAt'))

    def verify(self, email: str, code: str) -> Verification:
        """
        Check ``code`` against the active passcode for ``email``.

        A matching passcode is consumed, so it verifies at most once. An
        expired passcode is deleted. A wrong code leaves the passcode in
        place so that the user can try again.
        """
        key = normalize_email(email)
        if not key or not code:
            raise ValidationError('Email and OTP are required')
        passcode = self.load(key)
        if passcode is None:
            return Verification(False, Reason.NOT_FOUND)

        if passcode.is_expired(_now()):
            self._store.delete(self._collection, passcode_key(key))
            logger.debug('Passcode for %s expired', key)
            return Verification(False, Reason.EXPIRED)

        if not hmac.compare_digest(passcode.code.encode('utf-8'),
                                   str(code).strip().encode('utf-8')):
            logger.debug('Passcode mismatch for %s', key)
            return Verification(False, Reason.MISMATCH)

        self._store.delete(self._collection, passcode_key(key))
        return Verification(True, Reason.OK)

    def _sync_credential(self, email: str, code: str) -> None:
        try:
            identity = self._identities.get_identity_by_email(email)
            self._identities.update_identity(identity.identity_id,
                                             password=code)
        except (NotFoundError, TransportError) as e:
            logger.warning('User not found or error updating password for '
                           '%s: %s', email, e)
