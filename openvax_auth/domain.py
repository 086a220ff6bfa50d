"""Defines account, passcode and token concepts for OpenVax services."""

from typing import Any, Dict, List, NamedTuple, Optional
from datetime import datetime
from enum import Enum
from pytz import UTC


class Role(object):
    """Known account roles."""

    ADMIN = 'admin'
    EMPLOYEE = 'employee'
    USER = 'user'
    """Self-registered end users. Never assigned by privileged provisioning."""

    ALL = frozenset([ADMIN, EMPLOYEE, USER])
    ASSIGNABLE = frozenset([ADMIN, EMPLOYEE])
    """Roles that may be requested when an admin provisions an account."""

    DEFAULT = EMPLOYEE


class NameParts(NamedTuple):
    """Decomposed name of an account holder."""

    first: str = ''
    """First or given name."""

    middle: str = ''
    """Middle name(s), space-joined."""

    last: str = ''
    """Last or family name. May contain spaces (e.g. ``Dela Cruz``)."""

    full: str = ''
    """Display name, usually ``"{last}, {first} {middle}"``."""


class Account(NamedTuple):
    """An administrator, employee or user account."""

    identity_id: str
    """Identifier of the identity-provider record (also the document key)."""

    email: str
    """Lowercase primary email address."""

    role: str = Role.DEFAULT
    """One of :attr:`Role.ALL`."""

    is_active: bool = True
    """``False`` while the account is archived."""

    name: NameParts = NameParts()

    is_email_verified: bool = True

    created_at: Optional[datetime] = None

    profile: Dict[str, Any] = {}
    """Additional caller-supplied fields that are not system-managed."""


class Identity(NamedTuple):
    """A record in the identity provider."""

    identity_id: str
    email: Optional[str] = None
    disabled: bool = False
    email_verified: bool = False


class Requester(NamedTuple):
    """The authenticated caller of a privileged operation."""

    identity_id: str
    email: Optional[str] = None
    role: Optional[str] = None


class Reconciliation(NamedTuple):
    """Outcome of ensuring an identity exists for an email."""

    identity_id: str
    created: bool
    """``False`` when a pre-existing identity was recovered and reset."""

    password: str
    """The credential the identity now has."""


class Passcode(NamedTuple):
    """A one-time numeric passcode."""

    key: str
    """Normalized email that the passcode was issued for."""

    code: str
    """Six digits, leading zeros preserved."""

    created_at: datetime
    expires_at: Optional[datetime]

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether ``now`` (the current time by default) is past
        :attr:`.expires_at`. A passcode without an expiry never expires.
        """
        if self.expires_at is None:
            return False
        return (now or datetime.now(tz=UTC)) > self.expires_at


class Reason(Enum):
    """Outcome of verifying a passcode."""

    OK = 'ok'
    NOT_FOUND = 'not_found'
    EXPIRED = 'expired'
    MISMATCH = 'mismatch'


class Verification(NamedTuple):
    """Result of :meth:`.PasscodeStore.verify`."""

    ok: bool
    reason: Reason


class SignedToken(NamedTuple):
    """Decoded contents of a signed, expiring token."""

    payload: Dict[str, Any]
    issued_at: datetime
    expires_at: datetime
    signature: bytes


class Attachment(NamedTuple):
    """A file attached to an outbound message."""

    filename: str
    path: str
    cid: Optional[str] = None
    """Content ID for inline use from HTML (``<img src="cid:...">``)."""


class MailMessage(NamedTuple):
    """An outbound email."""

    sender: str
    to: str
    subject: str
    html: Optional[str] = None
    text: Optional[str] = None
    attachments: List[Attachment] = []


# Helpers and private functions.


def normalize_email(email: Optional[Any]) -> str:
    """Trim and lowercase an email address; ``''`` if absent."""
    if email is None:
        return ''
    return str(email).strip().lower()


def to_document(account: Account) -> Dict[str, Any]:
    """Generate the document-store representation of an :class:`.Account`."""
    document: Dict[str, Any] = dict(account.profile)
    document.update({
        'lastName': account.name.last,
        'firstName': account.name.first,
        'middleName': account.name.middle,
        'fullName': account.name.full,
        'email': account.email,
        'role': account.role,
        'isEmailVerified': account.is_email_verified,
        'isActive': account.is_active,
        'createdAt': account.created_at,
    })
    return document


ACCOUNT_FIELDS = frozenset([
    'lastName', 'firstName', 'middleName', 'fullName', 'email', 'role',
    'isEmailVerified', 'isActive', 'createdAt', 'uid'
])


def from_document(identity_id: str, document: Dict[str, Any]) -> Account:
    """Load an :class:`.Account` from its document-store representation."""
    return Account(
        identity_id=identity_id,
        email=document.get('email', ''),
        role=document.get('role', Role.DEFAULT),
        is_active=bool(document.get('isActive', True)),
        name=NameParts(
            first=document.get('firstName', ''),
            middle=document.get('middleName', ''),
            last=document.get('lastName', ''),
            full=document.get('fullName', '')
        ),
        is_email_verified=bool(document.get('isEmailVerified', False)),
        created_at=document.get('createdAt'),
        profile={key: value for key, value in document.items()
                 if key not in ACCOUNT_FIELDS}
    )
