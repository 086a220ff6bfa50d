"""
Ensure that exactly one identity exists for an email address.

Reconciliation is idempotent but destructive to prior credentials: when the
identity provider already has an identity for the email, that identity is
recovered and its password and activation flags are reset to the values
derived here.

When no password is supplied, one is derived from the account holder's
birthday as ``MMDDYYYY``. This is a deliberate weak default that matches what
the web UI tells new staff; callers that need a strong secret must pass one
explicitly. Without a usable birthday, a random password is generated.
"""

from typing import Any, Callable, Dict, Mapping, Optional, TypeVar, Union
from datetime import date, datetime
import logging
import secrets

import dateutil.parser
from pytz import UTC

from .domain import Account, NameParts, Reconciliation, Role, \
    normalize_email
from .exceptions import NoSuchIdentity, NotFoundError, TransportError, \
    IdentityExists, ValidationError
from .services import IdentityProvider

logger = logging.getLogger(__name__)

T = TypeVar('T')

RESERVED_FIELDS = frozenset([
    'email', 'password', 'fullName', 'lastName', 'firstName', 'middleName',
    'role', 'isEmailVerified', 'isActive', 'createdAt', 'uid'
])
"""Identity and system-managed fields that profile data may not overwrite."""


def _now() -> datetime:
    return datetime.now(tz=UTC)


def derive_password(birthday: Optional[Union[str, date]] = None) -> str:
    """
    Derive an initial password.

    Parameters
    ----------
    birthday : str or :class:`datetime.date`
        If this parses as a date, the password is ``MMDDYYYY``.

    Returns
    -------
    str

    """
    if isinstance(birthday, (date, datetime)):
        return birthday.strftime('%m%d%Y')
    text = str(birthday or '').strip()
    if text:
        try:
            return dateutil.parser.parse(text).strftime('%m%d%Y')
        except (ValueError, OverflowError) as e:
            logger.debug('Birthday %r is not a date: %s', text, e)
    return secrets.token_urlsafe(12) + 'Aa1!'


def parse_name(full_name: Optional[str] = None,
               first: Optional[str] = None,
               middle: Optional[str] = None,
               last: Optional[str] = None) -> NameParts:
    """
    Resolve name parts, parsing a combined full name where parts are missing.

    ``"Dela Cruz, Juan Miguel"`` has a comma, so everything before it is the
    last name: ``last="Dela Cruz", first="Juan", middle="Miguel"``.

    Without a comma only the final token is taken as the last name, so
    ``"Juan Dela Cruz"`` gives ``first="Juan", middle="Dela", last="Cruz"``.
    Multi-word surnames need the comma form (or an explicit ``last``). A
    single token such as ``"Cher"`` is both the first and the last name.

    Explicit parts always override parsed ones. The display name is the
    explicit ``full_name`` if given, otherwise ``"{last}, {first} {middle}"``
    (the middle segment is omitted when empty).
    """
    full_name = (full_name or '').strip()
    parts = NameParts(first=(first or '').strip(),
                      middle=(middle or '').strip(),
                      last=(last or '').strip())

    if (not parts.last or not parts.first) and full_name:
        if ',' in full_name:
            parsed_last, _, rest = full_name.partition(',')
            tokens = rest.split()
            parsed = NameParts(first=tokens[0] if tokens else '',
                               middle=' '.join(tokens[1:]),
                               last=parsed_last.strip())
        else:
            tokens = full_name.split()
            parsed = NameParts(first=tokens[0] if tokens else '',
                               middle=' '.join(tokens[1:-1]),
                               last=tokens[-1] if tokens else '')
        parts = NameParts(first=parts.first or parsed.first,
                          middle=parts.middle or parsed.middle,
                          last=parts.last or parsed.last)

    display = full_name
    if not display and parts.last and parts.first:
        display = f'{parts.last}, {parts.first}'
        if parts.middle:
            display += f' {parts.middle}'
    return parts._replace(full=display)


def resolve_role(requested: Optional[Any]) -> str:
    """Accept ``admin`` or ``employee``; anything else is ``employee``."""
    role = str(requested or '').strip().lower()
    return role if role in Role.ASSIGNABLE else Role.DEFAULT


def profile_fields(profile: Mapping[str, Any]) -> Dict[str, Any]:
    """Get the caller-supplied fields that are not system-managed."""
    return {key: value for key, value in profile.items()
            if key not in RESERVED_FIELDS}


def apply_with_fallback(identities: IdentityProvider,
                        action: Callable[[str], T],
                        identity_id: Optional[str] = None,
                        email: Optional[str] = None,
                        email_lookup: Optional[Callable[[], Optional[str]]]
                        = None) -> T:
    """
    Apply ``action`` to an identity, falling back to a lookup by email.

    ``action`` is first called with ``identity_id`` (if given). If that
    fails, or there is no ID, the identity is looked up by ``email`` (or the
    address returned by ``email_lookup``) and ``action`` is called with the
    ID found.

    Raises
    ------
    :class:`.NoSuchIdentity`
        If no email is available to fall back on.

    """
    if identity_id:
        try:
            return action(identity_id)
        except (NotFoundError, TransportError) as e:
            logger.warning('Failed for identity %s: %s', identity_id, e)
    if not email and email_lookup is not None:
        email = email_lookup()
    if not email:
        raise NoSuchIdentity(f'No identity {identity_id} and no email')
    identity = identities.get_identity_by_email(email)
    return action(identity.identity_id)


class IdentityReconciler(object):
    """Creates or recovers identities, and composes account records."""

    def __init__(self, identities: IdentityProvider) -> None:
        self._identities = identities

    def ensure(self, email: str, password: Optional[str] = None,
               birthday: Optional[Union[str, date]] = None) -> Reconciliation:
        """
        Ensure that an identity exists for ``email``.

        Parameters
        ----------
        email : str
        password : str
            Credential to set. Derived with :func:`derive_password` if empty.
        birthday : str or :class:`datetime.date`

        Returns
        -------
        :class:`.Reconciliation`

        """
        email = normalize_email(email)
        if not email:
            raise ValidationError('Email is required')
        password = str(password or '') or derive_password(birthday)

        created = True
        try:
            identity_id = self._identities.create_identity(
                email, password, email_verified=True, disabled=False
            )
        except IdentityExists:
            logger.info('Identity for %s exists; resetting it', email)
            created = False
            identity_id = apply_with_fallback(
                self._identities,
                lambda found: self._reset(found, password),
                email=email
            )

        # Confirm the identity is really there before anyone relies on it.
        self._identities.get_identity(identity_id)
        return Reconciliation(identity_id=identity_id, created=created,
                              password=password)

    def compose(self, identity_id: str,
                profile: Mapping[str, Any]) -> Account:
        """Build the :class:`.Account` for a provisioning request."""
        return Account(
            identity_id=identity_id,
            email=normalize_email(profile.get('email')),
            role=resolve_role(profile.get('role')),
            is_active=True,
            name=parse_name(profile.get('fullName'), profile.get('firstName'),
                            profile.get('middleName'),
                            profile.get('lastName')),
            is_email_verified=True,
            created_at=_now(),
            profile=profile_fields(profile)
        )

    def reset_password(self, email: str, password: str) -> str:
        """Set the password of the identity with ``email``; return its ID."""
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError('Email and password are required')
        identity = self._identities.get_identity_by_email(email)
        self._identities.update_identity(identity.identity_id,
                                         password=str(password))
        return identity.identity_id

    def _reset(self, identity_id: str, password: str) -> str:
        self._identities.update_identity(identity_id, password=password,
                                         email_verified=True, disabled=False)
        return identity_id
