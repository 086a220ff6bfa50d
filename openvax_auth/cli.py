"""
Operator tools for OpenVax accounts.

Uses the same configuration as the web app; set ``FIREBASE_CREDENTIALS`` to
the service-account key.

.. code-block:: bash

   $ openvax-accounts check-admin
   $ openvax-accounts create-user jane@example.com 'S3cret!' admin
   $ openvax-accounts set-role jane@example.com employee
   $ openvax-accounts reset-password jane@example.com 'N3wS3cret!'

Results are printed as JSON. The exit code is 1 if the backends cannot be
initialized, and 2 if the operation itself fails or the arguments are invalid.
"""

from typing import Any, Dict, NamedTuple
from datetime import datetime
import json

import click
from pytz import UTC

from . import config
from .domain import Role, from_document, normalize_email
from .exceptions import NoSuchIdentity, NotFoundError, TransportError, \
    ValidationError
from .factory import backends
from .reconcile import IdentityReconciler
from .services import DocumentStore, IdentityProvider

INIT_FAILED = 1
OPERATION_FAILED = 2


class Tools(NamedTuple):
    """Collaborators used by the commands."""

    identities: IdentityProvider
    store: DocumentStore
    users_collection: str = 'users'


def _settings() -> Dict[str, Any]:
    return {key: getattr(config, key) for key in dir(config) if key.isupper()}


def _echo(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2))


def _fail(ctx: click.Context, message: str, error: Exception) -> None:
    click.echo(f'{message}: {error}', err=True)
    ctx.exit(OPERATION_FAILED)


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """Manage OpenVax accounts."""
    if ctx.obj is not None:
        return
    settings = _settings()
    try:
        identities, store, _ = backends(settings)
    except (ValueError, OSError) as e:
        click.echo(f'Failed to initialize the account backends: {e}',
                   err=True)
        ctx.exit(INIT_FAILED)
    ctx.obj = Tools(identities, store, settings['USERS_COLLECTION'])


@main.command('check-admin')
@click.argument('email', required=False)
@click.pass_obj
def check_admin(tools: Tools, email: str) -> None:
    """
    Check that an admin account exists.

    With EMAIL, checks for an identity with that address. Otherwise looks for
    any account with the admin role.
    """
    ctx = click.get_current_context()
    try:
        if email:
            identity = tools.identities.get_identity_by_email(
                normalize_email(email)
            )
            _echo({'exists': True, 'uid': identity.identity_id,
                   'email': identity.email})
            return
        admins = tools.store.query(tools.users_collection, 'role', '==',
                                   Role.ADMIN)
    except NoSuchIdentity:
        _echo({'exists': False, 'email': email})
        return
    except TransportError as e:
        _fail(ctx, 'Error checking for admin', e)
        return
    if not admins:
        _echo({'exists': False})
        return
    admin = from_document(admins[0].key, admins[0].data)
    _echo({'exists': True, 'uid': admin.identity_id, 'email': admin.email,
           'fullName': admin.name.full})


@main.command('reset-password')
@click.argument('email')
@click.argument('new_password')
@click.pass_obj
def reset_password(tools: Tools, email: str, new_password: str) -> None:
    """Set the password of the identity with EMAIL."""
    ctx = click.get_current_context()
    try:
        uid = IdentityReconciler(tools.identities).reset_password(
            email, new_password
        )
    except (NotFoundError, TransportError, ValidationError) as e:
        _fail(ctx, 'Failed to reset password', e)
        return
    _echo({'success': True, 'uid': uid, 'email': normalize_email(email)})


@main.command('create-user')
@click.argument('email')
@click.argument('password')
@click.argument('role', required=False, default=Role.ADMIN,
                type=click.Choice(sorted(Role.ALL)))
@click.pass_obj
def create_user(tools: Tools, email: str, password: str, role: str) -> None:
    """
    Create a user with ROLE (admin by default), or reset an existing one.

    An existing user gets PASSWORD and is re-enabled.
    """
    ctx = click.get_current_context()
    email = normalize_email(email)
    try:
        result = IdentityReconciler(tools.identities).ensure(email, password)
        stamp = 'createdAt' if result.created else 'updatedAt'
        tools.store.set(tools.users_collection, result.identity_id, {
            'email': email,
            'role': role,
            'isEmailVerified': True,
            stamp: datetime.now(tz=UTC)
        }, merge=True)
    except (NotFoundError, TransportError, ValidationError) as e:
        _fail(ctx, 'Failed to create or update user', e)
        return
    _echo({'success': True, 'created': result.created,
           'uid': result.identity_id, 'passwordReset': not result.created,
           'email': email, 'role': role})


@main.command('set-role')
@click.argument('identifier')
@click.argument('role', type=click.Choice(sorted(Role.ALL)))
@click.pass_obj
def set_role(tools: Tools, identifier: str, role: str) -> None:
    """Set the role of the account with email or UID IDENTIFIER."""
    ctx = click.get_current_context()
    try:
        if '@' in identifier:
            uid = tools.identities.get_identity_by_email(
                normalize_email(identifier)
            ).identity_id
        else:
            uid = identifier
        tools.store.set(tools.users_collection, uid, {'role': role},
                        merge=True)
    except (NotFoundError, TransportError) as e:
        _fail(ctx, 'Failed to set user role', e)
        return
    _echo({'success': True, 'uid': uid, 'role': role})


if __name__ == '__main__':
    main()
