"""Holds the components wired up for a Flask application."""

from typing import NamedTuple

from flask import current_app

from .auth import Authenticator
from .email_change import EmailChange
from .lifecycle import AccountLifecycle
from .notifications import Notifier
from .passcodes import PasscodeStore
from .reconcile import IdentityReconciler
from .services import DocumentStore, IdentityProvider, MailTransport

EXTENSION = 'openvax_auth'


class ServiceContext(NamedTuple):
    """Collaborators and components, built once at startup."""

    identities: IdentityProvider
    store: DocumentStore
    mail: MailTransport
    notifier: Notifier
    authenticator: Authenticator
    passcodes: PasscodeStore
    reconciler: IdentityReconciler
    lifecycle: AccountLifecycle
    email_change: EmailChange


def current_context() -> ServiceContext:
    """Get the :class:`.ServiceContext` of the current application."""
    context: ServiceContext = current_app.extensions[EXTENSION]
    return context
