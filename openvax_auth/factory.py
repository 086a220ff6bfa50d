"""Application factory for the OpenVax account services."""

from typing import Any, Mapping, Optional, Tuple
import logging

from celery import Celery
from flask import Flask

from . import tasks
from .app_logging import setup_logger
from .auth import Authenticator
from .context import EXTENSION, ServiceContext
from .email_change import EmailChange
from .lifecycle import AccountLifecycle
from .notifications import Notifier
from .passcodes import PasscodeStore
from .reconcile import IdentityReconciler
from .routes import api
from .services import DocumentStore, IdentityProvider, MailTransport
from .services import firebase, mail as smtp
from .services.memory import MemoryDocumentStore, MemoryIdentityProvider, \
    OutboxMailTransport

logger = logging.getLogger(__name__)

celery_app = Celery('openvax_auth')
celery_app.config_from_object('openvax_auth.celeryconfig')


def backends(config: Mapping[str, Any]) \
        -> Tuple[IdentityProvider, DocumentStore, MailTransport]:
    """Build the collaborators selected by ``ACCOUNTS_BACKEND``."""
    backend = str(config.get('ACCOUNTS_BACKEND') or 'firebase').lower()
    if backend == 'memory':
        logger.info('Using in-memory account backends')
        return MemoryIdentityProvider(), MemoryDocumentStore(), \
            OutboxMailTransport()
    if backend != 'firebase':
        raise ValueError(f'Unknown ACCOUNTS_BACKEND {backend}')

    app = firebase.initialize(config.get('FIREBASE_CREDENTIALS'))
    return firebase.FirebaseIdentityProvider(app), \
        firebase.FirestoreDocumentStore(app), smtp.from_config(config)


def build_context(config: Mapping[str, Any],
                  identities: Optional[IdentityProvider] = None,
                  store: Optional[DocumentStore] = None,
                  mail: Optional[MailTransport] = None) -> ServiceContext:
    """
    Wire up the components from configuration.

    Collaborators may be passed in explicitly; otherwise they are selected by
    ``ACCOUNTS_BACKEND``.
    """
    if identities is None or store is None or mail is None:
        _identities, _store, _mail = backends(config)
        identities = identities or _identities
        store = store or _store
        mail = mail or _mail

    users = config.get('USERS_COLLECTION', 'users')
    duration = int(config.get('PASSCODE_DURATION', 300))
    notifier = Notifier(mail, config.get('EMAIL_FROM', ''),
                        config.get('MAIL_LOGO_PATH'),
                        passcode_minutes=max(duration // 60, 1))
    reconciler = IdentityReconciler(identities)
    return ServiceContext(
        identities=identities,
        store=store,
        mail=mail,
        notifier=notifier,
        authenticator=Authenticator(identities, store, users),
        passcodes=PasscodeStore(store, identities,
                                config.get('PASSCODES_COLLECTION', 'otps'),
                                duration),
        reconciler=reconciler,
        lifecycle=AccountLifecycle(
            reconciler, identities, store, tasks.announce_account, users,
            config.get('INVENTORY_COLLECTION', 'vaccineStock')
        ),
        email_change=EmailChange(
            identities, store, notifier, config['EMAIL_CHANGE_SECRET'],
            int(config.get('EMAIL_CHANGE_DURATION', 172800)), users
        )
    )


def _create_app(config: Mapping[str, Any]) -> Flask:
    app = Flask('openvax_auth')
    app.config.from_object('openvax_auth.config')
    app.config.update(config)
    setup_logger(app.config['LOGLEVEL'])

    celery_app.conf.task_always_eager = \
        bool(app.config.get('CELERY_ALWAYS_EAGER'))
    app.extensions[EXTENSION] = build_context(app.config)
    return app


def create_web_app(**config: Any) -> Flask:
    """Initialize and configure the OpenVax account services."""
    app = _create_app(config)
    app.register_blueprint(api.blueprint)
    return app


def create_worker_app(**config: Any) -> Flask:
    """Initialize the application that Celery workers run tasks in."""
    return _create_app(config)
