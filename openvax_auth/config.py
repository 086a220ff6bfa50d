"""Flask configuration."""
import secrets
import os

#################### Backends ####################
ACCOUNTS_BACKEND = os.environ.get('ACCOUNTS_BACKEND', 'firebase')
"""``firebase`` or ``memory``.

The ``memory`` backend keeps identities, documents and sent mail in process.
Useful for testing, dev, and demos."""

FIREBASE_CREDENTIALS = os.environ.get('FIREBASE_CREDENTIALS',
                                      'serviceAccountKey.json')
"""Path to the service-account key. If the file does not exist, application
default credentials are used."""

USERS_COLLECTION = os.environ.get('USERS_COLLECTION', 'users')
PASSCODES_COLLECTION = os.environ.get('PASSCODES_COLLECTION', 'otps')
INVENTORY_COLLECTION = os.environ.get('INVENTORY_COLLECTION', 'vaccineStock')
"""Collection of inventory records that are archived along with accounts."""


#################### Passcodes and tokens ####################
PASSCODE_DURATION = int(os.environ.get('PASSCODE_DURATION', '300'))
"""Lifetime of a one-time passcode, in seconds."""

EMAIL_CHANGE_SECRET = os.environ.get('EMAIL_CHANGE_SECRET',
                                     secrets.token_urlsafe(32))
"""Signs email-change tokens. Must be shared by all workers, or links issued
by one worker will not validate on another."""

EMAIL_CHANGE_DURATION = int(os.environ.get('EMAIL_CHANGE_DURATION', '172800'))
"""Lifetime of an email-change link, in seconds."""


#################### Mail ####################
EMAIL_HOST = os.environ.get('EMAIL_HOST')
EMAIL_PORT = int(os.environ.get('EMAIL_PORT', '587'))
EMAIL_SECURE = os.environ.get('EMAIL_SECURE', 'false')
"""Use implicit TLS with ``EMAIL_HOST``. Otherwise STARTTLS is used."""

EMAIL_SERVICE = os.environ.get('EMAIL_SERVICE')
"""Well-known provider (``gmail``, ``outlook``, ``yahoo``), used when
``EMAIL_HOST`` is not set."""

EMAIL_USER = (os.environ.get('EMAIL_USER') or '').strip()
EMAIL_PASS = (os.environ.get('EMAIL_PASS') or '').strip()
EMAIL_FROM = os.environ.get('EMAIL_FROM', f'"OpenVax" <{EMAIL_USER}>')

MAIL_LOGO_PATH = os.environ.get('MAIL_LOGO_PATH')
"""Logo embedded in notification mail. Skipped if the file does not exist."""


#################### Minor configs ##############################
FRONTEND_BASE_URL = os.environ.get('FRONTEND_BASE_URL')
"""Base URL of the web UI, for links back to it. If not set, the request
origin is used."""

CELERY_ALWAYS_EAGER = \
    os.environ.get('CELERY_ALWAYS_EAGER', 'false').lower() == 'true'
"""Run notification tasks in the calling process instead of queueing them
for a worker. Useful for testing and dev."""

LOGLEVEL = os.environ.get('LOGLEVEL', 20)
