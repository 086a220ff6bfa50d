"""Fixtures shared by the OpenVax tests.

Apps use the in-memory backends, so no Firebase project or SMTP server is
needed, and notification tasks run in the calling process.
"""
import pytest

from openvax_auth.context import EXTENSION
from openvax_auth.domain import Role
from openvax_auth.factory import create_web_app


@pytest.fixture()
def app():
    app = create_web_app(ACCOUNTS_BACKEND='memory',
                         EMAIL_CHANGE_SECRET='foosecret',
                         EMAIL_FROM='"OpenVax" <noreply@openvax.test>',
                         SERVER_NAME='openvax.test',
                         CELERY_ALWAYS_EAGER=True,
                         TESTING=True)
    return app


@pytest.fixture()
def context(app):
    return app.extensions[EXTENSION]


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_token(context):
    """Bearer token of an account with the admin role."""
    uid = context.identities.create_identity('admin@openvax.test', 'adminpw')
    context.store.set('users', uid, {'email': 'admin@openvax.test',
                                     'role': Role.ADMIN})
    return context.identities.issue_token(uid)


@pytest.fixture()
def employee_token(context):
    """Bearer token of an account with the employee role."""
    uid = context.identities.create_identity('staff@openvax.test', 'staffpw')
    context.store.set('users', uid, {'email': 'staff@openvax.test',
                                     'role': Role.EMPLOYEE})
    return context.identities.issue_token(uid)
