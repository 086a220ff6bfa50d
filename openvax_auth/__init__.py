"""
OpenVax account and passcode tools.

This package provides the backend support layer for the OpenVax vaccine
inventory application: one-time passcodes for email verification and forced
password resets, provisioning of administrator and employee accounts on top of
an external identity provider, mirroring of account state into a document
store, and email-verified email-address changes using signed tokens.

Quick start
-----------

The identity provider, document store and mail transport are external
collaborators. They are passed explicitly into each component; the application
factory does that wiring once at startup:

.. code-block:: python

   from openvax_auth.factory import create_web_app

   app = create_web_app()    # Reads openvax_auth.config from the environment.

Set ``ACCOUNTS_BACKEND=memory`` to run against in-process stand-ins for the
identity provider, document store and mail transport.
"""

from .domain import Account, NameParts, Passcode, Role, SignedToken, \
    Verification
