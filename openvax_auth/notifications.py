"""
Renders and sends OpenVax notification email.

Templates live in ``templates/mail`` and are rendered with a standalone
Jinja2 environment, so notifications can be sent from background threads
outside of any Flask request or application context.
"""

from typing import List, Optional
from datetime import datetime
import logging
import os

from jinja2 import Environment, PackageLoader, select_autoescape
from pytz import UTC

from .domain import Attachment, MailMessage
from .services import MailTransport

logger = logging.getLogger(__name__)

LOGO_CID = 'ovxlogo'
LOGO_FILENAME = 'openvax-logo.png'

PASSCODE_SUBJECT = 'OpenVax Email Verification Code'
EMAIL_CHANGE_SUBJECT = 'OpenVax: Verify your email change'
ACCOUNT_CREATED_SUBJECT = 'OpenVax Account Created'


class Notifier(object):
    """Composes notification messages and hands them to a transport."""

    def __init__(self, mail: MailTransport, sender: str,
                 logo_path: Optional[str] = None,
                 passcode_minutes: int = 5) -> None:
        self._mail = mail
        self._sender = sender
        self._logo_path = logo_path
        self._passcode_minutes = passcode_minutes
        self._env = Environment(
            loader=PackageLoader('openvax_auth', 'templates'),
            autoescape=select_autoescape(['html'])
        )

    def passcode(self, email: str, code: str) -> MailMessage:
        """Send a one-time passcode."""
        minutes = self._passcode_minutes
        return self._send(MailMessage(
            sender=self._sender,
            to=email,
            subject=PASSCODE_SUBJECT,
            text=f'Your OTP code is: {code}. It will expire in {minutes} '
                 'minutes.',
            html=self._render('mail/passcode.html', code=code,
                              logo_cid=self._logo_cid()),
            attachments=self._attachments()
        ))

    def email_change(self, new_email: str, verify_url: str) -> MailMessage:
        """Ask the owner of ``new_email`` to confirm an email change."""
        return self._send(MailMessage(
            sender=self._sender,
            to=new_email,
            subject=EMAIL_CHANGE_SUBJECT,
            text='You requested to change your OpenVax account email. '
                 f'Verify the change here: {verify_url}',
            html=self._render('mail/email_change.html',
                              verify_url=verify_url,
                              year=datetime.now(tz=UTC).year)
        ))

    def account_created(self, email: str, password: str) -> MailMessage:
        """Tell a new account holder their email and temporary password."""
        return self._send(MailMessage(
            sender=self._sender,
            to=email,
            subject=ACCOUNT_CREATED_SUBJECT,
            text=f'Your OpenVax account has been created. Email: {email} '
                 f'Temporary Password: {password}. Please sign in and change '
                 'your password.',
            html=self._render('mail/account_created.html', email=email,
                              password=password,
                              logo_cid=self._logo_cid()),
            attachments=self._attachments()
        ))

    def _send(self, message: MailMessage) -> MailMessage:
        self._mail.send(message)
        logger.debug('Sent %s to %s', message.subject, message.to)
        return message

    def _render(self, name: str, **context: object) -> str:
        return self._env.get_template(name).render(**context)

    def _has_logo(self) -> bool:
        if not self._logo_path:
            return False
        if not os.path.exists(self._logo_path):
            logger.warning('Logo not found at %s; sending without it',
                           self._logo_path)
            return False
        return True

    def _logo_cid(self) -> Optional[str]:
        return LOGO_CID if self._has_logo() else None

    def _attachments(self) -> List[Attachment]:
        if not self._has_logo():
            return []
        assert self._logo_path is not None
        return [Attachment(LOGO_FILENAME, self._logo_path, LOGO_CID)]
