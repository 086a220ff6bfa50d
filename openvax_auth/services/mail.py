"""Provides an SMTP transport for OpenVax email."""

from typing import Any, Mapping, NamedTuple, Optional
from email.message import EmailMessage
import logging
import mimetypes
import smtplib
import ssl

from retry import retry

from ..domain import MailMessage
from ..exceptions import MailDeliveryFailed, MailNotConfigured

logger = logging.getLogger(__name__)


class Server(NamedTuple):
    """Connection parameters for an SMTP server."""

    host: str
    port: int
    secure: bool
    """Use implicit TLS (SMTPS) rather than STARTTLS."""


SERVICES = {
    'gmail': Server('smtp.gmail.com', 465, True),
    'outlook': Server('smtp-mail.outlook.com', 587, False),
    'hotmail': Server('smtp-mail.outlook.com', 587, False),
    'yahoo': Server('smtp.mail.yahoo.com', 465, True),
}
"""Well-known providers that may be selected with ``EMAIL_SERVICE``."""

DEFAULT_SERVER = SERVICES['gmail']


class SMTPMailTransport(object):
    """Sends messages through an SMTP server, one connection per message."""

    def __init__(self, server: Optional[Server] = None, user: str = '',
                 password: str = '', timeout: int = 30) -> None:
        self._server = server
        self._user = user
        self._password = password
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        """Whether there is a server and credentials to send with."""
        return bool(self._server and self._user and self._password)

    @retry((smtplib.SMTPConnectError, ConnectionError), tries=3, delay=0.5,
           backoff=2, logger=logger)
    def _new_connection(self) -> smtplib.SMTP:
        assert self._server is not None
        host, port, secure = self._server
        if secure:
            return smtplib.SMTP_SSL(host=host, port=port,
                                    timeout=self._timeout,
                                    context=ssl.create_default_context())
        conn = smtplib.SMTP(host=host, port=port, timeout=self._timeout)
        conn.starttls(context=ssl.create_default_context())
        return conn

    def send(self, message: MailMessage) -> None:
        """Send ``message``, or fail with a :class:`.TransportError`."""
        if not self.configured:
            raise MailNotConfigured('Email sending not configured on server')
        try:
            with self._new_connection() as conn:
                conn.login(self._user, self._password)
                conn.send_message(build_message(message))
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryFailed(f'Could not send message: {e}') from e
        logger.info('Sent %r to %s', message.subject, message.to)


def build_message(message: MailMessage) -> EmailMessage:
    """Generate a MIME message with text and HTML alternatives."""
    email = EmailMessage()
    email['From'] = message.sender
    email['To'] = message.to
    email['Subject'] = message.subject
    if message.text:
        email.set_content(message.text)
    if message.html:
        if message.text:
            email.add_alternative(message.html, subtype='html')
        else:
            email.set_content(message.html, subtype='html')

    html_part = None
    if message.html:
        html_part = email.get_payload()[-1] if email.is_multipart() else email
    for attachment in message.attachments:
        ctype, _ = mimetypes.guess_type(attachment.filename)
        maintype, subtype = (ctype or 'application/octet-stream').split('/')
        with open(attachment.path, 'rb') as f:
            data = f.read()
        if attachment.cid and html_part is not None:
            html_part.add_related(data, maintype=maintype, subtype=subtype,
                                  cid=f'<{attachment.cid}>',
                                  filename=attachment.filename)
        else:
            email.add_attachment(data, maintype=maintype, subtype=subtype,
                                 filename=attachment.filename)
    return email


def from_config(config: Mapping[str, Any]) -> SMTPMailTransport:
    """
    Build a transport from ``EMAIL_*`` configuration.

    An explicit host wins, then a named service, then plain credentials
    default to Gmail. Without credentials the transport is unconfigured.
    """
    user = (config.get('EMAIL_USER') or '').strip()
    password = (config.get('EMAIL_PASS') or '').strip()
    host = config.get('EMAIL_HOST')
    service = (config.get('EMAIL_SERVICE') or '').strip().lower()

    server: Optional[Server] = None
    if host and user and password:
        server = Server(host, int(config.get('EMAIL_PORT') or 587),
                        _as_bool(config.get('EMAIL_SECURE')))
    elif service and user and password:
        server = SERVICES.get(service)
        if server is None:
            logger.error('Unknown EMAIL_SERVICE %s', service)
    elif user and password:
        server = DEFAULT_SERVER

    if server is None:
        logger.warning('Mail transport is not configured')
    return SMTPMailTransport(server, user, password)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in ('1', 'true', 'yes')
