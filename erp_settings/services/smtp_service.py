"""
SMTP Test Service
Validates SMTP connection parameters from the email settings screen and sends
a single test email through a short-lived SMTP client
"""
import smtplib
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Mapping, Optional

from erp_settings.services.option_store import OptionStore
from erp_settings.services.sanitize import sanitize_text_field

logger = logging.getLogger(__name__)

TEST_SUBJECT = 'ERP SMTP Test Mail'
TEST_MESSAGE = 'This is a test email by WP ERP.'
EMAIL_GENERAL_OPTION = 'erp_settings_erp-email_general'


class SmtpValidationError(ValueError):
    """Raised when a required SMTP connection parameter is missing"""


@dataclass
class SmtpTestParams:
    """Connection parameters submitted from the SMTP settings form"""
    mail_server: str
    port: int
    authentication: str = ''
    username: str = ''
    password: str = ''
    test_email: str = ''

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> 'SmtpTestParams':
        """
        Validate and sanitize submitted parameters

        Checked in order, stopping at the first problem: mail_server, port,
        then username and password only when authentication is set.

        Raises:
            SmtpValidationError: With the message to show the user
        """
        if not form.get('mail_server'):
            raise SmtpValidationError('No host address provided')
        mail_server = sanitize_text_field(form.get('mail_server'))

        if not form.get('port'):
            raise SmtpValidationError('No port address provided')
        try:
            port = int(sanitize_text_field(form.get('port')))
        except ValueError:
            raise SmtpValidationError('Invalid port number')

        authentication = ''
        username = ''
        password = ''
        if form.get('authentication'):
            authentication = sanitize_text_field(form.get('authentication')).lower()

            if not form.get('username'):
                raise SmtpValidationError('No email address provided')
            username = sanitize_text_field(form.get('username'))

            if not form.get('password'):
                raise SmtpValidationError('No email password provided')
            # Passwords are sent as typed
            password = str(form.get('password'))

        return cls(
            mail_server=mail_server,
            port=port,
            authentication=authentication,
            username=username,
            password=password,
            test_email=sanitize_text_field(form.get('test_email')),
        )


@dataclass
class SmtpTestClient:
    """A single-use SMTP client: connect, optionally authenticate, send, quit"""
    host: str
    port: int
    security: str = ''
    username: str = ''
    password: str = ''
    timeout: Optional[float] = None

    def _connect(self) -> smtplib.SMTP:
        kwargs = {'timeout': self.timeout} if self.timeout else {}
        if self.security == 'ssl':
            return smtplib.SMTP_SSL(self.host, self.port, **kwargs)
        return smtplib.SMTP(self.host, self.port, **kwargs)

    def send(self, message: EmailMessage):
        """
        Send one message

        Raises:
            smtplib.SMTPException, OSError: Connection, TLS, login or send failure
        """
        with self._connect() as server:
            if self.security == 'tls':
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(message)


class SmtpTestService:
    """Sends the SMTP settings test email"""

    def __init__(self, option_store: OptionStore, admin_email: str, client_factory=SmtpTestClient):
        self.option_store = option_store
        self.admin_email = admin_email
        self.client_factory = client_factory

    def get_admin_email(self) -> str:
        stored = self.option_store.get_option('admin_email')
        if isinstance(stored, str) and stored:
            return stored
        return self.admin_email

    def resolve_sender(self, fallback_name: str = ''):
        """
        From address and name for outgoing mail

        Uses the email general settings, falling back to the admin email and
        the given name (the current user's display name).
        """
        settings = self.option_store.get_option(EMAIL_GENERAL_OPTION) or {}
        from_email = settings['from_email'] if 'from_email' in settings else self.get_admin_email()
        from_name = settings['from_name'] if 'from_name' in settings else fallback_name
        return from_email, from_name

    def build_message(self, to: str, from_email: str, from_name: str) -> EmailMessage:
        message = EmailMessage()
        message['Subject'] = TEST_SUBJECT
        message['From'] = formataddr((from_name, from_email)) if from_name else from_email
        message['Sender'] = from_email
        message['To'] = to
        message.set_content(TEST_MESSAGE)
        message.add_alternative(f"<p>{TEST_MESSAGE}</p>", subtype='html')
        return message

    def send_test_email(self, params: SmtpTestParams, sender_name: str = '') -> str:
        """
        Send the test email

        Args:
            params: Validated connection parameters
            sender_name: Fallback From name, the current user's display name

        Returns:
            str: The recipient address

        Raises:
            smtplib.SMTPException, OSError: Propagated from the SMTP client
        """
        to = params.test_email or self.get_admin_email()
        from_email, from_name = self.resolve_sender(sender_name)

        client = self.client_factory(
            host=params.mail_server,
            port=params.port,
            security=params.authentication,
            username=params.username,
            password=params.password,
        )
        logger.info(f"[SMTP] Sending test email via {params.mail_server}:{params.port} "
                    f"(security: {params.authentication or 'none'}) to {to}")
        client.send(self.build_message(to, from_email, from_name))
        logger.info(f"[SMTP] Test email sent to {to}")
        return to
