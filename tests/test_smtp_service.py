"""
Test SMTP Test Service
Parameter validation order, client security modes and sender resolution
"""
import smtplib

import pytest

from erp_settings.services import smtp_service as smtp_module
from erp_settings.services.smtp_service import (
    SmtpTestClient,
    SmtpTestParams,
    SmtpTestService,
    SmtpValidationError,
    EMAIL_GENERAL_OPTION,
    TEST_SUBJECT,
)


class RecordingClient:
    """Stands in for SmtpTestClient, keeps every message it is asked to send"""
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.sent = []
        RecordingClient.instances.append(self)

    def send(self, message):
        self.sent.append(message)


class FakeSMTP:
    """Records the calls made on an smtplib connection"""
    connections = []

    def __init__(self, host, port, **kwargs):
        self.host = host
        self.port = port
        self.calls = []
        FakeSMTP.connections.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append('quit')
        return False

    def starttls(self):
        self.calls.append('starttls')

    def login(self, username, password):
        self.calls.append(('login', username, password))

    def send_message(self, message):
        self.calls.append(('send', message['To']))


class FakeSMTPSSL(FakeSMTP):
    pass


@pytest.fixture(autouse=True)
def reset_fakes():
    RecordingClient.instances = []
    FakeSMTP.connections = []


@pytest.fixture
def fake_smtplib(monkeypatch):
    monkeypatch.setattr(smtp_module.smtplib, 'SMTP', FakeSMTP)
    monkeypatch.setattr(smtp_module.smtplib, 'SMTP_SSL', FakeSMTPSSL)


@pytest.mark.parametrize('form, message', [
    ({}, 'No host address provided'),
    ({'port': '25'}, 'No host address provided'),
    ({'mail_server': 'smtp.example.com'}, 'No port address provided'),
    ({'mail_server': 'smtp.example.com', 'port': 'abc'}, 'Invalid port number'),
    ({'mail_server': 'smtp.example.com', 'port': '465', 'authentication': 'ssl'}, 'No email address provided'),
    ({'mail_server': 'smtp.example.com', 'port': '465', 'authentication': 'ssl', 'username': '',
      'password': 'secret'}, 'No email address provided'),
    ({'mail_server': 'smtp.example.com', 'port': '465', 'authentication': 'ssl',
      'username': 'me@example.com'}, 'No email password provided'),
])
def test_params_validation_order(form, message):
    with pytest.raises(SmtpValidationError, match=message):
        SmtpTestParams.from_form(form)


def test_params_without_authentication_ignore_credentials():
    params = SmtpTestParams.from_form({
        'mail_server': ' smtp.example.com ', 'port': '25', 'username': 'me', 'password': 'pw',
    })

    assert params.mail_server == 'smtp.example.com'
    assert params.port == 25
    assert (params.authentication, params.username, params.password) == ('', '', '')


def test_params_keep_password_as_typed():
    params = SmtpTestParams.from_form({
        'mail_server': 'smtp.example.com', 'port': '587', 'authentication': 'TLS',
        'username': 'me@example.com', 'password': ' p<a>ss ', 'test_email': 'to@example.com',
    })

    assert params.authentication == 'tls'
    assert params.password == ' p<a>ss '
    assert params.test_email == 'to@example.com'


def test_client_plain_with_login(fake_smtplib):
    client = SmtpTestClient('smtp.example.com', 25, username='me', password='pw')
    client.send(SmtpTestService(None, 'a@example.com').build_message('to@example.com', 'from@example.com', ''))

    conn = FakeSMTP.connections[0]
    assert type(conn) is FakeSMTP
    assert conn.calls == [('login', 'me', 'pw'), ('send', 'to@example.com'), 'quit']


def test_client_starttls(fake_smtplib):
    SmtpTestClient('smtp.example.com', 587, security='tls').send(
        SmtpTestService(None, 'a@example.com').build_message('to@example.com', 'from@example.com', ''))

    assert FakeSMTP.connections[0].calls == ['starttls', ('send', 'to@example.com'), 'quit']


def test_client_ssl(fake_smtplib):
    SmtpTestClient('smtp.example.com', 465, security='ssl').send(
        SmtpTestService(None, 'a@example.com').build_message('to@example.com', 'from@example.com', ''))

    conn = FakeSMTP.connections[0]
    assert isinstance(conn, FakeSMTPSSL)
    assert 'starttls' not in conn.calls


def test_send_defaults_to_admin_email(option_store):
    service = SmtpTestService(option_store, 'site@example.com', client_factory=RecordingClient)
    params = SmtpTestParams.from_form({'mail_server': 'smtp.example.com', 'port': '25'})

    to = service.send_test_email(params, sender_name='Site Admin')

    assert to == 'site@example.com'
    client = RecordingClient.instances[0]
    assert client.kwargs == {
        'host': 'smtp.example.com', 'port': 25, 'security': '', 'username': '', 'password': '',
    }
    message = client.sent[0]
    assert message['Subject'] == TEST_SUBJECT
    assert message['To'] == 'site@example.com'
    assert message['From'] == 'Site Admin <site@example.com>'


def test_send_uses_email_general_settings(option_store):
    option_store.update_option('admin_email', 'owner@example.com')
    option_store.update_option(EMAIL_GENERAL_OPTION, {'from_email': 'hr@example.com', 'from_name': 'Acme HR'})
    service = SmtpTestService(option_store, 'site@example.com', client_factory=RecordingClient)
    params = SmtpTestParams.from_form({
        'mail_server': 'smtp.example.com', 'port': '25', 'test_email': 'qa@example.com',
    })

    assert service.send_test_email(params, sender_name='Ignored') == 'qa@example.com'

    message = RecordingClient.instances[0].sent[0]
    assert message['From'] == 'Acme HR <hr@example.com>'
    assert message['Sender'] == 'hr@example.com'


def test_resolve_sender_fallbacks(option_store):
    service = SmtpTestService(option_store, 'site@example.com')
    assert service.resolve_sender('Sam') == ('site@example.com', 'Sam')

    option_store.update_option('admin_email', 'owner@example.com')
    assert service.resolve_sender('Sam') == ('owner@example.com', 'Sam')

    option_store.update_option(EMAIL_GENERAL_OPTION, {'from_name': ''})
    assert service.resolve_sender('Sam') == ('owner@example.com', '')


def test_send_propagates_smtp_errors(option_store):
    class FailingClient(RecordingClient):
        def send(self, message):
            raise smtplib.SMTPAuthenticationError(535, b'Authentication failed')

    service = SmtpTestService(option_store, 'site@example.com', client_factory=FailingClient)
    params = SmtpTestParams.from_form({'mail_server': 'smtp.example.com', 'port': '25'})

    with pytest.raises(smtplib.SMTPAuthenticationError):
        service.send_test_email(params)


def test_admin_email_ignores_non_string_option(option_store):
    service = SmtpTestService(option_store, 'site@example.com')

    option_store.update_option('admin_email', {'is_enable': 'yes'})
    assert service.get_admin_email() == 'site@example.com'

    option_store.update_option('admin_email', '')
    assert service.get_admin_email() == 'site@example.com'
