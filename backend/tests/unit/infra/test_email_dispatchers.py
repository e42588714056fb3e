"""Unit tests for the console and SMTP verification email dispatchers."""

from __future__ import annotations

import logging
import smtplib

import pytest
from authcore.infra.email import dispatchers
from authcore.infra.email.dispatchers import (
    ConsoleEmailDispatcher,
    SMTPEmailDispatcher,
    redact_email,
    verification_link,
)
from authcore.services._shared.errors import EmailDispatchError


class FakeSMTP:
    """Minimal stand-in for :class:`smtplib.SMTP` recording what was sent."""

    instances: list[FakeSMTP] = []
    fail_with: Exception | None = None

    def __init__(self, host, port, timeout=None, context=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in: tuple[str, str] | None = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, msg):
        self.sent.append(msg)


@pytest.fixture()
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(dispatchers.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(dispatchers.smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


def _smtp(**overrides) -> SMTPEmailDispatcher:
    params = {
        "host": "smtp.example.com",
        "port": 587,
        "from_address": "no-reply@example.com",
        "base_url": "https://app.example.com/",
    }
    params.update(overrides)
    return SMTPEmailDispatcher(**params)


def test_redact_email():
    assert redact_email("alice@example.com") == "al***@example.com"
    assert redact_email("nonsense") == "redacted"


def test_verification_link_encodes_token():
    link = verification_link("https://app.example.com/", "a b&c")
    assert link == "https://app.example.com/verify-email?token=a+b%26c"


def test_console_dispatcher_logs_link_with_redacted_address(caplog):
    """The console dispatcher logs the link but never the full address."""
    dispatcher = ConsoleEmailDispatcher(base_url="http://localhost:8080")

    with caplog.at_level(logging.INFO, logger=dispatchers.__name__):
        dispatcher.send_verification("alice@example.com", "tok123")

    message = caplog.records[-1].getMessage()
    assert "http://localhost:8080/verify-email?token=tok123" in message
    assert "alice@example.com" not in message


def test_smtp_dispatcher_uses_starttls_and_login(fake_smtp):
    """STARTTLS mode upgrades the connection, logs in and sends one message."""
    _smtp(username="mailer", password="secret").send_verification("bob@example.com", "tok")

    (server,) = fake_smtp.instances
    assert server.started_tls
    assert server.logged_in == ("mailer", "secret")
    (msg,) = server.sent
    assert msg["To"] == "bob@example.com"
    assert msg["From"] == "no-reply@example.com"
    assert "https://app.example.com/verify-email?token=tok" in msg.get_body(("plain",)).get_content()


def test_smtp_dispatcher_implicit_tls_skips_login_without_credentials(fake_smtp):
    _smtp(port=465, use_tls=False).send_verification("bob@example.com", "tok")

    (server,) = fake_smtp.instances
    assert not server.started_tls
    assert server.logged_in is None
    assert len(server.sent) == 1


@pytest.mark.parametrize(
    "error", [smtplib.SMTPServerDisconnected("gone"), ConnectionRefusedError("refused")]
)
def test_smtp_failures_become_dispatch_errors(fake_smtp, error):
    """SMTP and socket failures surface as EmailDispatchError without the address."""
    fake_smtp.fail_with = error

    with pytest.raises(EmailDispatchError) as exc_info:
        _smtp().send_verification("carol@example.com", "tok")
    assert "carol@example.com" not in str(exc_info.value)
