"""Verification email dispatchers: console (development) and SMTP."""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from urllib.parse import urlencode

from authcore.services._shared.errors import EmailDispatchError
from authcore.services._shared.ports import EmailDispatcher

log = logging.getLogger(__name__)

SUBJECT = "Verify your email address"


def redact_email(address: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in address:
        return "redacted"
    local, domain = address.split("@", 1)
    return f"{local[:2]}***@{domain}"


def verification_link(base_url: str, token: str) -> str:
    """Build ``{base_url}/verify-email?token=...``."""
    return f"{base_url.rstrip('/')}/verify-email?{urlencode({'token': token})}"


@dataclass(slots=True)
class ConsoleEmailDispatcher(EmailDispatcher):
    """
    Log the verification link instead of sending mail.

    Used when ``EMAIL_ENABLED`` is off so local setups can complete the
    verify-email flow by copying the link from the logs.

    :param base_url: Public URL of the frontend serving ``/verify-email``.
    """

    base_url: str

    def send_verification(self, address: str, token: str) -> None:
        log.info(
            "email.verification.console to=%s link=%s",
            redact_email(address),
            verification_link(self.base_url, token),
        )


@dataclass(slots=True)
class SMTPEmailDispatcher(EmailDispatcher):
    """
    Deliver verification emails over SMTP.

    :param host: SMTP server host.
    :param port: SMTP server port (587 for STARTTLS, 465 for implicit TLS).
    :param from_address: Envelope and header sender.
    :param base_url: Public URL of the frontend serving ``/verify-email``.
    :param username: Optional SMTP login.
    :param password: Optional SMTP password.
    :param use_tls: STARTTLS on a plain connection when ``True``; implicit
        TLS (``SMTP_SSL``) otherwise.
    :param timeout: Socket timeout in seconds.
    """

    host: str
    port: int
    from_address: str
    base_url: str
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout: float = 10.0

    def _build(self, address: str, token: str) -> EmailMessage:
        link = verification_link(self.base_url, token)
        msg = EmailMessage()
        msg["Subject"] = SUBJECT
        msg["From"] = self.from_address
        msg["To"] = address
        msg.set_content(
            "Confirm your email address by opening the link below.\n\n"
            f"{link}\n\n"
            "If you did not create an account you can ignore this message.\n"
        )
        msg.add_alternative(
            f'<p>Confirm your email address by opening the link below.</p>'
            f'<p><a href="{link}">Verify email</a></p>',
            subtype="html",
        )
        return msg

    def send_verification(self, address: str, token: str) -> None:
        msg = self._build(address, token)
        context = ssl.create_default_context()
        try:
            if self.use_tls:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    self._login(server)
                    server.send_message(msg)
            else:
                with smtplib.SMTP_SSL(
                    self.host, self.port, context=context, timeout=self.timeout
                ) as server:
                    self._login(server)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDispatchError(
                f"SMTP delivery to {redact_email(address)} failed: {type(exc).__name__}"
            ) from exc
        log.info("email.verification.sent to=%s", redact_email(address))

    def _login(self, server: smtplib.SMTP) -> None:
        if self.username and self.password:
            server.login(self.username, self.password)
