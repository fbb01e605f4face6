from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable, Optional, Protocol

import httpx

from .config import (
    GMAIL_SMTP_HOST,
    GMAIL_SMTP_PORT,
    RESEND_API_URL,
    ApiTransportConfig,
    MailTransportConfig,
    SmtpTransportConfig,
)
from .models import Report

logger = logging.getLogger(__name__)


class MailError(Exception):
    """Raised when mail sending fails."""


class MailConfigError(MailError):
    """Raised before any network call when recipient or credentials are missing."""


class MailDeliveryError(MailError):
    """Raised when the provider rejects or cannot receive the message."""


class MailSender(Protocol):
    provider: str

    def send(self, subject: str, text_body: str, html_body: str | None = None) -> None: ...


@dataclass(frozen=True)
class MailConfig:
    from_email: str
    to_email: str


class ResendMailer:
    provider = "resend"

    def __init__(self, api_key: str, config: MailConfig, client: Optional[httpx.Client] = None):
        self._api_key = api_key
        self._config = config
        self._client = client

    def send(self, subject: str, text_body: str, html_body: str | None = None) -> None:
        # Resend renders the html part only; text_body is kept for the MailSender signature.
        payload = {
            "from": self._config.from_email,
            "to": self._config.to_email,
            "subject": subject,
            "html": html_body if html_body is not None else text_body,
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        try:
            if self._client is not None:
                response = self._client.post(RESEND_API_URL, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=None) as client:
                    response = client.post(RESEND_API_URL, json=payload, headers=headers)
        except httpx.RequestError as exc:
            raise MailDeliveryError(f"Resend request failed: {exc}") from exc
        if not response.is_success:
            raise MailDeliveryError(f"Resend returned error status: {response.status_code} {response.text}")
        logger.info("Mail sent via Resend with status %s", response.status_code)


class GmailSmtpMailer:
    provider = "gmail"

    def __init__(
        self,
        user: str,
        app_password: str,
        config: MailConfig,
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ):
        self._user = user
        self._app_password = app_password
        self._config = config
        self._smtp_factory = smtp_factory

    def send(self, subject: str, text_body: str, html_body: str | None = None) -> None:
        message = EmailMessage()
        message["From"] = self._config.from_email
        message["To"] = self._config.to_email
        message["Subject"] = subject
        message.set_content(text_body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        smtp_factory = self._smtp_factory or smtplib.SMTP
        with smtp_factory(GMAIL_SMTP_HOST, GMAIL_SMTP_PORT) as server:
            server.starttls()
            server.login(self._user, self._app_password)
            server.send_message(message)
        logger.info("Mail sent via Gmail SMTP")


def build_mailer(transport: MailTransportConfig, to_email: Optional[str]) -> MailSender:
    """
    Validate the configuration and return the sender for the active transport.

    Raises MailConfigError without touching the network when the recipient or
    the selected transport's credentials are missing.
    """
    if not to_email or not to_email.strip():
        raise MailConfigError("Recipient is not configured: set MAIL_TO.")
    to_email = to_email.strip()

    if isinstance(transport, ApiTransportConfig):
        if not transport.api_key:
            raise MailConfigError("Resend API key is not configured: set RESEND_API_KEY.")
        return ResendMailer(transport.api_key, MailConfig(from_email=transport.from_email, to_email=to_email))
    if isinstance(transport, SmtpTransportConfig):
        if not transport.user or not transport.app_password:
            raise MailConfigError("Gmail credentials are not configured: set GMAIL_USER / GMAIL_APP_PASSWORD.")
        return GmailSmtpMailer(
            transport.user,
            transport.app_password,
            MailConfig(from_email=transport.user, to_email=to_email),
        )
    raise MailConfigError(f"Unknown mail transport: {transport!r}")


def send_report(report: Report, transport: MailTransportConfig, recipient: Optional[str]) -> None:
    mailer = build_mailer(transport, recipient)
    logger.info("Sending report via provider=%s subject=%s", mailer.provider, report.subject)
    mailer.send(report.subject, report.text, report.html)
