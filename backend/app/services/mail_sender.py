"""
Mail transports.

Two ways of handing a composed message to a provider:

  smtp   SmtpTransport      — relay via aiosmtplib; the message is built with
                              the stdlib ``email`` package.
  gmail  GmailApiTransport  — Gmail ``users.messages.send``; the MIME text is
                              built by mail_composer and posted as base64url.

Every send is bounded by ``Settings.transport_timeout``. Running out of time
raises TransportTimeout; any other provider failure raises TransportError with
the provider's own message. Nothing is retried.
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib
import httpx

from app.config import Settings
from app.errors import AuthenticationRequired, TransportError, TransportTimeout
from app.services.mail_composer import (
    OutboundMessage,
    build_envelope,
    encode_raw_message,
    serialize_envelope,
)

logger = logging.getLogger(__name__)


class MailTransport:
    """Base class for transports. ``send`` raises on failure, returns None on success."""

    name = "transport"
    # True if the caller must pass a provider access token to ``send``.
    requires_token = False

    async def send(self, message: OutboundMessage, access_token: Optional[str] = None) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# SMTP
# ---------------------------------------------------------------------------

def build_email_message(message: OutboundMessage) -> EmailMessage:
    """Build a stdlib EmailMessage: text + HTML alternative, then attachments."""
    msg = EmailMessage()
    msg["From"] = message.sender.formatted()
    msg["To"] = ", ".join(message.recipients)
    msg["Subject"] = message.subject
    msg.set_content(message.text_body)
    msg.add_alternative(message.html_body, subtype="html")

    for attachment in message.attachments:
        maintype, _, subtype = attachment.media_type.partition("/")
        msg.add_attachment(
            attachment.read_bytes(),
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )
    return msg


class SmtpTransport(MailTransport):
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        security: str = "starttls",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.security = security
        self.timeout = timeout

    async def send(self, message: OutboundMessage, access_token: Optional[str] = None) -> None:
        if not message.sender.email:
            raise TransportError("SENDER_EMAIL is required for SMTP delivery")

        email_message = build_email_message(message)
        try:
            # aiosmtplib has its own per-command timeout; wait_for bounds the whole exchange.
            await asyncio.wait_for(
                aiosmtplib.send(
                    email_message,
                    hostname=self.host,
                    port=self.port,
                    username=self.username,
                    password=self.password,
                    use_tls=self.security == "tls",
                    start_tls=self.security == "starttls",
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, aiosmtplib.SMTPTimeoutError):
            logger.error(f"SMTP send to {self.host}:{self.port} timed out after {self.timeout}s")
            raise TransportTimeout(f"Mail server did not respond within {self.timeout:g} seconds")
        except aiosmtplib.SMTPException as e:
            logger.error(f"SMTP send failed: {e}")
            raise TransportError(f"Failed to send email: {e}")
        except OSError as e:
            logger.error(f"SMTP connection to {self.host}:{self.port} failed: {e}")
            raise TransportError(f"Failed to send email: {e}")

        logger.info(
            f"Sent email via SMTP to {len(message.recipients)} recipient(s) "
            f"with {len(message.attachments)} attachment(s)"
        )


# ---------------------------------------------------------------------------
# Gmail API
# ---------------------------------------------------------------------------

def _provider_error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Google API error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return payload.get("error_description") or error
    return f"HTTP {response.status_code}"


class GmailApiTransport(MailTransport):
    name = "gmail"
    requires_token = True

    def __init__(self, api_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    async def _post(self, payload: dict, access_token: str) -> httpx.Response:
        headers = {"Authorization": f"Bearer {access_token}"}
        if self._client is not None:
            return await self._client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.api_url, json=payload, headers=headers)

    async def send(self, message: OutboundMessage, access_token: Optional[str] = None) -> None:
        if not access_token:
            raise AuthenticationRequired("Please login with Google first")

        raw = encode_raw_message(serialize_envelope(build_envelope(message)))
        try:
            response = await self._post({"raw": raw}, access_token)
        except httpx.TimeoutException:
            logger.error(f"Gmail API send timed out after {self.timeout}s")
            raise TransportTimeout(f"Mail provider did not respond within {self.timeout:g} seconds")
        except httpx.HTTPError as e:
            logger.error(f"Gmail API request failed: {e}")
            raise TransportError(f"Failed to send email: {e}")

        if response.status_code >= 400:
            detail = _provider_error_message(response)
            logger.error(f"Gmail API rejected message ({response.status_code}): {detail}")
            raise TransportError(f"Failed to send email: {detail}")

        logger.info(
            f"Sent email via Gmail API to {len(message.recipients)} recipient(s) "
            f"with {len(message.attachments)} attachment(s)"
        )


def build_transport(settings: Settings) -> MailTransport:
    """Transport selected by ``settings.mail_transport``."""
    if settings.mail_transport == "gmail":
        return GmailApiTransport(api_url=settings.gmail_api_url, timeout=settings.transport_timeout)
    return SmtpTransport(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        security=settings.smtp_security,
        timeout=settings.transport_timeout,
    )
