"""
Outgoing mail.

``send`` never raises: every outcome, including a missing transport,
is reported as a ``MailResult`` so callers such as the registration
flow can decide what to do with a failed delivery.
"""

import html
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol
from urllib.parse import quote

import aiosmtplib


logger = logging.getLogger(__name__)


@dataclass
class MailResult:
    ok: bool
    error: Optional[str] = None


class Mailer(Protocol):
    async def send(self, to: str, subject: str, body_html: str) -> MailResult:
        ...


class SmtpMailer:
    """Mailer delivering through an SMTP relay (e.g. Gmail with an app password)."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        start_tls: bool = True,
        timeout: float = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.timeout = timeout

    async def send(self, to: str, subject: str, body_html: str) -> MailResult:
        if not self.host:
            logger.error("Cannot send mail to %s: no SMTP transport configured", to)
            return MailResult(ok=False, error="No transport available")
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(body_html, subtype="html")
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.start_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Error sending mail to %s: %s", to, exc)
            return MailResult(ok=False, error=str(exc))
        logger.info("Mail '%s' sent to %s", subject, to)
        return MailResult(ok=True)


def confirmation_mail(frontend_url: str, token: str) -> tuple:
    """Build subject and HTML body of the account confirmation mail."""
    link = f"{frontend_url.rstrip('/')}/confirmar/{quote(token, safe='')}"
    body = f"""
    <div style="font-family: Arial, sans-serif; padding: 20px;">
      <h2>Verificación de Cuenta</h2>
      <p>Para confirmar tu cuenta en U-Connect, haz clic en el siguiente enlace:</p>
      <a href="{html.escape(link, quote=True)}"
         style="padding: 10px 20px; background-color: #3498db; color: white; border-radius: 5px; text-decoration: none;">
         Verificar Cuenta
      </a>
      <p>Si no solicitaste esta verificación, ignora este mensaje.</p>
    </div>
    """
    return "Verifica tu cuenta", body
