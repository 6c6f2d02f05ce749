"""Outgoing mail: delivery backends and the verification code message."""

import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage
from pathlib import Path

import aiosmtplib
import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from verifyauth.config import Settings, settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Your verification code"

RESEND_API_URL = "https://api.resend.com/emails"

EMAIL_TEMPLATES_DIR = Path(__file__).parent.parent / "templates" / "emails"

# Only the .html bodies are escaped; plain text goes out as-is
_templates = Environment(
    loader=FileSystemLoader(EMAIL_TEMPLATES_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
)


class EmailBackend(ABC):
    """Delivers a single message. Returns False instead of raising on failure."""

    from_address: str

    @abstractmethod
    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool: ...


class ConsoleEmailBackend(EmailBackend):
    """Writes messages to the log instead of sending them."""

    def __init__(self, from_address: str = ""):
        self.from_address = from_address

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        logger.info(
            "Email not sent (console backend)\n"
            f"  From: {self.from_address}\n"
            f"  To: {to}\n"
            f"  Subject: {subject}\n\n"
            f"{text or html}"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """Sends through an SMTP relay such as Gmail with an app password."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    def build_message(self, to: str, subject: str, html: str, text: str | None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        if text:
            message.set_content(text)
            message.add_alternative(html, subtype="html")
        else:
            message.set_content(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        message = self.build_message(to, subject, html, text)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
            )
        except Exception as e:
            logger.error(f"SMTP delivery to {to} via {self.host} failed: {e}")
            return False

        logger.info(f"Email sent via SMTP to {to}")
        return True


class ResendEmailBackend(EmailBackend):
    """Sends through the Resend HTTP API."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                    timeout=30.0,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Resend rejected email to {to}: {e.response.status_code} {e.response.text}")
            return False
        except Exception as e:
            logger.error(f"Resend delivery to {to} failed: {e}")
            return False

        logger.info(f"Email sent via Resend to {to}")
        return True


def get_email_backend(config: Settings) -> EmailBackend:
    """Build the email backend selected by ``config.email_backend``."""
    if config.email_backend == "console":
        return ConsoleEmailBackend(from_address=config.email_from)
    if config.email_backend == "smtp":
        return SMTPEmailBackend(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            from_address=config.email_from,
        )
    if config.email_backend == "resend":
        return ResendEmailBackend(api_key=config.resend_api_key, from_address=config.email_from)
    raise ValueError(f"Unknown email backend: {config.email_backend}")


def render_verification_email(name: str, code: str, verify_url: str | None = None) -> tuple[str, str]:
    """Render the (html, text) bodies of the verification code email."""
    context = {"name": name, "code": code, "verify_url": verify_url}
    html = _templates.get_template("verification.html").render(context)
    text = _templates.get_template("verification.txt").render(context)
    return html, text


class EmailService:
    """Composes application emails and hands them to a backend.

    ``config`` supplies the backend choice, its credentials and the public
    ``app_url`` used for links. The backend is built from it on first use
    unless one is passed in.
    """

    def __init__(self, config: Settings, backend: EmailBackend | None = None):
        self.config = config
        self._backend = backend

    @property
    def backend(self) -> EmailBackend:
        if self._backend is None:
            self._backend = get_email_backend(self.config)
        return self._backend

    def verification_url(self, user_id: str) -> str:
        return f"{self.config.app_url.rstrip('/')}/users/{user_id}/verify"

    async def send_verification_code(
        self, to: str, name: str, code: str, verify_url: str | None = None
    ) -> bool:
        """Email ``code`` to a newly registered (or resending) user."""
        html, text = render_verification_email(name, code, verify_url)
        return await self.backend.send(to=to, subject=VERIFICATION_SUBJECT, html=html, text=text)


email_service = EmailService(settings)
