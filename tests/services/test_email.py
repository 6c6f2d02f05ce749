"""Email backend and verification message tests."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from verifyauth.config import Settings
from verifyauth.services.email import (
    VERIFICATION_SUBJECT,
    ConsoleEmailBackend,
    EmailService,
    ResendEmailBackend,
    SMTPEmailBackend,
    get_email_backend,
    render_verification_email,
)


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def make_smtp_backend() -> SMTPEmailBackend:
    return SMTPEmailBackend(
        host="smtp.gmail.com",
        port=587,
        username="me@gmail.com",
        password="app-password",
        from_address="me@gmail.com",
    )


@pytest.mark.asyncio
async def test_console_backend_logs_message(caplog):
    backend = ConsoleEmailBackend(from_address="sender@example.com")

    with caplog.at_level(logging.INFO, logger="verifyauth.services.email"):
        sent = await backend.send(
            to="ana@x.com",
            subject=VERIFICATION_SUBJECT,
            html="<p>482913</p>",
            text="482913",
        )

    assert sent is True
    assert "ana@x.com" in caplog.text
    assert "sender@example.com" in caplog.text
    assert "482913" in caplog.text


class TestSMTPEmailBackend:
    def test_build_message_multipart(self):
        message = make_smtp_backend().build_message("ana@x.com", "Hi", "<p>Hi</p>", "Hi")

        assert message["From"] == "me@gmail.com"
        assert message["To"] == "ana@x.com"
        assert message.is_multipart()
        assert message.get_body(("plain",)).get_content().strip() == "Hi"
        assert message.get_body(("html",)).get_content().strip() == "<p>Hi</p>"

    def test_build_message_html_only(self):
        message = make_smtp_backend().build_message("ana@x.com", "Hi", "<p>Hi</p>", None)

        assert not message.is_multipart()
        assert message.get_content_type() == "text/html"

    @pytest.mark.asyncio
    async def test_send(self):
        with patch("verifyauth.services.email.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            sent = await make_smtp_backend().send("ana@x.com", "Hi", "<p>Hi</p>", "Hi")

        assert sent is True
        message = mock_send.call_args[0][0]
        assert message["To"] == "ana@x.com"
        kwargs = mock_send.call_args[1]
        assert kwargs["hostname"] == "smtp.gmail.com"
        assert kwargs["username"] == "me@gmail.com"
        assert kwargs["start_tls"] is True

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self):
        with patch(
            "verifyauth.services.email.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=OSError("Connection refused"),
        ):
            sent = await make_smtp_backend().send("ana@x.com", "Hi", "<p>Hi</p>")

        assert sent is False


class TestResendEmailBackend:
    @pytest.mark.asyncio
    async def test_send(self):
        backend = ResendEmailBackend(api_key="re_test_key", from_address="noreply@example.com")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = MagicMock()
            sent = await backend.send("ana@x.com", "Hi", "<p>Hi</p>", "Hi")

        assert sent is True
        kwargs = mock_post.call_args[1]
        assert kwargs["json"]["to"] == ["ana@x.com"]
        assert kwargs["json"]["from"] == "noreply@example.com"
        assert kwargs["headers"]["Authorization"] == "Bearer re_test_key"

    @pytest.mark.asyncio
    async def test_rejected_returns_false(self):
        backend = ResendEmailBackend(api_key="bad", from_address="noreply@example.com")

        response = MagicMock()
        response.status_code = 401
        response.text = "Unauthorized"
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Unauthorized", request=MagicMock(), response=response
        )

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=response):
            sent = await backend.send("ana@x.com", "Hi", "<p>Hi</p>")

        assert sent is False


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"email_backend": "console"}, ConsoleEmailBackend),
        ({"email_backend": "smtp", "smtp_host": "smtp.gmail.com"}, SMTPEmailBackend),
        ({"email_backend": "resend", "resend_api_key": "re_x"}, ResendEmailBackend),
    ],
)
def test_get_email_backend(overrides, expected):
    backend = get_email_backend(make_settings(email_from="a@example.com", **overrides))

    assert isinstance(backend, expected)
    assert backend.from_address == "a@example.com"


def test_get_email_backend_gmail_username_alias(monkeypatch):
    monkeypatch.setenv("GMAIL_USERNAME", "me@gmail.com")
    monkeypatch.delenv("EMAIL_FROM", raising=False)

    backend = get_email_backend(make_settings(email_backend="smtp", smtp_host="smtp.gmail.com"))

    assert backend.from_address == "me@gmail.com"


def test_get_email_backend_unknown():
    config = MagicMock()
    config.email_backend = "carrier-pigeon"

    with pytest.raises(ValueError, match="Unknown email backend"):
        get_email_backend(config)


class TestRenderVerificationEmail:
    def test_contains_code_and_link(self):
        html, text = render_verification_email(
            "Ana", "482913", "http://localhost:8000/users/abc/verify"
        )

        assert "Hello, Ana!" in text
        assert "482913" in html and "482913" in text
        assert 'href="http://localhost:8000/users/abc/verify"' in html
        assert "http://localhost:8000/users/abc/verify" in text

    def test_without_link(self):
        html, text = render_verification_email("Ana", "482913")

        assert "href" not in html
        assert "Enter it at" not in text

    def test_escapes_name_in_html_only(self):
        html, text = render_verification_email("<b>Eve</b>", "111111")

        assert "<b>Eve</b>" not in html
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html
        assert "Hello, <b>Eve</b>!" in text


class TestEmailService:
    @pytest.mark.asyncio
    async def test_send_verification_code(self):
        backend = AsyncMock()
        backend.send.return_value = True

        sent = await EmailService(make_settings(), backend=backend).send_verification_code(
            to="ana@x.com", name="Ana", code="482913"
        )

        assert sent is True
        kwargs = backend.send.call_args[1]
        assert kwargs["to"] == "ana@x.com"
        assert kwargs["subject"] == VERIFICATION_SUBJECT
        assert "482913" in kwargs["text"]

    @pytest.mark.asyncio
    async def test_send_failure_is_reported(self):
        backend = AsyncMock()
        backend.send.return_value = False

        sent = await EmailService(make_settings(), backend=backend).send_verification_code(
            to="ana@x.com", name="Ana", code="482913"
        )

        assert sent is False

    def test_backend_built_once_from_config(self):
        config = make_settings(email_backend="console")
        service = EmailService(config)

        with patch("verifyauth.services.email.get_email_backend") as factory:
            factory.return_value = ConsoleEmailBackend()

            assert service.backend is service.backend
            factory.assert_called_once_with(config)

    def test_verification_url_uses_configured_app_url(self):
        service = EmailService(make_settings(app_url="https://auth.example.com/"), backend=AsyncMock())

        assert service.verification_url("abc") == "https://auth.example.com/users/abc/verify"
