"""
Unit Tests for the Contact Service.

Uses the recording mailer from the root conftest instead of SMTP.
"""

from unittest.mock import MagicMock

import pytest

from asof.backend.core.exceptions import (
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from asof.backend.schemas.contact import ContactRequest
from asof.backend.services.contact import ContactService


def _request(**overrides) -> ContactRequest:
    values = {
        "name": "Maria Souza",
        "email": "maria@example.com",
        "phone": "(61) 99999-0000",
        "subject": "Filiação",
        "message": "Gostaria de saber como me filiar.",
    }
    values.update(overrides)
    return ContactRequest(**values)


@pytest.fixture
def service(recording_mailer) -> ContactService:
    return ContactService(recording_mailer)


class TestValidate:
    """Tests for ContactService.validate."""

    def test_trims_fields(self, service):
        cleaned = service.validate(_request(name="  Maria  ", email=" maria@example.com ", phone="  "))

        assert cleaned.name == "Maria"
        assert cleaned.email == "maria@example.com"
        assert cleaned.phone is None

    def test_reports_missing_fields(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.validate(_request(name=" ", message=""))

        assert exc_info.value.details == {"missing_fields": ["name", "message"]}

    def test_invalid_email(self, service):
        with pytest.raises(ValidationError, match="Email inválido"):
            service.validate(_request(email="maria@"))

    def test_name_too_long(self, service):
        with pytest.raises(ValidationError, match="Nome muito longo"):
            service.validate(_request(name="M" * 101))

    def test_message_limit_is_inclusive(self, service):
        service.validate(_request(message="a" * 5000))
        with pytest.raises(ValidationError, match="Mensagem muito longa"):
            service.validate(_request(message="a" * 5001))


class TestBuildMail:
    def test_subject_recipient_and_reply_to(self, service):
        mail = service.build_mail(_request())

        assert mail.to == "contato@asof.org.br"
        assert mail.subject == "[ASOF Site] Filiação - Maria Souza"
        assert mail.reply_to == "maria@example.com"

    def test_header_injection_is_flattened(self, service):
        mail = service.build_mail(_request(subject="Oi\r\nBcc: alvo@example.com"))

        assert "\n" not in mail.subject
        assert mail.subject == "[ASOF Site] Oi Bcc: alvo@example.com - Maria Souza"

    def test_bodies_contain_submission(self, service):
        mail = service.build_mail(_request())

        assert "Gostaria de saber como me filiar." in mail.text
        assert "(61) 99999-0000" in mail.text
        assert "Maria Souza" in mail.html

    def test_html_body_is_escaped(self, service):
        mail = service.build_mail(_request(message="<script>alert(1)</script>"))

        assert "<script>" not in mail.html
        assert "&lt;script&gt;" in mail.html


class TestSend:
    """Tests for ContactService.send."""

    @pytest.mark.asyncio
    async def test_delivers(self, service, recording_mailer):
        result = await service.send(_request(), ip_address="10.0.0.1")

        assert result.delivered is True
        assert result.message == "Mensagem enviada com sucesso! Entraremos em contato em breve."
        assert len(recording_mailer.sent) == 1

    @pytest.mark.asyncio
    async def test_development_without_smtp(self, service, recording_mailer):
        recording_mailer.configured = False

        result = await service.send(_request(), ip_address="10.0.0.1")

        assert result.delivered is False
        assert "Modo desenvolvimento" in result.message
        assert recording_mailer.sent == []

    @pytest.mark.asyncio
    async def test_production_without_smtp(self, service, recording_mailer):
        recording_mailer.configured = False
        real = service._app_config
        service._app_config = MagicMock()
        service._app_config.features = real.features
        service._app_config.mail = real.mail
        service._app_config.site = real.site
        service._app_config.application.environment = "production"

        with pytest.raises(ServiceUnavailableError):
            await service.send(_request(), ip_address="10.0.0.1")

    @pytest.mark.asyncio
    async def test_disabled_form(self, service, recording_mailer):
        service._app_config = MagicMock()
        service._app_config.features.contact_form_enabled = False

        with pytest.raises(ServiceUnavailableError, match="desativado"):
            await service.send(_request(), ip_address="10.0.0.1")
        assert recording_mailer.sent == []

    @pytest.mark.asyncio
    async def test_invalid_submission_does_not_count_against_limit(self, service, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute + 2):
            with pytest.raises(ValidationError):
                await service.send(_request(email="x"), ip_address="10.0.0.1")

        result = await service.send(_request(), ip_address="10.0.0.1")
        assert result.delivered is True

    @pytest.mark.asyncio
    async def test_rate_limited_per_ip(self, service, app_config, recording_mailer):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            await service.send(_request(), ip_address="10.0.0.1")

        with pytest.raises(RateLimitError) as exc_info:
            await service.send(_request(), ip_address="10.0.0.1")

        assert exc_info.value.details["retry_after_seconds"] > 0
        assert len(recording_mailer.sent) == per_minute
        await service.send(_request(), ip_address="10.0.0.2")
