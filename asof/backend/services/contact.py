"""
Contact Service.

Validates contact form submissions and forwards them by email to the
association's inbox. The visitor's address goes in Reply-To so staff
can answer directly.

When no SMTP host is configured the message is only logged in
development; any other environment answers 503.
"""

import re
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from jinja2 import Environment, FileSystemLoader, select_autoescape

from asof.backend.core.config import get_app_config
from asof.backend.core.exceptions import RateLimitError, ServiceUnavailableError, ValidationError
from asof.backend.core.logging import get_logger
from asof.backend.core.mailer import OutgoingMail, SmtpMailer
from asof.backend.core.rate_limiter import get_rate_limiter
from asof.backend.core.utils import is_valid_email
from asof.backend.schemas.contact import ContactRequest, ContactResult

logger = get_logger(__name__)

MAX_NAME_LENGTH = 100
MAX_MESSAGE_LENGTH = 5000

_HEADER_WHITESPACE = re.compile(r"\s+")

_mail_templates = Environment(
    loader=FileSystemLoader(Path(__file__).resolve().parent.parent / "templates" / "mail"),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=True,
)


def _header_safe(value: str) -> str:
    """Collapse line breaks so a value can be used in a mail header."""
    return _HEADER_WHITESPACE.sub(" ", value).strip()


class ContactService:
    """
    Service for the public contact form.

    Does not touch the database, so it does not extend BaseService.
    """

    def __init__(self, mailer: SmtpMailer) -> None:
        self.mailer = mailer
        self._app_config = get_app_config()

    def validate(self, data: ContactRequest) -> ContactRequest:
        """
        Trim fields and check them.

        Raises:
            ValidationError: Missing field, invalid email or value too long
        """
        cleaned = ContactRequest(
            name=data.name.strip(),
            email=data.email.strip(),
            phone=(data.phone or "").strip() or None,
            subject=data.subject.strip(),
            message=data.message.strip(),
        )

        missing = [
            field for field in ("name", "email", "subject", "message")
            if not getattr(cleaned, field)
        ]
        if missing:
            raise ValidationError(
                "Campos obrigatórios faltando. Por favor, preencha nome, email, assunto e mensagem.",
                details={"missing_fields": missing},
            )
        if not is_valid_email(cleaned.email):
            raise ValidationError("Email inválido. Por favor, insira um email válido.")
        if len(cleaned.name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Nome muito longo. Máximo {MAX_NAME_LENGTH} caracteres.")
        if len(cleaned.message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Mensagem muito longa. Máximo {MAX_MESSAGE_LENGTH} caracteres.")
        return cleaned

    async def send(self, data: ContactRequest, ip_address: str | None = None) -> ContactResult:
        """
        Validate and deliver a contact message.

        Raises:
            ValidationError: Invalid submission
            RateLimitError: Too many submissions from this IP
            ServiceUnavailableError: Form disabled, SMTP missing outside
                development, or SMTP authentication failure
            ExternalServiceError: Other SMTP delivery failures
        """
        if not self._app_config.features.contact_form_enabled:
            raise ServiceUnavailableError("Formulário de contato desativado")

        cleaned = self.validate(data)

        limit = get_rate_limiter().check("contact", ip_address or "unknown")
        if not limit.allowed:
            raise RateLimitError(
                "Muitas mensagens enviadas. Tente novamente mais tarde.",
                details={"retry_after_seconds": limit.retry_after_seconds},
            )

        mail = self.build_mail(cleaned)

        if not self.mailer.is_configured:
            if self._app_config.application.environment == "development":
                logger.info(
                    "SMTP not configured, contact message logged only",
                    extra={"reply_to": cleaned.email, "subject": mail.subject, "to": mail.to},
                )
                return ContactResult(
                    message="Mensagem recebida! (Modo desenvolvimento - email não enviado)",
                    delivered=False,
                )
            logger.error("SMTP not configured, contact message rejected")
            raise ServiceUnavailableError(
                "Serviço de email temporariamente indisponível. Tente novamente mais tarde."
            )

        await self.mailer.send(mail)
        logger.info("Contact message sent", extra={"reply_to": cleaned.email})
        return ContactResult(
            message="Mensagem enviada com sucesso! Entraremos em contato em breve.",
            delivered=True,
        )

    def build_mail(self, data: ContactRequest) -> OutgoingMail:
        """Render the HTML and text bodies for a validated submission."""
        mail_config = self._app_config.mail
        sent_at = datetime.now(ZoneInfo(mail_config.timezone)).strftime("%d/%m/%Y %H:%M:%S")
        context = {
            "site_name": self._app_config.site.name,
            "name": data.name,
            "email": data.email,
            "phone": data.phone,
            "subject": data.subject,
            "message": data.message,
            "sent_at": sent_at,
        }
        return OutgoingMail(
            to=mail_config.contact_recipient,
            subject=(
                f"{mail_config.subject_prefix} "
                f"{_header_safe(data.subject)} - {_header_safe(data.name)}"
            ),
            text=_mail_templates.get_template("contact.txt").render(context),
            html=_mail_templates.get_template("contact.html").render(context),
            reply_to=_header_safe(data.email),
        )
