"""
Outgoing Mail.

SMTP delivery for the contact form. smtplib is blocking, so each send
runs on the shared thread pool behind the resilience stack:

    Circuit Breaker (aiobreaker) → Retry (tenacity) → Semaphore → smtplib

Connection-level failures are retried; authentication failures are not.
Errors leave this module as application exceptions:

    SMTPAuthenticationError        → ServiceUnavailableError (503)
    anything else / breaker open   → ExternalServiceError (502)
"""

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from functools import lru_cache

import aiobreaker
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from asof.backend.core.concurrency import get_semaphore, run_blocking
from asof.backend.core.config_schema import MailSchema
from asof.backend.core.exceptions import ExternalServiceError, ServiceUnavailableError
from asof.backend.core.logging import get_logger
from asof.backend.core.resilience import create_circuit_breaker, log_retry

logger = get_logger(__name__)

TRANSIENT_SMTP_ERRORS = (
    ConnectionError,
    TimeoutError,
    smtplib.SMTPConnectError,
    smtplib.SMTPServerDisconnected,
)


@dataclass
class OutgoingMail:
    to: str
    subject: str
    text: str
    html: str | None = None
    reply_to: str | None = None


class SmtpMailer:
    """
    Sends OutgoingMail through the configured SMTP relay.

    A mailer without a host is "not configured"; callers decide what
    that means (ContactService logs the message in development).
    """

    def __init__(
        self,
        config: MailSchema,
        username: str = "",
        password: str = "",
    ) -> None:
        self._config = config
        self._username = username
        self._password = password
        self._breaker = create_circuit_breaker(
            "smtp",
            fail_max=config.circuit_breaker.fail_max,
            timeout_duration=config.circuit_breaker.timeout_duration,
        )
        self._deliver_with_retry = retry(
            stop=stop_after_attempt(config.retry.max_attempts),
            wait=wait_exponential(
                multiplier=config.retry.backoff_multiplier,
                max=config.retry.backoff_max,
            ),
            retry=retry_if_exception_type(TRANSIENT_SMTP_ERRORS),
            before_sleep=log_retry,
            reraise=True,
        )(self._deliver)

    @property
    def is_configured(self) -> bool:
        return bool(self._config.smtp.host)

    def build_message(self, mail: OutgoingMail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.from_address
        message["To"] = mail.to
        message["Subject"] = mail.subject
        if mail.reply_to:
            message["Reply-To"] = mail.reply_to
        message.set_content(mail.text)
        if mail.html:
            message.add_alternative(mail.html, subtype="html")
        return message

    async def send(self, mail: OutgoingMail) -> None:
        """
        Deliver one message.

        Raises:
            ServiceUnavailableError: No SMTP host configured, or the relay
                rejected our credentials
            ExternalServiceError: Any other delivery failure
        """
        if not self.is_configured:
            raise ServiceUnavailableError("Envio de email não configurado")

        message = self.build_message(mail)
        try:
            await self._breaker.call_async(self._deliver_with_retry, message)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed", extra={"smtp_code": e.smtp_code})
            raise ServiceUnavailableError("Serviço de email indisponível") from e
        except aiobreaker.CircuitBreakerError as e:
            # the call that trips the breaker carries the relay error as its cause
            cause = e.__cause__ or e.__context__
            if isinstance(cause, smtplib.SMTPAuthenticationError):
                logger.error("SMTP authentication failed", extra={"smtp_code": cause.smtp_code})
                raise ServiceUnavailableError("Serviço de email indisponível") from cause
            logger.error("SMTP circuit open, message not sent")
            raise ExternalServiceError("Falha ao enviar mensagem. Tente novamente mais tarde.") from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "SMTP delivery failed",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            raise ExternalServiceError("Falha ao enviar mensagem. Tente novamente mais tarde.") from e

        logger.info("Mail delivered", extra={"to": mail.to})

    async def _deliver(self, message: EmailMessage) -> None:
        async with get_semaphore("smtp"):
            await run_blocking(self._send_sync, message)

    def _send_sync(self, message: EmailMessage) -> None:
        smtp_config = self._config.smtp
        with smtplib.SMTP(
            smtp_config.host,
            smtp_config.port,
            timeout=smtp_config.timeout_seconds,
        ) as smtp:
            if smtp_config.use_tls:
                smtp.starttls()
            if self._username:
                smtp.login(self._username, self._password)
            smtp.send_message(message)


@lru_cache
def get_mailer() -> SmtpMailer:
    """Get the configured mailer. Overridden in tests with a recording fake."""
    from asof.backend.core.config import get_app_config, get_settings

    settings = get_settings()
    return SmtpMailer(
        get_app_config().mail,
        username=settings.smtp_user,
        password=settings.smtp_password,
    )
