"""Send orchestration - drives one SMTP conversation from connect to QUIT."""

import time
import uuid
from typing import Iterable, Optional

from smtpwire.core.email.composer import MessageComposer
from smtpwire.core.models.message import Attachment, SendRequest, SendResult
from smtpwire.utils.config import SMTPConfig
from smtpwire.utils.errors import MailError
from smtpwire.utils.logging import async_log_call, get_logger, log_event

from .connection import SMTPTransport
from .constants import SMTPPhase
from .protocol import SMTPProtocol

logger = get_logger(__name__)


def new_message_id() -> str:
    """Local correlation id for one send, e.g. ``smtp-1760000000000-3f2a9c1e``."""
    return f"smtp-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class SMTPClient:
    """Delivers one message per ``send()`` call over a fresh connection.

    The phases run in a fixed order: connect, greeting, EHLO, STARTTLS plus
    a second EHLO (skipped for implicit TLS), AUTH LOGIN, MAIL FROM,
    RCPT TO, DATA, QUIT. The first unexpected reply aborts the sequence.
    Nothing is retried. The connection is closed exactly once whatever
    happens.
    """

    def __init__(
        self,
        config: SMTPConfig,
        composer: Optional[MessageComposer] = None,
    ):
        """Initialise the client.

        Args:
            config: Validated SMTP settings
            composer: MIME composer, defaults to a fresh ``MessageComposer``
        """
        self.config = config
        self.composer = composer or MessageComposer()

    def _transport(self) -> SMTPTransport:
        return SMTPTransport(self.config)

    @async_log_call
    async def send(self, request: SendRequest) -> SendResult:
        """Send ``request`` and return once the server has accepted it.

        Raises:
            SMTPConnectionError: If the connection fails or drops mid-protocol
            NetworkTimeoutError: If the server stops answering
            SMTPAuthenticationError: If the server refuses the credentials
            SMTPProtocolError: If any other phase gets an unexpected reply
        """
        config = self.config
        message_id = new_message_id()
        payload = self.composer.compose(request)
        start_time = time.monotonic()
        phase = SMTPPhase.CONNECT

        logger.info(
            "Sending email",
            extra={
                "message_id": message_id,
                "recipient": request.recipient,
                "subject": request.subject[:50],
                "attachments": len(request.attachments),
            },
        )

        try:
            async with self._transport() as transport:
                smtp = SMTPProtocol(transport)

                await transport.connect()

                phase = SMTPPhase.GREETING
                await smtp.greeting()

                phase = SMTPPhase.EHLO
                await smtp.ehlo(config.ehlo_identity)

                if not transport.is_tls:
                    phase = SMTPPhase.STARTTLS
                    await smtp.starttls()

                    phase = SMTPPhase.EHLO
                    await smtp.ehlo(config.ehlo_identity)

                phase = SMTPPhase.AUTH
                await smtp.auth_login(
                    config.username, config.password.get_secret_value()
                )

                phase = SMTPPhase.MAIL_FROM
                await smtp.mail_from(config.mail_from)

                phase = SMTPPhase.RCPT_TO
                await smtp.rcpt_to(request.recipient)

                phase = SMTPPhase.DATA
                accepted = await smtp.data(payload)
                if accepted is None:
                    logger.warning(
                        "Server closed the connection after the message body, "
                        "assuming it was accepted",
                        extra={"message_id": message_id},
                    )

                phase = SMTPPhase.QUIT
                await smtp.quit()

        except MailError as e:
            e.details.setdefault("phase", phase.value)
            e.details.setdefault("message_id", message_id)

            log_event(
                "smtp_send_failed",
                "Failed to send email",
                level="ERROR",
                message_id=message_id,
                phase=phase.value,
                error=str(e),
                error_type=e.__class__.__name__,
                duration_seconds=round(time.monotonic() - start_time, 2),
            )
            raise

        log_event(
            "smtp_send_succeeded",
            "Email sent successfully",
            message_id=message_id,
            recipient=request.recipient,
            duration_seconds=round(time.monotonic() - start_time, 2),
        )
        return SendResult(message_id=message_id)


async def send_email(
    sender: str,
    to: str,
    subject: str,
    html: str,
    attachments: Optional[Iterable[Attachment]] = None,
    config: Optional[SMTPConfig] = None,
) -> SendResult:
    """Send one HTML email, optionally with attachments.

    Args:
        sender: Header ``From`` value; ``config.from_address`` is used when empty
        to: Recipient address
        subject: Subject line, written verbatim
        html: HTML body, written verbatim
        attachments: Files to attach, in order
        config: SMTP settings, loaded from ``SMTP_*`` environment variables if None

    Returns:
        SendResult with a locally generated ``message_id``

    Raises:
        ConfigurationError: If no usable configuration is available
        MailError: Any transport, protocol or authentication failure
    """
    if config is None:
        config = SMTPConfig.from_env()

    request = SendRequest.build(
        sender=sender or config.from_address or config.username,
        recipient=to,
        subject=subject,
        html_body=html,
        attachments=attachments,
    )

    return await SMTPClient(config).send(request)
