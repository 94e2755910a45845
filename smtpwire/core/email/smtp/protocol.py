"""SMTP command layer - one method per verb, with expected-reply checks."""

import base64
from typing import Collection, List

from smtpwire.utils.errors import (
    NetworkError,
    SMTPAuthenticationError,
    SMTPProtocolError,
)
from smtpwire.utils.logging import get_logger

from .connection import SMTPTransport
from .constants import SMTPPhase, SMTPStatus
from .framing import SMTPResponse

logger = get_logger(__name__)


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class SMTPProtocol:
    """Issues SMTP commands over an open ``SMTPTransport``.

    Each method sends one command (or one challenge/response exchange),
    checks the reply code against the codes that phase allows and raises
    ``SMTPProtocolError`` naming the phase otherwise.
    """

    def __init__(self, transport: SMTPTransport):
        self.transport = transport
        self.extensions: List[str] = []

    @staticmethod
    def expect(
        response: SMTPResponse,
        expected: Collection[int],
        phase: SMTPPhase,
        error_cls: type = SMTPProtocolError,
    ) -> SMTPResponse:
        """Return ``response`` if its code is allowed, raise otherwise."""
        if response.code in expected:
            return response

        raise error_cls(
            f"Unexpected reply during {phase.value}: {response.code}",
            phase=phase.value,
            code=response.code,
            response=response.raw,
        )

    async def greeting(self) -> SMTPResponse:
        """Read the banner the server sends on connect."""
        response = await self.transport.read_response()
        return self.expect(response, (SMTPStatus.SERVICE_READY,), SMTPPhase.GREETING)

    async def ehlo(self, identity: str) -> SMTPResponse:
        """Send EHLO and drain the (usually multi-line) capability reply."""
        response = await self.transport.send_line(f"EHLO {identity}")
        self.expect(response, (SMTPStatus.OK,), SMTPPhase.EHLO)

        self.extensions = response.extensions()
        logger.debug(
            "Server extensions", extra={"extensions": ", ".join(self.extensions)}
        )
        return response

    async def starttls(self) -> SMTPResponse:
        """Ask for TLS and upgrade the transport once the server agrees."""
        response = await self.transport.send_line("STARTTLS")
        self.expect(response, (SMTPStatus.SERVICE_READY,), SMTPPhase.STARTTLS)

        await self.transport.upgrade_to_tls()
        # Pre-TLS capabilities must not be trusted after the upgrade
        self.extensions = []
        return response

    async def auth_login(self, username: str, password: str) -> SMTPResponse:
        """Authenticate with AUTH LOGIN.

        Raises:
            SMTPAuthenticationError: On any unexpected reply in the exchange
        """
        phase = SMTPPhase.AUTH

        response = await self.transport.send_line("AUTH LOGIN")
        self.expect(response, (SMTPStatus.AUTH_CONTINUE,), phase, SMTPAuthenticationError)

        response = await self.transport.send_line(_b64(username), redact=True)
        self.expect(response, (SMTPStatus.AUTH_CONTINUE,), phase, SMTPAuthenticationError)

        response = await self.transport.send_line(_b64(password), redact=True)
        return self.expect(
            response, (SMTPStatus.AUTH_SUCCESSFUL,), phase, SMTPAuthenticationError
        )

    async def mail_from(self, sender: str) -> SMTPResponse:
        response = await self.transport.send_line(f"MAIL FROM:<{sender}>")
        return self.expect(response, (SMTPStatus.OK,), SMTPPhase.MAIL_FROM)

    async def rcpt_to(self, recipient: str) -> SMTPResponse:
        response = await self.transport.send_line(f"RCPT TO:<{recipient}>")
        return self.expect(
            response, (SMTPStatus.OK, SMTPStatus.USER_NOT_LOCAL), SMTPPhase.RCPT_TO
        )

    async def data(self, payload: bytes) -> SMTPResponse | None:
        """Send DATA, the message body and its terminator.

        Returns:
            The acceptance reply, or None when the server hung up instead of
            answering. By then the body was fully written, so the caller may
            treat the message as handed over.
        """
        response = await self.transport.send_line("DATA")
        self.expect(response, (SMTPStatus.START_MAIL,), SMTPPhase.DATA)

        response = await self.transport.send_raw(payload, allow_eof=True)
        if response is None:
            return None

        return self.expect(response, (SMTPStatus.OK,), SMTPPhase.DATA)

    async def quit(self) -> SMTPResponse | None:
        """Say goodbye. Never fails: the server may hang up at any point here."""
        try:
            response = await self.transport.send_line("QUIT", allow_eof=True)
        except (NetworkError, SMTPProtocolError) as e:
            logger.debug(f"Ignoring failed QUIT exchange: {e}")
            return None

        if response is not None and response.code not in (
            SMTPStatus.CLOSING,
            SMTPStatus.OK,
        ):
            logger.debug(f"Unexpected QUIT reply ignored: {response.raw}")

        return response
