"""SMTP transport session - socket lifecycle, TLS and line I/O."""

import asyncio
import re
import ssl
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from smtpwire.utils.config import SMTPConfig
from smtpwire.utils.errors import (
    NetworkTimeoutError,
    SMTPConnectionError,
    SMTPProtocolError,
    SMTPServerDisconnected,
    SMTPStateError,
)
from smtpwire.utils.logging import async_log_call, get_logger

from .constants import ConnectionLimits
from .framing import ResponseDecoder, SMTPResponse

logger = get_logger(__name__)

CRLF = b"\r\n"
_LEADING_DOT = re.compile(rb"(?m)^\.")


class SessionState(str, Enum):
    """Transport states. Transitions only move forward."""

    DISCONNECTED = "disconnected"
    PLAIN = "plain"
    TLS = "tls"
    CLOSED = "closed"


@dataclass
class SessionStats:
    """Counters for one transport session."""

    commands_sent: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    tls_upgraded: bool = False
    opened_at: float = field(default_factory=time.monotonic)

    @property
    def duration(self) -> float:
        return time.monotonic() - self.opened_at


def dot_stuff(payload: bytes) -> bytes:
    """Double every dot that starts a line so the body cannot end DATA early."""
    return _LEADING_DOT.sub(b"..", payload)


def create_tls_context(verify: bool = True) -> ssl.SSLContext:
    """Build the client TLS context used for implicit TLS and STARTTLS."""
    context = ssl.create_default_context()

    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    return context


class SMTPTransport:
    """Owns one connection to an SMTP server.

    The session moves ``DISCONNECTED -> PLAIN -> TLS -> CLOSED`` (implicit
    TLS skips ``PLAIN``). After a STARTTLS upgrade the stream writer is
    re-pointed at the TLS transport and the plain transport is only the TLS
    layer's substrate. ``close()`` releases whichever is active, exactly once.

    Use it as an async context manager so the socket is released on every
    exit path::

        async with SMTPTransport(config) as transport:
            greeting = await transport.read_response()
            reply = await transport.send_line("EHLO client.example.com")
    """

    def __init__(self, config: SMTPConfig):
        self.config = config
        self.state = SessionState.DISCONNECTED
        self.stats = SessionStats()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._decoder = ResponseDecoder()
        self._tls_context: Optional[ssl.SSLContext] = None

    @property
    def is_tls(self) -> bool:
        return self.state == SessionState.TLS

    def _get_tls_context(self) -> ssl.SSLContext:
        if self._tls_context is None:
            self._tls_context = create_tls_context(self.config.verify_tls)
        return self._tls_context

    def _require_open(self) -> None:
        if self.state not in (SessionState.PLAIN, SessionState.TLS):
            raise SMTPStateError(
                f"SMTP session is not open (state: {self.state.value})",
                details={"state": self.state.value},
            )

    ## Connection Lifecycle

    @async_log_call
    async def connect(self) -> None:
        """Open the TCP connection, wrapped in TLS at once when ``secure`` is set.

        Raises:
            SMTPConnectionError: If the server cannot be reached
            NetworkTimeoutError: If connecting takes longer than ``connect_timeout``
        """
        if self.state != SessionState.DISCONNECTED:
            raise SMTPStateError(
                f"Cannot connect from state {self.state.value}",
                details={"state": self.state.value},
            )

        config = self.config
        tls_context = self._get_tls_context() if config.secure else None

        logger.info(
            "Connecting to SMTP server",
            extra={
                "server": config.host,
                "port": config.port,
                "ssl_mode": "implicit" if config.secure else "starttls",
            },
        )

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(
                    config.host,
                    config.port,
                    ssl=tls_context,
                    server_hostname=config.host if tls_context else None,
                ),
                timeout=config.connect_timeout,
            )

        except asyncio.TimeoutError as e:
            raise NetworkTimeoutError(
                f"Timed out connecting to {config.host}:{config.port}",
                details={"server": config.host, "port": config.port},
            ) from e

        except OSError as e:
            raise SMTPConnectionError(
                f"Failed to connect to SMTP server {config.host}:{config.port}: {e}",
                details={"server": config.host, "port": config.port},
            ) from e

        self.state = SessionState.TLS if config.secure else SessionState.PLAIN
        self.stats = SessionStats(tls_upgraded=config.secure)

    @async_log_call
    async def upgrade_to_tls(self) -> None:
        """Upgrade the open plaintext connection to TLS in place.

        Call only after the server answered ``STARTTLS`` with 220. Any bytes
        the server sent after that reply were sent in plaintext and are
        rejected rather than read as if they were protected.

        Raises:
            SMTPStateError: If the session is not in plaintext mode
            SMTPProtocolError: If unread plaintext is pending
            SMTPConnectionError: If the TLS handshake fails
            NetworkTimeoutError: If the handshake outlasts ``tls_timeout``
        """
        if self.state != SessionState.PLAIN:
            raise SMTPStateError(
                f"STARTTLS is only valid on a plaintext session (state: {self.state.value})",
                details={"state": self.state.value},
            )

        if self._decoder.has_buffered_data:
            raise SMTPProtocolError(
                "Server sent data after accepting STARTTLS",
                phase="starttls",
            )

        try:
            await asyncio.wait_for(
                self._writer.start_tls(
                    self._get_tls_context(),
                    server_hostname=self.config.host,
                    ssl_handshake_timeout=self.config.tls_timeout,
                ),
                timeout=self.config.tls_timeout,
            )

        except asyncio.TimeoutError as e:
            raise NetworkTimeoutError(
                "TLS handshake timed out", details={"server": self.config.host}
            ) from e

        except OSError as e:
            raise SMTPConnectionError(
                f"TLS handshake with {self.config.host} failed: {e}",
                details={"server": self.config.host},
            ) from e

        self.state = SessionState.TLS
        self.stats.tls_upgraded = True
        logger.debug("Connection upgraded to TLS", extra={"server": self.config.host})

    async def close(self) -> None:
        """Close the active stream. Safe to call more than once."""
        if self.state == SessionState.CLOSED:
            return

        writer = self._writer
        self.state = SessionState.CLOSED
        self._writer = None
        self._reader = None

        if writer is None:
            return

        try:
            writer.close()
            await writer.wait_closed()

        except OSError as e:
            # The peer usually hangs up first after QUIT
            logger.debug(f"Connection already closed by peer: {e}")

        logger.debug(
            "SMTP connection closed",
            extra={
                "commands_sent": self.stats.commands_sent,
                "bytes_sent": self.stats.bytes_sent,
                "bytes_received": self.stats.bytes_received,
                "tls": self.stats.tls_upgraded,
                "duration_seconds": round(self.stats.duration, 3),
            },
        )

    ## Reading

    async def read_response(
        self, allow_eof: bool = False, timeout: Optional[float] = None
    ) -> Optional[SMTPResponse]:
        """Read one complete reply block.

        Args:
            allow_eof: Return None instead of raising when the server hangs up
            timeout: Per-read timeout, defaults to ``command_timeout``

        Returns:
            The reply, or None on EOF when ``allow_eof`` is set

        Raises:
            SMTPServerDisconnected: On EOF while a reply is required
            NetworkTimeoutError: If the server goes quiet
        """
        self._require_open()
        timeout = timeout or self.config.command_timeout

        response = self._decoder.pop()
        while response is None:
            try:
                chunk = await asyncio.wait_for(
                    self._reader.read(ConnectionLimits.READ_CHUNK_SIZE),
                    timeout=timeout,
                )

            except asyncio.TimeoutError as e:
                raise NetworkTimeoutError(
                    f"No reply from server within {timeout:.0f}s",
                    details={"server": self.config.host},
                ) from e

            except OSError as e:
                if allow_eof:
                    logger.debug(f"Connection dropped while reading: {e}")
                    return None
                raise SMTPConnectionError(
                    f"Connection to {self.config.host} failed while reading: {e}",
                    details={"server": self.config.host},
                ) from e

            if not chunk:
                if allow_eof:
                    logger.debug("Server closed the connection")
                    return None
                raise SMTPServerDisconnected(
                    "Server closed the connection while a reply was expected",
                    details={"server": self.config.host},
                )

            self.stats.bytes_received += len(chunk)
            self._decoder.feed(chunk)
            response = self._decoder.pop()

        logger.debug(f"S: {response.raw}")
        return response

    ## Writing

    async def _write(self, data: bytes) -> None:
        self._require_open()

        try:
            self._writer.write(data)
            await self._writer.drain()

        except OSError as e:
            raise SMTPConnectionError(
                f"Connection to {self.config.host} failed while writing: {e}",
                details={"server": self.config.host},
            ) from e

        self.stats.bytes_sent += len(data)

    async def write_line(self, command: str, redact: bool = False) -> None:
        """Write one command line, CRLF appended.

        Raises:
            SMTPProtocolError: If the command contains CR or LF, or is over-long
        """
        if "\r" in command or "\n" in command:
            raise SMTPProtocolError(
                "SMTP command must not contain line breaks",
                details={"command": command.split()[0] if command.split() else ""},
            )

        if len(command) > ConnectionLimits.MAX_LINE_LENGTH:
            raise SMTPProtocolError(
                "SMTP command exceeds maximum line length",
                details={"limit": ConnectionLimits.MAX_LINE_LENGTH},
            )

        logger.debug(f"C: {'<redacted>' if redact else command}")
        await self._write(command.encode("utf-8") + CRLF)
        self.stats.commands_sent += 1

    async def send_line(
        self, command: str, redact: bool = False, allow_eof: bool = False
    ) -> Optional[SMTPResponse]:
        """Write a command and wait for its reply."""
        await self.write_line(command, redact=redact)
        return await self.read_response(allow_eof=allow_eof)

    async def send_raw(
        self, payload: bytes, allow_eof: bool = False
    ) -> Optional[SMTPResponse]:
        """Write a message body, terminate it with ``CRLF.CRLF`` and read the reply.

        The body is dot-stuffed here. The reply wait uses ``data_timeout``.
        """
        body = dot_stuff(payload)
        terminator = b".\r\n" if body.endswith(CRLF) else b"\r\n.\r\n"

        logger.debug(f"C: <message body, {len(body)} bytes>")
        await self._write(body + terminator)

        return await self.read_response(
            allow_eof=allow_eof, timeout=self.config.data_timeout
        )

    ## Context Manager Support

    async def __aenter__(self) -> "SMTPTransport":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()
