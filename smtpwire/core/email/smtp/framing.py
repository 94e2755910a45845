"""Incremental framing of SMTP replies.

Server replies are CRLF-terminated lines. A reply may span several lines;
every line but the last has a hyphen after the status code::

    250-smtp.example.com greets you
    250-SIZE 35882577
    250 STARTTLS

``ResponseDecoder`` accepts bytes as they arrive from the socket, in chunks
of any size, and hands back only complete reply blocks.
"""

import re
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple

from smtpwire.utils.errors import SMTPProtocolError

from .constants import ConnectionLimits

_REPLY_LINE = re.compile(r"^(\d{3})([ -]|$)(.*)$")


@dataclass(frozen=True)
class SMTPResponse:
    """One complete reply block from the server."""

    code: int
    lines: Tuple[str, ...]

    @property
    def message(self) -> str:
        """Text of all lines without status codes, newline-joined."""
        return "\n".join(line[4:] for line in self.lines)

    @property
    def raw(self) -> str:
        """The reply as the server sent it, for error reports."""
        return "\n".join(self.lines)

    @property
    def is_positive(self) -> bool:
        return 200 <= self.code < 400

    def extensions(self) -> List[str]:
        """Upper-cased extension keywords from an EHLO reply (first line skipped)."""
        return [
            line[4:].split(" ", 1)[0].upper()
            for line in self.lines[1:]
            if len(line) > 4
        ]

    def __str__(self) -> str:
        return self.raw


class ResponseDecoder:
    """Buffers raw bytes and emits whole ``SMTPResponse`` blocks."""

    def __init__(self, max_line_length: int = ConnectionLimits.MAX_REPLY_LINE):
        self.max_line_length = max_line_length
        self._buffer = bytearray()
        self._pending: List[str] = []
        self._pending_code: Optional[int] = None
        self._ready: Deque[SMTPResponse] = deque()

    @property
    def has_buffered_data(self) -> bool:
        """True when bytes or reply lines are held that nobody has read yet."""
        return bool(self._buffer or self._pending or self._ready)

    def feed(self, data: bytes) -> int:
        """Add received bytes and frame every complete line in the buffer.

        Returns:
            Number of complete reply blocks now waiting in ``pop()``

        Raises:
            SMTPProtocolError: On a malformed line or an over-long line
        """
        self._buffer.extend(data)

        while True:
            end = self._buffer.find(b"\n")
            if end == -1:
                break

            raw_line = bytes(self._buffer[: end + 1])
            del self._buffer[: end + 1]
            self._consume_line(raw_line.rstrip(b"\r\n").decode("utf-8", "replace"))

        if len(self._buffer) > self.max_line_length:
            raise SMTPProtocolError(
                "Server reply line exceeds maximum length",
                details={"limit": self.max_line_length},
            )

        return len(self._ready)

    def pop(self) -> Optional[SMTPResponse]:
        """Take the oldest complete reply block, or None if there is none yet."""
        if self._ready:
            return self._ready.popleft()
        return None

    def _consume_line(self, line: str) -> None:
        match = _REPLY_LINE.match(line)
        if match is None:
            raise SMTPProtocolError(
                "Malformed reply line from server", response=line
            )

        code = int(match.group(1))
        if self._pending_code is not None and code != self._pending_code:
            raise SMTPProtocolError(
                "Status code changed inside a multi-line reply",
                code=code,
                response="\n".join(self._pending + [line]),
            )

        self._pending.append(line)
        self._pending_code = code

        if match.group(2) != "-":
            self._ready.append(SMTPResponse(code, tuple(self._pending)))
            self._pending = []
            self._pending_code = None
