"""MIME message composition.

Builds the exact byte stream written after the SMTP ``DATA`` command. The
message is assembled line by line instead of through ``email.mime`` so the
layout on the wire is fully under our control:

- no attachments: a single ``text/html`` part, no boundary
- attachments: ``multipart/mixed`` with the HTML first, then one base64
  part per attachment, wrapped at 76 characters

Header values are written verbatim. Dot-stuffing and the ``CRLF.CRLF``
terminator are added by the transport, not here.
"""

import base64
import secrets
import time
from typing import Callable, List, Optional

from smtpwire.core.models.message import SendRequest
from smtpwire.utils.logging import get_logger, log_call

from .constants import MIMELimits

logger = get_logger(__name__)

CRLF = "\r\n"
BOUNDARY_PREFIX = "----=_NextPart_"


def generate_boundary() -> str:
    """Return a fresh boundary token: millisecond timestamp plus random hex."""
    return f"{BOUNDARY_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(8)}"


def wrap_base64(
    data: bytes, width: int = MIMELimits.BASE64_LINE_WIDTH
) -> List[str]:
    """Base64-encode ``data`` and split it into lines of at most ``width`` chars.

    Empty input yields no lines.
    """
    encoded = base64.b64encode(data).decode("ascii")
    return [encoded[i : i + width] for i in range(0, len(encoded), width)]


class MessageComposer:
    """Serialises a SendRequest into a raw RFC 5322 message."""

    MAX_BOUNDARY_ATTEMPTS = 5

    def __init__(self, boundary_factory: Callable[[], str] = generate_boundary):
        self._boundary_factory = boundary_factory

    @log_call
    def compose(self, request: SendRequest, boundary: Optional[str] = None) -> bytes:
        """Build the DATA payload for ``request``.

        Args:
            request: Message to serialise
            boundary: Fixed boundary token, mainly for tests. Generated when omitted.

        Returns:
            CRLF-delimited message bytes ending in CRLF
        """
        lines = [
            f"From: {request.sender}",
            f"To: {request.recipient}",
            f"Subject: {request.subject}",
            "MIME-Version: 1.0",
        ]

        if request.has_attachments():
            boundary = boundary or self._pick_boundary(request)
            lines.extend(self._multipart_lines(request, boundary))
        else:
            lines.extend(self._html_part_lines(request.html_body))

        payload = (CRLF.join(lines) + CRLF).encode("utf-8")

        logger.debug(
            "Composed message",
            extra={
                "attachments": len(request.attachments),
                "size_bytes": len(payload),
            },
        )
        return payload

    def _pick_boundary(self, request: SendRequest) -> str:
        # base64 output never contains '-' or '_', so only the HTML can clash
        for _ in range(self.MAX_BOUNDARY_ATTEMPTS):
            boundary = self._boundary_factory()
            if boundary not in request.html_body:
                return boundary

            logger.debug("Boundary token found in HTML body, generating another")

        return boundary

    @staticmethod
    def _html_part_lines(html_body: str) -> List[str]:
        return [
            "Content-Type: text/html; charset=UTF-8",
            "Content-Transfer-Encoding: 8bit",
            "",
            html_body,
        ]

    def _multipart_lines(self, request: SendRequest, boundary: str) -> List[str]:
        lines = [
            f'Content-Type: multipart/mixed; boundary="{boundary}"',
            "",
            f"--{boundary}",
        ]
        lines.extend(self._html_part_lines(request.html_body))

        for attachment in request.attachments:
            lines.extend(
                [
                    "",
                    f"--{boundary}",
                    f"Content-Type: {attachment.content_type}",
                    f'Content-Disposition: attachment; filename="{attachment.filename}"',
                    "Content-Transfer-Encoding: base64",
                    "",
                ]
            )
            lines.extend(wrap_base64(attachment.content))

        lines.append(f"--{boundary}--")
        return lines


_default_composer = MessageComposer()


def compose_message(request: SendRequest, boundary: Optional[str] = None) -> bytes:
    """Compose ``request`` with the default composer."""
    return _default_composer.compose(request, boundary)
