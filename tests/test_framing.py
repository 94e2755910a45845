"""
Tests for SMTP reply framing
"""
import pytest

from smtpwire.core.email.smtp.framing import ResponseDecoder, SMTPResponse
from smtpwire.utils.errors import SMTPProtocolError

from .test_helpers import EHLO_REPLY


class TestResponseDecoder:
    """Test incremental reply decoding"""

    def test_single_line_reply(self):
        """Test a one-line reply is ready at once"""
        decoder = ResponseDecoder()

        assert decoder.feed(b"220 smtp.test.com ESMTP ready\r\n") == 1

        response = decoder.pop()
        assert response.code == 220
        assert response.message == "smtp.test.com ESMTP ready"
        assert decoder.pop() is None
        assert not decoder.has_buffered_data

    def test_multiline_reply_is_one_block(self):
        """Test continuation lines are gathered into a single response"""
        decoder = ResponseDecoder()
        decoder.feed(EHLO_REPLY.encode())

        response = decoder.pop()
        assert response.code == 250
        assert len(response.lines) == 5
        assert response.extensions() == ["SIZE", "8BITMIME", "STARTTLS", "AUTH"]
        assert decoder.pop() is None

    def test_reply_split_across_reads(self):
        """Test a reply delivered one byte at a time is reassembled"""
        decoder = ResponseDecoder()
        data = b"250-first\r\n250 second\r\n"

        ready = [decoder.feed(data[i : i + 1]) for i in range(len(data))]

        assert ready[-1] == 1
        assert sum(ready[:-1]) == 0
        assert decoder.pop().lines == ("250-first", "250 second")

    def test_partial_line_is_held(self):
        """Test an unterminated line stays buffered"""
        decoder = ResponseDecoder()

        assert decoder.feed(b"250-first\r\n250 sec") == 0
        assert decoder.has_buffered_data
        assert decoder.pop() is None

        assert decoder.feed(b"ond\r\n") == 1
        assert decoder.pop().message == "first\nsecond"

    def test_two_replies_in_one_chunk(self):
        """Test back-to-back replies are queued in order"""
        decoder = ResponseDecoder()

        assert decoder.feed(b"250 OK\r\n354 Go ahead\r\n") == 2
        assert decoder.pop().code == 250
        assert decoder.pop().code == 354

    def test_bare_code_line(self):
        """Test a final line with no text"""
        decoder = ResponseDecoder()
        decoder.feed(b"250\r\n")

        response = decoder.pop()
        assert response.code == 250
        assert response.message == ""

    def test_bare_lf_terminator_accepted(self):
        """Test lenient LF-only line endings"""
        decoder = ResponseDecoder()
        decoder.feed(b"221 Bye\n")

        assert decoder.pop().code == 221

    def test_mismatched_continuation_code(self):
        """Test a status code change inside a block is a protocol error"""
        decoder = ResponseDecoder()

        with pytest.raises(SMTPProtocolError) as exc_info:
            decoder.feed(b"250-first\r\n251 second\r\n")

        assert exc_info.value.code == 251
        assert "250-first" in exc_info.value.response

    @pytest.mark.parametrize("line", [b"OK\r\n", b"25 short\r\n", b"2500 long\r\n", b"abc text\r\n"])
    def test_malformed_line(self, line):
        """Test lines without a three-digit code and separator are rejected"""
        decoder = ResponseDecoder()

        with pytest.raises(SMTPProtocolError):
            decoder.feed(line)

    def test_overlong_line(self):
        """Test an unterminated line past the limit is rejected"""
        decoder = ResponseDecoder(max_line_length=64)

        with pytest.raises(SMTPProtocolError):
            decoder.feed(b"250 " + b"x" * 100)


class TestSMTPResponse:
    """Test the reply value object"""

    def test_positive_codes(self):
        """Test 2xx and 3xx replies are positive"""
        assert SMTPResponse(250, ("250 OK",)).is_positive
        assert SMTPResponse(354, ("354 Go ahead",)).is_positive
        assert not SMTPResponse(535, ("535 Denied",)).is_positive

    def test_raw_and_str(self):
        """Test raw text keeps the status codes"""
        response = SMTPResponse(250, ("250-a", "250 b"))

        assert response.raw == "250-a\n250 b"
        assert str(response) == response.raw
