"""
Test helper functions and utilities for reducing duplicate code across test modules
"""
import asyncio
from collections import deque
from typing import List

# Script markers
EOF = object()  # server hangs up
SILENCE = object()  # server never answers
PAUSE = object()  # deliver the rest of a reply on a later loop iteration


def multiline(code, *lines):
    """Build a multi-line reply block: all lines but the last use 'DDD-'"""
    parts = [f"{code}-{line}\r\n" for line in lines[:-1]]
    parts.append(f"{code} {lines[-1]}\r\n")
    return "".join(parts)


EHLO_REPLY = multiline(250, "smtp.test.com Hello", "SIZE 35882577", "8BITMIME", "STARTTLS", "AUTH LOGIN PLAIN")
EHLO_TLS_REPLY = multiline(250, "smtp.test.com Hello again", "SIZE 35882577", "AUTH LOGIN PLAIN")


def login_replies():
    """334 / 334 / 235 exchange for AUTH LOGIN"""
    return [
        "334 VXNlcm5hbWU6\r\n",
        "334 UGFzc3dvcmQ6\r\n",
        "235 2.7.0 Accepted\r\n",
    ]


def happy_path_replies(starttls=True):
    """Replies for a complete successful conversation, hanging up after QUIT"""
    replies = ["220 smtp.test.com ESMTP ready\r\n", EHLO_REPLY]
    if starttls:
        replies += ["220 2.0.0 Ready to start TLS\r\n", EHLO_TLS_REPLY]
    replies += login_replies()
    replies += [
        "250 2.1.0 OK\r\n",
        "250 2.1.5 OK\r\n",
        "354 Go ahead\r\n",
        "250 2.0.0 OK queued\r\n",
        ("221 2.0.0 Bye\r\n", EOF),
    ]
    return replies


class FakeStreamWriter:
    """Stands in for asyncio.StreamWriter; everything written goes to the server"""

    def __init__(self, server):
        self.server = server
        self.closed = False
        self.close_calls = 0
        self.tls_calls = []

    def write(self, data):
        self.server.receive(data)

    async def drain(self):
        if self.server.drain_error is not None:
            raise self.server.drain_error

    async def start_tls(self, sslcontext, *, server_hostname=None, ssl_handshake_timeout=None):
        self.tls_calls.append(
            {
                "context": sslcontext,
                "server_hostname": server_hostname,
                "timeout": ssl_handshake_timeout,
            }
        )
        if self.server.tls_delay:
            await asyncio.sleep(self.server.tls_delay)
        if self.server.tls_error is not None:
            raise self.server.tls_error
        self.server.tls_active = True

    def close(self):
        self.close_calls += 1
        self.closed = True

    async def wait_closed(self):
        if self.server.close_error is not None:
            raise self.server.close_error

    def is_closing(self):
        return self.closed


class FakeSMTPServer:
    """Scripted in-memory SMTP server.

    Each scripted item answers one client command (the first one is the
    greeting sent on connect). An item is a reply string, EOF, SILENCE or a
    tuple of those, where PAUSE splits delivery across separate reads.
    Once the script runs out the server hangs up.

    Sessions queued with ``add_session`` are handed out one per
    ``open_connection`` call, each with its own reader, writer and script,
    so several clients can talk to the fake at once.
    """

    def __init__(self):
        self.replies = deque()
        self.commands: List[str] = []
        self.messages: List[bytes] = []
        self.connections = []
        self.connect_error = None
        self.tls_error = None
        self.tls_delay = 0
        self.drain_error = None
        self.close_error = None
        self.tls_active = False
        self.hung_up = False
        self.reader = None
        self.writer = None
        self.sessions: List["FakeSMTPServer"] = []
        self._pending_sessions = deque()
        self._inbox = bytearray()
        self._in_data = False

    def script(self, *replies):
        self.replies.extend(replies)
        return self

    def add_session(self, *replies):
        """Queue a separate scripted conversation for the next connection"""
        self._pending_sessions.append(replies)
        return self

    async def open_connection(self, host, port, ssl=None, server_hostname=None, **kwargs):
        self.connections.append(
            {"host": host, "port": port, "ssl": ssl, "server_hostname": server_hostname}
        )
        if self.connect_error is not None:
            raise self.connect_error

        if self._pending_sessions:
            session = FakeSMTPServer().script(*self._pending_sessions.popleft())
            self.sessions.append(session)
            return await session.open_connection(host, port, ssl=ssl, server_hostname=server_hostname)

        self.tls_active = ssl is not None
        self.reader = asyncio.StreamReader()
        self.writer = FakeStreamWriter(self)
        self._reply()
        return self.reader, self.writer

    def receive(self, data):
        """Consume client bytes: command lines, or a DATA body up to CRLF.CRLF"""
        self._inbox.extend(data)

        while True:
            if self._in_data:
                end = self._inbox.find(b"\r\n.\r\n")
                if end == -1:
                    return
                self.messages.append(bytes(self._inbox[: end + 2]))
                del self._inbox[: end + 5]
                self._in_data = False
                self._reply()
            else:
                end = self._inbox.find(b"\r\n")
                if end == -1:
                    return
                line = bytes(self._inbox[:end]).decode("utf-8")
                del self._inbox[: end + 2]
                self.commands.append(line)
                sent = self._reply()
                if line.upper() == "DATA" and sent.startswith(b"354"):
                    self._in_data = True

    def _reply(self):
        item = self.replies.popleft() if self.replies else EOF
        parts = item if isinstance(item, tuple) else (item,)
        self._deliver(parts)
        return b"".join(self._encode(p) for p in parts if isinstance(p, (str, bytes)))

    def _deliver(self, parts):
        for index, part in enumerate(parts):
            if part is PAUSE:
                asyncio.get_running_loop().call_later(0.01, self._deliver, parts[index + 1 :])
                return
            self._push(part)

    def _push(self, part):
        if self.hung_up or part is SILENCE:
            return
        if part is EOF:
            self.hung_up = True
            self.reader.feed_eof()
            return
        self.reader.feed_data(self._encode(part))

    @staticmethod
    def _encode(part):
        return part.encode("utf-8") if isinstance(part, str) else part

    def verbs(self):
        """First word of every command received, upper-cased"""
        return [command.split(" ", 1)[0].split(":", 1)[0].upper() for command in self.commands]
