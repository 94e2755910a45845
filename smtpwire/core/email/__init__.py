"""Outgoing email: MIME composition and the SMTP wire protocol.

- composer: turns a SendRequest into the raw DATA payload
- smtp: transport session, command layer and send orchestration

Usage Examples
----------------

Compose a payload without sending it:
    >>> from smtpwire.core.email.composer import compose_message
    >>>
    >>> payload = compose_message(request)
    >>> payload.startswith(b"From: ")
    True

Send it:
    >>> from smtpwire.core.email.smtp import SMTPClient
    >>>
    >>> result = await SMTPClient(config).send(request)

Notes
-----
- Each send opens and closes its own connection; nothing is pooled
- Sends are never retried here; retry policy belongs to the caller
"""
