"""Command line interface for smtpwire.

    $ python -m smtpwire send --to guest@example.com --subject "Invoice" \\
          --html-file invoice.html --attach invoice.pdf

Connection settings come from ``SMTP_*`` environment variables or a
``.env`` file (see ``SMTPConfig.from_env``).
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from smtpwire import __version__
from smtpwire.core.email.smtp.client import send_email
from smtpwire.core.models.message import Attachment
from smtpwire.utils.config import SMTPConfig
from smtpwire.utils.console import print_error, print_status, print_success
from smtpwire.utils.errors import MailError, format_error_message
from smtpwire.utils.logging import get_logger, init_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


## Argument Parser

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _add_global_options(parser: argparse.ArgumentParser, suppress_defaults: bool = False) -> None:
    """Options accepted both before and after the subcommand name.

    On subcommands the defaults are suppressed, so a value given before the
    subcommand is not overwritten when the option is left out after it.
    """
    parser.add_argument(
        "--log-level",
        default=argparse.SUPPRESS if suppress_defaults else "WARNING",
        choices=LOG_LEVELS,
        help="Console log level (default: WARNING)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=argparse.SUPPRESS if suppress_defaults else None,
        help="Read SMTP_* settings from this file instead of ./.env",
    )


def build_parser() -> argparse.ArgumentParser:
    """Create the top-level parser with its subcommands."""

    parser = argparse.ArgumentParser(
        prog="smtpwire",
        description="Send HTML email over a raw SMTP connection",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    _add_global_options(parser)

    subparsers = parser.add_subparsers(dest="command", required=True)

    send_parser = subparsers.add_parser(
        "send",
        help="Send one email",
        description="Send an HTML email with optional attachments",
    )
    _add_global_options(send_parser, suppress_defaults=True)
    send_parser.add_argument("--to", required=True, help="Recipient address")
    send_parser.add_argument("--subject", required=True, help="Subject line")
    send_parser.add_argument(
        "--html-file",
        required=True,
        type=Path,
        help="File containing the HTML body",
    )
    send_parser.add_argument(
        "--from",
        dest="sender",
        default="",
        help="From header (default: SMTP_FROM, then SMTP_USER)",
    )
    send_parser.add_argument(
        "--attach",
        action="append",
        default=[],
        type=Path,
        metavar="PATH",
        help="Attach a file; repeat for several",
    )

    return parser


## Commands


async def run_send(args: argparse.Namespace) -> int:
    """Load config and inputs, send, and report the outcome."""

    try:
        config = SMTPConfig.from_env(args.env_file)
        html = args.html_file.read_text(encoding="utf-8")
        attachments = [Attachment.from_path(path) for path in args.attach]

    except MailError as e:
        await print_error(f"Configuration error: {format_error_message(e)}")
        return EXIT_FAILURE

    except (OSError, UnicodeDecodeError) as e:
        await print_error(f"Cannot read input file: {e}")
        return EXIT_FAILURE

    await print_status(f"Sending to {args.to} via {config.host}:{config.port}")

    try:
        result = await send_email(
            args.sender,
            args.to,
            args.subject,
            html,
            attachments=attachments,
            config=config,
        )

    except MailError as e:
        logger.debug("Send failed", exc_info=True)
        await print_error(f"Failed to send email: {format_error_message(e)}")
        return EXIT_FAILURE

    await print_success(f"Email sent ({result.message_id})")
    return EXIT_OK


COMMANDS = {
    "send": run_send,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""

    parser = build_parser()
    args = parser.parse_args(argv)

    init_logging(args.log_level)

    return asyncio.run(COMMANDS[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
