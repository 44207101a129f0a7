"""Command-line entry point: ``courier send ...``"""

import argparse
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from courier.builder import Email
from courier.core.config import PROVIDER_PRESETS, EmailConfig
from courier.core.email.smtp.constants import Timeouts
from courier.utils.errors import CourierError, ErrorHandler, format_error_message
from courier.utils.logging import init_logging

_console: Optional[Console] = None


def get_console() -> Console:
    """Get the shared Console instance"""
    global _console

    if _console is None:
        _console = Console()

    return _console


## Argument Parsing


def add_message_arguments(parser: argparse.ArgumentParser) -> None:
    """Add recipient and content arguments to the send parser."""

    parser.add_argument("--to", required=True, help="Recipient address")
    parser.add_argument("--from", dest="sender", help="Sender address (default: EMAIL_FROM)")
    parser.add_argument("--subject", required=True, help="Subject line")

    body_group = parser.add_mutually_exclusive_group(required=True)
    body_group.add_argument("--body", help="Message body text")
    body_group.add_argument("--body-file", help="Read the message body from a file")

    parser.add_argument("--html", action="store_true", help="Send the body as HTML")
    parser.add_argument("--cc", action="append", default=[], help="CC recipient (repeatable)")
    parser.add_argument("--bcc", action="append", default=[], help="BCC recipient (repeatable)")
    parser.add_argument(
        "--attach", action="append", default=[], help="File to attach (repeatable)"
    )
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Extra header (repeatable)",
    )


def add_delivery_arguments(parser: argparse.ArgumentParser) -> None:
    """Add connection-related arguments to the send parser."""

    parser.add_argument(
        "--provider",
        type=str.upper,
        choices=sorted(PROVIDER_PRESETS),
        help="Apply a provider preset on top of the environment settings",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=Timeouts.SMTP_IO,
        help=f"Connection and I/O timeout in seconds (default: {Timeouts.SMTP_IO:g})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for the log file (default: WARNING)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="courier",
        description="Send email over SMTP or the local sendmail program",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    send_parser = subparsers.add_parser(
        "send",
        help="Send one message",
        description="Send one message using EMAIL_* environment configuration",
    )
    add_message_arguments(send_parser)
    add_delivery_arguments(send_parser)
    return parser


## Commands


def build_email(args: argparse.Namespace, config: EmailConfig) -> Email:
    """Translate parsed arguments into a ready-to-send ``Email``."""

    if args.body_file:
        with open(args.body_file, "r", encoding="utf-8") as f:
            body = f.read()
    else:
        body = args.body

    email = (
        Email(config)
        .to(args.to)
        .subject(args.subject)
        .body(body, is_html=args.html)
        .add_cc(args.cc)
        .add_bcc(args.bcc)
        .set_connection_timeout(args.timeout)
        .set_timeout(args.timeout)
    )

    if args.sender:
        email.sender(args.sender)

    for path in args.attach:
        email.attachment(path)

    for header in args.header:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise argparse.ArgumentTypeError(f"Invalid header '{header}', expected NAME:VALUE")
        email.add_header(name.strip(), value.strip())

    return email


def cmd_send(args: argparse.Namespace) -> int:
    console = get_console()

    try:
        config = EmailConfig.from_env()
        if args.provider:
            config.apply_preset(args.provider)

        build_email(args, config).send()

    except CourierError as e:
        ErrorHandler.handle(e, "courier send", log_traceback=False)
        console.print(f"[red]Failed to send email: {escape(format_error_message(e))}[/]")
        return 1

    except (argparse.ArgumentTypeError, OSError) as e:
        console.print(f"[red]{escape(str(e))}[/]")
        return 1

    console.print(f"[green]Email sent to {escape(args.to)}[/]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    init_logging(args.log_level)

    if args.command == "send":
        return cmd_send(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
