"""Address helpers for display-name wrapped mailboxes.

This is deliberately not an RFC 5322 grammar: it only strips an optional
``Name <addr>`` wrapper down to ``addr`` for the SMTP envelope.
"""

import re

_ANGLE_ADDR = re.compile(r"<(.+?)>")


def extract_address(value: str) -> str:
    """Return the bare address from ``"Name <addr>"`` or ``addr``.

    >>> extract_address("Alice <alice@example.com>")
    'alice@example.com'
    >>> extract_address("alice@example.com")
    'alice@example.com'
    """
    match = _ANGLE_ADDR.search(value)
    address = match.group(1) if match else value
    return address.strip().strip("<>")


def format_address(email: str, name: str = "") -> str:
    """Build a header address, adding a display name when one is given."""
    return f"{name} <{email}>" if name else email
