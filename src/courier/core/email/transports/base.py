"""Transport capability shared by SMTP and local sendmail delivery."""

from typing import Protocol, runtime_checkable

from courier.core.models.message import EmailMessage


@runtime_checkable
class Transport(Protocol):
    """Anything that can deliver an ``EmailMessage``.

    ``send`` returns ``True`` on success and raises a ``CourierError`` on
    any failure; it never reports failure by returning ``False``.
    """

    def send(self, message: EmailMessage) -> bool: ...

    def set_connection_timeout(self, seconds: float) -> "Transport": ...

    def set_timeout(self, seconds: float) -> "Transport": ...
