from typing import Protocol

from logwire.core.models.message import SyslogMessage


class Renderer(Protocol):
    """Turns a received message into one printable record."""

    def render(self, message: SyslogMessage) -> str:
        ...
