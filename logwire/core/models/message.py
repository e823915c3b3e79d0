import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Awaitable, Callable


class Facility(IntEnum):
    """
    Origin subsystem of a syslog message, encoded in the upper bits
    of the PRI value.
    """
    kern        = 0
    user        = 1
    mail        = 2
    daemon      = 3
    auth        = 4
    syslog      = 5
    lpr         = 6
    news        = 7
    uucp        = 8
    cron        = 9
    authpriv    = 10
    ftp         = 11
    ntp         = 12
    audit       = 13
    alert       = 14
    clock       = 15
    local0      = 16
    local1      = 17
    local2      = 18
    local3      = 19
    local4      = 20
    local5      = 21
    local6      = 22
    local7      = 23


class Severity(IntEnum):
    """Urgency of a syslog message, encoded in the lower 3 bits of PRI."""
    emergency   = 0
    alert       = 1
    critical    = 2
    error       = 3
    warning     = 4
    notice      = 5
    info        = 6
    debug       = 7


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyslogMessage:
    """
    Decoded representation of a single syslog message.

    Instances are created fresh for every parse attempt and are owned by
    the callback invocation receiving them; nothing else keeps a
    reference once the callback returns.
    """
    version: int = 1

    facility: Facility = Facility.user

    severity: Severity = Severity.notice

    timestamp: datetime = field(default_factory=_now)
    """
    Time reported by the sender. Defaults to construction time when
    the message carries no timestamp or an unparsable one.
    """

    hostname: str | None = None
    app_name: str | None = None
    proc_id: str | None = None
    msg_id: str | None = None
    content: str | None = None

    remote_addr: str | None = None
    """Address of the peer the message was received from."""

    received_at: datetime = field(default_factory=_now)

    structured_data: dict[str, str | None] = field(default_factory=dict)
    """
    Terms of the structured-data section. Bare terms map to None.
    Keys are unique: the first occurrence of a key wins.
    """

    @property
    def priority(self) -> int:
        return self.facility * 8 + self.severity

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dictionary safe for JSON or YAML rendering."""
        return {
            "version": self.version,
            "facility": self.facility.name,
            "severity": self.severity.name,
            "priority": self.priority,
            "timestamp": self.timestamp.isoformat(),
            "hostname": self.hostname,
            "app_name": self.app_name,
            "proc_id": self.proc_id,
            "msg_id": self.msg_id,
            "content": self.content,
            "remote_addr": self.remote_addr,
            "received_at": self.received_at.isoformat(),
            "structured_data": dict(self.structured_data),
        }

    def __str__(self) -> str:
        from logwire.core.codec.syslog import SyslogCodec
        return SyslogCodec.render(self)


MessageCallback = Callable[[SyslogMessage, asyncio.Event], Awaitable[None]]
"""
Coroutine invoked for every successfully decoded message. The second
argument is set once the server starts shutting down. It may be invoked
concurrently from several sessions and the UDP loop.
"""
