from dataclasses import dataclass

DEFAULT_SYSLOG_PORT = 514
DEFAULT_LISTEN_BACKLOG = 100
DEFAULT_READ_TIMEOUT = 10.0
DEFAULT_MAX_MESSAGE_SIZE = 2048
MIN_MESSAGE_SIZE = 480  # RFC 5424 section 6.1


@dataclass(frozen=True)
class ServerConfig:
    """
    Static configuration for a logwire SyslogServer.

    Values are validated on construction; an out-of-range value raises
    ValueError instead of being clamped.
    """
    host: str = "127.0.0.1"
    """
    IP address on which both listeners bind. Defaults to loopback only.
    """

    udp_port: int = DEFAULT_SYSLOG_PORT
    """
    UDP port to bind, or 0 to disable the UDP listener.
    """

    tcp_port: int = DEFAULT_SYSLOG_PORT
    """
    TCP port to bind, or 0 to disable the TCP listener.
    """

    backlog: int = DEFAULT_LISTEN_BACKLOG
    """
    Maximum number of pending TCP connections waiting for accept().
    """

    read_timeout: float = DEFAULT_READ_TIMEOUT
    """
    Maximum time (in seconds) a single read may wait for data.
    A TCP session ends when it fires; the UDP loop simply reads again.
    """

    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    """
    Maximum size in bytes of a single message. Must be at least
    MIN_MESSAGE_SIZE.
    """

    timeout_graceful_shutdown: float = 3.0
    """
    Maximum time (in seconds) stop() waits for running sessions before
    cancelling them.
    """

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must not be empty")

        for name in ("udp_port", "tcp_port"):
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                raise ValueError(f"{name} out of range: {port}")

        if self.backlog < 1:
            raise ValueError(f"backlog out of range: {self.backlog}")

        if self.read_timeout <= 0:
            raise ValueError(f"read_timeout out of range: {self.read_timeout}")

        if self.max_message_size < MIN_MESSAGE_SIZE:
            raise ValueError(
                f"max_message_size out of range: {self.max_message_size} "
                f"(minimum is {MIN_MESSAGE_SIZE})"
            )

        if self.timeout_graceful_shutdown < 0:
            raise ValueError(
                f"timeout_graceful_shutdown out of range: {self.timeout_graceful_shutdown}"
            )
