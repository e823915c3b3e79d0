import asyncio
import logging

from logwire.core.models.config import ServerConfig
from logwire.core.models.message import MessageCallback
from logwire.core.models.state import ServerState
from logwire.core.transport.addr import get_remote_addr
from logwire.core.transport.flow import FlowControl
from logwire.core.transport.framing import FrameAssembler, FrameTooLarge
from logwire.core.transport.session import Session


class StreamProtocol(asyncio.Protocol):
    """
    Implements the low-level framing and connection lifecycle for a
    single TCP syslog sender. It receives raw bytes from the transport,
    reconstructs newline-delimited frames and forwards them to the
    Session associated with the connection.

    When a connection is established, StreamProtocol creates a
    FlowControl instance, registers itself in the listener's connection
    set, and starts the Session task responsible for decoding frames and
    invoking the callback. Frames are rebuilt by a FrameAssembler.

    If a frame grows beyond the configured maximum message size the
    connection is aborted: the transport is closed and the unterminated
    data is discarded. If the peer stays silent for longer than the read
    timeout the connection is closed as well, but data received so far
    is still delivered.

    When the connection is lost, StreamProtocol removes itself from the
    listener state, hands any unterminated remainder to the Session as a
    final frame (unless the connection was aborted), and signals
    termination by pushing a sentinel value into the Session queue.
    """
    def __init__(
        self,
        config: ServerConfig,
        server_state: ServerState,
        callback: MessageCallback,
        stop_event: asyncio.Event,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._transport: asyncio.Transport = None   # type: ignore[assignment]
        self._flow: FlowControl = None  # type: ignore[assignment]
        self._session: Session = None   # type: ignore[assignment]

        self._config = config
        self._callback = callback
        self._stop_event = stop_event
        self._loop = loop or asyncio.get_running_loop()
        self._connections = server_state.connections
        self._tasks = server_state.tasks
        self._assembler = FrameAssembler(config.max_message_size)
        self._aborted = False
        self._client: tuple[str, int] | None = None
        self._logger = logging.getLogger("core.transport.protocol")

    @property
    def who(self) -> str:
        return "%s:%d" % self._client if self._client else ""

    def connection_made(self, transport: asyncio.Transport) -> None:  # type: ignore[override]
        self._transport = transport
        self._flow = FlowControl(
            transport=transport,
            read_timeout=self._config.read_timeout,
            on_timeout=self._on_read_timeout,
            loop=self._loop,
        )
        self._connections.add(self)
        self._client = get_remote_addr(transport)
        self._session = Session(
            transport=transport,
            flow=self._flow,
            queue=asyncio.Queue(),
            remote_addr=self._client[0] if self._client else None,
        )
        task = self._loop.create_task(
            self._session.run(self._callback, self._stop_event)
        )
        task.add_done_callback(self._tasks.discard)
        self._tasks.add(task)

        self._flow.arm()
        self._logger.debug(f"{self.who} - Connection made")

    def connection_lost(self, exc: Exception | None) -> None:
        self._connections.discard(self)
        self._flow.cancel()

        if exc is None:
            self._logger.debug(f"{self.who} - Connection lost.")
            self._transport.close()
        else:
            self._logger.debug(f"{self.who} - Connection lost: {exc}")

        if not self._aborted and (leftover := self._assembler.flush()) is not None:
            self._session.queue.put_nowait(leftover)

        self._session.queue.put_nowait(None)

    def eof_received(self) -> None:
        pass

    def data_received(self, data: bytes) -> None:
        if self._aborted:
            return

        self._flow.cancel()
        try:
            for frame in self._assembler.feed(data):
                self._session.queue.put_nowait(frame)
        except FrameTooLarge as exc:
            self._logger.warning(f"{self.who} - {exc}, closing connection")
            self._aborted = True
            self._transport.close()
            return

        if self._session.queue.empty():
            self._flow.arm()
        else:
            self._flow.pause_reading()

    def shutdown(self) -> None:
        self._aborted = True
        self._assembler.clear()
        self._transport.close()

    def _on_read_timeout(self) -> None:
        self._logger.debug(f"{self.who} - Read timeout, closing connection")
        self._transport.close()
