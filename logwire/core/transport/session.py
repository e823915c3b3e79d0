import asyncio
import logging

from logwire.core.codec.syslog import SyslogCodec
from logwire.core.models.message import MessageCallback
from logwire.core.transport.flow import FlowControl


class Session:
    """
    Dispatches the frames of a single TCP connection to the callback.

    It receives complete frames from the StreamProtocol through an
    internal queue, decodes each one with the SyslogCodec and awaits the
    callback before taking the next frame, so messages of a connection
    are delivered in the order they were framed.

    When the queue runs dry the Session resumes reading on the transport
    through FlowControl. Reading stays paused while frames are pending,
    which makes a slow callback throttle the peer instead of growing the
    queue.

    A None item marks the end of the connection. The session also stops
    before dispatching once the stop event is set, or when the callback
    raises. The transport is always closed on exit.
    """
    def __init__(
        self,
        transport: asyncio.Transport,
        flow: FlowControl,
        queue: asyncio.Queue[bytes | None],
        remote_addr: str | None,
    ) -> None:
        self.queue = queue
        self._transport = transport
        self._flow = flow
        self._remote_addr = remote_addr
        self._logger = logging.getLogger("core.transport.session")

    async def receive(self) -> bytes | None:
        if self.queue.empty():
            self._flow.resume_reading()
        return await self.queue.get()

    async def dispatch(
        self,
        frame: bytes,
        callback: MessageCallback,
        stop_event: asyncio.Event,
    ) -> None:
        text = SyslogCodec.decode(frame)
        message, ok = SyslogCodec.try_parse(self._remote_addr, text)
        if ok:
            await callback(message, stop_event)

    async def run(self, callback: MessageCallback, stop_event: asyncio.Event) -> None:
        try:
            while (frame := await self.receive()) is not None:
                if stop_event.is_set():
                    break
                await self.dispatch(frame, callback, stop_event)
        except Exception as exc:
            self._logger.error(
                f"Exception in callback for {self._remote_addr}", exc_info=exc
            )
        finally:
            self._flow.cancel()
            self._transport.close()
