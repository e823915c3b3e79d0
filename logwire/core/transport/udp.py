import asyncio
import logging
from enum import IntEnum

from logwire.core.codec.syslog import SyslogCodec
from logwire.core.models.config import ServerConfig
from logwire.core.models.message import MessageCallback
from logwire.core.transport.addr import get_local_addr

Datagram = tuple[bytes, tuple[str, int]]


class ReadStatus(IntEnum):
    """Outcome of a receive that did not produce a datagram."""
    closed  = 0
    error   = -1
    timeout = -2


class DatagramProtocol(asyncio.DatagramProtocol):
    """
    Hands every received datagram, transport error and the final
    closure of the socket to the UdpListener receive loop, in order.
    """
    def __init__(self, queue: asyncio.Queue[Datagram | Exception | None]) -> None:
        self._queue = queue

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self._queue.put_nowait((data, addr))

    def error_received(self, exc: Exception) -> None:
        self._queue.put_nowait(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        self._queue.put_nowait(None)


class UdpListener:
    """
    Owns the UDP syslog socket and its single receive loop.

    Each datagram is one complete message: there is no framing. Datagrams
    are decoded and dispatched one at a time, in receipt order, and the
    callback is awaited before the next receive starts.

    Every receive races the read timeout. A timeout only ends that
    receive and the loop reads again. Any other failure ends the whole
    loop: a transport error, the socket being closed, a datagram larger
    than the maximum message size or an exception raised by the callback.
    The socket is shared by all senders, so one misbehaving sender stops
    UDP ingestion until the server is restarted.
    """
    def __init__(
        self,
        config: ServerConfig,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self._queue: asyncio.Queue[Datagram | Exception | None] = asyncio.Queue()
        self._transport: asyncio.DatagramTransport | None = None
        self._callback: MessageCallback | None = None
        self._logger = logging.getLogger("core.transport.udp")

    @property
    def running(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def listen(self) -> tuple[str, int]:
        if self._transport is not None and (addr := get_local_addr(self._transport)):
            return addr
        return self._config.host, self._config.udp_port

    async def start(self, callback: MessageCallback, stop_event: asyncio.Event) -> None:
        config = self._config
        loop = self._loop or asyncio.get_running_loop()

        self._callback = callback
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: DatagramProtocol(self._queue),
            local_addr=(config.host, config.udp_port),
        )
        self._logger.info("UDP listener bound at %s:%d", *self.listen)

    async def receive(self) -> Datagram | ReadStatus:
        try:
            item = await asyncio.wait_for(
                self._queue.get(), timeout=self._config.read_timeout
            )
        except asyncio.TimeoutError:
            return ReadStatus.timeout

        if item is None:
            return ReadStatus.closed

        if isinstance(item, Exception):
            self._logger.error(f"UDP transport error: {item}")
            return ReadStatus.error

        return item

    async def serve(self, stop_event: asyncio.Event) -> None:
        watcher = asyncio.ensure_future(stop_event.wait())
        watcher.add_done_callback(lambda _: self.close())

        try:
            while not stop_event.is_set():
                result = await self.receive()
                if result is ReadStatus.timeout:
                    continue
                if isinstance(result, ReadStatus):
                    break

                if stop_event.is_set():
                    break

                data, addr = result
                if len(data) > self._config.max_message_size:
                    self._logger.warning(
                        f"Maximum message size exceeded by {addr[0]}:{addr[1]} "
                        f"({len(data)} bytes). Closing socket."
                    )
                    break

                message, ok = SyslogCodec.try_parse(addr[0], SyslogCodec.decode(data))
                if ok and self._callback is not None:
                    await self._callback(message, stop_event)
        except Exception as exc:
            self._logger.error("Exception in UDP receive loop", exc_info=exc)
        finally:
            watcher.cancel()
            self.close()
            self._logger.info("UDP receive loop stopped")

    async def shutdown(self) -> None:
        self.close()

    def close(self) -> None:
        if self._transport is not None and not self._transport.is_closing():
            self._transport.close()
