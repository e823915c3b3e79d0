import asyncio
import contextlib
import logging
from typing import Generator

from logwire.core.helpers.spawn import TaskSpawner
from logwire.core.models.config import ServerConfig
from logwire.core.models.message import MessageCallback
from logwire.core.transport.tcp import TcpListener
from logwire.core.transport.udp import UdpListener

Listener = TcpListener | UdpListener


class SyslogServer:
    """
    Entry point of logwire: receives syslog messages over TCP and UDP
    and hands every decoded SyslogMessage to an asynchronous callback.

    `start()` binds a listener for each enabled protocol (a port of 0
    disables it) and runs each of them as an independent background
    task; it returns as soon as the sockets are bound. All listeners
    share one stop event, linked to the optional event given by the
    caller, so setting either one shuts them down.

    `stop()` sets the stop event and waits until every listener task and
    TCP session has finished. It is a no-op on a server that is not
    running. `start()` and `stop()` never overlap: a call made while
    another one is in flight fails immediately with a RuntimeError.

    `close()` stops the server once and makes it unusable. The server is
    also an async context manager closing itself on exit.
    """
    def __init__(
        self,
        config: ServerConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config or ServerConfig()
        self._loop = loop
        self._spawner = TaskSpawner(loop=loop)
        self._op_lock = False
        self._closed = False

        self._stop_event: asyncio.Event | None = None
        self._link_task: asyncio.Task[None] | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._listeners: list[Listener] = []

        self._logger = logging.getLogger("logwire.server")

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    @property
    def listeners(self) -> list[Listener]:
        return list(self._listeners)

    async def start(
        self,
        callback: MessageCallback,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        if self._closed:
            raise RuntimeError("Syslog server is closed")

        with self._operation():
            if self._tasks:
                raise RuntimeError("Syslog server is already started")

            internal = asyncio.Event()
            listeners = self._create_listeners()
            if not listeners:
                self._logger.warning("Both TCP and UDP are disabled, nothing to start.")
                return

            bound: list[Listener] = []
            try:
                for listener in listeners:
                    await listener.start(callback, internal)
                    bound.append(listener)
            except BaseException:
                for listener in bound:
                    await listener.shutdown()
                raise

            if stop_event is not None:
                self._link_task = self._spawner.spawn(
                    self._link(stop_event, internal), name="logwire-link"
                )

            self._stop_event = internal
            self._listeners = listeners
            self._tasks = [
                self._spawner.spawn(
                    listener.serve(internal),
                    name=f"logwire-{type(listener).__name__}"
                )
                for listener in listeners
            ]
            self._logger.info(f"Syslog server started with {len(listeners)} listener(s)")

    async def stop(self) -> None:
        with self._operation():
            if not self._tasks:
                return

            assert self._stop_event is not None
            self._stop_event.set()

            if self._link_task is not None:
                self._link_task.cancel()
                self._link_task = None

            tasks, self._tasks = self._tasks, []
            await asyncio.gather(*tasks, return_exceptions=True)

            self._listeners = []
            self._stop_event = None
            self._logger.info("Syslog server stopped")

    async def close(self) -> None:
        if self._closed:
            return

        self._closed = True
        await self.stop()

    async def __aenter__(self) -> "SyslogServer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @contextlib.contextmanager
    def _operation(self) -> Generator[None, None, None]:
        if self._op_lock:
            raise RuntimeError("Operation in progress.")

        self._op_lock = True
        try:
            yield
        finally:
            self._op_lock = False

    def _create_listeners(self) -> list[Listener]:
        listeners: list[Listener] = []
        if self._config.tcp_port > 0:
            listeners.append(TcpListener(self._config, loop=self._loop))
        if self._config.udp_port > 0:
            listeners.append(UdpListener(self._config, loop=self._loop))
        return listeners

    @staticmethod
    async def _link(source: asyncio.Event, target: asyncio.Event) -> None:
        await source.wait()
        target.set()
