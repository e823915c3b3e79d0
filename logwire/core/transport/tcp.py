import asyncio
import logging

from logwire.core.models.config import ServerConfig
from logwire.core.models.message import MessageCallback
from logwire.core.models.state import ServerState
from logwire.core.transport.protocol import StreamProtocol


class TcpListener:
    """
    Owns the listening socket of the TCP syslog path and the sessions
    of the connections it accepts.

    It binds to the configured host and TCP port using asyncio's
    create_server; the event loop accepts connections and hands each of
    them to a new StreamProtocol, which starts an independent Session
    task. Sessions share nothing but the ServerState used to track
    them. There is no bound on the number of concurrent sessions beyond
    the listen backlog.

    `serve()` runs until the stop event is set. It then closes the
    listening socket, asks all active connections to shut down, and waits
    for their sessions to complete. If the graceful shutdown timeout is
    exceeded, the remaining sessions are cancelled and an error is logged.
    """
    def __init__(
        self,
        config: ServerConfig,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self.state = ServerState()
        self._logger = logging.getLogger("core.transport.tcp")

        self._server: asyncio.AbstractServer | None = None

    @property
    def running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def listen(self) -> tuple[str, int]:
        if self._server is None or not self._server.sockets:
            return self._config.host, self._config.tcp_port
        host, port = self._server.sockets[0].getsockname()[:2]
        return host, port

    async def start(self, callback: MessageCallback, stop_event: asyncio.Event) -> None:
        config = self._config
        loop = self._loop or asyncio.get_running_loop()

        def create_protocol() -> asyncio.Protocol:
            return StreamProtocol(
                config=config,
                server_state=self.state,
                callback=callback,
                stop_event=stop_event,
                loop=loop,
            )

        self._server = await loop.create_server(
            create_protocol,
            host=config.host,
            port=config.tcp_port,
            backlog=config.backlog,
            reuse_address=True,
        )
        self._logger.info("TCP listener bound at %s:%d", *self.listen)

    async def serve(self, stop_event: asyncio.Event) -> None:
        try:
            await stop_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        if self._server:
            self._server.close()

        for connection in self.state.connections.copy():
            connection.shutdown()

        try:
            await asyncio.wait_for(
                self._wait_task_complete(),
                timeout=self._config.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Cancel {len(self.state.tasks)} running session(s), "
                f"timeout graceful shutdown: {self.state.tasks}"
            )
            tasks = list(self.state.tasks)
            for task in tasks:
                task.cancel("Session cancelled, timeout graceful shutdown exceeded")
            await asyncio.gather(*tasks, return_exceptions=True)

        self._server = None

    async def _wait_task_complete(self) -> None:
        if self.state.connections:
            self._logger.info("Waiting for client connections to close.")

        while self.state.connections:
            await asyncio.sleep(0.1)

        if self.state.tasks:
            self._logger.info("Waiting for sessions to complete.")

        while self.state.tasks:
            await asyncio.sleep(0.1)

        if self._server:
            await self._server.wait_closed()
