import asyncio
import logging

from logwire.bootstrap.config.loader import get_cli_args
from logwire.bootstrap.deps import get_renderer, get_server
from logwire.core.helpers.utils import setup_logging, setup_signal_handler
from logwire.core.models.message import SyslogMessage
from logwire.core.ports.render import Renderer
from logwire.core.server import SyslogServer


async def run(server: SyslogServer, renderer: Renderer) -> None:
    logger = logging.getLogger("logwire.boot")
    loop = asyncio.get_running_loop()

    async def on_message(message: SyslogMessage, stop_event: asyncio.Event) -> None:
        print(renderer.render(message), flush=True)

    with setup_signal_handler(loop) as stop_event:
        async with server:
            await server.start(on_message, stop_event)
            for listener in server.listeners:
                logger.info(
                    f"Ready: {type(listener).__name__} on %s:%d", *listener.listen
                )
            await stop_event.wait()


def main():
    cli = get_cli_args()

    setup_logging(cli.log_level)

    try:
        asyncio.run(run(get_server(), get_renderer()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
