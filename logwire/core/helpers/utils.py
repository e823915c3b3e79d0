import asyncio
import contextlib
import logging
import signal
import sys
import threading
from typing import Generator

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s"

SHUTDOWN_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)


@contextlib.contextmanager
def setup_signal_handler(
    loop: asyncio.AbstractEventLoop,
) -> Generator[asyncio.Event, None, None]:
    """
    Yield an event set by the first shutdown signal received while the
    context is active. Handlers are installed on `loop` and removed on
    exit. Outside the main thread no handler is installed and the event
    is only set by the caller.
    """
    stop_event = asyncio.Event()

    if threading.current_thread() is not threading.main_thread():
        yield stop_event
        return

    def handle(sig: signal.Signals) -> None:
        logging.getLogger("core.helpers.utils").info(
            f"Received {sig.name}, shutting down."
        )
        stop_event.set()

    installed: list[signal.Signals] = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, handle, sig)
        except NotImplementedError:
            # ProactorEventLoop
            signal.signal(sig, lambda s, _: loop.call_soon_threadsafe(handle, signal.Signals(s)))
        installed.append(sig)

    try:
        yield stop_event
    finally:
        for sig in installed:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
