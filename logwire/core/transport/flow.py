import asyncio
from typing import Callable


class FlowControl:
    """
    Cooperative read-side flow control for an asyncio TCP transport.

    It is used by the Protocol and the Session to:
    - pause reading while decoded frames are waiting for the callback
    - resume reading once the session has drained its queue
    - bound every read with a timeout, re-armed on each received chunk

    The timer only runs while the transport is reading: a paused
    transport is waiting on the callback, not on the peer.
    """

    def __init__(
        self,
        transport: asyncio.Transport,
        read_timeout: float,
        on_timeout: Callable[[], None],
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._transport = transport
        self._read_timeout = read_timeout
        self._on_timeout = on_timeout
        self._loop = loop
        self._timer: asyncio.TimerHandle | None = None
        self.read_paused = False

    def arm(self) -> None:
        """(Re)start the read timer."""
        self.cancel()
        if not self.read_paused:
            self._timer = self._loop.call_later(self._read_timeout, self._expire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def pause_reading(self) -> None:
        """Stop reading from the transport until resume_reading()."""
        if self.read_paused:
            return

        self.read_paused = True
        self.cancel()
        if not self._transport.is_closing():
            self._transport.pause_reading()

    def resume_reading(self) -> None:
        """Read again from the transport and restart the read timer."""
        if not self.read_paused:
            return

        self.read_paused = False
        if not self._transport.is_closing():
            self._transport.resume_reading()
            self.arm()

    def _expire(self) -> None:
        self._timer = None
        self._on_timeout()
