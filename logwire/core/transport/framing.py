from typing import Iterator

DELIMITER = b"\n"


class FrameTooLarge(ValueError):
    """Raised when a frame, complete or not, exceeds the maximum size."""


class FrameAssembler:
    """
    Rebuilds newline-delimited syslog frames from a TCP byte stream.

    TCP has no message boundaries: a single read may hold several
    frames, or only part of one. Received bytes are accumulated in an
    internal buffer and every segment terminated by "\n" is yielded as
    one frame, without the delimiter and without a trailing "\r".

    The buffer may never hold more than `max_size` bytes of a single
    frame. Once that limit is crossed FrameTooLarge is raised and the
    assembler must not be fed again; the caller is expected to drop the
    connection.
    """
    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> Iterator[bytes]:
        self._buffer.extend(data)

        while (index := self._buffer.find(DELIMITER)) != -1:
            if index > self._max_size:
                self.clear()
                raise FrameTooLarge(f"Frame of {index} bytes exceeds {self._max_size}")

            frame = bytes(self._buffer[:index])
            del self._buffer[:index + 1]
            yield self._strip(frame)

        if len(self._buffer) > self._max_size:
            size = len(self._buffer)
            self.clear()
            raise FrameTooLarge(f"Unterminated frame of {size} bytes exceeds {self._max_size}")

    def flush(self) -> bytes | None:
        """Return the unterminated remainder, if any, and empty the buffer."""
        if not self._buffer:
            return None

        frame = bytes(self._buffer)
        self.clear()
        return self._strip(frame)

    def clear(self) -> None:
        self._buffer.clear()

    @staticmethod
    def _strip(frame: bytes) -> bytes:
        if frame.endswith(b"\r"):
            return frame[:-1]
        return frame
