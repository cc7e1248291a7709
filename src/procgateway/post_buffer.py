from __future__ import annotations

from contextlib import contextmanager
from typing import BinaryIO, Iterator

from .errors import InvalidArgument, IOFailure, ResourceExhausted


class PostBuffer:
    """Process-wide POST body buffer.

    Allocated once with room for `max_length` bytes plus a zero terminator.
    Reads never write a terminator and shorter reads leave the tail untouched,
    so the whole buffer must be zero before every read. `read()` guarantees that
    by clearing on exit, whatever happened while the payload was in use.
    """

    def __init__(self, max_length: int) -> None:
        if int(max_length) <= 0:
            raise ValueError(f"Cannot allocate POST buffer of {max_length} bytes")
        self._max_length = int(max_length)
        self._buf = bytearray(self._max_length + 1)

    @property
    def max_length(self) -> int:
        return self._max_length

    def __len__(self) -> int:
        return len(self._buf)

    def fill(self, stream: BinaryIO, length: int) -> str:
        if length > self._max_length:
            raise ResourceExhausted(f"Content-Length {length} exceeds maximum {self._max_length}")
        if length <= 0:
            raise InvalidArgument(f"Invalid Content-Length {length}")

        data = b""
        while len(data) < length:
            chunk = stream.read(length - len(data))
            if not chunk:
                break
            data += chunk
        if len(data) != length:
            raise IOFailure(f"Expected {length} bytes of POST data, got {len(data)}")
        self._buf[:length] = data

        # The payload is a NUL-terminated string: stop at the first zero byte.
        end = self._buf.index(0)
        return bytes(self._buf[:end]).decode("utf-8", errors="replace")

    @contextmanager
    def read(self, stream: BinaryIO, length: int) -> Iterator[str]:
        try:
            yield self.fill(stream, length)
        finally:
            self.clear()

    def clear(self) -> None:
        self._buf[:] = bytes(len(self._buf))

    def is_clear(self) -> bool:
        return not any(self._buf)

    def snapshot(self) -> bytes:
        return bytes(self._buf)
