from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"
ERROR_CONTENT_TYPE = "application/json"

StartResponse = Callable[..., Any]


def error_body(status: int, description: str) -> bytes:
    return json.dumps({"status": int(status), "description": str(description)}).encode("utf-8")


class ResponseWriter:
    """Single-header response sink over a WSGI `start_response`.

    The first `start()` commits the status line and content type; later calls are
    ignored so several actions in one query append to the same body. Body bytes
    go through the legacy WSGI `write` callable, which the FastCGI server turns
    into STDOUT records as they arrive.
    """

    def __init__(self, start_response: StartResponse) -> None:
        self._start_response = start_response
        self._write: Optional[Callable[[bytes], Any]] = None
        self._status: Optional[int] = None
        self._content_type: Optional[str] = None
        self._bytes_written = 0

    @property
    def header_sent(self) -> bool:
        return self._status is not None

    @property
    def status(self) -> Optional[int]:
        return self._status

    @property
    def content_type(self) -> Optional[str]:
        return self._content_type

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def start(self, status: int, content_type: str, reason: str = "OK") -> bool:
        if self.header_sent:
            if content_type != self._content_type:
                logger.debug("Response header already sent as %s; keeping it for %s output", self._content_type, content_type)
            return False
        headers: List[Tuple[str, str]] = [("Content-Type", str(content_type))]
        self._write = self._start_response(f"{int(status)} {reason}", headers)
        self._status = int(status)
        self._content_type = str(content_type)
        return True

    def write(self, data: bytes) -> None:
        if not data:
            return
        if self._write is None:
            raise RuntimeError("Response body written before the header")
        self._write(data)
        self._bytes_written += len(data)

    def send_error(self, status: int, description: str) -> bool:
        if self.header_sent:
            logger.warning(
                "Cannot send %s %s: a %s response is already in progress", status, description, self._status
            )
            return False
        self.start(status, ERROR_CONTENT_TYPE, reason=description)
        self.write(error_body(status, description))
        return True


class DiscardResponseWriter(ResponseWriter):
    """Sink for command output that must run but never reach the client."""

    def __init__(self) -> None:
        super().__init__(self._discard_start_response)

    def _discard_start_response(self, _status: str, _headers: List[Tuple[str, str]]) -> Callable[[bytes], None]:
        return self._discard

    def _discard(self, _data: bytes) -> None:
        return None
