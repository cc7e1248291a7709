from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Mapping, Optional, Sequence, Tuple

from .errors import BAD_REQUEST, INVALID_CONTENT_LENGTH, METHOD_NOT_ALLOWED, IOFailure
from .response import TEXT_CONTENT_TYPE, ResponseWriter

if TYPE_CHECKING:
    from .service import GatewayState


logger = logging.getLogger(__name__)

WILDCARD = "*"

_CONTENT_LENGTH_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Request:
    method: Optional[str]
    query_string: Optional[str]
    content_length: Optional[str]
    body: BinaryIO

    @staticmethod
    def from_environ(environ: Mapping[str, Any], body: Optional[BinaryIO] = None) -> "Request":
        stream = body if body is not None else environ.get("wsgi.input")
        return Request(
            method=environ.get("REQUEST_METHOD"),
            query_string=environ.get("QUERY_STRING"),
            content_length=environ.get("CONTENT_LENGTH"),
            body=stream,  # type: ignore[arg-type]
        )


MethodHandler = Callable[["GatewayState", Request, ResponseWriter], None]


class MethodRouter:
    """Ordered (method, handler) table with a mandatory `*` fallback."""

    def __init__(self, routes: Sequence[Tuple[str, MethodHandler]]) -> None:
        self._routes = tuple((str(m), fn) for m, fn in routes)
        if not any(m == WILDCARD for m, _ in self._routes):
            raise ValueError("Method routing table needs a '*' entry")

    @property
    def methods(self) -> Tuple[str, ...]:
        return tuple(m for m, _ in self._routes)

    def resolve(self, method: str) -> MethodHandler:
        for m, fn in self._routes:
            if m == method:
                return fn
        for m, fn in self._routes:
            if m == WILDCARD:
                return fn
        raise RuntimeError("unreachable: wildcard route missing")


def parse_content_length(raw: Optional[str]) -> Optional[int]:
    s = str(raw or "").strip()
    if not _CONTENT_LENGTH_RE.fullmatch(s):
        return None
    return int(s)


def process_query(state: "GatewayState", query: Optional[str], response: ResponseWriter) -> bool:
    """Dispatch `query` and close the response envelope. Returns True on success."""
    if query is None:
        response.send_error(*BAD_REQUEST)
        return False

    outcome = state.dispatcher.dispatch(query, response)
    if not outcome.ok:
        if response.header_sent:
            logger.warning("Query %r failed after output was sent: %s", query, outcome.error)
        else:
            response.send_error(*BAD_REQUEST)
        return False

    if not response.header_sent:
        # Nothing matched: an empty, successful reply.
        response.start(200, TEXT_CONTENT_TYPE)
    return True


def handle_get(state: "GatewayState", request: Request, response: ResponseWriter) -> None:
    process_query(state, request.query_string, response)


def handle_post(state: "GatewayState", request: Request, response: ResponseWriter) -> None:
    length = parse_content_length(request.content_length)
    if length is None or length <= 0 or length > state.post_buffer.max_length:
        logger.info("Rejected POST with Content-Length %r (max %d)", request.content_length, state.post_buffer.max_length)
        response.send_error(*INVALID_CONTENT_LENGTH)
        return

    try:
        with state.post_buffer.read(request.body, length) as query:
            process_query(state, query, response)
    except IOFailure as e:
        logger.error("Cannot read POST data: %s", e)
        response.send_error(*BAD_REQUEST)


def handle_unsupported(state: "GatewayState", request: Request, response: ResponseWriter) -> None:
    logger.info("Unsupported request method %r", request.method)
    response.send_error(*METHOD_NOT_ALLOWED)


def default_method_routes() -> Tuple[Tuple[str, MethodHandler], ...]:
    return (
        ("GET", handle_get),
        ("POST", handle_post),
        (WILDCARD, handle_unsupported),
    )
