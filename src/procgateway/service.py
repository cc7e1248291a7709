"""Composition root and request loop.

One `GatewayState` is built at startup and passed explicitly to everything that
needs configuration or the POST buffer. `RequestLoop` serves requests strictly
one at a time: a request is fully dispatched (including any control-tool run)
before the next one is accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from .actions import default_actions
from .config import GatewayConfig
from .errors import BAD_REQUEST, INTERNAL_ERROR
from .executor import CommandExecutor
from .post_buffer import PostBuffer
from .query import QueryDispatcher
from .response import ResponseWriter
from .router import MethodRouter, Request, default_method_routes


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayState:
    config: GatewayConfig
    post_buffer: PostBuffer
    dispatcher: QueryDispatcher
    router: MethodRouter


def create_gateway_state(config: Optional[GatewayConfig] = None) -> GatewayState:
    cfg = config or GatewayConfig.from_env()
    executor = CommandExecutor(chunk_size=cfg.chunk_size)
    return GatewayState(
        config=cfg,
        post_buffer=PostBuffer(cfg.max_post_length),
        dispatcher=QueryDispatcher(actions=default_actions(cfg), executor=executor),
        router=MethodRouter(default_method_routes()),
    )


class RequestLoop:
    def __init__(self, state: GatewayState) -> None:
        self._state = state
        self._served = 0

    @property
    def state(self) -> GatewayState:
        return self._state

    @property
    def served(self) -> int:
        return self._served

    def handle(self, request: Request, response: ResponseWriter) -> None:
        """Serve one request. Never raises: a failed request must not stop the loop."""
        self._served += 1
        try:
            if request.method is None:
                logger.info("Request without REQUEST_METHOD")
                response.send_error(*BAD_REQUEST)
                return
            handler = self._state.router.resolve(request.method)
            handler(self._state, request, response)
        except Exception:
            logger.exception("Unhandled error while serving %s request", request.method)
            if not response.header_sent:
                try:
                    response.send_error(*INTERNAL_ERROR)
                except Exception:
                    logger.exception("Cannot send error response")
        finally:
            if not self._state.post_buffer.is_clear():
                # PostBuffer.read() clears on exit; reaching here means a handler bypassed it.
                logger.error("POST buffer not cleared after request; clearing now")
                self._state.post_buffer.clear()

    def __call__(self, environ: Mapping[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        self.handle(Request.from_environ(environ), ResponseWriter(start_response))
        return []

    def serve(self) -> None:
        """Accept and serve FastCGI requests until the process is told to stop.

        flup's single-threaded server owns the accept loop and the shutdown
        lifecycle: SIGTERM, SIGINT and SIGHUP end the loop once the in-flight
        request has been answered.
        """
        try:
            from flup.server.fcgi_single import WSGIServer
        except Exception as e:
            raise SystemExit(
                "procgateway FastCGI dependencies are missing.\n"
                "Install with: `pip install flup`\n"
                f"(import failed: {e})"
            )

        cfg = self._state.config
        logger.info(
            "procgateway serving (control_tool=%s, max_post_length=%d, bind=%s)",
            cfg.control_tool,
            cfg.max_post_length,
            cfg.bind_address or "fd 0",
        )
        server = WSGIServer(self, bindAddress=cfg.bind_address, debug=False)
        server.run()
        logger.info("procgateway stopped after %d request(s)", self._served)
