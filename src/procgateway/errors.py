"""Error taxonomy for the request pipeline.

Every error carries the HTTP status and description used when it reaches the
client. Errors raised below the dispatcher are collected per token; only the
aggregate outcome is reported (see `query.QueryDispatcher`).
"""

from __future__ import annotations


BAD_REQUEST = (400, "Bad request")
METHOD_NOT_ALLOWED = (405, "Method Not Allowed")
INVALID_CONTENT_LENGTH = (413, "Invalid Content-Length")
INTERNAL_ERROR = (500, "Internal Server Error")


class GatewayError(Exception):
    status: int = BAD_REQUEST[0]
    description: str = BAD_REQUEST[1]

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.description)


class InvalidArgument(GatewayError):
    """A required input (method, query, length) is missing or unusable."""


class UnsupportedOperation(GatewayError):
    status, description = METHOD_NOT_ALLOWED


class ResourceExhausted(GatewayError):
    """The request asks for more POST data than the buffer can hold."""

    status, description = INVALID_CONTENT_LENGTH


class IOFailure(GatewayError):
    """The request body ended before CONTENT_LENGTH bytes were read."""


class ValidationFailure(GatewayError):
    """An action subject contains characters outside [A-Za-z0-9]."""


class ExecutionFailure(GatewayError):
    """The control tool could not be spawned."""
