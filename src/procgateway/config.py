from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple, Union


DEFAULT_MAX_POST_LENGTH = 1024
DEFAULT_CONTROL_TOOL = "/usr/local/bin/procmon"
# Matches the stdio BUFSIZ used by the C gateway for both pipe reads and command lines.
DEFAULT_CHUNK_SIZE = 8192
MAX_COMMAND_LENGTH = 8192

BindAddress = Union[str, Tuple[str, int]]


def _as_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off"}:
        return False
    return default


def _as_positive_int(raw: Any, default: int) -> int:
    s = str(raw or "").strip()
    if not s:
        return default
    try:
        value = int(s, 0)
    except ValueError:
        return default
    return value if value > 0 else default


def parse_bind_address(raw: Optional[str]) -> Optional[BindAddress]:
    """Parse a FastCGI bind address.

    - empty/None: inherit the listen socket passed on fd 0 (spawn-fcgi, lighttpd `bin-path`)
    - `host:port`: TCP socket
    - anything else: unix domain socket path
    """
    s = str(raw or "").strip()
    if not s:
        return None
    if "/" not in s and ":" in s:
        host, _, port = s.rpartition(":")
        try:
            return (host or "127.0.0.1", int(port))
        except ValueError:
            raise ValueError(f"Invalid bind port in {s!r}")
    return s


@dataclass(frozen=True)
class GatewayConfig:
    max_post_length: int = DEFAULT_MAX_POST_LENGTH
    verbose: bool = False
    control_tool: str = DEFAULT_CONTROL_TOOL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    bind_address: Optional[BindAddress] = None
    syslog: bool = False

    @staticmethod
    def from_env() -> "GatewayConfig":
        max_post_length = _as_positive_int(os.getenv("PROCGATEWAY_MAX_POST_LENGTH"), DEFAULT_MAX_POST_LENGTH)
        verbose = _as_bool(os.getenv("PROCGATEWAY_VERBOSE"), False)
        control_tool = str(os.getenv("PROCGATEWAY_CONTROL_TOOL") or DEFAULT_CONTROL_TOOL).strip() or DEFAULT_CONTROL_TOOL
        chunk_size = _as_positive_int(os.getenv("PROCGATEWAY_CHUNK_SIZE"), DEFAULT_CHUNK_SIZE)
        try:
            bind_address = parse_bind_address(os.getenv("PROCGATEWAY_BIND"))
        except ValueError:
            bind_address = None
        syslog = _as_bool(os.getenv("PROCGATEWAY_SYSLOG"), False)

        return GatewayConfig(
            max_post_length=max_post_length,
            verbose=bool(verbose),
            control_tool=control_tool,
            chunk_size=chunk_size,
            bind_address=bind_address,
            syslog=bool(syslog),
        )

    def with_overrides(self, **changes: Any) -> "GatewayConfig":
        """Return a copy with the non-None values in `changes` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
