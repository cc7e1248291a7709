from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import sys

from .config import GatewayConfig, parse_bind_address


def _stderr(line: str) -> None:
    print(str(line), file=sys.stderr)


def _configure_console_logging(level: int = logging.INFO) -> None:
    """Console logging on stderr; stdout may be the CGI response channel."""
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=datefmt)
    root = logging.getLogger()
    if root.handlers:
        for h in list(root.handlers):
            h.setFormatter(formatter)
        root.setLevel(int(level))
        return
    logging.basicConfig(level=int(level), format=fmt, datefmt=datefmt, stream=sys.stderr)


def _add_syslog_handler(level: int) -> None:
    address = "/dev/log" if os.path.exists("/dev/log") else ("localhost", logging.handlers.SYSLOG_UDP_PORT)
    handler = logging.handlers.SysLogHandler(address=address)
    handler.setFormatter(logging.Formatter("procgateway[%(process)d]: %(name)s: %(message)s"))
    handler.setLevel(int(level))
    logging.getLogger().addHandler(handler)


def _max_post_length(raw: str) -> int:
    try:
        value = int(str(raw).strip(), 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid length: {raw!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"length must be positive: {raw!r}")
    return value


def _bind_address(raw: str):
    try:
        return parse_bind_address(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procgateway",
        description="FastCGI interface for process management via a process-control CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Verbose output")
    parser.add_argument(
        "-l",
        "--max-post-length",
        type=_max_post_length,
        default=None,
        help="Maximum POST data length (default: PROCGATEWAY_MAX_POST_LENGTH or 1024)",
    )
    parser.add_argument(
        "-c",
        "--control-tool",
        default=None,
        help="Process-control executable (default: PROCGATEWAY_CONTROL_TOOL or /usr/local/bin/procmon)",
    )
    parser.add_argument(
        "-b",
        "--bind",
        type=_bind_address,
        default=None,
        help="FastCGI socket: host:port or unix socket path (default: inherit the listen socket on fd 0)",
    )
    parser.add_argument("--syslog", action="store_true", default=None, help="Also log to syslog")
    return parser


def load_config(args: argparse.Namespace) -> GatewayConfig:
    return GatewayConfig.from_env().with_overrides(
        max_post_length=args.max_post_length,
        verbose=args.verbose,
        control_tool=args.control_tool,
        bind_address=args.bind,
        syslog=args.syslog,
    )


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    cfg = load_config(args)

    level = logging.DEBUG if cfg.verbose else logging.INFO
    _configure_console_logging(level)
    if cfg.syslog:
        try:
            _add_syslog_handler(level)
        except OSError as e:
            _stderr(f"[WARN] syslog unavailable: {e}")

    from .service import RequestLoop, create_gateway_state

    try:
        state = create_gateway_state(cfg)
    except ValueError as e:
        logging.getLogger(__name__).error("Cannot allocate POST buffer: %s", e)
        raise SystemExit(1)

    RequestLoop(state).serve()


if __name__ == "__main__":
    main()
