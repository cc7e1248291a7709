from __future__ import annotations

from typing import Any, Dict

import pytest

from procgateway.config import DEFAULT_CONTROL_TOOL, GatewayConfig, parse_bind_address


@pytest.mark.basic
def test_config_defaults() -> None:
    cfg = GatewayConfig.from_env()
    assert cfg == GatewayConfig()
    assert cfg.max_post_length == 1024
    assert cfg.verbose is False
    assert cfg.control_tool == DEFAULT_CONTROL_TOOL
    assert cfg.chunk_size == 8192
    assert cfg.bind_address is None


@pytest.mark.basic
def test_config_reads_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROCGATEWAY_MAX_POST_LENGTH", "0x800")
    monkeypatch.setenv("PROCGATEWAY_VERBOSE", "yes")
    monkeypatch.setenv("PROCGATEWAY_CONTROL_TOOL", "/opt/procmon")
    monkeypatch.setenv("PROCGATEWAY_CHUNK_SIZE", "512")
    monkeypatch.setenv("PROCGATEWAY_BIND", "127.0.0.1:9000")

    cfg = GatewayConfig.from_env()
    assert cfg.max_post_length == 2048
    assert cfg.verbose is True
    assert cfg.control_tool == "/opt/procmon"
    assert cfg.chunk_size == 512
    assert cfg.bind_address == ("127.0.0.1", 9000)


@pytest.mark.basic
def test_invalid_env_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROCGATEWAY_MAX_POST_LENGTH", "-5")
    monkeypatch.setenv("PROCGATEWAY_VERBOSE", "maybe")
    monkeypatch.setenv("PROCGATEWAY_CHUNK_SIZE", "lots")
    monkeypatch.setenv("PROCGATEWAY_BIND", "localhost:http")

    cfg = GatewayConfig.from_env()
    assert cfg.max_post_length == 1024
    assert cfg.verbose is False
    assert cfg.chunk_size == 8192
    assert cfg.bind_address is None


@pytest.mark.basic
def test_parse_bind_address() -> None:
    assert parse_bind_address(None) is None
    assert parse_bind_address("  ") is None
    assert parse_bind_address("0.0.0.0:9000") == ("0.0.0.0", 9000)
    assert parse_bind_address(":9000") == ("127.0.0.1", 9000)
    assert parse_bind_address("/run/procgateway.sock") == "/run/procgateway.sock"


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> Dict[str, Any]:
    from procgateway import cli as gateway_cli
    from procgateway import service as gateway_service

    seen: Dict[str, Any] = {}

    def _serve(self) -> None:
        seen["state"] = self.state

    monkeypatch.setattr(gateway_service.RequestLoop, "serve", _serve)
    monkeypatch.setattr(gateway_cli, "_configure_console_logging", lambda level=0: seen.setdefault("level", level))
    return seen


@pytest.mark.basic
def test_cli_builds_state_and_serves(served: Dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
    from procgateway import cli as gateway_cli

    monkeypatch.setenv("PROCGATEWAY_MAX_POST_LENGTH", "4096")
    gateway_cli.main(["-v", "-c", "/opt/procmon", "-b", "/tmp/pg.sock"])

    state = served["state"]
    assert state.config.verbose is True
    assert state.config.control_tool == "/opt/procmon"
    assert state.config.bind_address == "/tmp/pg.sock"
    assert state.config.max_post_length == 4096
    assert state.post_buffer.max_length == 4096
    assert served["level"] == 10  # logging.DEBUG


@pytest.mark.basic
def test_cli_max_post_length_overrides_env(served: Dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
    from procgateway import cli as gateway_cli

    monkeypatch.setenv("PROCGATEWAY_MAX_POST_LENGTH", "4096")
    gateway_cli.main(["-l", "0x200"])

    assert served["state"].config.max_post_length == 512
    assert served["state"].config.verbose is False
    assert served["level"] == 20  # logging.INFO


@pytest.mark.basic
@pytest.mark.parametrize("argv", [["-l", "0"], ["-l", "big"], ["-b", "host:port"], ["-x"]])
def test_cli_rejects_bad_arguments(served: Dict[str, Any], argv) -> None:
    from procgateway import cli as gateway_cli

    with pytest.raises(SystemExit) as excinfo:
        gateway_cli.main(argv)
    assert excinfo.value.code == 2
    assert "state" not in served


@pytest.mark.basic
def test_cli_help_exits_cleanly(served: Dict[str, Any], capsys: pytest.CaptureFixture[str]) -> None:
    from procgateway import cli as gateway_cli

    with pytest.raises(SystemExit) as excinfo:
        gateway_cli.main(["-h"])
    assert excinfo.value.code == 0
    assert "--max-post-length" in capsys.readouterr().out


@pytest.mark.basic
def test_cli_syslog_flag_adds_handler_and_survives_failure(served: Dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
    from procgateway import cli as gateway_cli

    levels = []

    def _unavailable(level: int) -> None:
        levels.append(level)
        raise OSError("no syslog socket")

    monkeypatch.setattr(gateway_cli, "_add_syslog_handler", _unavailable)
    gateway_cli.main(["--syslog"])

    assert levels == [20]
    assert served["state"].config.syslog is True
