from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest


_FAKE_PROCMON = """#!/bin/sh
echo "$*" >> "{log}"
if [ "$1" = "-o" ]; then
    printf '[{{"name": "webapp", "state": "running"}}]\\n'
else
    echo "procmon $*"
fi
"""


@pytest.fixture(autouse=True)
def _isolate_gateway_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # A developer shell that exported gateway settings must not leak into tests.
    for key in list(os.environ):
        if key.startswith("PROCGATEWAY_"):
            monkeypatch.delenv(key, raising=False)


class FakeProcmon:
    def __init__(self, path: Path, log_path: Path) -> None:
        self.path = path
        self.log_path = log_path

    def calls(self) -> List[str]:
        if not self.log_path.exists():
            return []
        return [ln for ln in self.log_path.read_text(encoding="utf-8").splitlines() if ln]


@pytest.fixture
def fake_procmon(tmp_path: Path) -> FakeProcmon:
    """Stand-in control tool: logs its argv and prints a short reply."""
    log_path = tmp_path / "procmon.calls"
    path = tmp_path / "procmon"
    path.write_text(_FAKE_PROCMON.format(log=log_path), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return FakeProcmon(path, log_path)


class WsgiCapture:
    """Minimal WSGI `start_response` that records what a FastCGI server would send."""

    def __init__(self) -> None:
        self.status: Optional[str] = None
        self.headers: List[Tuple[str, str]] = []
        self.chunks: List[bytes] = []
        self.start_calls = 0

    def __call__(self, status: str, headers: List[Tuple[str, str]], exc_info: Any = None) -> Callable[[bytes], None]:
        self.start_calls += 1
        self.status = status
        self.headers = list(headers)
        return self.chunks.append

    @property
    def status_code(self) -> Optional[int]:
        return int(self.status.split(" ", 1)[0]) if self.status else None

    @property
    def content_type(self) -> Optional[str]:
        for k, v in self.headers:
            if k.lower() == "content-type":
                return v
        return None

    @property
    def body(self) -> bytes:
        return b"".join(self.chunks)

    def json(self) -> Dict[str, Any]:
        return json.loads(self.body.decode("utf-8"))


@pytest.fixture
def wsgi_capture() -> Callable[[], WsgiCapture]:
    return WsgiCapture
