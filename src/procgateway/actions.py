from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Tuple

from .config import DEFAULT_CONTROL_TOOL, MAX_COMMAND_LENGTH, GatewayConfig
from .errors import ValidationFailure
from .validation import validate_process_name


@dataclass(frozen=True)
class CommandLine:
    argv: Tuple[str, ...]
    json: bool = False

    def render(self) -> str:
        return " ".join(shlex.quote(a) for a in self.argv)


class Action(ABC):
    """One query tag (`start=`, `list`, ...) mapped onto a control-tool invocation."""

    tag: str = ""

    def __init__(self, *, control_tool: str = DEFAULT_CONTROL_TOOL) -> None:
        self._control_tool = str(control_tool)

    @property
    def control_tool(self) -> str:
        return self._control_tool

    @abstractmethod
    def command(self, subject: str) -> CommandLine:
        """Build the control-tool command for `subject`; raise ValidationFailure if unsafe."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tag={self.tag!r}, control_tool={self._control_tool!r})"


class _SubjectAction(Action):
    flag: str = ""

    def command(self, subject: str) -> CommandLine:
        name = validate_process_name(subject)
        if not name:
            raise ValidationFailure(f"Missing process name for {self.tag!r}")
        cmd = CommandLine(argv=(self._control_tool, self.flag, name))
        if len(cmd.render()) > MAX_COMMAND_LENGTH:
            raise ValidationFailure(f"Command line for {self.tag!r} exceeds {MAX_COMMAND_LENGTH} bytes")
        return cmd


class StartAction(_SubjectAction):
    tag = "start="
    flag = "-s"


class StopAction(_SubjectAction):
    tag = "stop="
    flag = "-k"


class RestartAction(_SubjectAction):
    tag = "restart="
    flag = "-r"


class ListAction(Action):
    tag = "list"

    def command(self, subject: str) -> CommandLine:
        # Anything after the tag (`list`, `listall`, `list=x`) is ignored.
        return CommandLine(argv=(self._control_tool, "-o", "json"), json=True)


def default_actions(config: GatewayConfig) -> Dict[str, Action]:
    """Ordered tag table; the first tag that prefixes a token wins."""
    actions = (
        StartAction(control_tool=config.control_tool),
        StopAction(control_tool=config.control_tool),
        RestartAction(control_tool=config.control_tool),
        ListAction(control_tool=config.control_tool),
    )
    return {a.tag: a for a in actions}
