"""Query tokenizer and dispatcher.

A query is a `&`-separated list of action tokens, e.g. `start=web&stop=db&list`.
Each token is matched against an ordered tag table by literal prefix; the text
after the tag is the action's subject.

Multi-action semantics:
- every matching token is acted on, left to right, even after an earlier token failed;
- the response status is decided before any command output reaches the client:
  if any token fails validation the whole query is answered with 400, and the
  commands of the valid tokens still run with their output discarded;
- an action that cannot be executed before any output was relayed likewise
  sends the output of the remaining actions to the discard sink;
- otherwise all command output is concatenated into one response whose header
  is committed by the first command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .actions import Action, CommandLine
from .errors import ExecutionFailure, GatewayError, ValidationFailure
from .executor import CommandExecutor
from .response import DiscardResponseWriter, ResponseWriter


logger = logging.getLogger(__name__)


def tokenize_query(query: str) -> Iterator[str]:
    """Yield the non-empty `&`-separated tokens of `query` in order."""
    for token in str(query or "").split("&"):
        if token:
            yield token


@dataclass
class DispatchOutcome:
    planned: List[CommandLine] = field(default_factory=list)
    executed: List[CommandLine] = field(default_factory=list)
    errors: List[GatewayError] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> Optional[GatewayError]:
        # Like the C gateway, the last failing token determines the reported error.
        return self.errors[-1] if self.errors else None


class QueryDispatcher:
    def __init__(self, *, actions: Mapping[str, Action], executor: CommandExecutor) -> None:
        self._actions: Dict[str, Action] = dict(actions)
        self._executor = executor

    @property
    def actions(self) -> Dict[str, Action]:
        return dict(self._actions)

    def match(self, token: str) -> Optional[Tuple[str, Action]]:
        for tag, action in self._actions.items():
            if token.startswith(tag):
                return tag, action
        return None

    def dispatch(self, query: str, response: ResponseWriter) -> DispatchOutcome:
        outcome = DispatchOutcome()
        planned = outcome.planned

        for token in tokenize_query(query):
            found = self.match(token)
            if found is None:
                logger.debug("Ignoring unrecognized query token %r", token)
                outcome.ignored.append(token)
                continue
            tag, action = found
            try:
                cmd = action.command(token[len(tag):])
            except ValidationFailure as e:
                logger.info("Rejected %r: %s", token, e)
                outcome.errors.append(e)
                continue
            planned.append(cmd)

        sink = response
        if not outcome.ok and planned:
            logger.info("Query has invalid actions; running %d valid action(s) without relaying output", len(planned))
            sink = DiscardResponseWriter()

        for cmd in planned:
            try:
                self._executor.execute(cmd, sink)
            except ExecutionFailure as e:
                outcome.errors.append(e)
                if sink is response and not response.header_sent:
                    # No header yet: keep it that way so the query can still be answered with 400.
                    logger.info("Execution failed before any output; discarding output of remaining actions")
                    sink = DiscardResponseWriter()
                continue
            outcome.executed.append(cmd)

        return outcome
