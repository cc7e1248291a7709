from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from .config import DEFAULT_CHUNK_SIZE
from .errors import ExecutionFailure
from .response import JSON_CONTENT_TYPE, TEXT_CONTENT_TYPE, ResponseWriter

if TYPE_CHECKING:
    from .actions import CommandLine


logger = logging.getLogger(__name__)


class CommandExecutor:
    """Run a control-tool command and relay its stdout to the response.

    Output is copied in `chunk_size` pieces as the child produces it, so a long
    process list is never held in memory. There is no timeout: a child that
    never closes stdout blocks the gateway.
    """

    def __init__(self, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._chunk_size = max(1, int(chunk_size))

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def execute(self, command: "CommandLine", response: ResponseWriter) -> int:
        logger.debug("Executing %s", command.render())
        try:
            proc = subprocess.Popen(
                list(command.argv),
                # The FastCGI listen socket may sit on fd 0; never hand it to the child.
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Cannot execute %s: %s", command.render(), e)
            raise ExecutionFailure(f"Cannot execute {command.argv[0]}: {e}") from e

        response.start(200, JSON_CONTENT_TYPE if command.json else TEXT_CONTENT_TYPE)
        relayed = 0
        try:
            while True:
                chunk = proc.stdout.read1(self._chunk_size)
                if not chunk:
                    break
                response.write(chunk)
                relayed += len(chunk)
        finally:
            if proc.stdout is not None:
                proc.stdout.close()
            returncode = proc.wait()

        if returncode != 0:
            logger.warning("%s exited with status %s", command.render(), returncode)
        logger.debug("Relayed %d bytes from %s", relayed, command.argv[0])
        return returncode
