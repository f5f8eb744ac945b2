"""Statement execution pipeline of an interactive session.

``Interpreter.execute`` takes the raw text of one submission and turns it into
a single ``ExecutionResponse``:

- the text is trimmed and split on newlines, and lines are run one at a time
- a line the engine reports as incomplete is joined with the next line and
  retried, so multi-line statements reach the engine as one block
- ``%magic`` lines are handled by ``MagicDispatcher`` and never reach the engine
- plain-text outputs of consecutive lines are concatenated (``merge_results``)
- the first error or abort stops the submission and is returned as-is
- engine failures are classified from the captured console text
  (``parse_error``)

Lines run strictly in order; later lines may use names bound by earlier ones.
"""

import collections
import io
import logging
import re
import threading
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..config import SessionSettings
from . import capture
from .engine import Engine, InterpretResult, InterpreterAborted, SessionNotStarted
from .magic import MagicDispatcher, parse_magic
from .responses import Aborted, Error, ExecutionResponse, Incomplete, Success

logger = logging.getLogger(__name__)

# Split after each newline so traceback lines keep their line breaks
KEEP_NEWLINE_REGEX = re.compile(r"(?<=\n)")


def parse_error(output: str) -> Tuple[str, List[str]]:
    """Split captured console text into an error name and traceback lines.

    The first line (trimmed) names the error, e.g.
    ``ZeroDivisionError: division by zero`` or
    ``<console>:27: error: type mismatch;``. The remaining lines are the
    traceback, each keeping its trailing newline.
    """
    lines = [line for line in KEEP_NEWLINE_REGEX.split(output) if line]
    if not lines:
        return "unknown error", []
    return lines[0].strip(), lines[1:]


def merge_results(last: ExecutionResponse, current: Success) -> Success:
    """Fold the result of the latest line into the submission's result.

    Only two plain-text results are merged. A magic result (no ``text/plain``
    entry) on either side means ``current`` replaces ``last``.
    """
    if not isinstance(last, Success):
        return current
    last_text = last.text()
    current_text = current.text()
    if last_text is None or current_text is None:
        return current
    if last_text and current_text:
        return Success.plain(last_text + current_text)
    if last_text:
        return Success.plain(last_text)
    if current_text:
        return Success.plain(current_text)
    return current


class Interpreter:
    """One interactive session on top of an ``Engine`` adapter.

    Console output written during a line is captured into a session-scoped
    buffer that is drained after every line. ``execute`` calls are serialized
    so the engine is never entered concurrently.

    Args:
        engine: the interpreter engine adapter.
        settings: session tunables; defaults come from the environment.
    """

    def __init__(self, engine: Engine, settings: Optional[SessionSettings] = None):
        self.engine = engine
        self.settings = settings if settings is not None else SessionSettings.from_env()
        self.magics = MagicDispatcher(engine, sample_limit=self.settings.sample_limit)
        self._output = io.StringIO()
        self._lock = threading.Lock()

    @property
    def kind(self) -> str:
        return self.engine.kind

    def start(self, bindings: Optional[Dict[str, Any]] = None) -> "Interpreter":
        """Start the engine, bind ``bindings`` and run the startup statements."""
        self.engine.start()
        for name, value in (bindings or {}).items():
            self.engine.bind(name, value)
        for statement in self.settings.startup_statements:
            result = self.execute(statement)
            logger.info("startup statement %r finished with status %s", statement, result.status)
        logger.info("%s session started", self.kind)
        return self

    def close(self) -> None:
        self.engine.close()
        self._read_output()
        logger.info("%s session closed", self.kind)

    def complete(self, code: str, cursor: int) -> List[str]:
        return list(self.engine.complete_candidates(code, cursor))

    def execute(self, code: str) -> ExecutionResponse:
        """Run one submission and return its merged response."""
        if not self.engine.is_started():
            raise SessionNotStarted("engine has not been started")
        with self._lock, self.engine.context():
            return self._execute_lines(collections.deque(code.strip().split("\n")))

    def _execute_lines(self, lines: Deque[str]) -> ExecutionResponse:
        merged: ExecutionResponse = Success.plain("")
        while lines:
            head = lines.popleft()
            result = self._execute_line(head)

            if isinstance(result, Incomplete):
                if lines:
                    lines.appendleft(head + "\n" + lines.popleft())
                    continue
                return self._retry_as_block(head, result, merged)

            if isinstance(result, (Error, Aborted)):
                return result

            merged = merge_results(merged, result)
        return merged

    def _retry_as_block(
        self, code: str, incomplete: Incomplete, merged: ExecutionResponse
    ) -> ExecutionResponse:
        # A trailing comment alone is incomplete to some engines. Wrapped in
        # a block it succeeds, while a truly unfinished statement does not.
        retry = self._execute_line(self.engine.wrap_block(code))
        if isinstance(retry, (Incomplete, Error)):
            return incomplete
        if isinstance(retry, Aborted):
            return retry
        if retry.text():
            return merge_results(merged, retry)
        return merged

    def _execute_line(self, code: str) -> ExecutionResponse:
        command = parse_magic(code)
        if command is not None:
            return self.magics.dispatch(command)

        logger.debug("interpreting %r", code)
        try:
            with capture.redirect_output(self._output):
                result = self.engine.interpret(code)
        except InterpreterAborted as e:
            self._read_output()
            return Aborted(message=str(e))
        except Exception as e:
            self._read_output()
            logger.exception("%s engine failed while interpreting a statement", self.kind)
            return Aborted(message=f"{type(e).__name__}: {e}")

        output = self._read_output()
        if result is InterpretResult.SUCCESS:
            return Success.plain(output)
        if result is InterpretResult.INCOMPLETE:
            return Incomplete()
        ename, traceback = parse_error(output)
        return Error(kind="Error", name=ename, traceback=traceback)

    def _read_output(self) -> str:
        output = self._output.getvalue()
        self._output.seek(0)
        self._output.truncate(0)
        return output
