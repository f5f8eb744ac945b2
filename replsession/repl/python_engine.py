"""In-process Python engine with interactive-console semantics.

Statements are compiled in ``single`` mode with ``codeop``, the way the
standard interactive console does it:

- an open compound statement (``def f():``, an unclosed bracket, ...) is
  reported as incomplete until a blank line closes it
- expression statements echo ``repr(value)`` and bind it to ``_``
- exceptions are written to ``sys.stdout`` with the exception line first,
  followed by the traceback frames of the user code

Names persist across statements in one namespace dict for the lifetime of
the session.
"""

import codeop
import re
import rlcompleter
import sys
import traceback
from typing import Any, ContextManager, Dict, List, Optional

from . import capture
from .engine import Engine, InterpretResult, InterpreterAborted

# The dotted name immediately before the cursor
_COMPLETION_TOKEN = re.compile(r"[\w.]*$")


class PythonEngine(Engine):
    """Run Python source in a persistent namespace.

    Args:
        filename: name used for compiled code in tracebacks.
    """

    kind = "python"

    def __init__(self, filename: str = "<console>"):
        self.filename = filename
        self.namespace: Optional[Dict[str, Any]] = None
        self._compile = codeop.CommandCompiler()

    def start(self) -> None:
        self.namespace = {"__name__": "__console__", "__doc__": None}

    def is_started(self) -> bool:
        return self.namespace is not None

    def close(self) -> None:
        self.namespace = None

    def interpret(self, code: str) -> InterpretResult:
        try:
            compiled = self._compile(code, self.filename, "single")
        except (OverflowError, SyntaxError, ValueError):
            self._show_syntax_error()
            return InterpretResult.ERROR
        if compiled is None:
            return InterpretResult.INCOMPLETE

        try:
            exec(compiled, self.namespace)
        except SystemExit as e:
            self.namespace = None
            raise InterpreterAborted(f"session exited with status {e.code}") from e
        except Exception:
            self._show_traceback()
            return InterpretResult.ERROR
        return InterpretResult.SUCCESS

    def lookup(self, name: str) -> Any:
        return self.namespace[name]

    def bind(self, name: str, value: Any) -> None:
        self.namespace[name] = value

    def wrap_block(self, code: str) -> str:
        # a blank line closes any open block in interactive mode
        return code + "\n"

    def complete_candidates(self, code: str, cursor: int) -> List[str]:
        text = _COMPLETION_TOKEN.search(code[:cursor]).group(0)
        if not text:
            return []
        completer = rlcompleter.Completer(self.namespace)
        candidates = []
        state = 0
        while True:
            candidate = completer.complete(text, state)
            if candidate is None:
                return candidates
            candidates.append(candidate)
            state += 1

    def context(self) -> ContextManager[None]:
        # Expression echo goes through our hook for the whole submission
        return capture.display_with(self._displayhook)

    def _displayhook(self, value: Any) -> None:
        if value is None:
            return
        self.namespace["_"] = value
        sys.stdout.write(repr(value) + "\n")

    def _show_syntax_error(self) -> None:
        etype, value, _ = sys.exc_info()
        lines = traceback.format_exception_only(etype, value)
        sys.stdout.write(lines[-1])
        sys.stdout.writelines(lines[:-1])

    def _show_traceback(self) -> None:
        etype, value, tb = sys.exc_info()
        sys.stdout.writelines(traceback.format_exception_only(etype, value))
        # skip the frame of interpret() itself
        sys.stdout.writelines(traceback.format_tb(tb.tb_next))
