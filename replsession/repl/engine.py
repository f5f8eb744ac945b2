"""Capability interface between a session and its interpreter engine.

The session pipeline never talks to a concrete language runtime. It drives an
``Engine`` adapter that can interpret one statement, resolve bound names,
decompose values and suggest completions. Tests substitute a scripted fake.
"""

import abc
import contextlib
import enum
from typing import Any, ContextManager, List

from . import values


class InterpretResult(enum.Enum):
    SUCCESS = "success"
    INCOMPLETE = "incomplete"
    ERROR = "error"


class InterpreterAborted(Exception):
    """Raised by an engine when the environment cannot continue (e.g. shutdown)."""


class SessionNotStarted(RuntimeError):
    """Raised when a statement is submitted before the engine was started."""


class DistributedCollection(abc.ABC):
    """A lazily evaluated collection whose elements live outside the session.

    Magic commands only ever materialize a bounded sample through ``take``.
    Third-party handles can be registered as virtual subclasses, e.g.
    ``DistributedCollection.register(pyspark.RDD)``.
    """

    @abc.abstractmethod
    def take(self, n: int) -> List[Any]:
        ...


class Engine(abc.ABC):
    """Interpreter engine adapter used by ``Interpreter``.

    ``interpret`` writes any text it produces to ``sys.stdout`` or
    ``sys.stderr``; the caller captures and drains that output after every
    call. Engines are not reentrant: a session never calls into its engine
    from two threads at once.
    """

    kind = "generic"

    @abc.abstractmethod
    def start(self) -> None:
        ...

    @abc.abstractmethod
    def is_started(self) -> bool:
        ...

    @abc.abstractmethod
    def interpret(self, code: str) -> InterpretResult:
        """Run one statement; raise ``InterpreterAborted`` if the environment died."""

    @abc.abstractmethod
    def lookup(self, name: str) -> Any:
        """Return the value bound to ``name`` or raise ``KeyError``."""

    @abc.abstractmethod
    def bind(self, name: str, value: Any) -> None:
        ...

    def close(self) -> None:
        pass

    def complete_candidates(self, code: str, cursor: int) -> List[str]:
        return []

    def decompose(self, value: Any) -> values.StructuredValue:
        return values.decompose(value)

    def wrap_block(self, code: str) -> str:
        """Return ``code`` enclosed in an explicit block for the end-of-input retry.

        The retry runs when the last line of a submission is still incomplete.
        If the wrapped code succeeds and prints text, that text is kept in the
        submission's result; a silent success keeps the result unchanged.
        """
        return "{\n%s\n}" % code

    def context(self) -> ContextManager[Any]:
        """Guard for ambient state borrowed while a submission runs."""
        return contextlib.nullcontext()
