"""Per-session console capture.

``sys.stdout``, ``sys.stderr`` and ``sys.displayhook`` are process-wide. The
first capture installs routing stand-ins for them once; each one looks up the
buffer (or display hook) of the submission running in the current context
and falls back to the stream or hook it replaced. Sessions running in
different threads therefore never see each other's output.
"""

import contextlib
import sys
import threading
from contextvars import ContextVar
from typing import Any, Callable, Iterator, Optional, TextIO

current_output: ContextVar[Optional[TextIO]] = ContextVar("current_output", default=None)
current_displayhook: ContextVar[Optional[Callable[[Any], None]]] = ContextVar(
    "current_displayhook", default=None
)

_install_lock = threading.Lock()


class RoutingStream:
    """File-like object writing to the current context's buffer."""

    def __init__(self, fallback: TextIO):
        self.fallback = fallback

    def _target(self) -> TextIO:
        buffer = current_output.get()
        return buffer if buffer is not None else self.fallback

    def write(self, text: str) -> int:
        return self._target().write(text)

    def writelines(self, lines) -> None:
        self._target().writelines(lines)

    def flush(self) -> None:
        self._target().flush()

    def isatty(self) -> bool:
        return current_output.get() is None and self.fallback.isatty()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._target(), name)


class RoutingDisplayHook:
    def __init__(self, fallback: Callable[[Any], None]):
        self.fallback = fallback

    def __call__(self, value: Any) -> None:
        hook = current_displayhook.get()
        if hook is None:
            self.fallback(value)
        else:
            hook(value)


def install() -> None:
    """Put the routing objects in place unless they already are."""
    with _install_lock:
        for name in ("stdout", "stderr"):
            stream = getattr(sys, name)
            if not isinstance(stream, RoutingStream):
                setattr(sys, name, RoutingStream(stream))
        if not isinstance(sys.displayhook, RoutingDisplayHook):
            sys.displayhook = RoutingDisplayHook(sys.displayhook)


@contextlib.contextmanager
def redirect_output(buffer: TextIO) -> Iterator[None]:
    """Send console output of the current context into ``buffer``."""
    install()
    token = current_output.set(buffer)
    try:
        yield
    finally:
        current_output.reset(token)


@contextlib.contextmanager
def display_with(hook: Callable[[Any], None]) -> Iterator[None]:
    """Route expression echo of the current context through ``hook``."""
    install()
    token = current_displayhook.set(hook)
    try:
        yield
    finally:
        current_displayhook.reset(token)
