"""Magic commands: ``%name argument`` directives.

A magic line is not handed to the engine. Instead the argument names a bound
value which is re-rendered:

- ``%json name``: the value as a JSON document
- ``%table name``: the value as a table with an inferred column schema

Distributed collections are sampled with ``take(sample_limit)`` before they
are decomposed so a magic never materializes a whole dataset.
"""

import logging
import re
from typing import Any, NamedTuple, Optional

from .engine import DistributedCollection, Engine
from .responses import APPLICATION_JSON, Error, ExecutionResponse, Success
from .tables import table_response
from .values import StructuredValue

logger = logging.getLogger(__name__)

MAGIC_REGEX = re.compile(r"%(\w+)\W*(.*)")

DEFAULT_SAMPLE_LIMIT = 10


def _conversion_error() -> Error:
    return Error(kind="ValueError", name="Failed to convert value into a JSON value")


class MagicCommand(NamedTuple):
    name: str
    argument: str


def parse_magic(line: str) -> Optional[MagicCommand]:
    """Return the magic command on ``line`` or None for ordinary source."""
    match = MAGIC_REGEX.fullmatch(line)
    if match is None:
        return None
    return MagicCommand(match.group(1), match.group(2).strip())


class _Unbound(Exception):
    pass


class MagicDispatcher:
    """Route magic commands to their handlers.

    Args:
        engine: engine used to resolve and decompose bound values.
        sample_limit: number of elements taken from a distributed collection.
    """

    def __init__(self, engine: Engine, sample_limit: int = DEFAULT_SAMPLE_LIMIT):
        self.engine = engine
        self.sample_limit = sample_limit
        self.handlers = {
            "json": self._json_magic,
            "table": self._table_magic,
        }

    def dispatch(self, command: MagicCommand) -> ExecutionResponse:
        handler = self.handlers.get(command.name)
        if handler is None:
            return Error(kind="UnknownMagic", name=f"Unknown magic command {command.name}")
        logger.debug("magic %%%s %s", command.name, command.argument)
        try:
            return handler(command.argument)
        except _Unbound:
            return Error(kind="NameError", name=f"Value {command.argument} does not exist")

    def _resolve(self, name: str) -> Any:
        try:
            return self.engine.lookup(name)
        except KeyError:
            raise _Unbound(name) from None

    def _structured(self, name: str) -> Optional[StructuredValue]:
        """Decompose the value bound to ``name``; None if that fails."""
        value = self._resolve(name)
        try:
            if isinstance(value, DistributedCollection):
                value = list(value.take(self.sample_limit))
            return self.engine.decompose(value)
        except Exception:
            logger.debug("decomposition of %s failed", name, exc_info=True)
            return None

    def _json_magic(self, name: str) -> ExecutionResponse:
        structured = self._structured(name)
        if structured is None:
            return _conversion_error()
        return Success(payload={APPLICATION_JSON: structured})

    def _table_magic(self, name: str) -> ExecutionResponse:
        structured = self._structured(name)
        if structured is None:
            return _conversion_error()
        return table_response(structured)
