"""Execution responses returned for one submission.

A submission always ends in exactly one of four shapes:

- ``Success``: an ordered mapping of mime type to value (plain text output,
  a JSON value or a table produced by a magic command)
- ``Error``: a classified failure with an error name and traceback lines
- ``Incomplete``: the engine needs more input to finish the statement
- ``Aborted``: the environment failed in a way the session cannot recover from

Responses are frozen pydantic models. Per-line responses are folded into a new
accumulator instead of being mutated.
"""

from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

TEXT_PLAIN = "text/plain"
APPLICATION_JSON = "application/json"
# Reserved mime for table payloads; clients render it as a grid.
APPLICATION_TABLE_JSON = "application/vnd.livy.table.v1+json"


def _encode(value: Any) -> Any:
    # StructuredValue and Table know their own wire shape
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json()
    return value


class ExecutionResponse(BaseModel):
    """Common base of the four response variants."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: ClassVar[str] = ""

    def to_json(self) -> Dict[str, Any]:
        return {"status": self.status}


class Success(ExecutionResponse):
    payload: Dict[str, Any]

    status: ClassVar[str] = "ok"

    @classmethod
    def plain(cls, text: str) -> "Success":
        return cls(payload={TEXT_PLAIN: text})

    def text(self) -> Optional[str]:
        """Return the ``text/plain`` entry or None when this is a magic result."""
        return self.payload.get(TEXT_PLAIN)

    def to_json(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "data": {mime: _encode(value) for mime, value in self.payload.items()},
        }


class Error(ExecutionResponse):
    """A classified failure.

    Attributes:
        kind: taxonomy label (``NameError``, ``TypeError``, ``Error`` for host
            engine failures, ...)
        name: one-line description; for engine failures the first line of the
            captured console text
        traceback: remaining transcript lines, newlines preserved
    """

    kind: str
    name: str
    traceback: List[str] = Field(default_factory=list)

    status: ClassVar[str] = "error"

    def to_json(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "kind": self.kind,
            "name": self.name,
            "traceback": list(self.traceback),
        }


class Incomplete(ExecutionResponse):
    status: ClassVar[str] = "incomplete"


class Aborted(ExecutionResponse):
    message: str

    status: ClassVar[str] = "aborted"

    def to_json(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}
