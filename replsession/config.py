"""Session settings.

Defaults can be overridden from the environment (``REPLSESSION_SAMPLE_LIMIT``)
or from a caller-supplied mapping. Callers cannot raise the sampling cap above
the server-side ceiling; see ``cap_settings``.
"""

import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# Upper bound for any requested sampling cap
MAX_SAMPLE_LIMIT = 1000


class SessionSettings(BaseModel):
    """Tunables for one session.

    Fields:
        sample_limit: elements taken from a distributed collection before a
            magic command decomposes it.
        startup_statements: statements executed right after the engine starts.
    """

    sample_limit: int = Field(default=10, ge=1)
    startup_statements: List[str] = Field(default_factory=list)

    @classmethod
    def from_env(cls) -> "SessionSettings":
        raw = os.environ.get("REPLSESSION_SAMPLE_LIMIT")
        if raw:
            return cls(sample_limit=min(int(raw), MAX_SAMPLE_LIMIT))
        return cls()


def cap_settings(requested: Optional[Dict[str, Any]]) -> SessionSettings:
    """Build settings from an untrusted mapping, clamping the sampling cap.

    Unknown keys are ignored. A missing ``sample_limit`` falls back to the
    environment/default value.
    """
    defaults = SessionSettings.from_env()
    if not requested:
        return defaults
    sample_limit = min(int(requested.get("sample_limit", defaults.sample_limit)), MAX_SAMPLE_LIMIT)
    return SessionSettings(
        sample_limit=sample_limit,
        startup_statements=list(requested.get("startup_statements", defaults.startup_statements)),
    )
