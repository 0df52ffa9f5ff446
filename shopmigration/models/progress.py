"""Continuation token threaded through the invocations of one step."""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class ProgressState(str, Enum):
    """State of a step's continuation token."""
    RUNNING = "running"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class Progress:
    """
    Resumable cursor of a migration step.

    A Progress is a value: every transition returns a new instance, so a
    driver can persist the token between invocations and resubmit it as-is.
    A `running` token returned from an invocation means "call me again".
    """
    step: str = ""
    offset: int = 0
    count: int = 0
    state: ProgressState = ProgressState.RUNNING
    error_message: Optional[str] = None
    carried_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"Progress offset must be >= 0, got {self.offset}")
        if self.count < 0:
            raise ValueError(f"Progress count must be >= 0, got {self.count}")

    @property
    def is_terminal(self) -> bool:
        """Done and error tokens are not re-invoked."""
        return self.state in (ProgressState.DONE, ProgressState.ERROR)

    @property
    def is_done(self) -> bool:
        return self.state == ProgressState.DONE

    @property
    def is_error(self) -> bool:
        return self.state == ProgressState.ERROR

    def advance(self, rows: int = 1) -> "Progress":
        """Move the cursor forward by `rows`."""
        return replace(self, offset=self.offset + rows)

    def with_count(self, count: int) -> "Progress":
        return replace(self, count=count)

    def with_param(self, key: str, value: Any) -> "Progress":
        """Carry an extra parameter forward to later invocations and steps."""
        params = dict(self.carried_params)
        params[key] = value
        return replace(self, carried_params=params)

    def done(self) -> "Progress":
        return replace(self, state=ProgressState.DONE, error_message=None)

    def error(self, message: str) -> "Progress":
        """Stop with an error; the offset is left where it is."""
        return replace(self, state=ProgressState.ERROR, error_message=message)

    def resume(self) -> "Progress":
        """Turn an error token back into a running one at the same offset."""
        return replace(self, state=ProgressState.RUNNING, error_message=None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "step": self.step,
            "offset": self.offset,
            "count": self.count,
            "state": self.state.value,
            "error_message": self.error_message,
            "carried_params": dict(self.carried_params),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Progress":
        """Create from dictionary representation."""
        return cls(
            step=data.get("step", ""),
            offset=int(data.get("offset", 0)),
            count=int(data.get("count", 0)),
            state=ProgressState(data.get("state", ProgressState.RUNNING.value)),
            error_message=data.get("error_message"),
            carried_params=dict(data.get("carried_params") or {}),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> "Progress":
        return cls.from_dict(json.loads(text))
