"""
Fetch outcomes — the result contract between tasks and the orchestrator.

A fetch phase either produces a success outcome or a failure outcome
carrying the error that ended it.  The orchestrator aggregates both
phases into a ``FetchReport`` before deciding whether to install.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from install_node.core.errors import InstallError


class FetchOutcome(BaseModel):
    """Result of one fetch phase (download + verify + extract + move)."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    label: str
    ok: bool = True
    message: str = ""
    install_path: str | None = None
    duration_ms: int = 0

    # The error that ended a failed phase (not serialized)
    error: InstallError | None = Field(default=None, exclude=True)

    @property
    def failed(self) -> bool:
        return not self.ok

    @classmethod
    def success(cls, label: str, message: str = "", **kwargs: Any) -> FetchOutcome:
        """Create a success outcome."""
        return cls(label=label, ok=True, message=message, **kwargs)

    @classmethod
    def failure(cls, label: str, error: InstallError, **kwargs: Any) -> FetchOutcome:
        """Create a failure outcome from the error that ended the phase."""
        return cls(label=label, ok=False, message=error.message, error=error, **kwargs)


class FetchReport(BaseModel):
    """Both fetch outcomes of a run, foreground first."""

    outcomes: list[FetchOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def failed(self) -> list[FetchOutcome]:
        return [o for o in self.outcomes if o.failed]

    def add(self, outcome: FetchOutcome) -> None:
        self.outcomes.append(outcome)

    def first_error(self) -> InstallError | None:
        """The error to exit with: the foreground failure wins over background."""
        for outcome in self.outcomes:
            if outcome.failed and outcome.error is not None:
                return outcome.error
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "outcomes": [o.model_dump() for o in self.outcomes],
        }
