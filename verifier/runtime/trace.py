"""
Evaluation tracing for verification contexts.

Records, in order, which rules ran with what outcome and which data keys
were fetched or defaulted, so a failed evaluation can be explained after
the fact.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


class TraceStep(BaseModel):
    """A single step in the evaluation trace."""

    kind: Literal["rule", "fetch", "default"]
    """What happened: a rule predicate ran, a fetcher ran, or a default applied."""

    name: str
    """Rule name or data key."""

    result: bool | None = None
    """Rule outcome, or whether the fetch produced a value."""

    depth: int = 0
    """Length of the verify path when the step was recorded."""

    detail: Any = None


class VerificationTrace(BaseModel):
    """Ordered trace of one context's evaluations."""

    started_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    steps: list[TraceStep] = Field(default_factory=list)

    def add_step(
        self,
        kind: str,
        name: str,
        result: bool | None = None,
        depth: int = 0,
        detail: Any = None,
    ) -> TraceStep:
        step = TraceStep(kind=kind, name=name, result=result, depth=depth, detail=detail)
        self.steps.append(step)
        return step

    def rules(self) -> list[str]:
        """Rule names in the order their predicates ran."""
        return [s.name for s in self.steps if s.kind == "rule"]

    def passed(self) -> list[str]:
        return [s.name for s in self.steps if s.kind == "rule" and s.result]

    def failed(self) -> list[str]:
        return [s.name for s in self.steps if s.kind == "rule" and s.result is False]

    def fetched(self) -> list[str]:
        return [s.name for s in self.steps if s.kind == "fetch"]
