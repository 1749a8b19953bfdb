"""Pydantic models for rule definitions."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator


def always_true(context: Any) -> bool:
    """Default predicate for rules that only group other rules."""
    return True


def dedupe(names: list[str]) -> list[str]:
    """Drop repeated names, keeping first occurrence order."""
    return list(dict.fromkeys(names))


# =============================================================================
# Declarative Conditions
# =============================================================================


class ConditionSpec(BaseModel):
    """A single condition specification."""

    field: str
    operator: str = "=="
    value: Any = None


class ConditionGroupSpec(BaseModel):
    """Grouped conditions (all/any)."""

    all: list[ConditionSpec | ConditionGroupSpec] | None = None
    any: list[ConditionSpec | ConditionGroupSpec] | None = None


# Enable forward references
ConditionGroupSpec.model_rebuild()


# =============================================================================
# Rules
# =============================================================================


class RuleDefinition(BaseModel):
    """What a caller passes when registering a rule."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    predicate: Callable[..., Any] | None = None
    implies: list[str] = Field(default_factory=list)
    uses: list[str] = Field(default_factory=list)
    implied_for: list[str] = Field(default_factory=list)
    fields: dict[str, list[str]] = Field(default_factory=dict)
    description: str | None = None


class Rule(BaseModel):
    """A registered rule.

    Rules are immutable. ``uses`` always contains every entry of
    ``implies``; a later rule declaring this one in its ``implied_for``
    replaces it in the registry with a copy carrying the extra edge.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    predicate: Callable[..., Any] = always_true
    implies: tuple[str, ...] = ()
    uses: tuple[str, ...] = ()
    implied_for: tuple[str, ...] = ()
    fields: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_edges(cls, data: Any) -> Any:
        if isinstance(data, dict):
            implies = dedupe(list(data.get("implies") or []))
            uses = dedupe(list(data.get("uses") or []) + implies)
            data = {**data, "implies": implies, "uses": uses}
        return data

    @classmethod
    def from_definition(cls, name: str, definition: RuleDefinition) -> Rule:
        """Build a rule from a definition, filling defaults."""
        return cls(
            name=name,
            predicate=definition.predicate or always_true,
            implies=definition.implies,
            uses=definition.uses,
            implied_for=definition.implied_for,
            fields=definition.fields,
            description=definition.description,
        )

    def with_implied(self, name: str) -> Rule:
        """Return a copy with ``name`` added as an implied rule.

        Returns the rule itself when it already uses ``name``.
        """
        if name in self.uses:
            return self
        return self.model_copy(
            update={"implies": self.implies + (name,), "uses": self.uses + (name,)}
        )
