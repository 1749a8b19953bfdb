"""Condition evaluation for declarative (YAML) rules."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .schemas import ConditionGroupSpec, ConditionSpec

OPERATORS = ("==", "!=", "in", "not_in", ">", "<", ">=", "<=", "exists")


def resolve_field(context: Any, path: str, raise_missing: bool | None = None) -> Any:
    """Resolve a dotted field path against a verification context.

    The first segment is a data key (fetched on demand), the remaining
    segments index into mappings or attributes.
    """
    key, *rest = path.split(".")
    value = context.get(key, raise_missing=raise_missing)
    for part in rest:
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def evaluate_condition(context: Any, cond: ConditionSpec) -> bool:
    """Evaluate a single condition."""
    op = cond.operator
    expected = cond.value

    if op == "exists":
        # value: false inverts the check
        actual = resolve_field(context, cond.field, raise_missing=False)
        wanted = True if expected is None else bool(expected)
        return (actual is not None) is wanted

    actual = resolve_field(context, cond.field)

    if op == "==":
        return actual == expected
    if op == "!=":
        return actual != expected
    if op == "in":
        return isinstance(expected, list) and actual in expected
    if op == "not_in":
        return not isinstance(expected, list) or actual not in expected
    if op == ">":
        return actual is not None and actual > expected
    if op == "<":
        return actual is not None and actual < expected
    if op == ">=":
        return actual is not None and actual >= expected
    if op == "<=":
        return actual is not None and actual <= expected

    raise ValueError(f"Unknown operator: {op}")


def evaluate_condition_group(context: Any, group: ConditionGroupSpec) -> bool:
    """Evaluate a condition group (all/any). An empty group holds."""
    if group.all:
        return all(_evaluate_item(context, item) for item in group.all)
    if group.any:
        return any(_evaluate_item(context, item) for item in group.any)
    return True


def _evaluate_item(context: Any, item: ConditionSpec | ConditionGroupSpec) -> bool:
    if isinstance(item, ConditionGroupSpec):
        return evaluate_condition_group(context, item)
    return evaluate_condition(context, item)


class ConditionPredicate:
    """Rule predicate backed by a condition group."""

    def __init__(self, group: ConditionGroupSpec):
        self.group = group

    def __call__(self, context: Any) -> bool:
        return evaluate_condition_group(context, self.group)

    def __repr__(self) -> str:
        return f"ConditionPredicate({self.group.model_dump(exclude_none=True)})"
