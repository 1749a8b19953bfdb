"""
Dependency graph checks for registered rules.

Walks the ``uses`` edges of every rule depth-first, keeping the current
root-to-node chain on an explicit stack so that a cycle is reported with
its exact path. Produces a post-order listing in which every rule appears
after all rules it uses.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from verifier.core.errors import CycleError, UnknownRuleError
from .schemas import Rule

logger = logging.getLogger(__name__)


def validate_graph(rules: Mapping[str, Rule]) -> list[str]:
    """Check the rule graph for cycles and return a topological order.

    Args:
        rules: Registered rules keyed by name

    Returns:
        Rule names, dependencies first

    Raises:
        CycleError: If a rule depends on itself through ``uses``
        UnknownRuleError: If a rule uses a name that is not registered
    """
    order: list[str] = []
    done: set[str] = set()
    ancestors: list[str] = []

    def visit(name: str) -> None:
        if name in done:
            return
        ancestors.append(name)
        for dep in rules[name].uses:
            if dep in ancestors:
                raise CycleError(
                    f'Circular dependency "{dep}" is required by "{name}": '
                    + " -> ".join(ancestors),
                    path=ancestors + [dep],
                    kind="graph",
                )
            if dep in done:
                continue
            if dep not in rules:
                raise UnknownRuleError(dep, required_by=name)
            visit(dep)
        order.append(name)
        done.add(name)
        ancestors.pop()

    for name in rules:
        visit(name)

    logger.debug("Rule graph order: %s", order)
    return order


def dependency_closure(rules: Mapping[str, Rule], names: Iterable[str]) -> list[str]:
    """Return the requested rules plus everything they use, transitively.

    Unknown names are skipped; the engine reports them when it runs.
    """
    seen: dict[str, None] = {}
    pending = list(names)

    while pending:
        name = pending.pop(0)
        if name in seen or name not in rules:
            continue
        seen[name] = None
        pending.extend(dep for dep in rules[name].uses if dep not in seen)

    return list(seen)
