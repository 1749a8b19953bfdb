"""
Field optimization.

Computes which sub-fields of each data key the active rule set needs, so a
fetcher can load only those. When the requirement for an already fetched key
grows, the key is marked for re-fetching. Memoized rule outcomes are left
untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from verifier.rules.graph import dependency_closure
from verifier.rules.registry import VerifierRegistry

if TYPE_CHECKING:
    from .context import VerificationContext

logger = logging.getLogger(__name__)

WILDCARD = "*"


def compute_field_requirements(
    registry: VerifierRegistry, names: Iterable[str]
) -> dict[str, list[str]]:
    """Merge the declared fields of every rule reachable from ``names``.

    Returns:
        Data key -> ordered union of required sub-fields
    """
    requirements: dict[str, list[str]] = {}
    for rule_name in dependency_closure(registry.rules, names):
        for key, fields in registry.rules[rule_name].fields.items():
            merged = requirements.setdefault(key, [])
            merged.extend(f for f in fields if f not in merged)
    return requirements


def covers(available: list[str], required: list[str]) -> bool:
    """Whether a recorded field set already satisfies a requirement."""
    if WILDCARD in available:
        return True
    return set(required) <= set(available)


def apply_field_requirements(
    context: VerificationContext, requirements: dict[str, list[str]]
) -> list[str]:
    """Install requirements on a context, invalidating widened keys.

    Returns:
        Keys whose fetched flag was cleared
    """
    invalidated = []
    for key, required in requirements.items():
        available = context.available_fields.get(key)
        if available is not None and not covers(available, required):
            if context.fetched.get(key):
                context.fetched[key] = False
                invalidated.append(key)

    if invalidated:
        logger.debug("Field requirements widened, re-fetching: %s", invalidated)

    # Requirements of rules verified earlier stay, so a re-fetch keeps them
    for key, required in requirements.items():
        merged = context.fields.setdefault(key, [])
        merged.extend(f for f in required if f not in merged)
    return invalidated
