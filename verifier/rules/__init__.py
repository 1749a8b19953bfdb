"""Rules domain - registry, graph checks and declarative rule loading."""

from .schemas import (
    ConditionSpec,
    ConditionGroupSpec,
    RuleDefinition,
    Rule,
    always_true,
)
from .graph import validate_graph, dependency_closure
from .registry import VerifierRegistry, Fetcher
from .conditions import (
    ConditionPredicate,
    evaluate_condition,
    evaluate_condition_group,
    resolve_field,
)
from .loader import RuleLoader

__all__ = [
    # Models
    "ConditionSpec",
    "ConditionGroupSpec",
    "RuleDefinition",
    "Rule",
    "always_true",
    # Graph
    "validate_graph",
    "dependency_closure",
    # Registry
    "VerifierRegistry",
    "Fetcher",
    # Conditions
    "ConditionPredicate",
    "evaluate_condition",
    "evaluate_condition_group",
    "resolve_field",
    # Loader
    "RuleLoader",
]
