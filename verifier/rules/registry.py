"""Rule, fetcher and default value registry.

A registry is populated once at startup, then finalized. Finalizing runs the
graph check and freezes the registry; contexts can only be created on a
finalized registry.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping

from verifier.core.errors import (
    DuplicateRuleError,
    RegistryFrozenError,
    UnknownRuleError,
)
from .graph import validate_graph
from .schemas import Rule, RuleDefinition

logger = logging.getLogger(__name__)

Fetcher = Callable[[Any, list[str]], Any]


class VerifierRegistry:
    """Holds rule definitions, fetchers and default values."""

    def __init__(self):
        self._rules: dict[str, Rule] = {}
        self._fetchers: dict[str, Fetcher] = {}
        self._defaults: dict[str, Any] = {}
        self._sorted: list[str] = []
        self._finalized = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_rule(
        self, name: str, definition: RuleDefinition | Mapping[str, Any] | None = None
    ) -> Rule:
        """Register one rule.

        Args:
            name: Unique rule name
            definition: A RuleDefinition or a mapping with the same keys

        Returns:
            The registered Rule

        Raises:
            DuplicateRuleError: If the name is already registered
            RegistryFrozenError: If the registry was finalized
        """
        self._check_mutable()
        if name in self._rules:
            raise DuplicateRuleError(name)

        if definition is None:
            definition = RuleDefinition()
        elif not isinstance(definition, RuleDefinition):
            definition = RuleDefinition.model_validate(dict(definition))

        rule = Rule.from_definition(name, definition)
        self._rules[name] = rule

        # Back-edges: this rule becomes implied by each target
        for target in rule.implied_for:
            target_rule = self._rules.get(target)
            if target_rule is None:
                logger.warning(
                    "Verifier %s is implied for unknown verifier %s, skipping",
                    name,
                    target,
                )
                continue
            self._rules[target] = target_rule.with_implied(name)

        logger.debug("Registered verifier %s (uses: %s)", name, rule.uses)
        return self._rules[name]

    def register_rules(
        self, rules: Mapping[str, RuleDefinition | Mapping[str, Any]]
    ) -> list[Rule]:
        """Register a mapping of rule name to definition."""
        return [self.register_rule(name, definition) for name, definition in rules.items()]

    def register_fetcher(self, name: str, fetcher: Fetcher) -> None:
        """Register the fetcher for a data key.

        The fetcher is called as ``fetcher(context, fields)``.
        """
        self._check_mutable()
        if not callable(fetcher):
            raise TypeError(f"Fetcher for {name} is not callable")
        self._fetchers[name] = fetcher

    def register_fetchers(self, fetchers: Mapping[str, Fetcher]) -> None:
        for name, fetcher in fetchers.items():
            self.register_fetcher(name, fetcher)

    def set_default_value(self, name: str, value: Any) -> None:
        """Set the default for a data key (literal or ``producer(context)``)."""
        self._check_mutable()
        self._defaults[name] = value

    def set_default_values(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.set_default_value(name, value)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def finalize(self) -> list[str]:
        """Validate the rule graph and freeze the registry.

        Calling it again on a finalized registry returns the stored order.

        Returns:
            Rule names in dependency order

        Raises:
            CycleError: If the rules form a cycle through ``uses``
            UnknownRuleError: If a rule uses an unregistered rule
        """
        if self._finalized:
            return list(self._sorted)

        self._sorted = validate_graph(self._rules)
        self._finalized = True
        logger.info(
            "Verifier registry finalized: %d rules, %d fetchers, %d defaults",
            len(self._rules),
            len(self._fetchers),
            len(self._defaults),
        )
        return list(self._sorted)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def _check_mutable(self) -> None:
        if self._finalized:
            raise RegistryFrozenError("Verifier registry is finalized")

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def rules(self) -> Mapping[str, Rule]:
        """Read-only view of the registered rules."""
        return MappingProxyType(self._rules)

    @property
    def sorted_rules(self) -> list[str]:
        """Rule names in dependency order (empty until finalized)."""
        return list(self._sorted)

    def has_rule(self, name: str) -> bool:
        return name in self._rules

    def get_rule(self, name: str) -> Rule:
        """Get a rule by name.

        Raises:
            UnknownRuleError: If no rule has that name
        """
        rule = self._rules.get(name)
        if rule is None:
            raise UnknownRuleError(name)
        return rule

    def has_fetcher(self, name: str) -> bool:
        return name in self._fetchers

    def get_fetcher(self, name: str) -> Fetcher | None:
        return self._fetchers.get(name)

    def has_default(self, name: str) -> bool:
        return name in self._defaults

    def get_default(self, name: str) -> Any:
        return self._defaults.get(name)
