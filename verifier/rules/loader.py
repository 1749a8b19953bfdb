"""YAML rule loader.

Registers declarative rules whose predicate is a condition group, e.g.::

    - name: is_adult
      implies: [has_profile]
      fields:
        user: [age]
      condition:
        all:
          - field: user.age
            operator: ">="
            value: 18
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from verifier.core.config import get_settings
from .conditions import ConditionPredicate
from .registry import VerifierRegistry
from .schemas import ConditionGroupSpec, ConditionSpec, Rule, RuleDefinition

logger = logging.getLogger(__name__)

RULE_KEYS = ("implies", "uses", "implied_for", "fields", "description")


class RuleLoader:
    """Loads YAML rule files into a registry.

    Without an explicit ``rules_dir`` the ``rules_dir`` setting is used.
    """

    def __init__(self, registry: VerifierRegistry, rules_dir: str | Path | None = None):
        self.registry = registry
        if rules_dir is None:
            rules_dir = get_settings().rules_dir
        self.rules_dir = Path(rules_dir) if rules_dir else None

    def load_file(self, path: str | Path) -> list[Rule]:
        """Load rules (and defaults) from a single YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rule file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f) or []

        # Handle a list of rules, a single rule, or a rules/defaults document
        if isinstance(content, list):
            items = content
        elif not isinstance(content, dict):
            raise ValueError(f"Unexpected rule file content in {path}")
        elif "name" in content:
            items = [content]
        else:
            items = content.get("rules") or []
            defaults = content.get("defaults") or {}
            if defaults:
                self.registry.set_default_values(defaults)

        rules = []
        for item in items:
            name, definition = self._parse_rule(item)
            rules.append(self.registry.register_rule(name, definition))

        logger.debug("Loaded %d verifiers from %s", len(rules), path)
        return rules

    def load_directory(self, path: str | Path | None = None) -> list[Rule]:
        """Load all YAML rule files from a directory."""
        path = Path(path) if path else self.rules_dir
        if not path:
            raise ValueError("No rules directory specified")
        if not path.exists():
            raise FileNotFoundError(f"Rules directory not found: {path}")

        rules = []
        for yaml_file in sorted(path.glob("*.yaml")):
            # Skip schema file
            if yaml_file.name == "schema.yaml":
                continue
            try:
                rules.extend(self.load_file(yaml_file))
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning("Failed to load %s: %s", yaml_file, e)

        return rules

    def _parse_rule(self, data: dict) -> tuple[str, RuleDefinition]:
        """Parse a rule mapping into a name and definition."""
        if "name" not in data:
            raise ValueError(f"Rule without a name: {data}")

        kwargs: dict[str, Any] = {k: data[k] for k in RULE_KEYS if data.get(k) is not None}

        condition = data.get("condition")
        if condition:
            if isinstance(condition, str):
                group = ConditionGroupSpec(all=[self._parse_string_condition(condition)])
            else:
                group = self._parse_condition_group(condition)
            kwargs["predicate"] = ConditionPredicate(group)

        return data["name"], RuleDefinition(**kwargs)

    def _parse_condition_group(self, data: dict) -> ConditionGroupSpec:
        """Parse a condition group."""
        result = {}

        if "all" in data:
            result["all"] = [self._parse_condition_or_group(c) for c in data["all"]]
        if "any" in data:
            result["any"] = [self._parse_condition_or_group(c) for c in data["any"]]
        if not result and "field" in data:
            result["all"] = [ConditionSpec(**data)]

        return ConditionGroupSpec(**result)

    def _parse_condition_or_group(self, data: dict | str) -> ConditionSpec | ConditionGroupSpec:
        """Parse either a condition or a condition group."""
        if isinstance(data, str):
            return self._parse_string_condition(data)
        if "field" in data:
            return ConditionSpec(**data)
        return self._parse_condition_group(data)

    def _parse_string_condition(self, cond_str: str) -> ConditionSpec:
        """Parse a string condition like 'user.age >= 18'."""
        operators = ["==", "!=", ">=", "<=", ">", "<", " not_in ", " in "]
        for op in operators:
            if op in cond_str:
                parts = cond_str.split(op)
                if len(parts) == 2:
                    field = parts[0].strip()
                    value = self._parse_value(parts[1].strip())
                    return ConditionSpec(field=field, operator=op.strip(), value=value)

        # Default: treat as existence check
        return ConditionSpec(field=cond_str.strip(), operator="exists", value=True)

    def _parse_value(self, value_str: str) -> Any:
        """Parse a string value into appropriate type."""
        # Boolean
        if value_str.lower() == "true":
            return True
        if value_str.lower() == "false":
            return False

        # List
        if value_str.startswith("[") and value_str.endswith("]"):
            inner = value_str[1:-1]
            return [item.strip().strip("'\"") for item in inner.split(",")]

        # Number
        try:
            if "." in value_str:
                return float(value_str)
            return int(value_str)
        except ValueError:
            pass

        # String (remove quotes if present)
        return value_str.strip("'\"")
