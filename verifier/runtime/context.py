"""
Verification context: per-evaluation data, caches and the rule engine.

A context owns all mutable state of one evaluation pipeline:

- ``data``: values set by the caller or produced by fetchers/defaults
- ``fetched``: keys holding a final value (not to be fetched again)
- ``fetch_path`` / ``verify_path``: stacks of in-progress fetches and rule
  verifications, used to detect cycles
- ``verify_results``: memoized rule outcomes, written once per rule
- ``fields``: sub-fields required per key (field optimization only)
- ``available_fields``: sub-fields each stored mapping actually holds
  (field optimization only)

Contexts are not safe for concurrent use. Create one per evaluation, or
reset one with ``clean()``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict

from verifier.core.config import get_settings
from verifier.core.errors import (
    CycleError,
    FetchError,
    MissingDataError,
    PredicateFailureError,
    RegistryError,
    VerificationError,
)
from verifier.rules.registry import VerifierRegistry
from verifier.rules.schemas import Rule
from .fields import WILDCARD, apply_field_requirements, compute_field_requirements
from .trace import VerificationTrace

logger = logging.getLogger(__name__)


class ContextOptions(BaseModel):
    """Options for a verification context."""

    model_config = ConfigDict(extra="forbid")

    optimize_fields: bool = False
    id_field: str = "_id"

    @classmethod
    def defaults(cls) -> ContextOptions:
        settings = get_settings()
        return cls(optimize_fields=settings.optimize_fields, id_field=settings.id_field)


def is_absent(value: Any) -> bool:
    """True for values that ``set`` ignores (None and NaN)."""
    return value is None or (isinstance(value, float) and math.isnan(value))


class VerificationContext:
    """Holds the state of one evaluation and runs rules against it."""

    def __init__(self, registry: VerifierRegistry, **options: Any):
        if not registry.is_finalized:
            raise RegistryError("Verifier registry must be finalized before creating a context")
        self.registry = registry
        self.options: ContextOptions | None = None
        self._init(options)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _init(self, options: dict[str, Any]) -> VerificationContext:
        base = self.options or ContextOptions.defaults()
        self.options = ContextOptions.model_validate({**base.model_dump(), **options})

        self.data: dict[str, Any] = {}
        self.fetched: dict[str, bool] = {}
        self.fetch_path: list[str] = []
        self.verify_path: list[str] = []
        self.verify_results: dict[str, bool] = {}
        self.fields: dict[str, list[str]] = {}
        self.available_fields: dict[str, list[str]] = {}
        self.current_verifier: Rule | None = None
        self.trace = VerificationTrace()
        return self

    def clean(self, **options: Any) -> VerificationContext:
        """Discard all data and results, optionally changing options."""
        return self._init(options)

    # -------------------------------------------------------------------------
    # Data
    # -------------------------------------------------------------------------

    def set(self, key: str, value: Any) -> VerificationContext:
        """Store a value for ``key``. None and NaN are ignored.

        A string set on a key that has a fetcher is kept as a reference the
        fetcher can expand, so the key is not marked fetched.
        """
        if is_absent(value):
            return self

        self.data[key] = value
        has_fetcher = self.registry.has_fetcher(key)
        self.fetched[key] = not (isinstance(value, str) and has_fetcher)

        if self.options.optimize_fields and has_fetcher and isinstance(value, Mapping):
            self.available_fields[key] = list(value.keys())

        return self

    def is_set(self, key: str) -> bool:
        return key in self.data

    def get(self, key: str, raise_missing: bool | None = None) -> Any:
        """Return the value for ``key``, fetching or defaulting it if needed.

        Args:
            key: Data key
            raise_missing: Raise MissingDataError when nothing resolves. By
                default this is True inside a verification or fetch, and
                False for direct calls (which then get None).

        Raises:
            MissingDataError: If the key cannot be resolved and raising applies
            CycleError, FetchError: Always propagated
        """
        if raise_missing is None:
            raise_missing = bool(self.fetch_path or self.verify_path)

        try:
            if not self.is_set(key) or not self.fetched.get(key):
                if is_absent(self.fetch(key)):
                    self._apply_default(key)
        except MissingDataError:
            if raise_missing:
                raise
            return None

        return self.data.get(key)

    def get_id(self, key: str, raise_missing: bool | None = None) -> Any:
        """Return the identifier of the value for ``key``.

        A value already set is used as is, without fetching. Mapping or
        object values with an ``options.id_field`` give that identifier;
        anything else is returned unchanged.
        """
        if self.is_set(key):
            value = self.data[key]
        else:
            value = self.get(key, raise_missing=raise_missing)

        id_field = self.options.id_field
        if isinstance(value, str) or value is None:
            return value
        if isinstance(value, Mapping):
            return value[id_field] if id_field in value else value
        return getattr(value, id_field, value)

    def fields_for(self, key: str) -> list[str]:
        """Sub-fields a fetcher should load for ``key`` (empty means all)."""
        if not self.options.optimize_fields:
            return []
        fields = self.fields.get(key)
        if not fields or WILDCARD in fields:
            return []
        return list(fields)

    def fetch(self, key: str) -> Any:
        """Run the registered fetcher for ``key`` unless already fetched.

        Returns:
            The fetched value, or the stored value when no fetch was needed

        Raises:
            CycleError: If ``key`` is already being fetched further up
            FetchError: If the fetcher raised a non-engine error
        """
        fetcher = self.registry.get_fetcher(key)
        if fetcher is None or self.fetched.get(key):
            return self.data.get(key)

        if key in self.fetch_path:
            path = self.fetch_path + [key]
            raise CycleError(
                f"Circular dependency while fetching '{key}', fetch path: "
                + " -> ".join(path),
                path=path,
                kind="fetch",
            )

        fields = self.fields_for(key)
        self.fetch_path.append(key)
        try:
            value = fetcher(self, fields)
        except VerificationError:
            raise
        except Exception as e:
            raise FetchError(key, e) from e
        finally:
            self.fetch_path.pop()

        found = not is_absent(value)
        self.trace.add_step(
            "fetch", key, result=found, depth=len(self.verify_path), detail=fields or None
        )
        logger.debug("Fetched %s (fields: %s, found: %s)", key, fields or "all", found)

        if found:
            self.set(key, value)
            self.fetched[key] = True
        return value

    def _apply_default(self, key: str) -> None:
        if not self.registry.has_default(key):
            raise MissingDataError(key, self._current_name())

        if key in self.fetch_path:
            path = self.fetch_path + [key]
            raise CycleError(
                f"Circular dependency while resolving default for '{key}', fetch path: "
                + " -> ".join(path),
                path=path,
                kind="fetch",
            )

        default = self.registry.get_default(key)
        if callable(default):
            # Producers resolve like fetchers: on the fetch path
            self.fetch_path.append(key)
            try:
                value = default(self)
            finally:
                self.fetch_path.pop()
        else:
            value = default
        self.set(key, value)
        self.trace.add_step("default", key, result=not is_absent(value), depth=len(self.verify_path))

        if is_absent(value):
            raise MissingDataError(key, self._current_name())

    def _current_name(self) -> str | None:
        return self.current_verifier.name if self.current_verifier else None

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    def verifies(self, names: str | Iterable[str]) -> bool:
        """Whether ``names`` verify.

        Only failed predicates and unresolvable data turn into False; any
        other error (cycles, unknown rules, fetch errors) propagates.
        """
        try:
            self.verify(names)
        except VerificationError as e:
            if not e.recoverable:
                raise
            logger.debug("Verification of %s failed: %s", names, e.message)
            return False
        return True

    def verify(self, names: str | Iterable[str]) -> VerificationContext:
        """Verify rules and everything they imply.

        Implied rules are verified before the rule itself. Each rule's
        predicate runs at most once per context.

        Returns:
            This context

        Raises:
            UnknownRuleError: For an unregistered rule name
            CycleError: If a rule is reached again while being verified
            PredicateFailureError: If a rule does not hold
        """
        names = [names] if isinstance(names, str) else list(names)

        # Top-level call, not a predicate verifying further rules
        if not self.verify_path and self.options.optimize_fields:
            requirements = compute_field_requirements(self.registry, names)
            apply_field_requirements(self, requirements)

        for name in names:
            rule = self.registry.get_rule(name)

            if name in self.verify_results:
                if not self.verify_results[name]:
                    raise PredicateFailureError(name, self.verify_path)
                continue

            if name in self.verify_path:
                path = self.verify_path + [name]
                raise CycleError(
                    f"Circular dependency while verifying '{name}', verify path: "
                    + " -> ".join(path),
                    path=path,
                    kind="verify",
                )

            self._run_rule(rule)

        return self

    def _run_rule(self, rule: Rule) -> None:
        previous = self.current_verifier
        self.verify_path.append(rule.name)
        self.current_verifier = rule
        try:
            self.verify(rule.implies)
            result = bool(rule.predicate(self))
            self.verify_results[rule.name] = result
            self.trace.add_step("rule", rule.name, result=result, depth=len(self.verify_path) - 1)
            failure_path = list(self.verify_path)
        finally:
            self.verify_path.pop()
            self.current_verifier = previous

        logger.debug("Verifier %s: %s", rule.name, "passed" if result else "failed")
        if not result:
            raise PredicateFailureError(rule.name, failure_path)
