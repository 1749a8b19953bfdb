"""
Entry points for hosts: the process-wide registry and context helpers.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from verifier.rules.registry import VerifierRegistry
from .context import VerificationContext

_registry: VerifierRegistry | None = None


def get_registry() -> VerifierRegistry:
    """Get the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = VerifierRegistry()
    return _registry


def reset_registry() -> VerifierRegistry:
    """Replace the process-wide registry with an empty one."""
    global _registry
    _registry = VerifierRegistry()
    return _registry


def create_context(
    registry: VerifierRegistry | None = None, **options: Any
) -> VerificationContext:
    """Create a fresh context on ``registry`` (default: the process-wide one)."""
    return VerificationContext(registry or get_registry(), **options)


def run_verification(
    data: Mapping[str, Any],
    rules: str | Iterable[str],
    registry: VerifierRegistry | None = None,
    reset: bool = True,
    **options: Any,
) -> VerificationContext:
    """Set ``data`` on a new context and verify ``rules``.

    Args:
        data: Key/value pairs to set before verifying
        rules: Rule name or names to verify
        registry: Registry to use (default: the process-wide one)
        reset: Clean the context before returning it. Pass False to inspect
            the data it fetched and the results it memoized.
        **options: Context options (e.g. ``optimize_fields``)

    Returns:
        The context

    Raises:
        VerificationError: If verification fails
    """
    context = create_context(registry, **options)
    for key, value in data.items():
        context.set(key, value)
    context.verify(rules)
    if reset:
        context.clean()
    return context
