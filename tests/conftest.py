"""Pytest fixtures for test suite."""

import pytest
from pathlib import Path
from typing import Any

from verifier import VerifierRegistry, RuleLoader, create_context


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def rules_dir() -> Path:
    """Path to the sample rules directory."""
    return Path(__file__).parent.parent / "verifier" / "rules" / "data"


@pytest.fixture
def registry() -> VerifierRegistry:
    """Empty, unfinalized registry."""
    return VerifierRegistry()


@pytest.fixture
def users() -> dict[str, dict[str, Any]]:
    """In-memory user table standing in for a database."""
    return {
        "u1": {"_id": "u1", "email": "ann@example.com", "age": 34, "status": "active", "country": "BE"},
        "u2": {"_id": "u2", "email": "bob@example.com", "age": 16, "status": "active", "country": "NL"},
        "u3": {"_id": "u3", "email": "cy@example.com", "age": 41, "status": "banned", "country": "US"},
    }


@pytest.fixture
def fetch_log() -> list[tuple[str, list[str]]]:
    """Calls made to the user fetcher: (user id, requested fields)."""
    return []


@pytest.fixture
def account_registry(rules_dir: Path, users, fetch_log) -> VerifierRegistry:
    """Registry with the sample YAML rules and a user fetcher, finalized."""
    registry = VerifierRegistry()
    RuleLoader(registry, rules_dir).load_directory()

    def fetch_user(ctx, fields):
        # The caller sets the user id; the fetcher expands it to a record
        if not ctx.is_set("user"):
            return None
        user_id = ctx.get_id("user")
        fetch_log.append((user_id, fields))
        record = users.get(user_id)
        if record is None or not fields:
            return record
        return {k: v for k, v in record.items() if k in fields or k == "_id"}

    registry.register_fetcher("user", fetch_user)
    registry.finalize()
    return registry


@pytest.fixture
def account_context(account_registry: VerifierRegistry):
    """Fresh context on the sample account registry."""
    return create_context(account_registry)
