"""Tests for YAML rule loading and condition evaluation."""

import pytest
from pathlib import Path

from verifier import (
    VerifierRegistry,
    RuleLoader,
    PredicateFailureError,
    create_context,
    get_settings,
    run_verification,
)
from verifier.rules import (
    ConditionPredicate,
    ConditionSpec,
    ConditionGroupSpec,
    evaluate_condition,
    evaluate_condition_group,
)


class TestRuleLoader:
    def test_load_directory(self, rules_dir: Path):
        registry = VerifierRegistry()
        rules = RuleLoader(registry, rules_dir).load_directory()
        names = [r.name for r in rules]
        assert names == ["is_registered", "is_adult", "is_active", "can_purchase", "has_verified_email"]

    def test_rule_attributes(self, account_registry: VerifierRegistry):
        rule = account_registry.get_rule("is_adult")
        assert rule.implies == ("is_registered",)
        assert rule.fields == {"user": ("age",)}
        assert rule.description == "User is 18 or older"
        assert isinstance(rule.predicate, ConditionPredicate)

    def test_implied_for_from_yaml(self, account_registry: VerifierRegistry):
        rule = account_registry.get_rule("can_purchase")
        assert rule.implies == ("is_adult", "is_active", "has_verified_email")

    def test_defaults_from_yaml(self, account_registry: VerifierRegistry):
        assert account_registry.get_default("email_verified") is False

    def test_sorted_order(self, account_registry: VerifierRegistry):
        order = account_registry.sorted_rules
        assert order.index("is_registered") < order.index("is_adult")
        assert order.index("has_verified_email") < order.index("can_purchase")

    def test_missing_file(self, registry: VerifierRegistry, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            RuleLoader(registry).load_file(tmp_path / "nope.yaml")

    def test_no_directory(self, registry: VerifierRegistry, monkeypatch):
        monkeypatch.delenv("VERIFIER_RULES_DIR", raising=False)
        get_settings.cache_clear()
        try:
            with pytest.raises(ValueError):
                RuleLoader(registry).load_directory()
        finally:
            get_settings.cache_clear()

    def test_directory_from_settings(self, registry: VerifierRegistry, rules_dir: Path, monkeypatch):
        monkeypatch.setenv("VERIFIER_RULES_DIR", str(rules_dir))
        get_settings.cache_clear()
        try:
            loader = RuleLoader(registry)
            assert loader.rules_dir == rules_dir
            rules = loader.load_directory()
        finally:
            get_settings.cache_clear()
        assert "can_purchase" in [r.name for r in rules]

    def test_explicit_directory_wins(self, registry: VerifierRegistry, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("VERIFIER_RULES_DIR", "/nowhere")
        get_settings.cache_clear()
        try:
            assert RuleLoader(registry, tmp_path).rules_dir == tmp_path
        finally:
            get_settings.cache_clear()

    def test_single_rule_file(self, registry: VerifierRegistry, tmp_path: Path):
        path = tmp_path / "single.yaml"
        path.write_text("name: positive\ncondition: 'amount > 0'\n", encoding="utf-8")
        rules = RuleLoader(registry).load_file(path)
        assert [r.name for r in rules] == ["positive"]

        registry.finalize()
        assert create_context(registry).set("amount", 5).verifies("positive")
        assert not create_context(registry).set("amount", 0).verifies("positive")

    def test_invalid_file_skipped(self, registry: VerifierRegistry, tmp_path: Path):
        (tmp_path / "bad.yaml").write_text("- {condition: 'x == 1'}\n", encoding="utf-8")
        (tmp_path / "good.yaml").write_text("- name: ok\n", encoding="utf-8")
        (tmp_path / "schema.yaml").write_text("- name: schema_rule\n", encoding="utf-8")

        rules = RuleLoader(registry, tmp_path).load_directory()
        assert [r.name for r in rules] == ["ok"]

    def test_string_conditions(self, registry: VerifierRegistry):
        loader = RuleLoader(registry)
        assert loader._parse_string_condition("age >= 18") == ConditionSpec(field="age", operator=">=", value=18)
        assert loader._parse_string_condition("score < 0.5").value == 0.5
        assert loader._parse_string_condition("role in [admin, owner]").value == ["admin", "owner"]
        assert loader._parse_string_condition("active == true").value is True
        assert loader._parse_string_condition("email").operator == "exists"


class TestAccountRules:
    def test_adult_user_passes(self, account_context):
        account_context.set("user", "u1")
        assert account_context.verifies("is_adult")
        assert account_context.get_id("user") == "u1"
        assert account_context.trace.passed() == ["is_registered", "is_adult"]

    def test_minor_fails(self, account_context):
        account_context.set("user", "u2")
        with pytest.raises(PredicateFailureError) as excinfo:
            account_context.verify("can_purchase")
        assert excinfo.value.name == "is_adult"

    def test_default_blocks_purchase(self, account_context):
        account_context.set("user", "u1")
        with pytest.raises(PredicateFailureError) as excinfo:
            account_context.verify("can_purchase")
        assert excinfo.value.name == "has_verified_email"

    def test_purchase(self, account_registry, fetch_log):
        ctx = run_verification(
            {"user": "u1", "email_verified": True},
            ["can_purchase"],
            registry=account_registry,
            reset=False,
        )
        assert ctx.verify_results["can_purchase"] is True
        assert fetch_log == [("u1", [])]

    def test_unknown_user_is_not_registered(self, account_context):
        account_context.set("user", "nobody")
        assert account_context.verifies("is_registered") is False

    def test_no_user_is_not_registered(self, account_context):
        assert account_context.verifies("is_registered") is False

    def test_banned_user(self, account_context):
        account_context.set("user", "u3")
        assert account_context.verifies("is_adult")
        assert not account_context.verifies("is_active")

    def test_optimized_purchase(self, account_registry, fetch_log):
        ctx = run_verification(
            {"user": "u1", "email_verified": True},
            "can_purchase",
            registry=account_registry,
            reset=False,
            optimize_fields=True,
        )
        user_id, fields = fetch_log[0]
        assert user_id == "u1"
        assert sorted(fields) == ["_id", "age", "country", "email", "status"]
        assert len(fetch_log) == 1
        assert ctx.get("user")["country"] == "BE"


class TestConditions:
    def test_operators(self, account_context):
        account_context.set("n", 5).set("role", "admin")
        cases = [
            ("n", "==", 5, True),
            ("n", "!=", 5, False),
            ("n", ">", 4, True),
            ("n", "<", 4, False),
            ("n", ">=", 5, True),
            ("n", "<=", 4, False),
            ("role", "in", ["admin", "owner"], True),
            ("role", "not_in", ["admin"], False),
            ("role", "exists", True, True),
            ("other", "exists", False, True),
        ]
        for field, op, value, expected in cases:
            cond = ConditionSpec(field=field, operator=op, value=value)
            assert evaluate_condition(account_context, cond) is expected, (field, op, value)

    def test_unknown_operator(self, account_context):
        account_context.set("n", 1)
        with pytest.raises(ValueError):
            evaluate_condition(account_context, ConditionSpec(field="n", operator="~", value=1))

    def test_nested_groups(self, account_context):
        account_context.set("order", {"total": 120, "currency": "EUR"})
        group = ConditionGroupSpec(all=[
            ConditionSpec(field="order.total", operator=">", value=100),
            ConditionGroupSpec(any=[
                ConditionSpec(field="order.currency", value="USD"),
                ConditionSpec(field="order.currency", value="EUR"),
            ]),
        ])
        assert evaluate_condition_group(account_context, group) is True

    def test_empty_group_holds(self, account_context):
        assert evaluate_condition_group(account_context, ConditionGroupSpec()) is True
