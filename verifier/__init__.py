"""Rule Verifier - dependency-aware rule verification with lazy data fetching."""

from verifier.core import (
    Settings,
    get_settings,
    configure_logging,
    ErrorShape,
    VerificationError,
    CycleError,
    UnknownRuleError,
    PredicateFailureError,
    MissingDataError,
    FetchError,
    RegistryError,
    DuplicateRuleError,
    RegistryFrozenError,
)
from verifier.rules import RuleDefinition, Rule, VerifierRegistry, RuleLoader
from verifier.runtime import (
    VerificationContext,
    ContextOptions,
    VerificationTrace,
    get_registry,
    reset_registry,
    create_context,
    run_verification,
)

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "ErrorShape",
    "VerificationError",
    "CycleError",
    "UnknownRuleError",
    "PredicateFailureError",
    "MissingDataError",
    "FetchError",
    "RegistryError",
    "DuplicateRuleError",
    "RegistryFrozenError",
    "RuleDefinition",
    "Rule",
    "VerifierRegistry",
    "RuleLoader",
    "VerificationContext",
    "ContextOptions",
    "VerificationTrace",
    "get_registry",
    "reset_registry",
    "create_context",
    "run_verification",
]
