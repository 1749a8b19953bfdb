"""Core package - configuration, logging and error types."""

from .config import Settings, get_settings
from .errors import (
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
from .log import configure_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "configure_logging",
    # Errors
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
]
