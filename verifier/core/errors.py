"""Error types raised by the registry and the verification engine.

Engine errors share one base class, ``VerificationError``, which carries the
host-facing shape (code, reason, details, message). Only the recoverable
variants (failed predicate, unresolvable data) may be turned into a boolean
by ``VerificationContext.verifies``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorShape(BaseModel):
    """Serializable form of a verification error."""

    code: int
    reason: str
    details: dict[str, Any] = Field(default_factory=dict)
    message: str


class VerificationError(Exception):
    """Base class for all errors raised while verifying rules."""

    code: int = 412
    recoverable: bool = False

    def __init__(
        self,
        reason: str = "Verification failed",
        details: dict[str, Any] | None = None,
        code: int | None = None,
    ):
        if code is not None:
            self.code = code
        self.reason = reason
        self.details = details or {}
        self.message = f"{self.reason} [{self.code}]"
        super().__init__(self.message)

    def to_shape(self) -> ErrorShape:
        """Return the error as a host-facing model."""
        return ErrorShape(
            code=self.code,
            reason=self.reason,
            details=self.details,
            message=self.message,
        )


class CycleError(VerificationError):
    """A circular dependency between rules or between fetched keys."""

    code = 500

    def __init__(self, reason: str, path: list[str], kind: str):
        super().__init__(reason, {"path": list(path), "kind": kind})

    @property
    def path(self) -> list[str]:
        return self.details["path"]


class UnknownRuleError(VerificationError):
    """A rule name that is not in the registry."""

    code = 500

    def __init__(self, name: str, required_by: str | None = None):
        reason = f"Verifier not found: {name}"
        if required_by:
            reason += f' (required by "{required_by}")'
        super().__init__(reason, {"rule": name, "required_by": required_by})
        self.name = name


class PredicateFailureError(VerificationError):
    """A rule's predicate returned a falsy value."""

    code = 412
    recoverable = True

    def __init__(self, name: str, verify_path: list[str] | None = None):
        super().__init__(
            f"Verifier failed: {name}",
            {"rule": name, "verify_path": list(verify_path or [])},
        )
        self.name = name


class MissingDataError(VerificationError):
    """A data key could not be resolved from data, fetchers or defaults."""

    code = 404
    recoverable = True

    def __init__(self, key: str, verifier: str | None = None):
        super().__init__(
            f"Verifier {verifier} requires unresolvable data: {key}",
            {"key": key, "verifier": verifier},
        )
        self.key = key


class FetchError(VerificationError):
    """A registered fetcher raised while resolving a key."""

    code = 412

    def __init__(self, key: str, cause: BaseException):
        super().__init__(
            f"Couldn't fetch data for {key}, error: {cause}",
            {"key": key, "cause": str(cause), "cause_type": type(cause).__name__},
        )
        self.key = key
        self.cause = cause


class RegistryError(Exception):
    """Misuse of the rule registry (registration or lifecycle)."""


class DuplicateRuleError(RegistryError):
    """A rule name was registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Verifier already registered: {name}")
        self.name = name


class RegistryFrozenError(RegistryError):
    """The registry was modified after it was finalized."""
