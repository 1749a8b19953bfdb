"""Runtime - verification contexts, field optimization and tracing."""

from .context import VerificationContext, ContextOptions, is_absent
from .fields import compute_field_requirements, apply_field_requirements, covers
from .trace import VerificationTrace, TraceStep
from .service import get_registry, reset_registry, create_context, run_verification

__all__ = [
    # Context
    "VerificationContext",
    "ContextOptions",
    "is_absent",
    # Field optimization
    "compute_field_requirements",
    "apply_field_requirements",
    "covers",
    # Tracing
    "VerificationTrace",
    "TraceStep",
    # Service
    "get_registry",
    "reset_registry",
    "create_context",
    "run_verification",
]
