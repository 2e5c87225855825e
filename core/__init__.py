"""
Core reconciliation engine for device providers.

This package consolidates the pieces used by the devicectl CLI:
- attributes / canonicalizer (resource schemas and normalization)
- strictness (policy for non-canonical device data)
- reconciler (fetch, canonicalize, compare, apply)
- reporter (Notice/Warning/Error output)
- catalog (multi-resource runs against one device)
"""

from .attributes import AttributeSet, AttributeSpec, Ensure, ResourceType
from .canonicalizer import Canonicalizer, canonicalize
from .errors import (
    CanonicalizationViolation,
    NotFoundError,
    ReconcileError,
    TransportError,
    UnknownAttributeError,
)
from .reconciler import Delta, Reconciler, ReconcileResult, ReconcileState, Violation
from .reporter import Event, EventLevel, Reporter
from .strictness import Outcome, StrictnessLevel, decide

__all__ = [
    "AttributeSet",
    "AttributeSpec",
    "Ensure",
    "ResourceType",
    "Canonicalizer",
    "canonicalize",
    "CanonicalizationViolation",
    "NotFoundError",
    "ReconcileError",
    "TransportError",
    "UnknownAttributeError",
    "Delta",
    "Reconciler",
    "ReconcileResult",
    "ReconcileState",
    "Violation",
    "Event",
    "EventLevel",
    "Reporter",
    "Outcome",
    "StrictnessLevel",
    "decide",
]
