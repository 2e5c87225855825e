"""
Resource reconciliation engine.

Reconciles one resource at a time against a device:

    Idle -> Fetching -> Canonicalizing -> Comparing -> Accepted | Reported

1. Fetch the observed state from the device (absent resources become ensure=absent)
2. Canonicalize the observed state; a difference is a canonicalization violation
3. Let the strictness policy decide: suppress, warn, or fail
4. Compare observed state against the canonicalized desired state
5. Report each attribute change and hand the full target to the device

Failures are resource-scoped: they end up on the ReconcileResult and as an
Error event, never as an exception escaping reconcile().

Usage:
    from core.reconciler import Reconciler
    from core.strictness import StrictnessLevel

    reconciler = Reconciler(rtype, transport, strictness=StrictnessLevel.WARNING, reporter=reporter)
    result = reconciler.reconcile("wibble", {"ensure": "present"})
    if not result.success:
        ...
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from core.attributes import AttributeSet, Ensure, ResourceType, format_attribute_set
from core.canonicalizer import Canonicalizer
from core.errors import CanonicalizationViolation, NotFoundError, ReconcileError
from core.reporter import Event, EventLevel, Reporter, change_message, resource_path
from core.strictness import Outcome, StrictnessLevel, decide
from core.transport import StateFetcher

logger = logging.getLogger(__name__)


class ReconcileState(Enum):
    """Reconciler state machine states."""

    IDLE = "idle"
    FETCHING = "fetching"
    CANONICALIZING = "canonicalizing"
    COMPARING = "comparing"
    ACCEPTED = "accepted"
    REPORTED = "reported"


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class AttributeChange:
    """One attribute moving from old to new."""
    name: str
    old: object
    new: object


@dataclass(frozen=True)
class ChangeRecord:
    """A change as handed to the reporter."""
    resource_type: str
    resource_id: str
    attribute: str
    old_value: object
    new_value: object


@dataclass(frozen=True)
class Delta:
    """Ordered attribute changes for one resource."""
    resource_type: str
    resource_id: str
    changes: Tuple[AttributeChange, ...] = ()
    created: bool = False

    def __bool__(self) -> bool:
        return bool(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def records(self) -> List[ChangeRecord]:
        return [
            ChangeRecord(self.resource_type, self.resource_id, c.name, c.old, c.new)
            for c in self.changes
        ]


@dataclass(frozen=True, eq=False)
class Violation:
    """The device returned values that differ from their canonical form."""
    resource_type: str
    resource_id: str
    returned: AttributeSet
    canonicalized: AttributeSet

    def message(self) -> str:
        return (
            f"{self.resource_type}[{self.resource_id}]#get has not provided canonicalized values.\n"
            f"Returned values:       {format_attribute_set(self.returned)}\n"
            f"Canonicalized values:  {format_attribute_set(self.canonicalized)}"
        )


@dataclass
class ReconcileResult:
    """Outcome of reconciling one resource."""
    resource_type: str
    resource_id: str
    state: ReconcileState = ReconcileState.IDLE
    observed: Optional[AttributeSet] = None
    target: Optional[AttributeSet] = None
    delta: Optional[Delta] = None
    violation: Optional[Violation] = None
    outcome: Outcome = Outcome.SUPPRESS
    applied: bool = False
    error: Optional[str] = None
    events: List[Event] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "state": self.state.value,
            "outcome": self.outcome.value,
            "changes": [
                {"attribute": c.name, "old": str(c.old), "new": str(c.new)}
                for c in (self.delta.changes if self.delta else ())
            ],
            "applied": self.applied,
            "error": self.error,
        }


# =============================================================================
# Delta computation
# =============================================================================


def compute_delta(
    resource_type: ResourceType,
    resource_id: str,
    current: AttributeSet,
    target: AttributeSet,
) -> Delta:
    """
    Compare current state against a canonical target.

    Only attributes present in target are managed. Creating or removing a
    resource is a single ensure change.
    """
    if resource_type.has_ensure:
        current_ensure = current.get("ensure", Ensure.ABSENT)
        target_ensure = target.get("ensure", Ensure.PRESENT)

        if target_ensure == Ensure.ABSENT:
            if current_ensure == Ensure.ABSENT:
                return Delta(resource_type.name, resource_id)
            return Delta(
                resource_type.name,
                resource_id,
                (AttributeChange("ensure", current_ensure, Ensure.ABSENT),),
            )

        if current_ensure == Ensure.ABSENT:
            return Delta(
                resource_type.name,
                resource_id,
                (AttributeChange("ensure", Ensure.ABSENT, Ensure.PRESENT),),
                created=True,
            )

    changes = tuple(
        AttributeChange(name, current.get(name), value)
        for name, value in target.items()
        if name != resource_type.namevar and current.get(name) != value
    )
    return Delta(resource_type.name, resource_id, changes)


# =============================================================================
# Reconciler
# =============================================================================


class Reconciler:
    """
    Reconciles resources of one type against one fetch/apply collaborator.

    Holds no per-resource state; one instance can reconcile many resources,
    and separate instances can run in parallel.
    """

    def __init__(
        self,
        resource_type: ResourceType,
        fetcher: StateFetcher,
        strictness: StrictnessLevel = StrictnessLevel.WARNING,
        reporter: Optional[Reporter] = None,
        noop: bool = False,
    ):
        self.resource_type = resource_type
        self.fetcher = fetcher
        self.strictness = StrictnessLevel.parse(strictness)
        self.reporter = reporter or Reporter()
        self.noop = noop
        self.canonicalizer = Canonicalizer(resource_type)

    def reconcile(self, resource_id: str, desired: AttributeSet) -> ReconcileResult:
        """Bring one resource to the desired state, honouring the strictness level."""
        rtype = self.resource_type
        result = ReconcileResult(rtype.name, resource_id)

        try:
            self._transition(result, ReconcileState.FETCHING)
            observed, synthesized = self.observe(resource_id)
            result.observed = observed

            self._transition(result, ReconcileState.CANONICALIZING)
            if not synthesized:
                result.violation = self.check_canonical(resource_id, observed)
            result.outcome = decide(result.violation is not None, self.strictness)
            self._handle_violation(result)

            self._transition(result, ReconcileState.COMPARING)
            target = self.canonicalizer.canonicalize({**desired, rtype.namevar: resource_id})
            result.target = target
            result.delta = compute_delta(rtype, resource_id, observed, target)

            self._apply(result)
        except ReconcileError as e:
            logger.error(f"{rtype.ref(resource_id)}: {e}")
            result.error = str(e)
            result.events.append(self._emit(
                EventLevel.ERROR,
                f"Could not evaluate: {e}",
                resource_path(rtype, resource_id),
                resource_id,
            ))
            self._transition(result, ReconcileState.REPORTED)
            return result

        final = ReconcileState.REPORTED if result.outcome == Outcome.WARN else ReconcileState.ACCEPTED
        self._transition(result, final)
        return result

    def observe(self, resource_id: str) -> Tuple[AttributeSet, bool]:
        """
        Fetch the observed state.

        Returns (state, synthesized); synthesized is True when the device
        does not have the resource and an absent state was made up for it.
        """
        rtype = self.resource_type
        try:
            return dict(self.fetcher.fetch(rtype.name, resource_id, namevar=rtype.namevar)), False
        except NotFoundError:
            logger.debug(f"{rtype.ref(resource_id)}: not found, treating as absent")
            return rtype.absent_state(resource_id), True

    def check_canonical(self, resource_id: str, observed: AttributeSet) -> Optional[Violation]:
        """Return a Violation when observed differs from its canonical form."""
        canonical = self.canonicalizer.canonicalize(observed)
        if canonical == observed:
            return None
        return Violation(
            self.resource_type.name,
            resource_id,
            self.resource_type.ordered(observed),
            canonical,
        )

    def _handle_violation(self, result: ReconcileResult) -> None:
        violation = result.violation
        if violation is None:
            return

        if result.outcome == Outcome.FAIL:
            raise CanonicalizationViolation(violation)

        if result.outcome == Outcome.WARN:
            logger.warning(f"{self.resource_type.ref(result.resource_id)}: non-canonical values returned")
            result.events.append(self._emit(EventLevel.WARNING, violation.message(), None, result.resource_id))
        else:
            logger.debug(f"{self.resource_type.ref(result.resource_id)}: non-canonical values suppressed")

    def _apply(self, result: ReconcileResult) -> None:
        delta = result.delta
        if not delta:
            logger.debug(f"{self.resource_type.ref(result.resource_id)}: in sync")
            return

        for record in delta.records():
            result.events.append(self._emit(
                EventLevel.NOTICE,
                change_message(record.attribute, record.old_value, record.new_value, created=delta.created),
                resource_path(self.resource_type, record.resource_id, record.attribute),
                record.resource_id,
            ))

        if self.noop:
            result.events.append(self._emit(
                EventLevel.INFO,
                f"Would have applied {len(delta)} change(s)",
                resource_path(self.resource_type, result.resource_id),
                result.resource_id,
            ))
            return

        self.fetcher.apply(self.resource_type.name, result.resource_id, result.target)
        result.applied = True

    def _emit(self, level: EventLevel, message: str, source: Optional[str], resource_id: str) -> Event:
        return self.reporter.emit(Event(
            level=level,
            message=message,
            source=source,
            resource_type=self.resource_type.name,
            resource_id=resource_id,
        ))

    def _transition(self, result: ReconcileResult, state: ReconcileState) -> None:
        logger.debug(f"{self.resource_type.ref(result.resource_id)}: {result.state.value} -> {state.value}")
        result.state = state
