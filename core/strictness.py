"""
Strictness policy for canonicalization violations.

Decides what happens when a device returns values that are not in
canonical form:

    | violated | off      | warning  | error    |
    |----------|----------|----------|----------|
    | False    | suppress | suppress | suppress |
    | True     | suppress | warn     | fail     |
"""

from enum import Enum


class StrictnessLevel(Enum):
    """How strictly non-canonical device data is treated."""

    OFF = "off"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value) -> "StrictnessLevel":
        """Parse a level from its name, accepting existing members unchanged."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(level.value for level in cls)
            raise ValueError(f"Invalid strictness level '{value}' (expected one of: {allowed})") from None


class Outcome(Enum):
    """Policy decision for one reconciliation."""

    SUPPRESS = "suppress"
    WARN = "warn"
    FAIL = "fail"


_DECISIONS = {
    StrictnessLevel.OFF: Outcome.SUPPRESS,
    StrictnessLevel.WARNING: Outcome.WARN,
    StrictnessLevel.ERROR: Outcome.FAIL,
}


def decide(violated: bool, level: StrictnessLevel) -> Outcome:
    """Map (violated, level) to an Outcome."""
    if not violated:
        return Outcome.SUPPRESS
    return _DECISIONS[level]
