"""
Resource type schemas and attribute sets.

A resource type declares its attributes up front. Everything that flows
through the reconciler (observed state, desired state, canonical state)
is a plain ordered dict keyed by those attribute names.

Usage:
    from core.attributes import AttributeSpec, Ensure, ResourceType

    device_provider = ResourceType(
        name="device_provider",
        attributes=[
            AttributeSpec("name", namevar=True),
            AttributeSpec("ensure", kind="enum", values=("present", "absent"), default="present"),
            AttributeSpec("string"),
        ],
    )
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

AttributeSet = Dict[str, Any]

ATTRIBUTE_KINDS = ("string", "integer", "boolean", "enum")


class Ensure(str, Enum):
    """Values of the reserved ``ensure`` attribute."""

    PRESENT = "present"
    ABSENT = "absent"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AttributeSpec:
    """Declaration of a single attribute in a resource type schema."""
    name: str
    kind: str = "string"
    namevar: bool = False
    default: Any = None
    values: Tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self):
        if self.kind not in ATTRIBUTE_KINDS:
            raise ValueError(f"{self.name}: unsupported attribute kind '{self.kind}'")
        if self.kind == "enum" and not self.values:
            raise ValueError(f"{self.name}: enum attributes need allowed values")


@dataclass
class ResourceType:
    """
    Schema for one resource type.

    Attributes:
        name: Lower-case type name as used on the command line (device_provider)
        attributes: Ordered attribute declarations; order drives rendering
        canonicalize_hook: Optional provider hook run after schema
            normalization, receives and returns an AttributeSet
        local_provider: Factory taking a Reporter and returning a
            fetch/apply collaborator, for types not served by the device
        description: One-line summary shown by the CLI
    """
    name: str
    attributes: List[AttributeSpec]
    canonicalize_hook: Optional[Callable[[AttributeSet], AttributeSet]] = None
    local_provider: Optional[Callable[..., Any]] = None
    description: str = ""
    _by_name: Dict[str, AttributeSpec] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._by_name = {spec.name: spec for spec in self.attributes}
        namevars = [spec.name for spec in self.attributes if spec.namevar]
        if len(namevars) != 1:
            raise ValueError(f"{self.name}: exactly one namevar required, got {namevars}")

    @property
    def title(self) -> str:
        """Capitalized type name used in resource references (Device_provider)."""
        return self.name.capitalize()

    @property
    def namevar(self) -> str:
        return next(spec.name for spec in self.attributes if spec.namevar)

    @property
    def has_ensure(self) -> bool:
        return "ensure" in self._by_name

    def attribute_names(self) -> List[str]:
        return [spec.name for spec in self.attributes]

    def get(self, name: str) -> Optional[AttributeSpec]:
        return self._by_name.get(name)

    def ref(self, resource_id: str) -> str:
        """Resource reference as printed in diagnostics: device_provider[wibble]."""
        return f"{self.name}[{resource_id}]"

    def absent_state(self, resource_id: str) -> AttributeSet:
        """State synthesized for a resource the device does not have."""
        state: AttributeSet = {self.namevar: resource_id}
        if self.has_ensure:
            state["ensure"] = Ensure.ABSENT
        return state

    def ordered(self, attrs: AttributeSet) -> AttributeSet:
        """Return a copy of attrs with keys in schema order (unknown keys last)."""
        result = {name: attrs[name] for name in self.attribute_names() if name in attrs}
        for key, value in attrs.items():
            if key not in result:
                result[key] = value
        return result


# =============================================================================
# Rendering
# =============================================================================


def format_value(value: Any) -> str:
    """Render a single value in hash-inspect style (:symbol, "string", 42, nil)."""
    if isinstance(value, Enum):
        return f":{value.value}"
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(str(value))


def format_attribute_set(attrs: AttributeSet) -> str:
    """
    Render an AttributeSet as a hash literal, preserving key order.

    >>> format_attribute_set({"name": "wibble", "ensure": Ensure.PRESENT})
    '{:name=>"wibble", :ensure=>:present}'
    """
    body = ", ".join(f":{key}=>{format_value(value)}" for key, value in attrs.items())
    return "{" + body + "}"


def plain_value(value: Any) -> str:
    """Render a value without type decoration, as used in notices and listings."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)
