"""
Schema-driven canonicalization of attribute sets.

Maps caller-supplied (or device-returned) attribute values onto the form a
provider treats as authoritative:

1. Reject attributes the resource type does not declare
2. Trim surrounding whitespace from strings
3. Coerce to the declared kind (string, integer, boolean, enum)
4. Substitute declared defaults for missing attributes
5. Run the provider's canonicalize hook, if any

Canonicalization is pure and idempotent: canonicalize(canonicalize(x)) == canonicalize(x).
The input is never mutated.

Usage:
    from core.canonicalizer import Canonicalizer

    canonical = Canonicalizer(resource_type).canonicalize({"name": " wibble ", "ensure": "present"})
"""

import logging
from typing import Any

from core.attributes import AttributeSet, AttributeSpec, Ensure, ResourceType
from core.errors import AttributeValueError, UnknownAttributeError

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "yes", "on", "1"}
FALSE_VALUES = {"false", "no", "off", "0"}


class Canonicalizer:
    """Normalizes AttributeSets for one resource type."""

    def __init__(self, resource_type: ResourceType):
        self.resource_type = resource_type

    def canonicalize(self, attrs: AttributeSet) -> AttributeSet:
        """Return the canonical form of attrs as a fresh dict in schema order."""
        rtype = self.resource_type

        for key in attrs:
            if rtype.get(key) is None:
                raise UnknownAttributeError(rtype.name, key)

        result: AttributeSet = {}
        for spec in rtype.attributes:
            value = attrs.get(spec.name)
            if value is not None:
                result[spec.name] = self._coerce(spec, value)

        for spec in rtype.attributes:
            if spec.name not in result and spec.default is not None:
                default = spec.default(result) if callable(spec.default) else spec.default
                if default is not None:
                    result[spec.name] = self._coerce(spec, default)
        result = rtype.ordered(result)

        if rtype.canonicalize_hook is not None:
            hooked = rtype.canonicalize_hook(dict(result))
            for key in hooked:
                if rtype.get(key) is None:
                    raise UnknownAttributeError(rtype.name, key)
            result = rtype.ordered(hooked)

        return result

    def is_canonical(self, attrs: AttributeSet) -> bool:
        """True when attrs is already in canonical form."""
        return self.canonicalize(attrs) == dict(attrs)

    def _coerce(self, spec: AttributeSpec, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()

        if spec.kind == "string":
            if isinstance(value, Ensure):
                return value.value
            return str(value)

        if spec.kind == "integer":
            return self._to_int(spec, value)

        if spec.kind == "boolean":
            return self._to_bool(spec, value)

        # enum
        text = value.value if isinstance(value, Ensure) else str(value).lower()
        if text not in spec.values:
            raise AttributeValueError(
                f"{self.resource_type.name}: invalid value '{value}' for {spec.name}, "
                f"expected one of {', '.join(spec.values)}"
            )
        if spec.name == "ensure":
            return Ensure(text)
        return text

    def _to_int(self, spec: AttributeSpec, value: Any) -> int:
        if isinstance(value, bool):
            raise AttributeValueError(f"{self.resource_type.name}: {spec.name} expects an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise AttributeValueError(
                f"{self.resource_type.name}: {spec.name} expects an integer, got {value!r}"
            ) from None

    def _to_bool(self, spec: AttributeSpec, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        text = str(value).lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise AttributeValueError(f"{self.resource_type.name}: {spec.name} expects a boolean, got {value!r}")


def canonicalize(resource_type: ResourceType, attrs: AttributeSet) -> AttributeSet:
    """Shortcut for Canonicalizer(resource_type).canonicalize(attrs)."""
    return Canonicalizer(resource_type).canonicalize(attrs)

