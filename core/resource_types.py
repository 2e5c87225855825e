"""
Resource type registry.

Device resource types are served by the device transport. Local types
(currently only ``notify``) carry their own provider and never touch the
device.

Usage:
    from core.resource_types import get_type, register_type

    register_type(my_type)
    rtype = get_type("device_provider")
"""

import logging
from typing import Dict, List

from core.attributes import AttributeSet, AttributeSpec, ResourceType
from core.errors import NotFoundError, UnknownResourceTypeError
from core.reporter import Reporter

logger = logging.getLogger(__name__)

_TYPES: Dict[str, ResourceType] = {}


def register_type(resource_type: ResourceType) -> ResourceType:
    _TYPES[resource_type.name] = resource_type
    return resource_type


def get_type(name: str) -> ResourceType:
    """Look up a registered type by (case-insensitive) name."""
    rtype = _TYPES.get(name.lower())
    if rtype is None:
        raise UnknownResourceTypeError(f"Could not find type {name}")
    return rtype


def registered_types() -> List[str]:
    return sorted(_TYPES)


# =============================================================================
# notify
# =============================================================================


class NotifyProvider:
    """
    Local provider for notify resources.

    Nothing is ever present, so every notify in a catalog is applied
    and its message printed as a Notice.
    """

    def __init__(self, reporter: Reporter):
        self.reporter = reporter

    def fetch(self, type_name: str, resource_id: str, namevar: str = "name") -> AttributeSet:
        raise NotFoundError(f"{type_name}[{resource_id}] is never present")

    def apply(self, type_name: str, resource_id: str, target: AttributeSet) -> None:
        self.reporter.notice(target["message"])
        logger.debug(f"notify[{resource_id}] delivered")


NOTIFY = register_type(ResourceType(
    name="notify",
    attributes=[
        AttributeSpec("name", namevar=True, description="Resource title."),
        AttributeSpec("message", default=lambda attrs: attrs.get("name"), description="Text to print; defaults to the title."),
    ],
    local_provider=NotifyProvider,
    description="Print a message during a catalog run",
))
