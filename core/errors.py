"""
Centralized error handling for device reconciliation.

Error Hierarchy:
- ReconcileError: Resource-scoped failures. Fatal for one resource only,
  sibling resources in the same run keep going.
- DeviceConfigError: Target resolution and catalog loading failures. Raised
  before any reconciliation starts and abort the whole invocation.

Usage:
    from core.errors import NotFoundError, TransportError, exit_code_for

    # Resource absent on the device - the reconciler turns this into ensure=absent
    raise NotFoundError(f"device_provider[{name}] not found")

    # In the CLI
    except ReconcileError as e:
        return exit_code_for(e)
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


# =============================================================================
# Resource-scoped Errors
# =============================================================================

class ReconcileError(Exception):
    """
    Base class for errors raised while reconciling a single resource.
    Messages are rendered verbatim in Error lines.
    """
    exit_code = EXIT_FAILURE

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class UnknownAttributeError(ReconcileError):
    """Attribute not declared in the resource type schema."""

    def __init__(self, type_name: str, attribute: str):
        super().__init__(f"{type_name}: unknown attribute '{attribute}'")
        self.type_name = type_name
        self.attribute = attribute


class AttributeValueError(ReconcileError):
    """Attribute value cannot be coerced to its declared kind."""


class UnknownResourceTypeError(ReconcileError):
    """No resource type registered under the requested name."""


class TransportError(ReconcileError):
    """Connection, authentication or I/O failure talking to the device."""


class NotFoundError(ReconcileError):
    """Resource absent on the device. Not fatal during reconciliation."""


class CanonicalizationViolation(ReconcileError):
    """The device returned non-canonical values under strict=error."""

    def __init__(self, violation):
        super().__init__(violation.message())
        self.violation = violation


# =============================================================================
# Configuration Errors
# =============================================================================

class DeviceConfigError(Exception):
    """Base class for device-config resolution failures."""
    exit_code = EXIT_FAILURE


class TargetNotFoundError(DeviceConfigError):
    """Requested target is not declared in the device config."""

    def __init__(self, target: str, path):
        super().__init__(f"Target device / certificate '{target}' not found in {path}")
        self.target = target
        self.path = path


class UnknownTransportError(DeviceConfigError):
    """Device config names a transport type that is not registered."""


class CatalogError(DeviceConfigError):
    """Catalog file missing, unreadable or malformed."""


# =============================================================================
# Exit Code Helper
# =============================================================================

def exit_code_for(e: Optional[BaseException]) -> int:
    """
    Map an exception (or None for success) to a process exit code.

    Known errors carry their own exit_code; anything else is logged
    with its traceback and mapped to a generic failure.
    """
    if e is None:
        return EXIT_OK
    if isinstance(e, (ReconcileError, DeviceConfigError)):
        return e.exit_code
    logger.error("Unexpected failure", exc_info=e)
    return EXIT_FAILURE
