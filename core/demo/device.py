"""
In-memory demo device.

Provides the ``test_device`` transport: a stateful device simulator that
needs no real appliance. State is seeded from core.demo.fixtures and lives
only as long as the transport instance.

The URL only identifies the device (``file:///etc/credentials.txt`` in the
stock device.conf); it is never opened.
"""

import copy
import logging
import threading
from typing import Dict, List

from core.attributes import AttributeSet, Ensure
from core.errors import TransportError
from core.transport import Transport, register_transport

logger = logging.getLogger(__name__)


@register_transport
class DemoDevice(Transport):
    """Stateful in-memory device for demo mode and tests."""

    transport_type = "test_device"
    schemes = ("file", "memory")

    def __init__(self, url: str):
        super().__init__(url)
        from core.demo.fixtures import DEMO_FACTS, DEMO_RESOURCES

        self._resources: Dict[str, Dict[str, dict]] = copy.deepcopy(DEMO_RESOURCES)
        self._facts = dict(DEMO_FACTS)
        self._lock = threading.Lock()
        self.applied: List[tuple] = []

    def facts(self) -> Dict[str, str]:
        self._require_connection()
        return dict(self._facts)

    def list(self, type_name: str) -> List[AttributeSet]:
        self._require_connection()
        with self._lock:
            entries = self._resources.get(type_name, {})
            return [self._decode(attrs) for attrs in entries.values()]

    def apply(self, type_name: str, resource_id: str, target: AttributeSet) -> None:
        self._require_connection()
        with self._lock:
            entries = self._resources.setdefault(type_name, {})
            if target.get("ensure") == Ensure.ABSENT:
                entries.pop(resource_id, None)
                logger.info(f"{type_name}[{resource_id}]: removed from {self.url}")
            else:
                entries[resource_id] = self._encode(target)
                logger.info(f"{type_name}[{resource_id}]: stored on {self.url}")
            self.applied.append((type_name, resource_id, dict(target)))

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(attrs: dict) -> AttributeSet:
        """Stored strings to typed values (ensure becomes an Ensure member)."""
        decoded = dict(attrs)
        if "ensure" in decoded:
            decoded["ensure"] = Ensure(decoded["ensure"])
        return decoded

    @staticmethod
    def _encode(attrs: AttributeSet) -> dict:
        return {
            key: value.value if isinstance(value, Ensure) else value
            for key, value in attrs.items()
        }

    def _require_connection(self) -> None:
        if not self.connected:
            raise TransportError(f"{self.transport_type}: not connected to {self.url}")
