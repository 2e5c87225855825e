"""
Device transport interface and registry.

A transport is the blocking I/O boundary between the reconciler and a
remote, agentless device. The reconciler only ever calls two methods on
it: ``fetch`` (read one resource) and ``apply`` (write one resource).
The CLI additionally uses ``list`` and ``facts``.

Transports are registered by the ``type`` name used in device.conf:

    [the_node]
    type test_device
    url  file:///etc/credentials.txt

Usage:
    from core.transport import create_transport

    with create_transport("test_device", "file:///etc/credentials.txt") as transport:
        state = transport.fetch("device_provider", "wibble")
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Protocol, Type
from urllib.parse import urlparse

from core.attributes import AttributeSet
from core.errors import NotFoundError, TransportError, UnknownTransportError

logger = logging.getLogger(__name__)


class StateFetcher(Protocol):
    """The two collaborator calls the reconciler makes for one resource."""

    def fetch(self, type_name: str, resource_id: str, namevar: str = "name") -> AttributeSet: ...

    def apply(self, type_name: str, resource_id: str, target: AttributeSet) -> None: ...


class Transport(ABC):
    """
    Base class for device transports.

    Subclasses declare ``transport_type`` and ``schemes`` and implement
    ``list`` and ``apply``. ``fetch`` defaults to scanning ``list``.
    """

    transport_type: str = ""
    schemes: tuple = ()

    def __init__(self, url: str):
        self.url = url
        self.parsed_url = urlparse(url)
        if self.schemes and self.parsed_url.scheme not in self.schemes:
            raise TransportError(
                f"{self.transport_type}: unsupported URL scheme '{self.parsed_url.scheme}' in {url}"
            )
        self.connected = False

    # -- context manager -------------------------------------------------

    def __enter__(self) -> "Transport":
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # -- lifecycle -------------------------------------------------------

    def connect(self) -> None:
        """Open the device session."""
        logger.debug(f"{self.transport_type}: connecting to {self.url}")
        self.connected = True

    def close(self) -> None:
        """Close the device session."""
        if self.connected:
            logger.debug(f"{self.transport_type}: closing {self.url}")
        self.connected = False

    def facts(self) -> Dict[str, str]:
        """Facts the device reports about itself."""
        return {}

    # -- resource access -------------------------------------------------

    @abstractmethod
    def list(self, type_name: str) -> List[AttributeSet]:
        """Return every instance of type_name the device currently has."""

    def fetch(self, type_name: str, resource_id: str, namevar: str = "name") -> AttributeSet:
        """Return the observed state of one resource or raise NotFoundError.

        Instances are matched on their namevar attribute.
        """
        for attrs in self.list(type_name):
            if attrs.get(namevar) == resource_id:
                return dict(attrs)
        raise NotFoundError(f"{type_name}[{resource_id}] not found on {self.url}")

    @abstractmethod
    def apply(self, type_name: str, resource_id: str, target: AttributeSet) -> None:
        """Write the full canonical target state of one resource to the device."""


# =============================================================================
# Registry
# =============================================================================

_TRANSPORTS: Dict[str, Type[Transport]] = {}


def register_transport(cls: Type[Transport]) -> Type[Transport]:
    """Class decorator registering a transport under its transport_type."""
    if not cls.transport_type:
        raise ValueError(f"{cls.__name__} does not declare a transport_type")
    _TRANSPORTS[cls.transport_type] = cls
    return cls


def registered_transports() -> List[str]:
    return sorted(_TRANSPORTS)


def create_transport(transport_type: str, url: str) -> Transport:
    """Instantiate the transport registered for transport_type."""
    cls: Optional[Callable[[str], Transport]] = _TRANSPORTS.get(transport_type)
    if cls is None:
        known = ", ".join(registered_transports()) or "none"
        raise UnknownTransportError(f"Unknown device type '{transport_type}' (registered: {known})")
    return cls(url)
