"""
User-facing reporting of reconciliation outcomes.

Every outcome is captured as a structured Event first and rendered to text
second. The rendered lines are a compatibility contract:

    Notice: /Device_provider[foo]/ensure: defined 'ensure' as 'present'
    Notice: /Device_provider[wibble]/string: string changed 'sample' to 'changed'
    Warning: device_provider[wibble]#get has not provided canonicalized values.
    Error: /Device_provider[wibble]: Could not evaluate: device_provider[wibble]#get has ...

Reporter output is separate from application logging: logging goes to
stderr through the logging module, reporter lines go to the reporter stream.

Usage:
    from core.reporter import Reporter

    reporter = Reporter(verbose=True)
    reporter.notice("Applied catalog in 0.01 seconds")
    reporter.has_errors  # False
"""

import logging
import sys
import threading
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import IO, List, Optional

from core.attributes import AttributeSet, ResourceType, plain_value
from core.timestamps import isonow

logger = logging.getLogger(__name__)


class EventLevel(Enum):
    """Severity of a reported event, in increasing order."""

    INFO = "Info"
    NOTICE = "Notice"
    WARNING = "Warning"
    ERROR = "Error"


@dataclass(frozen=True)
class Event:
    """A single reportable outcome."""
    level: EventLevel
    message: str
    source: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    timestamp: str = ""

    def render(self) -> str:
        """Render as '<Level>: [<source>: ]<message>'."""
        if self.source:
            return f"{self.level.value}: {self.source}: {self.message}"
        return f"{self.level.value}: {self.message}"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["level"] = self.level.value
        return data


class Reporter:
    """
    Collects events and writes their rendered form to a stream.

    Thread-safe: catalog runs may reconcile resources in parallel and
    share one reporter. Info events are recorded always but only
    printed when verbose.
    """

    def __init__(self, stream: Optional[IO[str]] = None, verbose: bool = False):
        self.stream = stream
        self.verbose = verbose
        self._events: List[Event] = []
        self._lock = threading.Lock()

    @property
    def events(self) -> List[Event]:
        with self._lock:
            return list(self._events)

    @property
    def has_errors(self) -> bool:
        return any(e.level == EventLevel.ERROR for e in self.events)

    def emit(self, event: Event) -> Event:
        if not event.timestamp:
            event = replace(event, timestamp=isonow())
        with self._lock:
            self._events.append(event)
            if event.level != EventLevel.INFO or self.verbose:
                stream = self.stream or sys.stdout
                stream.write(event.render() + "\n")
                stream.flush()
        return event

    def info(self, message: str, source: Optional[str] = None) -> Event:
        return self.emit(Event(EventLevel.INFO, message, source))

    def notice(self, message: str, source: Optional[str] = None) -> Event:
        return self.emit(Event(EventLevel.NOTICE, message, source))

    def warning(self, message: str, source: Optional[str] = None) -> Event:
        return self.emit(Event(EventLevel.WARNING, message, source))

    def error(self, message: str, source: Optional[str] = None) -> Event:
        return self.emit(Event(EventLevel.ERROR, message, source))


# =============================================================================
# Rendering helpers
# =============================================================================


def resource_path(resource_type: ResourceType, resource_id: str, attribute: Optional[str] = None) -> str:
    """Event source for a resource or one of its attributes: /Device_provider[foo]/ensure."""
    path = f"/{resource_type.title}[{resource_id}]"
    if attribute:
        path += f"/{attribute}"
    return path


def change_message(attribute: str, old_value, new_value, created: bool = False) -> str:
    """Notice text for one attribute change."""
    if created or old_value is None:
        return f"defined '{attribute}' as '{plain_value(new_value)}'"
    return f"{attribute} changed '{plain_value(old_value)}' to '{plain_value(new_value)}'"


def render_resource(resource_type: ResourceType, resource_id: str, attrs: AttributeSet) -> str:
    """
    Render one resource in listing format.

    ensure comes first, remaining attributes alphabetically, arrows
    aligned on the longest attribute name:

        device_provider { "wibble":
          ensure => 'present',
          string => 'sample',
        }
    """
    names = [k for k in attrs if k != resource_type.namevar and attrs[k] is not None]
    ordered = (["ensure"] if "ensure" in names else []) + sorted(n for n in names if n != "ensure")
    width = max((len(n) for n in ordered), default=0)

    lines = [f'{resource_type.name} {{ "{resource_id}": ']
    for name in ordered:
        lines.append(f"  {name.ljust(width)} => '{plain_value(attrs[name])}',")
    lines.append("}")
    return "\n".join(lines)
