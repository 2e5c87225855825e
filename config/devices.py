"""
Device-config (device.conf) parsing and target resolution.

Each target device is declared in its own section:

    [the_node]
    type test_device
    url  file:///etc/credentials.txt
    debug

``type`` names a registered transport, ``url`` tells the transport where
the device lives, and the optional bare ``debug`` flag turns on debug
logging for that device's transport. Lines starting with ``#`` or ``;``
are comments.

Targets are resolved before any reconciliation begins; a missing file or
section raises TargetNotFoundError.

Usage:
    from config.devices import resolve_target

    device = resolve_target("the_node", "/etc/devicectl/device.conf")
    transport = device.create_transport()
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import load_dotenv

from core.errors import DeviceConfigError, TargetNotFoundError
from core.transport import Transport, create_transport

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r"^\[([^\]]+)\]$")
SETTING_RE = re.compile(r"^(\w+)(?:\s+(.*))?$")
FLAG_KEYS = {"debug"}
VALUE_KEYS = {"type", "url"}


@dataclass(frozen=True)
class DeviceConfig:
    """One target device entry."""
    name: str
    type: str
    url: str
    debug: bool = False

    def create_transport(self) -> Transport:
        transport = create_transport(self.type, self.url)
        if self.debug:
            logging.getLogger(type(transport).__module__).setLevel(logging.DEBUG)
        return transport


def parse_device_config(text: str, source: str = "<string>") -> Dict[str, DeviceConfig]:
    """Parse device.conf content into DeviceConfig entries keyed by target name."""
    raw: Dict[str, dict] = {}
    current: Optional[str] = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith(("#", ";")):
            continue

        section = SECTION_RE.match(line)
        if section:
            current = section.group(1).strip()
            if current in raw:
                raise DeviceConfigError(f"{source}:{lineno}: duplicate device '{current}'")
            raw[current] = {}
            continue

        if current is None:
            raise DeviceConfigError(f"{source}:{lineno}: setting outside of a [device] section")

        setting = SETTING_RE.match(line)
        if not setting:
            raise DeviceConfigError(f"{source}:{lineno}: cannot parse '{line}'")

        key, value = setting.group(1), (setting.group(2) or "").strip()
        if key in FLAG_KEYS and not value:
            raw[current][key] = True
        elif key in VALUE_KEYS and value:
            raw[current][key] = value
        else:
            raise DeviceConfigError(f"{source}:{lineno}: invalid setting '{line}' for device '{current}'")

    devices = {}
    for name, entry in raw.items():
        missing = sorted(VALUE_KEYS - set(entry))
        if missing:
            raise DeviceConfigError(f"{source}: device '{name}' is missing {', '.join(missing)}")
        devices[name] = DeviceConfig(
            name=name,
            type=entry["type"],
            url=entry["url"],
            debug=entry.get("debug", False),
        )

    logger.debug(f"Loaded {len(devices)} device(s) from {source}")
    return devices


def load_device_config(path: Union[str, Path]) -> Dict[str, DeviceConfig]:
    """Read and parse a device.conf file. Returns {} when the file does not exist."""
    path = Path(path)
    if not path.is_file():
        logger.warning(f"Device config {path} does not exist")
        return {}
    return parse_device_config(path.read_text(), source=str(path))


def resolve_target(target: str, path: Union[str, Path]) -> DeviceConfig:
    """Return the DeviceConfig for target or raise TargetNotFoundError."""
    devices = load_device_config(path)
    device = devices.get(target)
    if device is None:
        raise TargetNotFoundError(target, path)
    logger.info(f"Resolved target {target} to {device.type} at {device.url}")
    return device
