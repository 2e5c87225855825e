"""
Fixtures for the demo test_device.

Seed state served by the in-memory device and the facts it reports.
Every DemoDevice instance starts from a fresh copy of this data.
"""

# ---------------------------------------------------------------------------
# Resource state keyed by type name, then resource name
# ---------------------------------------------------------------------------
DEMO_RESOURCES: dict[str, dict[str, dict]] = {
    "device_provider": {
        "wibble": {
            "name": "wibble",
            "ensure": "present",
            "string": "sample",
        },
    },
}

# ---------------------------------------------------------------------------
# Facts reported by the device
# ---------------------------------------------------------------------------
DEMO_FACTS: dict[str, str] = {
    "foo": "bar",
    "operatingsystem": "test_device",
}
