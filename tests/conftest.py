"""Shared pytest fixtures for device reconciliation tests."""
import io
import os

import pytest

# Keep a developer's .env / shell settings out of the tests
for _var in ("STRICT", "NOOP", "RECONCILE_MAX_WORKERS", "DEVICECONFIG", "LOG_LEVEL"):
    os.environ.pop(_var, None)

from config.settings import get_settings
from core.demo.device import DemoDevice
from core.demo.provider import DEVICE_PROVIDER
from core.reporter import Reporter


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture(autouse=True)
def _reset_settings():
    """Settings are an lru_cache singleton; start every test clean."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Device Fixtures
# =============================================================================

@pytest.fixture
def demo_device():
    """Connected in-memory device seeded with wibble (string 'sample')."""
    device = DemoDevice("file:///etc/credentials.txt")
    device.connect()
    yield device
    device.close()


@pytest.fixture
def device_provider():
    return DEVICE_PROVIDER


@pytest.fixture
def output():
    """Stream the reporter writes rendered lines to."""
    return io.StringIO()


@pytest.fixture
def reporter(output):
    return Reporter(stream=output, verbose=True)


@pytest.fixture
def device_conf(tmp_path):
    """A device.conf declaring the_node on the demo device."""
    path = tmp_path / "device.conf"
    path.write_text(
        "[the_node]\n"
        "type test_device\n"
        "url  file:///etc/credentials.txt\n"
    )
    return path
