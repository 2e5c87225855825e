"""Tests for core/reconciler.py - fetch, canonicalize, compare, apply."""

from unittest.mock import MagicMock

import pytest

from core.attributes import AttributeSpec, Ensure, ResourceType
from core.errors import NotFoundError, TransportError
from core.reconciler import (
    AttributeChange,
    Reconciler,
    ReconcileState,
    Violation,
    compute_delta,
)
from core.reporter import EventLevel
from core.strictness import Outcome, StrictnessLevel

RETURNED = '{:name=>"wibble", :ensure=>:present, :string=>"sample"}'
CANONICALIZED = '{:name=>"wibble", :ensure=>:present, :string=>"changed"}'


def _reconciler(device_provider, fetcher, reporter, level, noop=False):
    return Reconciler(device_provider, fetcher, strictness=level, reporter=reporter, noop=noop)


class TestStrictError:
    """Non-canonical values under strict=error abort before applying."""

    def test_run_fails(self, device_provider, demo_device, reporter):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.ERROR).reconcile(
            "wibble", {"ensure": "present"}
        )

        assert not result.success
        assert result.state == ReconcileState.REPORTED
        assert result.outcome == Outcome.FAIL
        assert result.applied is False
        assert demo_device.applied == []

    def test_violation_carries_both_maps(self, device_provider, demo_device, reporter):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.ERROR).reconcile(
            "wibble", {"ensure": "present"}
        )

        violation = result.violation
        assert violation.returned == {"name": "wibble", "ensure": Ensure.PRESENT, "string": "sample"}
        assert violation.canonicalized == {"name": "wibble", "ensure": Ensure.PRESENT, "string": "changed"}

    def test_error_event(self, device_provider, demo_device, reporter, output):
        _reconciler(device_provider, demo_device, reporter, StrictnessLevel.ERROR).reconcile(
            "wibble", {"ensure": "present"}
        )

        errors = [e for e in reporter.events if e.level == EventLevel.ERROR]
        assert len(errors) == 1
        assert output.getvalue() == (
            "Error: /Device_provider[wibble]: Could not evaluate: "
            "device_provider[wibble]#get has not provided canonicalized values.\n"
            f"Returned values:       {RETURNED}\n"
            f"Canonicalized values:  {CANONICALIZED}\n"
        )


class TestStrictWarning:
    """Non-canonical values under strict=warning are reported and the run continues."""

    def test_run_succeeds_with_warning(self, device_provider, demo_device, reporter, output):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.WARNING).reconcile(
            "wibble", {"ensure": "present"}
        )

        assert result.success
        assert result.outcome == Outcome.WARN
        assert result.state == ReconcileState.REPORTED
        assert (
            "Warning: device_provider[wibble]#get has not provided canonicalized values.\n"
            f"Returned values:       {RETURNED}\n"
            f"Canonicalized values:  {CANONICALIZED}\n"
        ) in output.getvalue()

    def test_delta_still_applied(self, device_provider, demo_device, reporter):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.WARNING).reconcile(
            "wibble", {"ensure": "present"}
        )

        assert result.applied is True
        assert demo_device.fetch("device_provider", "wibble")["string"] == "changed"


class TestStrictOff:
    """Non-canonical values under strict=off are silently accepted."""

    def test_no_diagnostic(self, device_provider, demo_device, reporter, output):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.OFF).reconcile(
            "wibble", {"ensure": "present"}
        )

        assert result.success
        assert result.state == ReconcileState.ACCEPTED
        assert result.violation is not None
        assert result.outcome == Outcome.SUPPRESS
        assert "Warning" not in output.getvalue()
        assert "Error" not in output.getvalue()

    def test_change_notice(self, device_provider, demo_device, reporter, output):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.OFF).reconcile(
            "wibble", {"ensure": "present"}
        )

        assert result.delta.changes == (AttributeChange("string", "sample", "changed"),)
        assert output.getvalue() == (
            "Notice: /Device_provider[wibble]/string: string changed 'sample' to 'changed'\n"
        )
        assert demo_device.applied == [
            ("device_provider", "wibble", {"name": "wibble", "ensure": Ensure.PRESENT, "string": "changed"}),
        ]


class TestAbsentResources:
    def test_ensure_present_creates(self, device_provider, demo_device, reporter, output):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.ERROR).reconcile(
            "foo", {"ensure": "present"}
        )

        assert result.success
        assert result.violation is None
        assert result.delta.created is True
        assert result.delta.changes == (AttributeChange("ensure", Ensure.ABSENT, Ensure.PRESENT),)
        assert output.getvalue() == "Notice: /Device_provider[foo]/ensure: defined 'ensure' as 'present'\n"
        assert demo_device.fetch("device_provider", "foo")["ensure"] == Ensure.PRESENT

    def test_not_found_is_not_fatal(self, device_provider, reporter):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = NotFoundError("gone")

        reconciler = _reconciler(device_provider, fetcher, reporter, StrictnessLevel.ERROR)
        observed, synthesized = reconciler.observe("foo")

        assert synthesized is True
        assert observed == {"name": "foo", "ensure": Ensure.ABSENT}

    def test_absent_stays_absent(self, device_provider, demo_device, reporter):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.ERROR).reconcile(
            "foo", {"ensure": "absent"}
        )

        assert result.success
        assert not result.delta
        assert result.applied is False
        assert demo_device.applied == []

    def test_remove_existing(self, device_provider, demo_device, reporter, output):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.OFF).reconcile(
            "wibble", {"ensure": "absent"}
        )

        assert result.delta.changes == (AttributeChange("ensure", Ensure.PRESENT, Ensure.ABSENT),)
        assert "ensure changed 'present' to 'absent'" in output.getvalue()
        assert demo_device.list("device_provider") == []


class TestFailures:
    def test_transport_error_on_fetch(self, device_provider, reporter, output):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = TransportError("connection refused")

        result = _reconciler(device_provider, fetcher, reporter, StrictnessLevel.OFF).reconcile(
            "wibble", {"ensure": "present"}
        )

        assert not result.success
        assert result.error == "connection refused"
        fetcher.apply.assert_not_called()
        assert output.getvalue() == "Error: /Device_provider[wibble]: Could not evaluate: connection refused\n"

    def test_transport_error_on_apply(self, device_provider, reporter):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = NotFoundError("absent")
        fetcher.apply.side_effect = TransportError("write failed")

        result = _reconciler(device_provider, fetcher, reporter, StrictnessLevel.OFF).reconcile(
            "foo", {"ensure": "present"}
        )

        assert not result.success
        assert result.applied is False
        assert reporter.has_errors

    def test_unknown_desired_attribute(self, device_provider, demo_device, reporter):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.OFF).reconcile(
            "foo", {"colour": "blue"}
        )

        assert not result.success
        assert "unknown attribute 'colour'" in result.error
        assert demo_device.applied == []


class TestNoop:
    def test_noop_reports_without_applying(self, device_provider, demo_device, reporter, output):
        result = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.OFF, noop=True).reconcile(
            "foo", {"ensure": "present"}
        )

        assert result.success
        assert result.applied is False
        assert demo_device.applied == []
        assert "Info: /Device_provider[foo]: Would have applied 1 change(s)" in output.getvalue()


class TestViolationDetection:
    def test_violation_iff_not_canonical(self, device_provider, demo_device, reporter):
        reconciler = _reconciler(device_provider, demo_device, reporter, StrictnessLevel.ERROR)

        canonical = {"name": "x", "ensure": Ensure.PRESENT, "string": "changed"}
        assert reconciler.check_canonical("x", canonical) is None

        violation = reconciler.check_canonical("x", {"name": "x", "ensure": Ensure.PRESENT, "string": "other"})
        assert isinstance(violation, Violation)

    def test_in_sync_resource_has_no_changes(self, device_provider, reporter, output):
        fetcher = MagicMock()
        fetcher.fetch.return_value = {"name": "x", "ensure": Ensure.PRESENT, "string": "changed"}

        result = _reconciler(device_provider, fetcher, reporter, StrictnessLevel.ERROR).reconcile(
            "x", {"ensure": "present"}
        )

        assert result.success
        assert result.state == ReconcileState.ACCEPTED
        assert not result.delta
        fetcher.apply.assert_not_called()
        assert output.getvalue() == ""


class TestComputeDelta:
    @pytest.fixture
    def plain_type(self):
        return ResourceType(
            name="vlan",
            attributes=[AttributeSpec("name", namevar=True), AttributeSpec("description")],
        )

    def test_new_attribute_has_no_old_value(self, plain_type):
        delta = compute_delta(plain_type, "10", {"name": "10"}, {"name": "10", "description": "users"})
        assert delta.changes == (AttributeChange("description", None, "users"),)
        assert delta.created is False

    def test_unmanaged_attributes_ignored(self, device_provider):
        current = {"name": "a", "ensure": Ensure.PRESENT, "string": "x"}
        target = {"name": "a", "ensure": Ensure.PRESENT}
        assert not compute_delta(device_provider, "a", current, target)

    def test_records(self, device_provider):
        current = {"name": "a", "ensure": Ensure.PRESENT, "string": "x"}
        target = {"name": "a", "ensure": Ensure.PRESENT, "string": "y"}
        record = compute_delta(device_provider, "a", current, target).records()[0]
        assert (record.resource_type, record.resource_id, record.attribute) == ("device_provider", "a", "string")
        assert (record.old_value, record.new_value) == ("x", "y")
