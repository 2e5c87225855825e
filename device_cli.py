#!/usr/bin/env python3
"""
Command-line front end for device reconciliation.

Subcommands:
    resource   List, show, or change resources on a device
    device     Apply a catalog to a target declared in device.conf

Usage:
    devicectl resource device_provider
    devicectl resource device_provider wibble
    devicectl resource --strict=error device_provider foo ensure=present
    devicectl device --target the_node --deviceconfig device.conf --apply site.yaml

Exit status is 0 on success (including warnings) and 1 when any resource
failed or the target could not be resolved.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from config.devices import resolve_target
from config.settings import get_settings
from core.attributes import AttributeSet
from core.catalog import Catalog, CatalogRunner, load_catalog
from core.errors import DeviceConfigError, ReconcileError, exit_code_for
from core.reconciler import Reconciler
from core.reporter import Reporter, render_resource
from core.resource_types import get_type, registered_types
from core.strictness import StrictnessLevel
from core.transport import Transport, create_transport

# Demo device and its resource type register themselves on import
import core.demo.device  # noqa: F401
import core.demo.provider  # noqa: F401

logger = logging.getLogger(__name__)

STRICT_CHOICES = [level.value for level in StrictnessLevel]


def parse_attribute_args(pairs: List[str]) -> Dict[str, str]:
    """Turn ['ensure=present', 'string=x'] into {'ensure': 'present', 'string': 'x'}."""
    attrs = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid attribute '{pair}', expected key=value")
        attrs[key.strip()] = value
    return attrs


def configure_logging(args: argparse.Namespace, default_level: str) -> None:
    if args.debug or args.trace:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = getattr(logging, default_level, logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def describe_types() -> str:
    """Help text listing every registered type with its attributes."""
    lines = ["resource types:"]
    for name in registered_types():
        rtype = get_type(name)
        lines.append(f"  {name}: {rtype.description}" if rtype.description else f"  {name}")
        for spec in rtype.attributes:
            lines.append(f"    {spec.name:<10} {spec.description}".rstrip())
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Print Info lines and INFO logging")
    common.add_argument("-d", "--debug", action="store_true", help="Enable DEBUG logging")
    common.add_argument("--trace", action="store_true", help="Enable DEBUG logging with tracebacks")
    common.add_argument("--strict", choices=STRICT_CHOICES, help="How to treat non-canonical device data")
    common.add_argument("--noop", action="store_true", default=None, help="Report changes without applying them")
    common.add_argument("--target", help="Target device name from the device config")
    common.add_argument("--deviceconfig", help="Path to device.conf")

    parser = argparse.ArgumentParser(prog="devicectl", description="Reconcile resources on remote devices")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resource = subparsers.add_parser(
        "resource", parents=[common], help="List, show, or change resources",
        epilog=describe_types(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    resource.add_argument("type", help="Resource type, e.g. device_provider")
    resource.add_argument("name", nargs="?", help="Resource name")
    resource.add_argument("attributes", nargs="*", help="key=value pairs to apply")

    device = subparsers.add_parser("device", parents=[common], help="Apply a catalog to a target device")
    device.add_argument("--apply", metavar="CATALOG", help="YAML catalog to apply")
    device.add_argument("--workers", type=int, help="Resources reconciled in parallel")

    return parser


def open_transport(args: argparse.Namespace, settings) -> Transport:
    """Transport for --target, or the default device when no target is given."""
    if args.target:
        deviceconfig = args.deviceconfig or settings.devices.deviceconfig
        return resolve_target(args.target, deviceconfig).create_transport()
    return create_transport(settings.devices.default_transport, settings.devices.default_url)


def cmd_resource(args: argparse.Namespace, settings, reporter: Reporter, strictness: StrictnessLevel, noop: bool) -> int:
    rtype = get_type(args.type)
    desired: AttributeSet = parse_attribute_args(args.attributes)

    with open_transport(args, settings) as transport:
        fetcher = rtype.local_provider(reporter) if rtype.local_provider else transport

        if not args.name:
            if rtype.local_provider:
                return 0
            for attrs in transport.list(rtype.name):
                print(render_resource(rtype, attrs[rtype.namevar], rtype.ordered(attrs)))
            return 0

        reconciler = Reconciler(rtype, fetcher, strictness=strictness, reporter=reporter, noop=noop)
        if not desired:
            observed, _ = reconciler.observe(args.name)
            print(render_resource(rtype, args.name, observed))
            return 0

        result = reconciler.reconcile(args.name, desired)
        if result.success:
            shown = result.target if result.applied else result.observed
            print(render_resource(rtype, args.name, shown))
        return 0 if result.success else 1


def cmd_device(args: argparse.Namespace, settings, reporter: Reporter, strictness: StrictnessLevel, noop: bool) -> int:
    if not args.target:
        raise DeviceConfigError("device requires --target")

    deviceconfig = args.deviceconfig or settings.devices.deviceconfig
    device = resolve_target(args.target, deviceconfig)
    catalog = load_catalog(args.apply) if args.apply else Catalog()
    workers = args.workers or settings.reconcile.reconcile_max_workers

    reporter.info(f"starting applying configuration to {device.name} at {device.url}")
    with device.create_transport() as transport:
        facts = transport.facts()
        logger.debug(f"{device.name}: {len(facts)} fact(s) retrieved")

        runner = CatalogRunner(transport, strictness=strictness, reporter=reporter, max_workers=workers, noop=noop)
        run = runner.run(catalog)

    reporter.notice(f"Applied catalog in {run.elapsed_time:.2f} seconds")
    return 0 if run.success else 1


COMMANDS = {
    "resource": cmd_resource,
    "device": cmd_device,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    reporter = Reporter(stream=sys.stdout, verbose=args.verbose or args.debug or args.trace)

    try:
        settings = get_settings()
        configure_logging(args, settings.log_level)

        strictness = StrictnessLevel.parse(args.strict) if args.strict else settings.reconcile.strict
        noop = settings.reconcile.noop if args.noop is None else args.noop

        return COMMANDS[args.command](args, settings, reporter, strictness, noop)
    except (ReconcileError, DeviceConfigError, ValueError) as e:
        if args.trace:
            logger.exception(f"{args.command} failed")
        reporter.error(str(e))
        return 1 if isinstance(e, ValueError) else exit_code_for(e)


if __name__ == "__main__":
    sys.exit(main())
