"""
Catalog loading and application.

A catalog is a YAML list of resource declarations:

    resources:
      - type: notify
        name: foo
      - type: device_provider
        name: foo
        attributes:
          ensure: present
    require_facts:
      foo: bar

Each resource is reconciled independently. One resource failing (transport
error, fatal canonicalization violation, schema error) never stops its
siblings; the run as a whole fails if any resource failed.

Usage:
    from core.catalog import CatalogRunner, load_catalog

    catalog = load_catalog("site.yaml")
    runner = CatalogRunner(transport, strictness=StrictnessLevel.ERROR, reporter=reporter)
    run = runner.run(catalog)
    run.success  # False if any resource failed
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from core.errors import CatalogError, ReconcileError
from core.reconciler import Reconciler, ReconcileResult, ReconcileState
from core.reporter import Reporter
from core.resource_types import get_type
from core.strictness import StrictnessLevel
from core.timestamps import isonow
from core.transport import Transport

logger = logging.getLogger(__name__)

CATALOG_KEYS = {"resources", "require_facts"}


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class CatalogEntry:
    """One declared resource."""
    type_name: str
    resource_id: str
    attributes: Dict[str, object] = field(default_factory=dict)

    @property
    def ref(self) -> str:
        return f"{self.type_name}[{self.resource_id}]"


@dataclass
class Catalog:
    """Resources to apply plus facts the target must report."""
    entries: List[CatalogEntry] = field(default_factory=list)
    require_facts: Dict[str, str] = field(default_factory=dict)


@dataclass
class CatalogRunResult:
    """Aggregated result of one catalog run."""
    results: List[ReconcileResult] = field(default_factory=list)
    started_at: str = ""
    elapsed_time: float = 0.0
    error: Optional[str] = None

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def changed(self) -> int:
        return sum(1 for r in self.results if r.delta)

    @property
    def success(self) -> bool:
        return self.error is None and self.failed == 0

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at,
            "elapsed_time": self.elapsed_time,
            "total": len(self.results),
            "successful": self.successful,
            "failed": self.failed,
            "changed": self.changed,
            "error": self.error,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Loading
# =============================================================================


def parse_catalog(data, source: str = "<catalog>") -> Catalog:
    """Build a Catalog from already-parsed YAML data."""
    if data is None:
        return Catalog()

    require_facts = {}
    if isinstance(data, dict):
        unknown = sorted(str(k) for k in data if k not in CATALOG_KEYS)
        if unknown:
            raise CatalogError(
                f"{source}: unexpected key(s) {', '.join(unknown)}, "
                f"expected a list of resources or a mapping with 'resources'"
            )
        require_facts = data.get("require_facts") or {}
        if not isinstance(require_facts, dict):
            raise CatalogError(f"{source}: require_facts must be a mapping")
        data = data.get("resources") or []

    if not isinstance(data, list):
        raise CatalogError(f"{source}: expected a list of resources")

    entries = []
    seen = set()
    for index, item in enumerate(data):
        if not isinstance(item, dict) or "type" not in item or "name" not in item:
            raise CatalogError(f"{source}: resource #{index + 1} needs 'type' and 'name'")
        attributes = item.get("attributes") or {}
        if not isinstance(attributes, dict):
            raise CatalogError(f"{source}: attributes of {item['type']}[{item['name']}] must be a mapping")

        entry = CatalogEntry(str(item["type"]).lower(), str(item["name"]), dict(attributes))
        if entry.ref in seen:
            raise CatalogError(f"{source}: duplicate declaration {entry.ref}")
        seen.add(entry.ref)
        entries.append(entry)

    return Catalog(entries=entries, require_facts={str(k): str(v) for k, v in require_facts.items()})


def load_catalog(path: Union[str, Path]) -> Catalog:
    """Load a catalog from a YAML file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid catalog {path}: {e}") from e

    catalog = parse_catalog(data, source=str(path))
    logger.info(f"Loaded {len(catalog.entries)} resource(s) from {path}")
    return catalog


# =============================================================================
# Runner
# =============================================================================


class CatalogRunner:
    """
    Applies a catalog to one device.

    With max_workers > 1 resources are reconciled in parallel; results are
    always returned in catalog order.
    """

    def __init__(
        self,
        transport: Transport,
        strictness: StrictnessLevel = StrictnessLevel.WARNING,
        reporter: Optional[Reporter] = None,
        max_workers: int = 1,
        noop: bool = False,
    ):
        self.transport = transport
        self.strictness = StrictnessLevel.parse(strictness)
        self.reporter = reporter or Reporter()
        self.max_workers = max(1, max_workers)
        self.noop = noop

    def run(self, catalog: Catalog) -> CatalogRunResult:
        run = CatalogRunResult(started_at=isonow())
        start_time = time.time()

        if not self.check_facts(catalog.require_facts):
            run.error = "required facts not satisfied"
            run.elapsed_time = time.time() - start_time
            return run

        entries = catalog.entries
        if self.max_workers == 1 or len(entries) <= 1:
            run.results = [self._safe_apply(entry) for entry in entries]
        else:
            results: List[Optional[ReconcileResult]] = [None] * len(entries)
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._safe_apply, entry): index
                    for index, entry in enumerate(entries)
                }
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            run.results = results

        run.elapsed_time = time.time() - start_time
        logger.info(
            f"Catalog run: {run.successful} succeeded, {run.failed} failed, "
            f"{run.changed} changed in {run.elapsed_time:.2f}s"
        )
        return run

    def apply_entry(self, entry: CatalogEntry) -> ReconcileResult:
        """Reconcile one catalog entry."""
        try:
            rtype = get_type(entry.type_name)
        except ReconcileError as e:
            return self._failed(entry, e)

        fetcher = rtype.local_provider(self.reporter) if rtype.local_provider else self.transport
        reconciler = Reconciler(
            rtype,
            fetcher,
            strictness=self.strictness,
            reporter=self.reporter,
            noop=self.noop,
        )
        return reconciler.reconcile(entry.resource_id, entry.attributes)

    def _safe_apply(self, entry: CatalogEntry) -> ReconcileResult:
        try:
            return self.apply_entry(entry)
        except Exception as e:
            return self._failed(entry, e)

    def check_facts(self, required: Dict[str, str]) -> bool:
        """Verify the device reports every required fact value."""
        if not required:
            return True
        facts = self.transport.facts()
        ok = True
        for name, expected in required.items():
            actual = facts.get(name)
            if actual != expected:
                self.reporter.error(f"Fact '{name}' is '{actual}', expected '{expected}'")
                ok = False
        return ok

    def _failed(self, entry: CatalogEntry, e: Exception) -> ReconcileResult:
        logger.error(f"{entry.ref}: {e}")
        event = self.reporter.error(f"Could not evaluate: {e}", source=f"/{entry.type_name.capitalize()}[{entry.resource_id}]")
        return ReconcileResult(
            entry.type_name,
            entry.resource_id,
            state=ReconcileState.REPORTED,
            error=str(e),
            events=[event],
        )
