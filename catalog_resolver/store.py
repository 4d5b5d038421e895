from __future__ import annotations

"""
Ownership of one catalog's records and indices.

A :class:`CatalogStore` loads its records lazily from a record source on
first access and keeps the resulting :class:`~catalog_resolver.index.IndexSet`
until it is invalidated or reloaded.

Concurrency rules:

- the first build is single-flight: concurrent cold callers block on a
  lock while exactly one of them loads and indexes;
- once built, reads take no lock and only dereference the snapshot;
- reloads build the new snapshot completely before swapping it in, so a
  reader sees either the old or the new catalog, never a mix;
- each swap increments the generation number carried by the snapshot.
"""

import threading
from typing import Any, Iterable, List, Optional

from loguru import logger

from .errors import CatalogLoadError
from .index import IndexSet, build_index, index_statistics, report_vocabulary_drift
from .kinds import RecordKind
from .normalize import TermNormalizer


class CatalogStore:
    def __init__(self, kind: RecordKind, source: Any, normalizer: Optional[TermNormalizer] = None) -> None:
        self.kind = kind
        self.source = source
        self.normalizer = normalizer or TermNormalizer(kind.synonyms)
        self._lock = threading.Lock()
        self._snapshot: Optional[IndexSet] = None
        self._error: Optional[CatalogLoadError] = None
        self._generation = 0
        self.build_count = 0

    # ---------------------------
    # Reads
    # ---------------------------

    def indices(self) -> IndexSet:
        """
        Current snapshot, building it on first call.

        After a failed build the stored error is re-raised on every call
        until :meth:`reload` succeeds or :meth:`invalidate` clears it.
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                if self._error is not None:
                    raise self._error
                try:
                    self._snapshot = self._build(None)
                except CatalogLoadError as e:
                    self._error = e
                    raise
            return self._snapshot

    def records(self) -> List[Any]:
        return list(self.indices().records)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def statistics(self) -> dict:
        return index_statistics(self.kind, self.indices())

    def values(self, attribute: str) -> List[str]:
        """Distinct indexed values of a categorical attribute, sorted."""
        return sorted(self.indices().categorical.get(attribute, {}).keys())

    # ---------------------------
    # Writes
    # ---------------------------

    def reload(self) -> IndexSet:
        """
        Reload from the source and swap the snapshot in.

        On failure the previous snapshot, if any, keeps being served and
        the error propagates.
        """
        with self._lock:
            snapshot = self._build(None)
            self._snapshot = snapshot
            self._error = None
            return snapshot

    def replace(self, records: Iterable[Any]) -> IndexSet:
        """Swap in a caller-supplied record list (raw mappings are validated)."""
        with self._lock:
            snapshot = self._build(list(records))
            self._snapshot = snapshot
            self._error = None
            return snapshot

    def invalidate(self) -> None:
        """Drop the snapshot and any stored error; the next read rebuilds."""
        with self._lock:
            self._snapshot = None
            self._error = None
        logger.info("Invalidated {} catalog (generation {})", self.kind.name, self._generation)

    # ---------------------------
    # Build
    # ---------------------------

    def _build(self, records: Optional[List[Any]]) -> IndexSet:
        """Load (unless given records), validate and index.  Lock held by caller."""
        origin = self._describe()
        self.build_count += 1
        try:
            if records is None:
                records = list(self.source.load())
            else:
                records = [self.kind.coerce(r) for r in records]
            snapshot = build_index(self.kind, records, self._generation + 1)
        except CatalogLoadError as e:
            logger.error("Failed to build {} catalog from {}: {}", self.kind.name, origin, e)
            raise
        except Exception as e:
            logger.exception("Failed to build {} catalog from {}: {}", self.kind.name, origin, e)
            raise CatalogLoadError(f"failed to build {self.kind.name} catalog: {e}", source=origin) from e

        self._generation = snapshot.generation
        logger.info(
            "Built {} catalog: {} records, {} keywords (generation {})",
            self.kind.name, len(snapshot), len(snapshot.keywords), snapshot.generation,
        )
        report_vocabulary_drift(self.kind, snapshot, self.normalizer)
        return snapshot

    def _describe(self) -> str:
        describe = getattr(self.source, "describe", None)
        return describe() if callable(describe) else repr(self.source)
