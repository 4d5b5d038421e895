from __future__ import annotations

"""
In-memory indices over one catalog snapshot.

:func:`build_index` makes a single pass over the records and fills every
index at once:

- primary: id -> record (exactly one entry per record)
- categorical: attribute -> normalized value -> ids, catalog order
- numeric buckets: attribute -> band label -> ids (one band per record)
- flags: flag -> True/False -> ids
- keywords: folded vocabulary term -> ids whose declared text contains it

An :class:`IndexSet` is never mutated after it is built.  A reload builds
a new one and swaps the reference held by the store.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from loguru import logger

from .errors import CatalogLoadError
from .kinds import RecordKind
from .normalize import TermNormalizer, dedupe, fold_text


@dataclass(frozen=True)
class IndexSet:
    kind: str
    generation: int
    records: Tuple[Any, ...]
    by_id: Mapping[str, Any]
    positions: Mapping[str, int]
    categorical: Mapping[str, Mapping[str, Tuple[str, ...]]]
    buckets: Mapping[str, Mapping[str, Tuple[str, ...]]]
    flags: Mapping[str, Mapping[bool, FrozenSet[str]]]
    keywords: Mapping[str, FrozenSet[str]]
    prices: Mapping[str, Optional[float]]

    def __len__(self) -> int:
        return len(self.records)

    def get(self, record_id: Optional[str]) -> Optional[Any]:
        if record_id is None:
            return None
        return self.by_id.get(str(record_id).strip())

    def resolve(self, ids: Iterable[str]) -> List[Any]:
        """Records for ``ids`` in catalog order, duplicates dropped."""
        unique = {i for i in ids if i in self.by_id}
        return [self.by_id[i] for i in sorted(unique, key=self.positions.__getitem__)]

    def bucket_ids(self, attribute: str, label: str) -> Tuple[str, ...]:
        return self.buckets.get(attribute, {}).get(label, ())

    def keyword_ids(self, term: str) -> Set[str]:
        """
        Ids under every vocabulary key that equals, contains or is
        contained in the folded ``term``.
        """
        folded = fold_text(term)
        if not folded:
            return set()
        exact = self.keywords.get(folded)
        if exact is not None:
            return set(exact)
        ids: Set[str] = set()
        for key, bucket in self.keywords.items():
            if folded in key or key in folded:
                ids.update(bucket)
        return ids


def _freeze_lists(table: Dict[str, Dict[str, List[str]]]) -> Dict[str, Dict[str, Tuple[str, ...]]]:
    return {attr: {key: tuple(ids) for key, ids in buckets.items()} for attr, buckets in table.items()}


def build_index(kind: RecordKind, records: Sequence[Any], generation: int) -> IndexSet:
    """
    Build every index for ``records`` in one pass.

    Raises :class:`CatalogLoadError` on a blank or duplicate id; no
    partial index is ever returned.
    """
    by_id: Dict[str, Any] = {}
    positions: Dict[str, int] = {}
    categorical: Dict[str, Dict[str, List[str]]] = {f.name: {} for f in kind.categorical}
    buckets: Dict[str, Dict[str, List[str]]] = {f.name: {} for f in kind.numeric}
    flags: Dict[str, Dict[bool, Set[str]]] = {f.name: {True: set(), False: set()} for f in kind.flags}
    vocabulary = dedupe(t for t in (fold_text(term) for term in kind.vocabulary) if t)
    keywords: Dict[str, Set[str]] = {}
    prices: Dict[str, Optional[float]] = {}

    for position, record in enumerate(records):
        record_id = str(kind.record_id(record) or "").strip()
        if not record_id:
            raise CatalogLoadError(f"{kind.label} at position {position} has no id")
        if record_id in by_id:
            raise CatalogLoadError(f"duplicate {kind.label} id {record_id!r}")

        # (a) primary
        by_id[record_id] = record
        positions[record_id] = position
        prices[record_id] = kind.price(record)

        # (b) categorical
        for cat in kind.categorical:
            for key in cat.keys(record):
                categorical[cat.name].setdefault(key, []).append(record_id)

        # (c) numeric bands
        for num in kind.numeric:
            buckets[num.name].setdefault(num.bucket(record), []).append(record_id)

        for flag in kind.flags:
            value = flag.value(record)
            if value is not None:
                flags[flag.name][bool(value)].add(record_id)

        # (d) fixed-vocabulary keywords
        if vocabulary:
            haystack = fold_text(" ".join(t for t in kind.keyword_fields(record) if t))
            for term in vocabulary:
                if term in haystack:
                    keywords.setdefault(term, set()).add(record_id)

    return IndexSet(
        kind=kind.name,
        generation=generation,
        records=tuple(records),
        by_id=by_id,
        positions=positions,
        categorical=_freeze_lists(categorical),
        buckets=_freeze_lists(buckets),
        flags={name: {k: frozenset(v) for k, v in split.items()} for name, split in flags.items()},
        keywords={term: frozenset(ids) for term, ids in keywords.items()},
        prices=prices,
    )


def report_vocabulary_drift(kind: RecordKind, index: IndexSet, normalizer: TermNormalizer) -> Dict[str, List[str]]:
    """
    Log canonical synonym tokens that match no indexed value, per
    attribute.  Returns the drift so callers can assert on it.
    """
    drift: Dict[str, List[str]] = {}
    for cat in kind.categorical:
        if cat.table not in normalizer.attributes:
            continue
        missing = normalizer.drift(cat.table, index.categorical.get(cat.name, {}).keys(), substring=cat.substring)
        if missing:
            drift[cat.name] = missing
            logger.warning(
                "{} synonyms for '{}' point at values absent from the catalog: {}",
                kind.name, cat.name, missing,
            )
    return drift


def index_statistics(kind: RecordKind, index: IndexSet) -> Dict[str, Any]:
    return {
        "kind": kind.name,
        "generation": index.generation,
        "records": len(index),
        "categorical": {name: len(keys) for name, keys in index.categorical.items()},
        "buckets": {
            name: {label: len(ids) for label, ids in bands.items()} for name, bands in index.buckets.items()
        },
        "keywords": len(index.keywords),
        "flags": {name: len(split.get(True, ())) for name, split in index.flags.items()},
    }
