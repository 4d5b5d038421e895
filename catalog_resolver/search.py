from __future__ import annotations

"""
Search over one catalog.

:meth:`SearchEngine.search` runs in three stages:

1. candidate selection from the most selective index available, in a
   fixed priority: record id, then the kind's categorical attributes in
   declared order (family/brand before technology before segment or
   partner).  With none of those present every record is a candidate.
2. residual filtering of every predicate not consumed in stage 1,
   skipping a record at its first failing predicate.
3. sort by ascending primary price; records without a price go last and
   ties keep catalog order.

When nothing matches and the query carries a text predicate on a
fuzzy-enabled group (names, aliases), the residual filter is re-run with
bounded edit-distance matching and results come back nearest first.

Zero matches is a normal outcome: an empty list, never an exception.
"""

from typing import Any, Callable, List, Optional, Sequence, Set, Tuple

from loguru import logger

from .fuzzy import FuzzyMatcher
from .index import IndexSet
from .kinds import RecordKind
from .normalize import TermNormalizer, fold_text
from .query import Query
from .store import CatalogStore


class SearchEngine:
    def __init__(
        self,
        store: CatalogStore,
        normalizer: Optional[TermNormalizer] = None,
        matcher: Optional[FuzzyMatcher] = None,
    ) -> None:
        self.store = store
        self.kind: RecordKind = store.kind
        self.normalizer = normalizer or store.normalizer
        self.matcher = matcher or FuzzyMatcher()

    def search(self, query: Query) -> List[Any]:
        index = self.store.indices()
        candidates, consumed = self._select_candidates(query, index)
        results = [r for r in candidates if self._passes(r, query, consumed, index)]
        if results:
            return self._sort(results, index)

        fuzzy_terms = self._fuzzy_terms(query)
        if not fuzzy_terms or query.record_id is not None:
            return []
        ranked = self._fuzzy_fallback(candidates, query, consumed, index, fuzzy_terms)
        if ranked:
            logger.debug("{} search fell back to fuzzy matching: {} result(s)", self.kind.name, len(ranked))
        return ranked

    # ---------------------------
    # Stage 1: candidates
    # ---------------------------

    def _select_candidates(self, query: Query, index: IndexSet) -> Tuple[Sequence[Any], Optional[str]]:
        if query.record_id is not None:
            record = index.get(query.record_id)
            return ([record] if record is not None else []), "record_id"

        for cat in self.kind.categorical:
            term = query.categorical_term(cat.name)
            if term is None:
                continue
            tokens = cat.tokens(self.normalizer, term)
            ids: Set[str] = set()
            for key, bucket in index.categorical.get(cat.name, {}).items():
                if cat.matches_key(key, tokens):
                    ids.update(bucket)
            logger.debug(
                "{} candidates from '{}' index ({} -> {}): {}",
                self.kind.name, cat.name, term, tokens, len(ids),
            )
            return index.resolve(ids), cat.name

        return index.records, None

    # ---------------------------
    # Stage 2: residual filters
    # ---------------------------

    def _passes(
        self,
        record: Any,
        query: Query,
        consumed: Optional[str],
        index: IndexSet,
        text_match: Optional[Callable[[str, List[str]], bool]] = None,
    ) -> bool:
        text_match = text_match or _substring_match
        for group_name, term in query.text:
            group = self.kind.text_group(group_name)
            if not text_match(term, group.fields(record)):
                return False

        for name, term in query.categorical:
            if name == consumed:
                continue
            cat = self.kind.categorical_field(name)
            tokens = cat.tokens(self.normalizer, term)
            if not any(cat.matches_key(key, tokens) for key in cat.keys(record)):
                return False

        for name, bounds in query.numeric:
            num = self.kind.numeric_field(name)
            values = [v for v in num.values(record) if v is not None]
            if not values:
                if not num.missing_passes:
                    return False
                continue
            if not any(bounds.contains(v) for v in values):
                return False

        for name, expected in query.flags:
            if self.kind.flag_field(name).value(record) != expected:
                return False

        if query.keywords:
            record_id = self.kind.record_id(record)
            for term in query.keywords:
                if record_id not in index.keyword_ids(term):
                    return False

        return True

    # ---------------------------
    # Stage 3: sort
    # ---------------------------

    def _sort(self, records: List[Any], index: IndexSet) -> List[Any]:
        def key(record: Any) -> Tuple[bool, float, int]:
            record_id = self.kind.record_id(record)
            price = index.prices.get(record_id)
            return (price is None, price if price is not None else 0.0, index.positions[record_id])

        return sorted(records, key=key)

    # ---------------------------
    # Fuzzy fallback
    # ---------------------------

    def _fuzzy_terms(self, query: Query) -> List[Tuple[str, str]]:
        terms = []
        for group_name, term in query.text:
            group = self.kind.text_group(group_name)
            if group is not None and group.fuzzy:
                terms.append((group_name, term))
        return terms

    def _fuzzy_fallback(
        self,
        candidates: Sequence[Any],
        query: Query,
        consumed: Optional[str],
        index: IndexSet,
        fuzzy_terms: List[Tuple[str, str]],
    ) -> List[Any]:
        fuzzy_groups = {name for name, _ in fuzzy_terms}

        def text_match(term: str, fields: List[str]) -> bool:
            return _substring_match(term, fields) or self.matcher.best_score(term, fields) is not None

        # Non-fuzzy text groups stay strict
        strict = Query(
            record_id=query.record_id,
            text=tuple((n, t) for n, t in query.text if n not in fuzzy_groups),
            categorical=query.categorical,
            numeric=query.numeric,
            flags=query.flags,
            keywords=query.keywords,
        )
        fuzzy_only = Query(text=tuple(fuzzy_terms))

        scored = []
        for record in candidates:
            if not self._passes(record, strict, consumed, index):
                continue
            if not self._passes(record, fuzzy_only, None, index, text_match=text_match):
                continue
            total = 0
            for group_name, term in fuzzy_terms:
                best = self.matcher.best_score(term, self.kind.text_group(group_name).fields(record))
                total += best if best is not None else 0
            scored.append((total, index.positions[self.kind.record_id(record)], record))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [record for _, _, record in scored]


def _substring_match(term: str, fields: List[str]) -> bool:
    folded = fold_text(term)
    if not folded:
        return True
    return any(folded in fold_text(f) for f in fields if f)
