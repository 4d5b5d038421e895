from __future__ import annotations

"""
Per-catalog facade exposing the resolution operations.

A :class:`CatalogEngine` wires one record source to a store, a search
engine with relaxation, an eligibility resolver and a comparison
aggregator.  Results of the read operations are memoized in a
:class:`~catalog_resolver.cache.ResultCache` keyed by catalog kind,
snapshot generation, operation and arguments; engines may share one
cache.

Example::

    engine = CatalogEngine.from_language("offers", "fr")
    response = engine.search({"technology": "fibre", "max_price": 2000})
    for offer in response.records:
        print(offer.id_offre, offer.nom_commercial)
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from .cache import ResultCache, make_key
from .compare import ComparisonAggregator
from .config import (
    DATA_DIR,
    DEFAULT_LANGUAGE,
    FUZZY_THRESHOLD,
    RELAXATION_PRICE_FACTOR,
    ComparisonResponse,
    DerivedDetails,
    EligibilityVerdict,
    IndexStatistics,
    SearchResponse,
)
from .eligibility import EligibilityResolver
from .errors import UnknownFilterError
from .fuzzy import FuzzyMatcher
from .kinds import RecordKind, get_kind
from .mapping import derive_details, guide_steps, summarize
from .models import Procedure
from .query import Query, query_from_filters
from .relaxation import RelaxationStrategy
from .search import SearchEngine
from .sources import JsonFileSource
from .store import CatalogStore


class CatalogEngine:
    def __init__(
        self,
        kind: Union[RecordKind, str],
        source: Any,
        cache: Optional[ResultCache] = None,
        fuzzy_threshold: int = FUZZY_THRESHOLD,
        price_factor: float = RELAXATION_PRICE_FACTOR,
    ) -> None:
        self.kind = get_kind(kind) if isinstance(kind, str) else kind
        self.store = CatalogStore(self.kind, source)
        self.cache = cache if cache is not None else ResultCache()
        self.searcher = SearchEngine(self.store, matcher=FuzzyMatcher(threshold=fuzzy_threshold))
        self.relaxation = RelaxationStrategy(self.searcher, price_factor=price_factor)
        self.eligibility = EligibilityResolver(self.store)
        self.comparator = ComparisonAggregator(self.store)

    @classmethod
    def from_language(
        cls,
        kind: Union[RecordKind, str],
        language: str = DEFAULT_LANGUAGE,
        data_dir: Union[str, Path] = DATA_DIR,
        **kwargs: Any,
    ) -> "CatalogEngine":
        return cls(kind, JsonFileSource.for_language(kind, language, data_dir), **kwargs)

    # ---------------------------
    # Core operations
    # ---------------------------

    def search(self, filters: Optional[Mapping[str, Any]] = None, **extra: Any) -> SearchResponse:
        """
        Filtered search with automatic relaxation.

        ``filters`` and keyword arguments are merged (keywords win).  A
        ``record_id`` filter switches to detail mode: the matching record
        or nothing, never relaxed.
        """
        merged: Dict[str, Any] = dict(filters or {})
        merged.update(extra)
        query = query_from_filters(self.kind, merged)
        return self._cached("search", query.cache_key(), lambda: self._search(query))

    def get_by_id(self, record_id: str) -> Optional[Any]:
        return self.store.indices().get(record_id)

    def check_eligibility(
        self, record_id: str, profile: Optional[Mapping[str, Any]] = None, **extra: Any
    ) -> EligibilityVerdict:
        merged: Dict[str, Any] = dict(profile or {})
        merged.update(extra)
        return self._cached(
            "eligibility",
            make_key(record_id, merged),
            lambda: self.eligibility.check(record_id, merged),
        )

    def compare(self, ids: Iterable[str]) -> ComparisonResponse:
        ids = [str(i) for i in ids]
        return self._cached(
            "compare",
            make_key(ids),
            lambda: ComparisonResponse(rows=tuple(self.comparator.compare(ids))),
        )

    def get_derived_details(self, record_id: str) -> DerivedDetails:
        return self._cached(
            "details",
            make_key(record_id),
            lambda: derive_details(self.kind, record_id, self.get_by_id(record_id)),
        )

    # ---------------------------
    # Index lookups
    # ---------------------------

    def search_by_keyword(self, term: str) -> List[Any]:
        """Records whose declared text contains a vocabulary term matching ``term``."""
        index = self.store.indices()
        return index.resolve(index.keyword_ids(term))

    def search_by_bucket(self, field: str, label: str) -> List[Any]:
        if self.kind.numeric_field(field) is None:
            raise UnknownFilterError(f"unknown numeric field '{field}' for {self.kind.name}")
        index = self.store.indices()
        return index.resolve(index.bucket_ids(field, label))

    def list_values(self, attribute: str) -> List[str]:
        if self.kind.categorical_field(attribute) is None:
            raise UnknownFilterError(f"unknown attribute '{attribute}' for {self.kind.name}")
        return self.store.values(attribute)

    def statistics(self) -> IndexStatistics:
        return IndexStatistics(**self.store.statistics())

    def guide_steps(self, title_or_keyword: str) -> List[str]:
        """
        Step-by-step lines of one procedure.

        An exact title wins; otherwise the first procedure whose title
        (misspellings included), else whose content, matches the term.
        """
        record = self.get_by_id(title_or_keyword)
        if record is None:
            record = self._first_text_match(title_or_keyword)
        if not isinstance(record, Procedure):
            return []
        return guide_steps(record)

    def summaries(self, records: Iterable[Any]) -> List[Dict[str, Any]]:
        return [summarize(self.kind, record) for record in records]

    # ---------------------------
    # Lifecycle
    # ---------------------------

    def reload(self) -> int:
        """Reload the catalog from its source; returns the new generation."""
        snapshot = self.store.reload()
        self.cache.clear()
        logger.info("Reloaded {} catalog (generation {})", self.kind.name, snapshot.generation)
        return snapshot.generation

    def invalidate(self) -> None:
        self.store.invalidate()
        self.cache.clear()

    # ---------------------------
    # Helpers
    # ---------------------------

    def _search(self, query: Query) -> SearchResponse:
        if query.record_id is not None:
            record = self.get_by_id(query.record_id)
            return SearchResponse(records=(record,) if record is not None else ())
        result = self.relaxation.search_with_relaxation(query)
        return SearchResponse(records=result.records, relaxed=result.relaxed, relaxed_criteria=result.log)

    def _first_text_match(self, term: str) -> Optional[Any]:
        if not (term or "").strip():
            return None
        for group in self.kind.text_groups:
            hits = self.searcher.search(Query(text=((group.name, term.strip()),)))
            if hits:
                logger.debug("{} '{}' resolved to {}", self.kind.name, term, self.kind.record_id(hits[0]))
                return hits[0]
        return None

    def _cached(self, operation: str, payload: str, compute):
        generation = self.store.indices().generation
        key = (self.kind.name, generation, operation, payload)
        return self.cache.get_or_compute(key, compute)


# ---------------------------
# Debug / CLI usage
# ---------------------------

if __name__ == "__main__":
    engine = CatalogEngine.from_language("offers")
    print(engine.statistics())
    response = engine.search({"technology": "fibre", "max_price": 2000})
    print("relaxed:", response.relaxed, response.relaxed_criteria)
    for row in engine.summaries(response.records):
        print(row)
