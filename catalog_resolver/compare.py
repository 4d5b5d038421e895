from __future__ import annotations

"""
Side-by-side comparison rows.

For every requested id found in the catalog (unknown ids are dropped,
duplicates collapse to their first occurrence), one scan over the
record's tariff rows tracks the cheapest and dearest chosen price.  The
chosen price of a row is its new/updated amount when positive, else its
current amount when positive.

Savings come from the first tariff row carrying a public reference
price: ``savings = public - chosen`` and
``savings_percent = round(100 * savings / public)`` with halves rounded
up.  Both stay unset when no row has a public price.
"""

import math
from typing import Any, Iterable, List, Optional

from loguru import logger

from .config import FREE_ITEM_MARKERS, ComparisonRow
from .kinds import BundledItem, RecordKind
from .normalize import fold_text
from .store import CatalogStore


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def has_free_item(items: Iterable[BundledItem], markers: Iterable[str] = FREE_ITEM_MARKERS) -> bool:
    folded_markers = [fold_text(m) for m in markers]
    for item in items:
        if item.price is not None and item.price == 0:
            return True
        for text in (item.label,) + tuple(item.conditions):
            folded = fold_text(text)
            if any(marker in folded for marker in folded_markers):
                return True
    return False


class ComparisonAggregator:
    def __init__(self, store: CatalogStore) -> None:
        self.store = store
        self.kind: RecordKind = store.kind

    def compare(self, ids: Iterable[str]) -> List[ComparisonRow]:
        index = self.store.indices()
        rows: List[ComparisonRow] = []
        seen = set()
        for raw_id in ids:
            record = index.get(raw_id)
            if record is None:
                logger.debug("Compare: {} id {} not in catalog; skipping", self.kind.name, raw_id)
                continue
            record_id = self.kind.record_id(record)
            if record_id in seen:
                continue
            seen.add(record_id)
            rows.append(self.row(record))
        return rows

    def row(self, record: Any) -> ComparisonRow:
        kind = self.kind
        low: Optional[float] = None
        high: Optional[float] = None
        public: Optional[float] = None
        reference: Optional[float] = None
        tariffs = kind.tariffs(record)

        for tariff in tariffs:
            chosen = tariff.chosen
            if chosen is not None:
                low = chosen if low is None else min(low, chosen)
                high = chosen if high is None else max(high, chosen)
            if public is None and tariff.public is not None and tariff.public > 0 and chosen is not None:
                public = tariff.public
                reference = chosen

        savings: Optional[float] = None
        savings_percent: Optional[int] = None
        if public is not None:
            savings = public - reference
            savings_percent = round_half_up(100 * savings / public)

        return ComparisonRow(
            record_id=kind.record_id(record),
            label=kind.record_label(record),
            summary={cat.name: tuple(cat.keys(record)) for cat in kind.categorical},
            min_price=low,
            max_price=high,
            public_price=public,
            reference_price=reference,
            savings=savings,
            savings_percent=savings_percent,
            has_free_item=has_free_item(kind.bundled(record)),
            tariff_count=len(tariffs),
        )
