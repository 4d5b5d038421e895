from __future__ import annotations

"""
Query predicates and filter-bag translation.

A :class:`Query` is an immutable bag of optional predicates, all AND-ed:
record id, text predicates per declared text group, categorical terms,
inclusive numeric ranges, boolean flags and keyword terms.

Callers usually build one from a flat filter mapping with
:func:`query_from_filters`:

- ``record_id`` switches to detail mode
- a text group name (``name``, ``content``) -> substring/fuzzy text match
- a categorical attribute (``technology``, ``segment``, ...) -> term
- ``min_<field>`` / ``max_<field>`` -> numeric bounds
- a flag name (``tenant``, ``retired``, ...) -> exact boolean
- ``keyword`` -> fixed-vocabulary keyword lookup

``None`` and blank values are ignored; unknown keys raise
:class:`~catalog_resolver.errors.UnknownFilterError`.
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import UnknownFilterError
from .kinds import RecordKind


@dataclass(frozen=True)
class NumericRange:
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def contains(self, value: float) -> bool:
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class Query:
    record_id: Optional[str] = None
    text: Tuple[Tuple[str, str], ...] = ()
    categorical: Tuple[Tuple[str, str], ...] = ()
    numeric: Tuple[Tuple[str, NumericRange], ...] = ()
    flags: Tuple[Tuple[str, bool], ...] = ()
    keywords: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.record_id or self.text or self.categorical or self.numeric or self.flags or self.keywords)

    def categorical_term(self, name: str) -> Optional[str]:
        return dict(self.categorical).get(name)

    def numeric_range(self, name: str) -> Optional[NumericRange]:
        return dict(self.numeric).get(name)

    def with_numeric(self, name: str, bounds: NumericRange) -> "Query":
        items = [(n, r) for n, r in self.numeric if n != name]
        items.append((name, bounds))
        return replace(self, numeric=tuple(sorted(items, key=lambda item: item[0])))

    def without_numeric(self, name: str) -> "Query":
        return replace(self, numeric=tuple((n, r) for n, r in self.numeric if n != name))

    def without_categorical(self, name: str) -> "Query":
        return replace(self, categorical=tuple((n, t) for n, t in self.categorical if n != name))

    def only_categorical(self, name: str) -> "Query":
        """Everything dropped except the ``name`` categorical predicate."""
        term = self.categorical_term(name)
        return Query(categorical=((name, term),)) if term is not None else Query()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "text": dict(self.text),
            "categorical": dict(self.categorical),
            "numeric": {n: [r.minimum, r.maximum] for n, r in self.numeric},
            "flags": dict(self.flags),
            "keywords": list(self.keywords),
        }

    def cache_key(self) -> str:
        """Deterministic string form, independent of filter order."""
        return json.dumps(self.as_dict(), sort_keys=True, ensure_ascii=False, default=str)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in {"true", "yes", "1", "oui"}:
            return True
        if v in {"false", "no", "0", "non"}:
            return False
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    raise UnknownFilterError(f"filter '{key}' expects a boolean, got {value!r}")


def _as_number(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise UnknownFilterError(f"filter '{key}' expects a number, got {value!r}") from None


def query_from_filters(kind: RecordKind, filters: Optional[Mapping[str, Any]]) -> Query:
    """Translate a flat filter mapping into a :class:`Query` for ``kind``."""
    record_id: Optional[str] = None
    text: Dict[str, str] = {}
    categorical: Dict[str, str] = {}
    bounds: Dict[str, Dict[str, float]] = {}
    flags: Dict[str, bool] = {}
    keywords = []

    for key, value in (filters or {}).items():
        if _is_blank(value):
            continue
        if key == "record_id":
            record_id = str(value).strip()
        elif key == "keyword":
            keywords.append(str(value).strip())
        elif kind.text_group(key) is not None:
            text[key] = str(value).strip()
        elif kind.categorical_field(key) is not None:
            categorical[key] = str(value).strip()
        elif kind.flag_field(key) is not None:
            flags[key] = as_bool(key, value)
        elif key[:4] in {"min_", "max_"} and kind.numeric_field(key[4:]) is not None:
            bounds.setdefault(key[4:], {})[key[:3]] = _as_number(key, value)
        else:
            raise UnknownFilterError(f"unknown filter '{key}' for {kind.name}")

    numeric = tuple(
        (name, NumericRange(b.get("min"), b.get("max"))) for name, b in sorted(bounds.items())
    )
    return Query(
        record_id=record_id,
        text=tuple(sorted(text.items())),
        categorical=tuple(sorted(categorical.items())),
        numeric=numeric,
        flags=tuple(sorted(flags.items())),
        keywords=tuple(keywords),
    )
