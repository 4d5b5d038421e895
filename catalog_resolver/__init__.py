"""
Catalog resolution engine for telecom commercial catalogs.

One generic engine, parameterized by a record-kind descriptor, serves the
partnership agreements, public offers, resale items and procedure guides:
indexed search with synonym normalization and fuzzy name matching,
progressive relaxation of empty queries, eligibility verdicts, side-by-side
comparisons and a bounded result cache.  Nothing is loaded on import;
catalogs are read lazily by the first engine call that needs them.
"""

from catalog_resolver.cache import ResultCache
from catalog_resolver.engine import CatalogEngine
from catalog_resolver.errors import CatalogError, CatalogLoadError, UnknownFilterError, UnknownKindError
from catalog_resolver.kinds import KINDS, get_kind
from catalog_resolver.sources import DataFrameSource, JsonFileSource, QuerySource, StaticSource

__all__ = [
    "CatalogEngine",
    "ResultCache",
    "CatalogError",
    "CatalogLoadError",
    "UnknownFilterError",
    "UnknownKindError",
    "KINDS",
    "get_kind",
    "JsonFileSource",
    "DataFrameSource",
    "QuerySource",
    "StaticSource",
]
