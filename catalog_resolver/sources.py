from __future__ import annotations

"""
Record sources: where a catalog's validated records come from.

Interchangeable sources, selected when an engine is
constructed:

- :class:`JsonFileSource` reads the catalog JSON files, one per language,
  falling back to the French file when a language lacks one;
- :class:`DataFrameSource` reads a tabular snapshot through pandas
  (Parquet, with a CSV fallback);
- :class:`QuerySource` wraps any callable returning row mappings, for
  catalogs kept in a relational store;
- :class:`StaticSource` holds records already in memory.

Every source validates rows against the kind's Pydantic model and raises
:class:`~catalog_resolver.errors.CatalogLoadError` on the first invalid
one: a catalog is either loaded completely or not at all.
"""

import json
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Union

import numpy as np
import pandas as pd
from loguru import logger
from pydantic import BaseModel, ValidationError

from .config import DATA_DIR, DATA_FILES, DEFAULT_LANGUAGE, FALLBACK_LANGUAGE
from .errors import CatalogLoadError
from .kinds import RecordKind, get_kind


class RecordSource(Protocol):
    kind: RecordKind

    def load(self) -> List[BaseModel]:
        ...

    def describe(self) -> str:
        ...


def validate_records(kind: RecordKind, rows: Iterable[Any], origin: str) -> List[BaseModel]:
    """Validate every row or raise, naming the offending position."""
    records: List[BaseModel] = []
    for position, row in enumerate(rows):
        try:
            records.append(kind.coerce(row))
        except ValidationError as e:
            logger.error("Invalid {} at position {} in {}: {}", kind.label, position, origin, e)
            raise CatalogLoadError(f"invalid {kind.label} at position {position}: {e}", source=origin) from e
    logger.info("Validated {} {} records from {}", len(records), kind.name, origin)
    return records


# ---------------------------
# JSON files
# ---------------------------

class JsonFileSource:
    """
    One catalog JSON file.  The records sit under ``kind.root_key`` or,
    for kinds without one, form the top-level array.
    """

    def __init__(self, kind: Union[RecordKind, str], path: Union[str, Path], fallback_path: Optional[Union[str, Path]] = None) -> None:
        self.kind = get_kind(kind) if isinstance(kind, str) else kind
        self.path = Path(path)
        self.fallback_path = Path(fallback_path) if fallback_path is not None else None

    @classmethod
    def for_language(
        cls,
        kind: Union[RecordKind, str],
        language: str = DEFAULT_LANGUAGE,
        data_dir: Union[str, Path] = DATA_DIR,
    ) -> "JsonFileSource":
        kind = get_kind(kind) if isinstance(kind, str) else kind
        data_dir = Path(data_dir)
        fallback_name = DATA_FILES[FALLBACK_LANGUAGE][kind.name]
        name = DATA_FILES.get(language, {}).get(kind.name)
        if name is None:
            logger.warning("No {} file declared for language '{}'; using {}", kind.name, language, fallback_name)
            name = fallback_name
        fallback = data_dir / fallback_name if name != fallback_name else None
        return cls(kind, data_dir / name, fallback)

    def describe(self) -> str:
        return str(self.path)

    def _resolve_path(self) -> Path:
        if self.path.exists():
            return self.path
        if self.fallback_path is not None and self.fallback_path.exists():
            logger.warning("{} not found; falling back to {}", self.path, self.fallback_path)
            return self.fallback_path
        raise CatalogLoadError("catalog file not found", source=str(self.path))

    def load(self) -> List[BaseModel]:
        path = self._resolve_path()
        logger.info("Loading {} catalog from {}", self.kind.name, path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.exception("Failed to read {}: {}", path, e)
            raise CatalogLoadError(f"unreadable catalog file: {e}", source=str(path)) from e
        return validate_records(self.kind, self._extract(payload, path), str(path))

    def _extract(self, payload: Any, path: Path) -> List[Any]:
        root = self.kind.root_key
        if root is None:
            if isinstance(payload, list):
                return payload
            raise CatalogLoadError("expected a top-level array", source=str(path))
        if not isinstance(payload, dict) or not isinstance(payload.get(root), list):
            raise CatalogLoadError(f"expected an array under '{root}'", source=str(path))
        return payload[root]


# ---------------------------
# DataFrames
# ---------------------------

def _coerce_cell(value: Any) -> Any:
    """
    Turn a DataFrame cell back into plain JSON-like data.

    Handles numpy arrays and scalars, NaN/NaT, and nested structures
    serialised as JSON strings (as happens with CSV snapshots).
    """
    if isinstance(value, np.ndarray):
        return [_coerce_cell(v) for v in value.tolist()]
    if isinstance(value, (list, tuple)):
        return [_coerce_cell(v) for v in value]
    if isinstance(value, dict):
        return {k: _coerce_cell(v) for k, v in value.items()}
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, str):
        s = value.strip()
        if s[:1] in {"[", "{"}:
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return value
    return value


def frame_rows(frame: pd.DataFrame) -> List[dict]:
    return [{str(k): _coerce_cell(v) for k, v in row.items()} for row in frame.to_dict(orient="records")]


class DataFrameSource:
    """Rows of a pandas DataFrame, one record per row."""

    def __init__(self, kind: Union[RecordKind, str], frame: pd.DataFrame, origin: str = "<dataframe>") -> None:
        self.kind = get_kind(kind) if isinstance(kind, str) else kind
        self.frame = frame
        self.origin = origin

    @classmethod
    def from_path(cls, kind: Union[RecordKind, str], path: Union[str, Path]) -> "DataFrameSource":
        """
        Load a snapshot from Parquet; if that fails (missing engine or
        file), try the CSV file next to it.
        """
        path = Path(path)
        logger.info("Loading catalog snapshot from {}", path)
        try:
            frame = pd.read_parquet(path)
            origin = str(path)
        except Exception as e:
            logger.warning("Failed to load Parquet snapshot ({}). Trying CSV fallback.", e)
            csv_path = path.with_suffix(".csv")
            if not csv_path.exists():
                raise CatalogLoadError(f"no readable snapshot: {e}", source=str(path)) from e
            frame = pd.read_csv(csv_path)
            origin = str(csv_path)
        logger.info("Loaded catalog snapshot with {} rows", len(frame))
        return cls(kind, frame, origin)

    def describe(self) -> str:
        return self.origin

    def load(self) -> List[BaseModel]:
        return validate_records(self.kind, frame_rows(self.frame), self.origin)


# ---------------------------
# Query-backed storage
# ---------------------------

class QuerySource:
    """
    Records fetched by a callable, typically a database query returning
    one mapping per row.
    """

    def __init__(self, kind: Union[RecordKind, str], fetch: Callable[[], Iterable[Mapping[str, Any]]], origin: str = "<query>") -> None:
        self.kind = get_kind(kind) if isinstance(kind, str) else kind
        self.fetch = fetch
        self.origin = origin

    def describe(self) -> str:
        return self.origin

    def load(self) -> List[BaseModel]:
        try:
            rows = list(self.fetch())
        except CatalogLoadError:
            raise
        except Exception as e:
            logger.exception("Query for {} records failed: {}", self.kind.name, e)
            raise CatalogLoadError(f"query failed: {e}", source=self.origin) from e
        return validate_records(self.kind, (dict(row) for row in rows), self.origin)


class StaticSource:
    """Records already in memory (validated models or raw mappings)."""

    def __init__(self, kind: Union[RecordKind, str], records: Iterable[Any], origin: str = "<memory>") -> None:
        self.kind = get_kind(kind) if isinstance(kind, str) else kind
        self.records = list(records)
        self.origin = origin

    def describe(self) -> str:
        return self.origin

    def load(self) -> List[BaseModel]:
        return validate_records(self.kind, self.records, self.origin)
