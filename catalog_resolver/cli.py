# catalog_resolver/cli.py
"""
Command-line access to one catalog.

Examples:
  python -m catalog_resolver.cli offers --file data/offres.json search --filter technology=fibre --filter max_price=2000
  python -m catalog_resolver.cli conventions eligibility CONV_001 --flag retired=true
  python -m catalog_resolver.cli resale --language ar stats

Without ``--file`` the catalog file is picked from the data directory by
language.  Every sub-command prints JSON on stdout; logs go to stderr.
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from catalog_resolver.config import DATA_DIR, DEFAULT_LANGUAGE, LOG_LEVEL
from catalog_resolver.engine import CatalogEngine
from catalog_resolver.errors import CatalogError
from catalog_resolver.kinds import KINDS
from catalog_resolver.sources import DataFrameSource, JsonFileSource


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _parse_pairs(pairs: Optional[List[str]]) -> Dict[str, str]:
    """["a=1", "b=x"] -> {"a": "1", "b": "x"}."""
    out: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"expected key=value, got {pair!r}")
        out[key.strip()] = value.strip()
    return out


def _dump_record(record: Any) -> Any:
    if hasattr(record, "model_dump"):
        return record.model_dump(mode="json", exclude_none=True, by_alias=True)
    return record


def build_engine(kind: str, file: Optional[str], language: str, data_dir: str) -> CatalogEngine:
    if not file:
        return CatalogEngine.from_language(kind, language, data_dir)
    path = Path(file)
    if path.suffix.lower() in {".parquet", ".csv"}:
        return CatalogEngine(kind, DataFrameSource.from_path(kind, path))
    return CatalogEngine(kind, JsonFileSource(kind, path))


def run(args: argparse.Namespace) -> Any:
    engine = build_engine(args.kind, args.file, args.language, args.data_dir)

    if args.command == "search":
        response = engine.search(_parse_pairs(args.filter))
        return {
            "records": [_dump_record(r) for r in response.records],
            "relaxed": response.relaxed,
            "relaxed_criteria": list(response.relaxed_criteria),
        }
    if args.command == "get":
        return _dump_record(engine.get_by_id(args.id))
    if args.command == "eligibility":
        return engine.check_eligibility(args.id, _parse_pairs(args.flag)).model_dump(mode="json")
    if args.command == "compare":
        return engine.compare(args.ids).model_dump(mode="json")
    if args.command == "details":
        return engine.get_derived_details(args.id).model_dump(mode="json")
    if args.command == "steps":
        return engine.guide_steps(args.id)
    if args.command == "values":
        return engine.list_values(args.attribute)
    return engine.statistics().model_dump(mode="json")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="catalog_resolver")
    ap.add_argument("kind", choices=sorted(KINDS), help="catalog to query")
    ap.add_argument("--file", type=str, default=None, help="catalog file (.json, .parquet or .csv)")
    ap.add_argument("--language", type=str, default=DEFAULT_LANGUAGE, help="catalog language when --file is absent")
    ap.add_argument("--data-dir", dest="data_dir", type=str, default=str(DATA_DIR))
    ap.add_argument("--log-level", dest="log_level", type=str, default=LOG_LEVEL)
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="filtered search with relaxation")
    p.add_argument("--filter", action="append", metavar="KEY=VALUE")

    p = sub.add_parser("get", help="one record by id")
    p.add_argument("id")

    p = sub.add_parser("eligibility", help="eligibility verdict for a profile")
    p.add_argument("id")
    p.add_argument("--flag", action="append", metavar="NAME=VALUE")

    p = sub.add_parser("compare", help="side-by-side comparison")
    p.add_argument("ids", nargs="+")

    p = sub.add_parser("details", help="tariffs, documents and channels of a record")
    p.add_argument("id")

    p = sub.add_parser("steps", help="step-by-step guide of a procedure")
    p.add_argument("id")

    p = sub.add_parser("values", help="indexed values of a categorical attribute")
    p.add_argument("attribute")

    sub.add_parser("stats", help="index statistics")

    args = ap.parse_args(argv)
    _configure_logging(args.log_level)

    try:
        result = run(args)
    except (CatalogError, ValueError) as e:
        logger.error("{} {} failed: {}", args.kind, args.command, e)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
