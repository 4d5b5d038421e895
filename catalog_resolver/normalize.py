from __future__ import annotations

"""
Text normalization utilities used across the catalog resolver.

Two concerns live here:

- text folding (lowercase, accent stripping, whitespace collapsing) used
  for every free-text comparison and for keyword index keys;
- :class:`TermNormalizer`, which maps informal user terms ("fibre",
  "pro", "twinbox") to the canonical tokens stored in a catalog's
  categorical fields.

Keeping both in one place ensures queries and catalog content are
treated the same way.
"""

import re
import unicodedata
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger


# ---------------------------
# Basic helpers
# ---------------------------

# Quote-like characters that only add noise to comparisons
_NOISE_RE = re.compile(r"[«»<>\"“”]")
_WS_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """
    Collapse all whitespace runs into a single space and strip edges.
    """
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def strip_accents(text: str) -> str:
    """
    Decompose to NFD and drop combining marks, so 'Résidence' becomes
    'Residence'.  Non-latin scripts pass through unchanged apart from
    their own combining marks.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_text(text: Optional[str]) -> str:
    """
    Canonical form for free-text comparison:

    - lowercase
    - accents stripped
    - quote-like noise removed
    - whitespace collapsed
    """
    if text is None:
        return ""
    text = strip_accents(str(text).lower())
    text = _NOISE_RE.sub("", text)
    return normalize_whitespace(text)


def normalize_category_value(value: Optional[str]) -> str:
    """Index key for a categorical value: trimmed and uppercased."""
    if value is None:
        return ""
    return str(value).strip().upper()


def contains_folded(haystack: Optional[str], needle: Optional[str]) -> bool:
    """Substring test on folded text.  A blank needle never matches."""
    folded_needle = fold_text(needle)
    if not folded_needle:
        return False
    return folded_needle in fold_text(haystack)


def dedupe(values: Iterable[str]) -> List[str]:
    """Drop duplicates while preserving first-seen order."""
    seen = set()
    out: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out


# ---------------------------
# Synonym normalization
# ---------------------------

class TermNormalizer:
    """
    Static synonym lookup for the categorical attributes of one catalog.

    ``tables`` maps an attribute name (technology, segment, brand, ...)
    to ``{informal term: [canonical tokens]}``.  Lookups try the
    lowercased term first, then its accent-stripped form.  Unknown terms
    fall back to the uppercased term itself; nothing here ever raises on
    an unrecognised term.
    """

    def __init__(self, tables: Optional[Mapping[str, Mapping[str, Sequence[str]]]] = None) -> None:
        self._tables: Dict[str, Dict[str, List[str]]] = {}
        for attribute, table in (tables or {}).items():
            entries: Dict[str, List[str]] = {}
            for term, tokens in table.items():
                canonical = [normalize_category_value(t) for t in tokens if str(t).strip()]
                entries[term.strip().lower()] = canonical
                entries.setdefault(fold_text(term), canonical)
            self._tables[attribute] = entries

    @property
    def attributes(self) -> List[str]:
        return list(self._tables)

    def normalize(self, attribute: str, term: Optional[str]) -> List[str]:
        """
        Canonical tokens to OR-match for ``term`` on ``attribute``.

        - blank term -> []
        - known synonym -> its canonical tokens, in table order
        - anything else -> [TERM] (trimmed, uppercased)
        """
        if term is None:
            return []
        raw = str(term).strip()
        if not raw:
            return []
        table = self._tables.get(attribute, {})
        tokens = table.get(raw.lower()) or table.get(fold_text(raw))
        if tokens:
            return dedupe(tokens)
        return [normalize_category_value(raw)]

    def canonical_tokens(self, attribute: str) -> List[str]:
        tokens: List[str] = []
        for canonical in self._tables.get(attribute, {}).values():
            tokens.extend(canonical)
        return dedupe(tokens)

    def drift(self, attribute: str, present_values: Iterable[str], substring: bool = False) -> List[str]:
        """
        Canonical tokens of ``attribute`` that no indexed value matches.

        A non-empty result means the synonym table and the data have
        drifted apart: queries using those synonyms can never match.
        """
        present = [normalize_category_value(v) for v in present_values]
        present_set = set(present)
        missing: List[str] = []
        for token in self.canonical_tokens(attribute):
            if token in present_set:
                continue
            if substring and any(token in value for value in present):
                continue
            missing.append(token)
        if missing:
            logger.debug("Synonym tokens without data for {}: {}", attribute, missing)
        return missing


# ---------------------------
# Debug / CLI usage
# ---------------------------

if __name__ == "__main__":
    from .config import OFFER_SYNONYMS

    normalizer = TermNormalizer(OFFER_SYNONYMS)
    print("FOLD:", fold_text("  Pièce d'identité «CNI»  "))
    print("fibre ->", normalizer.normalize("technology", "fibre"))
    print("Professionnels ->", normalizer.normalize("segment", "Professionnels"))
    print("unknown ->", normalizer.normalize("segment", "nomades"))
