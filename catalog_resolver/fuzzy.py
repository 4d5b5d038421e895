from __future__ import annotations

"""
Bounded edit-distance matching for misspelled names.

The catalogs are small and curated, so approximate matching is only a
fallback: :class:`~catalog_resolver.search.SearchEngine` tries index and
substring lookups first and calls into this module only when they come
back empty.

Distances are classic Levenshtein (insert, delete and substitute all
cost 1) computed by rapidfuzz, case-insensitive.
"""

from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from rapidfuzz.distance import Levenshtein

from .config import FUZZY_MIN_TOKEN_LENGTH, FUZZY_THRESHOLD
from .normalize import fold_text

T = TypeVar("T")


def distance(a: str, b: str, cutoff: Optional[int] = None) -> int:
    """
    Case-insensitive Levenshtein distance.

    With ``cutoff`` set, any distance above it is reported as
    ``cutoff + 1`` and rapidfuzz stops early.
    """
    return Levenshtein.distance((a or "").lower(), (b or "").lower(), score_cutoff=cutoff)


class FuzzyMatcher:
    """
    Approximate string matcher with a fixed distance threshold.

    Rules for :meth:`score`:

    - blank search never matches
    - target containing search (case-insensitive) scores 0
    - otherwise the edit distance, if it is within the threshold
    - search tokens shorter than ``min_token_length`` must appear as a
      whole token of the target; "etablissement n" is never corrected
      into "Etablissement L" even though only one letter differs
    """

    def __init__(self, threshold: int = FUZZY_THRESHOLD, min_token_length: int = FUZZY_MIN_TOKEN_LENGTH) -> None:
        if threshold < 0:
            raise ValueError("threshold must be >= 0")
        self.threshold = threshold
        self.min_token_length = min_token_length

    def score(self, search: str, target: str) -> Optional[int]:
        search_l = (search or "").strip().lower()
        target_l = (target or "").lower()
        if not search_l or not target_l:
            return None
        # Fast path
        if search_l in target_l:
            return 0
        dist = distance(search_l, target_l, cutoff=self.threshold)
        if dist > self.threshold:
            return None
        if not self._short_tokens_present(search_l, target_l):
            return None
        return dist

    def is_match(self, search: str, target: str) -> bool:
        return self.score(search, target) is not None

    def best_score(self, search: str, targets: Iterable[str]) -> Optional[int]:
        best: Optional[int] = None
        for target in targets:
            s = self.score(search, target)
            if s is not None and (best is None or s < best):
                best = s
                if best == 0:
                    break
        return best

    def rank(
        self,
        search: str,
        candidates: Sequence[T],
        key: Callable[[T], Iterable[str]],
    ) -> List[T]:
        """
        Candidates within the threshold, nearest first.

        ``key`` returns every string a candidate can be matched on (name,
        aliases, ...); the best of them counts.  Ties keep input order.
        """
        scored: List[Tuple[int, int, T]] = []
        for position, candidate in enumerate(candidates):
            s = self.best_score(search, key(candidate))
            if s is not None:
                scored.append((s, position, candidate))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [candidate for _, _, candidate in scored]

    def _short_tokens_present(self, search: str, target: str) -> bool:
        target_tokens = set(fold_text(target).split())
        for token in fold_text(search).split():
            if len(token) < self.min_token_length and token not in target_tokens:
                return False
        return True


def is_match(search: str, target: str, threshold: int = FUZZY_THRESHOLD) -> bool:
    """Module-level shortcut for one-off checks."""
    return FuzzyMatcher(threshold).is_match(search, target)
