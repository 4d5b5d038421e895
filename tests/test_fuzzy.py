import pytest

from catalog_resolver.fuzzy import FuzzyMatcher, distance, is_match


def test_threshold_examples():
    assert is_match("etablissement n", "Etablissement L", 3) is False
    assert is_match("n", "N", 3) is True


def test_substring_scores_zero():
    assert FuzzyMatcher().score("fibre", "Idoom Fibre 100") == 0


def test_distance_is_case_insensitive():
    assert distance("Sonelgaz", "SONELGAZ") == 0
    assert distance("sonalgaz", "sonelgaz") == 1


def test_one_typo_within_threshold():
    assert FuzzyMatcher(threshold=3).score("Sonalgaz", "Sonelgaz") == 1


def test_beyond_threshold_is_no_match():
    matcher = FuzzyMatcher(threshold=1)
    assert matcher.score("Snlgz", "Sonelgaz") is None
    assert not matcher.is_match("", "Sonelgaz")


def test_best_score_and_rank():
    matcher = FuzzyMatcher(threshold=3)
    assert matcher.best_score("Sonalgaz", ["Naftal", "Sonelgaz"]) == 1
    assert matcher.best_score("zzzz", ["Naftal"]) is None

    candidates = [("a", ["Sonelgazz"]), ("b", ["Sonalgaz"]), ("c", ["Naftal"])]
    ranked = matcher.rank("Sonalgaz", candidates, key=lambda c: c[1])
    assert [c[0] for c in ranked] == ["b", "a"]


def test_negative_threshold_rejected():
    with pytest.raises(ValueError):
        FuzzyMatcher(threshold=-1)
