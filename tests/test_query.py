import pytest

from catalog_resolver.errors import UnknownFilterError
from catalog_resolver.kinds import CONVENTIONS, PUBLIC_OFFERS
from catalog_resolver.query import NumericRange, Query, query_from_filters


def test_filters_are_routed_by_kind():
    query = query_from_filters(
        PUBLIC_OFFERS,
        {
            "name": "fibre",
            "technology": "fibre",
            "min_price": "1000",
            "max_price": 2000,
            "tenant": "true",
            "keyword": "gaming",
        },
    )
    assert query.text == (("name", "fibre"),)
    assert query.categorical == (("technology", "fibre"),)
    assert query.numeric_range("price") == NumericRange(1000.0, 2000.0)
    assert query.flags == (("tenant", True),)
    assert query.keywords == ("gaming",)
    assert query.record_id is None


def test_blank_values_are_ignored():
    query = query_from_filters(CONVENTIONS, {"technology": "  ", "max_price": None, "name": ""})
    assert query.is_empty


def test_unknown_filter_rejected():
    with pytest.raises(UnknownFilterError):
        query_from_filters(CONVENTIONS, {"colour": "blue"})
    with pytest.raises(UnknownFilterError):
        query_from_filters(CONVENTIONS, {"max_colour": 3})


def test_malformed_values_rejected():
    with pytest.raises(UnknownFilterError):
        query_from_filters(CONVENTIONS, {"max_price": "cheap"})
    with pytest.raises(UnknownFilterError):
        query_from_filters(CONVENTIONS, {"retired": "maybe"})


def test_cache_key_ignores_filter_order():
    a = query_from_filters(PUBLIC_OFFERS, {"technology": "fibre", "max_price": 2000})
    b = query_from_filters(PUBLIC_OFFERS, {"max_price": 2000, "technology": "fibre"})
    assert a == b
    assert a.cache_key() == b.cache_key()


def test_query_rewrites_are_non_destructive():
    query = Query(
        categorical=(("family", "internet"), ("technology", "fibre")),
        numeric=(("price", NumericRange(None, 500)),),
    )
    assert query.without_categorical("technology").categorical == (("family", "internet"),)
    assert query.only_categorical("family") == Query(categorical=(("family", "internet"),))
    assert query.only_categorical("segment") == Query()
    assert query.with_numeric("price", NumericRange(None, 600)).numeric_range("price").maximum == 600
    assert query.numeric_range("price").maximum == 500
