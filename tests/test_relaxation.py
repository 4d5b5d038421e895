from catalog_resolver.query import Query, query_from_filters
from catalog_resolver.relaxation import RELAXATION_ORDER, RelaxationStep, RelaxationStrategy
from catalog_resolver.search import SearchEngine


def _strategy(store):
    return RelaxationStrategy(SearchEngine(store))


def test_unrelaxed_when_results_exist(offer_store):
    result = _strategy(offer_store).search_with_relaxation(
        query_from_filters(offer_store.kind, {"technology": "fibre", "max_price": 2000})
    )
    assert not result.relaxed
    assert result.log == ()
    assert [r.id_offre for r in result.records] == ["IDOOM_FIBRE_1"]


def test_price_ceiling_far_below_catalog_falls_back_to_everything(offer_store):
    query = query_from_filters(offer_store.kind, {"max_price": 500})
    assert SearchEngine(offer_store).search(query) == []

    result = _strategy(offer_store).search_with_relaxation(query)
    assert result.relaxed
    assert result.records[0].id_offre == "IDOOM_FIBRE_1"
    assert result.steps == (RelaxationStep.WIDEN_PRICE, RelaxationStep.CATEGORY_ONLY)
    assert result.log == (
        "price ceiling widened to 600",
        "no narrower relaxation possible: all records returned",
    )


def test_widened_price_is_enough(offer_store):
    query = query_from_filters(offer_store.kind, {"technology": "fibre", "max_price": 1500})
    result = _strategy(offer_store).search_with_relaxation(query)
    assert result.log == ("price ceiling widened to 1800",)
    assert [r.id_offre for r in result.records] == ["IDOOM_FIBRE_1"]


def test_steps_run_in_fixed_order_and_accumulate(offer_store):
    query = query_from_filters(
        offer_store.kind,
        {"family": "internet", "technology": "fibre", "max_price": 1000, "min_speed": 1000},
    )
    result = _strategy(offer_store).search_with_relaxation(query)
    assert result.steps == RELAXATION_ORDER
    assert result.log == (
        "price ceiling widened to 1200",
        "speed constraints removed",
        "technology constraint removed",
        "all records of the category returned (internet)",
    )
    assert [r.id_offre for r in result.records] == ["IDOOM_FIBRE_1", "IDOOM_FIBRE_GAMER", "IDOOM_4G_PRO"]


def test_log_is_an_ordered_subsequence_of_the_steps(resale_store):
    query = query_from_filters(resale_store.kind, {"category": "smartphone", "max_price": 1000})
    result = _strategy(resale_store).search_with_relaxation(query)
    assert result.log == (
        "price ceiling widened to 1200",
        "all records of the category returned (smartphone)",
    )
    positions = [RELAXATION_ORDER.index(step) for step in result.steps]
    assert positions == sorted(positions)
    assert [r.id_produit for r in result.records] == ["ZTE_BLADE_A35"]


def test_detail_mode_is_never_relaxed(offer_store):
    result = _strategy(offer_store).search_with_relaxation(Query(record_id="missing"))
    assert result.records == ()
    assert not result.relaxed
