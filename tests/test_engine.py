import pytest

from catalog_resolver.cache import ResultCache
from catalog_resolver.config import ComparisonResponse, SearchResponse
from catalog_resolver.engine import CatalogEngine
from catalog_resolver.errors import UnknownFilterError, UnknownKindError
from catalog_resolver.sources import StaticSource

from conftest import make_engine, rows_for


def test_search_response_shape(offers_engine):
    response = offers_engine.search({"technology": "fibre"}, max_price=2000)
    assert isinstance(response, SearchResponse)
    assert [r.id_offre for r in response.records] == ["IDOOM_FIBRE_1"]
    assert not response.relaxed
    assert response.relaxed_criteria == ()


def test_relaxed_search_reports_criteria(offers_engine):
    response = offers_engine.search({"max_price": 500})
    assert response.relaxed
    assert response.relaxed_criteria[0] == "price ceiling widened to 600"
    assert response.records[0].id_offre == "IDOOM_FIBRE_1"


def test_detail_mode_returns_record_or_nothing(offers_engine):
    found = offers_engine.search({"record_id": "IDOOM_4G_PRO", "technology": "fibre"})
    assert [r.id_offre for r in found.records] == ["IDOOM_4G_PRO"]
    missing = offers_engine.search(record_id="NOPE")
    assert missing.records == ()
    assert not missing.relaxed


def test_unknown_filter_raises(offers_engine):
    with pytest.raises(UnknownFilterError):
        offers_engine.search({"colour": "blue"})


def test_unknown_kind_raises():
    with pytest.raises(UnknownKindError):
        CatalogEngine("satellites", StaticSource("offers", []))


def test_get_by_id_and_details(conventions_engine):
    assert conventions_engine.get_by_id("CONV_SONELGAZ").partner_name == "Sonelgaz"
    assert conventions_engine.get_by_id("CONV_NOPE") is None

    details = conventions_engine.get_derived_details("CONV_SONELGAZ")
    assert details.found
    assert details.documents[:2] == ("Demande manuscrite signée", "Fiche familiale")
    assert len(details.tariffs) == 2
    assert not conventions_engine.get_derived_details("CONV_NOPE").found


def test_offer_details_list_activation_channels(offers_engine):
    details = offers_engine.get_derived_details("IDOOM_FIBRE_1")
    assert details.activation_channels == ("Agence commerciale", "Espace client")
    assert details.tariffs[0]["tarif_nouveau_da"] == 1800
    assert details.extras["associated_products"] == ("Modem ONT",)


def test_resale_details(resale_engine):
    details = resale_engine.get_derived_details("ZTE_BLADE_A35")
    assert details.activation_channels == ("Agences commerciales",)
    assert details.extras["accessories"] == ("Chargeur", "Coque de protection")
    assert details.extras["warranty"] == ("12 mois",)
    assert "after_sales_procedure" not in details.extras


def test_resale_details_list_after_sales_procedure():
    rows = rows_for("resale")
    rows[0]["sav_partenaire"] = "ZTE Service"
    rows[0]["sav_procedure"] = {
        "sous_garantie": "Dépôt en agence, réparation gratuite",
        "hors_garantie": "Devis avant réparation",
        "delais_moyens_jours": "",
    }
    engine = CatalogEngine("resale", StaticSource("resale", rows))
    details = engine.get_derived_details("ZTE_BLADE_A35")
    assert details.extras["after_sales"] == ("ZTE Service",)
    assert details.extras["after_sales_procedure"] == (
        "sous_garantie: Dépôt en agence, réparation gratuite",
        "hors_garantie: Devis avant réparation",
    )


def test_eligibility_and_compare(conventions_engine):
    verdict = conventions_engine.check_eligibility("CONV_SONELGAZ", retired=True)
    assert verdict.eligible
    response = conventions_engine.compare(["CONV_POSTE", "CONV_NOPE"])
    assert isinstance(response, ComparisonResponse)
    assert [row.savings_percent for row in response.rows] == [50]


def test_index_lookups(offers_engine):
    assert [r.id_offre for r in offers_engine.search_by_keyword("gaming")] == ["IDOOM_FIBRE_GAMER"]
    assert [r.id_offre for r in offers_engine.search_by_bucket("price", "2001-3000")] == ["IDOOM_FIBRE_GAMER"]
    assert offers_engine.list_values("segment") == ["PRO", "RESIDENTIEL"]
    with pytest.raises(UnknownFilterError):
        offers_engine.search_by_bucket("colour", "red")
    with pytest.raises(UnknownFilterError):
        offers_engine.list_values("colour")


def test_statistics(resale_engine):
    stats = resale_engine.statistics()
    assert stats.kind == "resale"
    assert stats.records == 3
    assert stats.generation == 1
    assert stats.buckets["price"]["4001+"] == 2


def test_guide_steps(procedures_engine):
    steps = procedures_engine.guide_steps("Encaissement facture")
    assert steps[0] == "[Étapes] Rechercher le client"
    assert "[Étapes] Montant 2500 DA" in steps
    assert steps[-1] == "[Prérequis] Disposer d'un compte caisse ouvert"
    assert procedures_engine.guide_steps("missing") == []


def test_guide_steps_fall_back_to_first_matching_procedure(procedures_engine):
    expected = procedures_engine.guide_steps("Encaissement facture")
    assert procedures_engine.guide_steps("encaissement") == expected
    assert procedures_engine.guide_steps("Encaisement facture") == expected
    assert procedures_engine.guide_steps("ordre OSS")[0] == "[Étapes] Créer l'enquête"
    assert procedures_engine.guide_steps("  ") == []


def test_summaries(resale_engine):
    (summary,) = resale_engine.summaries([resale_engine.get_by_id("TWIN_BOX_4K")])
    assert summary["id"] == "TWIN_BOX_4K"
    assert summary["price"] == 9000
    assert summary["brand"] == ["TWIN BOX"]


def test_results_are_cached_per_generation():
    engine = make_engine("offers")
    first = engine.search({"technology": "fibre"})
    assert engine.search({"technology": "fibre"}) is first

    engine.reload()
    assert len(engine.cache) == 0
    second = engine.search({"technology": "fibre"})
    assert second is not first
    assert second == first


def test_shared_cache_keeps_kinds_apart():
    cache = ResultCache()
    offers = make_engine("offers", cache=cache)
    resale = make_engine("resale", cache=cache)
    assert offers.search().records[0].id_offre == "IDOOM_FIBRE_1"
    assert resale.search().records[0].id_produit == "ELEARN_BAC"
    assert len(cache) == 2


def test_invalidate_rebuilds_from_source():
    source = StaticSource("conventions", rows_for("conventions"))
    engine = CatalogEngine("conventions", source)
    assert len(engine.search().records) == 3
    source.records = source.records[:1]
    engine.invalidate()
    assert len(engine.search().records) == 1
