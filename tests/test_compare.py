from catalog_resolver.compare import ComparisonAggregator, has_free_item, round_half_up
from catalog_resolver.kinds import BundledItem


def test_savings_from_public_price(convention_store):
    (row,) = ComparisonAggregator(convention_store).compare(["CONV_POSTE"])
    assert row.public_price == 2150
    assert row.reference_price == 1075
    assert row.savings == 1075
    assert row.savings_percent == 50
    assert row.min_price == row.max_price == 1075
    assert row.summary["technology"] == ("ADSL",)


def test_unknown_and_duplicate_ids_are_dropped(convention_store):
    rows = ComparisonAggregator(convention_store).compare(
        ["CONV_POSTE", "CONV_NOPE", "CONV_POSTE", "CONV_SONELGAZ"]
    )
    assert [r.record_id for r in rows] == ["CONV_POSTE", "CONV_SONELGAZ"]


def test_free_hardware_and_zero_priced_rows(convention_store):
    (row,) = ComparisonAggregator(convention_store).compare(["CONV_SONELGAZ"])
    assert row.has_free_item
    assert row.tariff_count == 2
    assert row.min_price == row.max_price == 1800
    assert row.savings == 600
    assert row.savings_percent == 25


def test_offer_rows_prefer_new_tariff(offer_store):
    rows = ComparisonAggregator(offer_store).compare(["IDOOM_FIBRE_1", "IDOOM_4G_PRO"])
    fibre, lte = rows
    assert fibre.min_price == 1800
    assert fibre.has_free_item
    assert fibre.savings is None and fibre.savings_percent is None
    assert lte.min_price == 3500
    assert not lte.has_free_item


def test_resale_discount_and_subscription_range(resale_store):
    box, bac = ComparisonAggregator(resale_store).compare(["TWIN_BOX_4K", "ELEARN_BAC"])
    assert box.public_price == 12000
    assert box.savings == 3000
    assert box.savings_percent == 25
    assert (bac.min_price, bac.max_price) == (500, 4500)
    assert bac.tariff_count == 2


def test_free_item_markers_and_rounding():
    assert has_free_item([BundledItem("Modem", 2500, ("Modem offert dès 12 mois",))])
    assert has_free_item([BundledItem("Installation GRATUITE", None)])
    assert not has_free_item([BundledItem("Modem", 2500, ("Frais de 2500 DA",))])
    assert round_half_up(12.5) == 13
    assert round_half_up(12.49) == 12
