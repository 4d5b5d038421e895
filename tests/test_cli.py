import json
import sys

import pytest
from loguru import logger

from catalog_resolver.cli import main

from conftest import write_catalog


@pytest.fixture(autouse=True)
def _restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def _run(capsys, argv):
    code = main(argv)
    out = capsys.readouterr().out
    return code, (json.loads(out) if out.strip() else None)


def test_search_with_filters(tmp_path, capsys):
    path = write_catalog(tmp_path / "offres.json", "offers")
    code, payload = _run(
        capsys,
        ["offers", "--file", str(path), "search", "--filter", "technology=fibre", "--filter", "max_price=2000"],
    )
    assert code == 0
    assert [r["id_offre"] for r in payload["records"]] == ["IDOOM_FIBRE_1"]
    assert payload["relaxed"] is False


def test_eligibility(tmp_path, capsys):
    path = write_catalog(tmp_path / "docs-conv.json", "conventions")
    code, payload = _run(
        capsys, ["conventions", "--file", str(path), "eligibility", "CONV_ETAB_L", "--flag", "retired=true"]
    )
    assert code == 0
    assert payload == {"eligible": False, "reasons": ["not open to retired employees"]}


def test_compare_and_stats(tmp_path, capsys):
    path = write_catalog(tmp_path / "docs-conv.json", "conventions")
    code, payload = _run(capsys, ["conventions", "--file", str(path), "compare", "CONV_POSTE", "CONV_SONELGAZ"])
    assert code == 0
    assert [row["savings_percent"] for row in payload["rows"]] == [50, 25]

    code, payload = _run(capsys, ["conventions", "--file", str(path), "stats"])
    assert payload["records"] == 3


def test_language_lookup_in_data_dir(tmp_path, capsys):
    write_catalog(tmp_path / "ngbss.json", "procedures")
    code, payload = _run(
        capsys,
        ["procedures", "--data-dir", str(tmp_path), "--language", "ar", "steps", "Encaissement facture"],
    )
    assert code == 0
    assert payload[0] == "[Étapes] Rechercher le client"


def test_errors_exit_non_zero(tmp_path, capsys):
    path = write_catalog(tmp_path / "offres.json", "offers")
    code, payload = _run(capsys, ["offers", "--file", str(path), "search", "--filter", "colour=blue"])
    assert code == 1
    assert payload is None

    code, _ = _run(capsys, ["offers", "--file", str(tmp_path / "missing.json"), "stats"])
    assert code == 1
