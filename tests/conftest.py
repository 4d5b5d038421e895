"""
Pytest configuration: ensure project root is on sys.path for imports, and
provide small in-memory catalogs for each record kind.

The fixture catalogs mirror the shape of the real JSON files but stay
tiny so expected results can be worked out by hand.
"""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path

import pytest


def _add_repo_root_to_sys_path() -> None:
    # tests/ -> repo root
    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_add_repo_root_to_sys_path()

from catalog_resolver.cache import ResultCache  # noqa: E402
from catalog_resolver.engine import CatalogEngine  # noqa: E402
from catalog_resolver.kinds import CONVENTIONS, PROCEDURES, PUBLIC_OFFERS, RESALE_ITEMS  # noqa: E402
from catalog_resolver.sources import StaticSource  # noqa: E402
from catalog_resolver.store import CatalogStore  # noqa: E402


CONVENTION_ROWS = [
    {
        "convention_id": "CONV_SONELGAZ",
        "partner_name": "Sonelgaz",
        "aliases": ["Société nationale de l'électricité et du gaz"],
        "client_type": "B2C",
        "eligibility": {
            "active": True,
            "retired": True,
            "family": True,
            "family_details": "conjoint et enfants à charge",
            "subsidiaries": False,
            "conditions": ["Présenter une attestation de travail récente"],
        },
        "documents": ["Attestation de travail", "Copie CNI"],
        "documents_requis": {
            "nouvelle_demande": "Demande manuscrite signée",
            "basculement": "Fiche familiale",
        },
        "offers": [
            {
                "category": "INTERNET",
                "technology": "FTTH",
                "speed_mbps": 100,
                "price_convention_da": 1800,
                "price_public_da": 2400,
            },
            {
                "category": "HARDWARE",
                "product": "Modem WiFi",
                "price_convention_da": 0,
                "condition": "Modem offert",
            },
        ],
    },
    {
        "convention_id": "CONV_ETAB_L",
        "partner_name": "Etablissement L",
        "client_type": "B2C",
        "eligibility": {"active": True, "retired": False},
        "documents": ["Bulletin de paie"],
        "offers": [
            {
                "category": "INTERNET",
                "technology": "FTTH",
                "speed_mbps": 300,
                "price_convention_da": 2600,
                "price_public_da": 3400,
            },
        ],
    },
    {
        "convention_id": "CONV_POSTE",
        "partner_name": "Algérie Poste",
        "client_type": "B2B",
        "eligibility": {},
        "offers": [
            {
                "category": "INTERNET",
                "technology": "ADSL",
                "speed_mbps": 20,
                "price_convention_da": 1075,
                "price_public_da": 2150,
            },
        ],
    },
]


OFFER_ROWS = [
    {
        "id_offre": "IDOOM_FIBRE_1",
        "nom_commercial": "Idoom Fibre 100",
        "famille": "INTERNET",
        "sous_famille": "IDOOM FIBRE RESIDENTIEL",
        "technologies": ["FTTH"],
        "segments_cibles": ["RESIDENTIEL"],
        "client_type": "B2C",
        "locataire": False,
        "conventionne": False,
        "type_offre": "ABONNEMENT",
        "engagement_mois": 12,
        "canaux_activation": ["Agence commerciale", "Espace client"],
        "debits_eligibles": {"debit_initial_max_mbps": 100},
        "tableaux_tarifaires": [
            {
                "type_tableau": "MENSUEL",
                "unite_prix": "DA/mois",
                "lignes": [{"debit_initial_mbps": 100, "tarif_actuel_da": 2000, "tarif_nouveau_da": 1800}],
            }
        ],
        "avantages_principaux": ["Modem offert", "Installation gratuite"],
        "produits_associes": [
            {
                "type_produit": "MODEM",
                "designation": "Modem ONT",
                "tarif_nouveau_da_ttc": 0,
                "conditions": ["Offert avec l'abonnement"],
            }
        ],
        "documents_a_fournir": ["Copie CIN", "Justificatif de résidence"],
    },
    {
        "id_offre": "IDOOM_FIBRE_GAMER",
        "nom_commercial": "Idoom Fibre Gamers",
        "famille": "INTERNET",
        "sous_famille": "IDOOM FIBRE GAMING",
        "technologies": ["FTTH"],
        "segments_cibles": ["RESIDENTIEL"],
        "client_type": "B2C_B2B",
        "locataire": True,
        "conventionne": False,
        "types_clients_exclus": ["CONVENTIONNES"],
        "type_offre": "ABONNEMENT",
        "engagement_mois": 24,
        "debits_eligibles": {"debit_initial_max_mbps": 500},
        "tableaux_tarifaires": [
            {
                "type_tableau": "MENSUEL",
                "unite_prix": "DA/mois",
                "lignes": [{"debit_initial_mbps": 300, "tarif_actuel_da": 2600}],
            }
        ],
        "avantages_principaux": ["Ping optimisé pour le gaming"],
    },
    {
        "id_offre": "IDOOM_4G_PRO",
        "nom_commercial": "Idoom 4G LTE Pro",
        "famille": "INTERNET",
        "sous_famille": "IDOOM 4G",
        "technologies": ["4G LTE"],
        "segments_cibles": ["PRO"],
        "client_type": "B2B",
        "type_offre": "PREPAYE",
        "tableaux_tarifaires": [
            {
                "type_tableau": "RECHARGE",
                "unite_prix": "DA",
                "lignes": [{"tarif_actuel_da": 3500, "volume_to": 1}],
            }
        ],
    },
]


RESALE_ROWS = [
    {
        "id_produit": "ZTE_BLADE_A35",
        "nom_produit": "ZTE Blade A35",
        "categorie": "SMARTPHONES",
        "type_produit": "Smartphone 4G",
        "marque": "ZTE",
        "modele": "Blade A35",
        "partenaire": "ZTE Algérie",
        "segments_cibles": ["PARTICULIERS", "ETUDIANTS"],
        "prix_ttc_da": 19900,
        "garantie_mois": 12,
        "accessoires_inclus": ["Chargeur", "Coque de protection"],
        "canaux_vente": ["Agences commerciales"],
    },
    {
        "id_produit": "TWIN_BOX_4K",
        "nom_produit": "Twin Box 4K",
        "categorie": "HARDWARE_MULTIMEDIA",
        "type_produit": "Box Android TV",
        "marque": "TWIN BOX",
        "segments_cibles": ["FAMILLES"],
        "prix_ancien_ttc_da": 12000,
        "prix_nouveau_ttc_da": 9000,
        "reduction_percentage": 25,
        "economie_da": 3000,
        "garantie_mois": 6,
    },
    {
        "id_produit": "ELEARN_BAC",
        "nom_produit": "Pack Révision BAC",
        "categorie": "SOLUTIONS_ELEARNING",
        "type_produit": "Abonnement e-learning",
        "partenaire": "Dirassa",
        "segments_cibles": ["ELEVES_LYCEE"],
        "tarification": [
            {"periode": "mensuel", "prix_da": 500},
            {"periode": "annuel", "prix_da": 4500},
        ],
    },
]


PROCEDURE_ROWS = [
    {
        "Titre_Procedure": "Encaissement facture",
        "Source_Documents": ["Guide NGBSS Encaissement.pdf"],
        "Prérequis": "Disposer d'un compte caisse ouvert",
        "Étapes": [
            {
                "Titre": "Rechercher le client",
                "Instructions": ["Cliquer sur : Client > Recherche avancée", "Saisir le numéro de compte"],
            },
            {
                "Titre": "Encaisser",
                "Instructions": ["Choisir le mode de paiement espèce ou chèque"],
                "Exemple": "Montant 2500 DA",
            },
        ],
    },
    {
        "Titre_Procedure": "Création ligne temporaire FTTH",
        "Source_Documents": ["Guide NGBSS FTTH.pdf"],
        "Étapes": ["Créer l'enquête", "Valider l'ordre OSS", "Gestion commerciale → Ligne temporaire"],
    },
]


ROWS = {
    "conventions": CONVENTION_ROWS,
    "offers": OFFER_ROWS,
    "resale": RESALE_ROWS,
    "procedures": PROCEDURE_ROWS,
}

KIND_OBJECTS = {
    "conventions": CONVENTIONS,
    "offers": PUBLIC_OFFERS,
    "resale": RESALE_ITEMS,
    "procedures": PROCEDURES,
}


def rows_for(kind: str):
    return copy.deepcopy(ROWS[kind])


def write_catalog(path: Path, kind: str, rows=None) -> Path:
    """Write ``rows`` (default: the fixture rows) the way the catalog files store them."""
    rows = rows_for(kind) if rows is None else rows
    root = KIND_OBJECTS[kind].root_key
    payload = rows if root is None else {root: rows}
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def make_store(kind: str) -> CatalogStore:
    return CatalogStore(KIND_OBJECTS[kind], StaticSource(kind, rows_for(kind)))


def make_engine(kind: str, cache: ResultCache = None) -> CatalogEngine:
    return CatalogEngine(kind, StaticSource(kind, rows_for(kind)), cache=cache)


@pytest.fixture
def convention_store() -> CatalogStore:
    return make_store("conventions")


@pytest.fixture
def offer_store() -> CatalogStore:
    return make_store("offers")


@pytest.fixture
def resale_store() -> CatalogStore:
    return make_store("resale")


@pytest.fixture
def procedure_store() -> CatalogStore:
    return make_store("procedures")


@pytest.fixture
def offers_engine() -> CatalogEngine:
    return make_engine("offers")


@pytest.fixture
def conventions_engine() -> CatalogEngine:
    return make_engine("conventions")


@pytest.fixture
def resale_engine() -> CatalogEngine:
    return make_engine("resale")


@pytest.fixture
def procedures_engine() -> CatalogEngine:
    return make_engine("procedures")
