from __future__ import annotations
"""
Configuration for the catalog resolver.

Module-level constants (some overridable through environment variables),
the static synonym tables and keyword vocabularies of the four catalogs,
and the Pydantic response schemas returned by :mod:`catalog_resolver.engine`.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    try:
        return max(minimum, int(os.getenv(name, str(default))))
    except ValueError:
        return default


def _float_env(name: str, default: float, minimum: float = 0.0) -> float:
    try:
        return max(minimum, float(os.getenv(name, str(default))))
    except ValueError:
        return default


# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.getenv("CATALOG_DATA_DIR", str(PROJECT_ROOT / "data")))

# Language-specific catalog files.  A language missing a file falls back
# to the French one.
DEFAULT_LANGUAGE = os.getenv("CATALOG_LANGUAGE", "fr")
FALLBACK_LANGUAGE = "fr"
DATA_FILES: Dict[str, Dict[str, str]] = {
    "fr": {
        "conventions": "docs-conv.json",
        "offers": "offres.json",
        "resale": "depot.json",
        "procedures": "ngbss.json",
    },
    "ar": {
        "conventions": "arConv.json",
        "offers": "arOffre.json",
        "resale": "arDepot.json",
        "procedures": "ngbss.json",
    },
}

# Logging
LOG_LEVEL = os.getenv("CATALOG_LOG_LEVEL", "INFO")

# Fuzzy matching
FUZZY_THRESHOLD = _int_env("CATALOG_FUZZY_THRESHOLD", 3)
FUZZY_MIN_TOKEN_LENGTH = 3  # shorter search tokens must match a target token exactly

# Relaxation
RELAXATION_PRICE_FACTOR = _float_env("CATALOG_RELAXATION_PRICE_FACTOR", 1.2, minimum=1.0)

# Result cache
RESULT_CACHE_MAX_ENTRIES = _int_env("CATALOG_CACHE_MAX_ENTRIES", 1024)
RESULT_CACHE_TTL_SECONDS = _float_env("CATALOG_CACHE_TTL_SECONDS", 300.0)

# Numeric bucket breakpoints (upper bounds, inclusive)
PRICE_BREAKPOINTS: Tuple[float, ...] = (1000, 2000, 3000, 4000)
SPEED_BREAKPOINTS: Tuple[float, ...] = (50, 100, 200, 500, 1000)
WARRANTY_BREAKPOINTS: Tuple[float, ...] = (6, 12, 24)
MISSING_BUCKET = "n/a"

# Values that match every query on their attribute
CLIENT_TYPE_WILDCARDS: Tuple[str, ...] = ("B2C_B2B",)

# Markers of a bundled item given away for free
FREE_ITEM_MARKERS: Tuple[str, ...] = (
    "offert", "offerte", "offerts", "gratuit", "gratuite", "free", "offered",
)

# ---------------------------
# Synonym tables (attribute -> informal term -> canonical tokens)
# ---------------------------

CONVENTION_SYNONYMS: Dict[str, Dict[str, List[str]]] = {
    "technology": {
        "fibre": ["FIBRE", "FTTH", "VDSL_FTTH", "ADSL_FIBRE", "VDSL_FIBRE", "ADSL_VDSL_FIBRE"],
        "fiber": ["FIBRE", "FTTH", "VDSL_FTTH", "ADSL_FIBRE", "VDSL_FIBRE", "ADSL_VDSL_FIBRE"],
        "ftth": ["FTTH", "FIBRE", "VDSL_FTTH"],
        "adsl": ["ADSL", "ADSL_VDSL_FIBRE", "ADSL_FIBRE", "ADSL_VDSL"],
        "vdsl": ["VDSL", "VDSL_FTTH", "VDSL_FIBRE", "ADSL_VDSL_FIBRE", "ADSL_VDSL"],
        "4g": ["4G"],
        "lte": ["4G"],
    },
    "family": {
        "internet": ["INTERNET"],
        "telephone": ["TELEPHONY"],
        "telephonie": ["TELEPHONY"],
        "fixe": ["TELEPHONY"],
        "4g": ["4G"],
        "materiel": ["HARDWARE"],
        "modem": ["HARDWARE"],
        "email": ["EMAIL"],
        "mail": ["EMAIL"],
        "elearning": ["E-LEARNING"],
        "e-learning": ["E-LEARNING"],
        "formation": ["E-LEARNING"],
    },
    "client_type": {
        "particulier": ["B2C"],
        "particuliers": ["B2C"],
        "entreprise": ["B2B"],
        "entreprises": ["B2B"],
    },
}

OFFER_SYNONYMS: Dict[str, Dict[str, List[str]]] = {
    "technology": {
        "fibre": ["FIBRE", "FTTH", "IDOOM FIBRE"],
        "fiber": ["FIBRE", "FTTH", "IDOOM FIBRE"],
        "ftth": ["FIBRE", "FTTH", "IDOOM FIBRE"],
        "4g": ["4G", "LTE"],
        "lte": ["4G", "LTE"],
        "adsl": ["ADSL"],
        "vdsl": ["VDSL"],
    },
    "segment": {
        "particulier": ["RESIDENTIEL"],
        "particuliers": ["RESIDENTIEL"],
        "residentiel": ["RESIDENTIEL"],
        "gamer": ["RESIDENTIEL"],
        "gaming": ["RESIDENTIEL"],
        "pro": ["PRO"],
        "professionnel": ["PRO"],
        "professionnels": ["PRO"],
        "entreprise": ["PRO"],
    },
    "client_type": {
        "particulier": ["B2C"],
        "particuliers": ["B2C"],
        "entreprise": ["B2B"],
        "entreprises": ["B2B"],
    },
}

RESALE_SYNONYMS: Dict[str, Dict[str, List[str]]] = {
    "category": {
        "smartphone": ["SMARTPHONES"],
        "smartphones": ["SMARTPHONES"],
        "telephone": ["SMARTPHONES"],
        "mobile": ["SMARTPHONES"],
        "box": ["HARDWARE_MULTIMEDIA"],
        "tv": ["HARDWARE_MULTIMEDIA"],
        "android": ["HARDWARE_MULTIMEDIA"],
        "twin": ["HARDWARE_MULTIMEDIA"],
        "accessoire": ["ACCESSOIRES"],
        "accessoires": ["ACCESSOIRES"],
        "cache": ["ACCESSOIRES"],
        "modem": ["ACCESSOIRES"],
        "elearning": ["SOLUTIONS_ELEARNING"],
        "e-learning": ["SOLUTIONS_ELEARNING"],
        "formation": ["SOLUTIONS_ELEARNING"],
        "formations": ["SOLUTIONS_ELEARNING"],
        "education": ["SOLUTIONS_ELEARNING"],
        "scolaire": ["SOLUTIONS_ELEARNING"],
        "ebook": ["SOLUTIONS_ELEARNING"],
        "livre": ["SOLUTIONS_ELEARNING"],
        "digital": ["SERVICES_DIGITAUX"],
        "ecommerce": ["SERVICES_DIGITAUX"],
        "market": ["SERVICES_DIGITAUX"],
    },
    "segment": {
        "particulier": ["PARTICULIERS"],
        "particuliers": ["PARTICULIERS"],
        "residentiel": ["RESIDENTIEL"],
        "famille": ["FAMILLES"],
        "familles": ["FAMILLES"],
        "pro": ["PROFESSIONNELS"],
        "professionnel": ["PROFESSIONNELS"],
        "professionnels": ["PROFESSIONNELS"],
        "etudiant": ["ETUDIANTS", "UNIVERSITAIRES"],
        "etudiants": ["ETUDIANTS", "UNIVERSITAIRES"],
        "enseignant": ["ENSEIGNANTS", "FORMATEURS"],
        "enseignants": ["ENSEIGNANTS", "FORMATEURS"],
        "formateur": ["FORMATEURS"],
        "ecole": ["PETITES_ECOLES", "ECOLES_MOYENNES", "GRANDES_ECOLES"],
        "universite": ["UNIVERSITES"],
        "eleve": ["ELEVES", "ELEVES_PRIMAIRE", "ELEVES_COLLEGE", "ELEVES_LYCEE"],
        "eleves": ["ELEVES", "ELEVES_PRIMAIRE", "ELEVES_COLLEGE", "ELEVES_LYCEE"],
        "parent": ["PARENTS"],
        "parents": ["PARENTS"],
        "entreprise": ["ENTREPRISES"],
        "entreprises": ["ENTREPRISES"],
        "tech": ["TECH_ENTHUSIASTS"],
    },
    "brand": {
        "zte": ["ZTE", "ZTE NUBIA"],
        "nubia": ["ZTE NUBIA"],
        "buzz": ["BUZZ"],
        "twin": ["TWIN BOX"],
        "twinbox": ["TWIN BOX"],
    },
}

# ---------------------------
# Keyword vocabularies (fixed, multi-word phrases allowed)
# ---------------------------

CONVENTION_DOCUMENT_KEYWORDS: List[str] = [
    "attestation", "travail", "bulletin", "paie", "salaire",
    "carte professionnelle", "copie pi", "pièce identité", "cni", "copie cin",
    "justificatif", "adresse", "domicile", "résidence",
    "fiche familiale", "livret famille", "état civil",
    "demande manuscrite", "formulaire", "retraité", "pension",
    "habilité", "ressources humaines", "signé", "dument",
]

OFFER_KEYWORDS: List[str] = [
    "boost", "temporaire", "week-end", "vendredi", "samedi",
    "gaming", "gamer", "streaming", "ping", "optimisé",
    "modem", "offert", "installation", "gratuit",
    "paiement électronique", "tpe", "e-paiement",
    "locataire", "conventionné", "sans engagement",
    "fibre", "fibre optique", "ftth", "adsl", "vdsl",
    "débit", "débit initial", "débit final", "upload", "download", "ratio",
    "activation", "espace client", "my idoom",
    "attestation", "résidence", "cin", "justificatif",
]

RESALE_KEYWORDS: List[str] = [
    "garantie", "sav", "livraison", "offert", "gratuit", "réduction",
    "wifi", "double sim", "4g", "5g", "android", "smart tv",
    "ebook", "livre audio", "cours en ligne", "abonnement",
    "paiement électronique", "espace client", "remboursement", "retour",
]

PROCEDURE_ACTIONS: List[str] = [
    "encaissement", "paiement", "encaisser", "payer",
    "création", "créer", "créé",
    "modification", "modifier", "modifié",
    "suppression", "supprimer", "supprimé",
    "activation", "activer", "activé",
    "désactivation", "désactiver", "désactivé",
    "réactivation", "réactiver", "réactivé",
    "enregistrement", "enregistrer", "enregistré",
    "édition", "éditer", "édité",
    "impression", "imprimer", "imprimé",
    "consultation", "consulter", "consulté",
    "recherche", "rechercher", "recherché",
    "validation", "valider", "validé",
    "soumission", "soumettre", "soumis",
    "conversion", "convertir", "converti",
    "gestion", "gérer", "géré",
    "recharge", "recharger", "rechargé",
    "vente", "vendre", "vendu",
    "retour", "retourner", "retourné",
    "arrangement", "arranger", "arrangé",
    "ajustement", "ajuster", "ajusté",
    "facture", "facturer", "facturé",
    "enquête", "enquêter",
    "ordre",
]

PROCEDURE_TOPICS: List[str] = [
    "facture", "facture complémentaire", "facture détaillée", "facture duplicata",
    "paiement", "encaissement", "espèce", "chèque", "bon de commande",
    "PSTN", "VOIP", "FTTH", "FTTX", "4G LTE",
    "enquête", "ordre", "OSS",
    "ligne temporaire", "ligne permanente",
    "abonné", "client", "compte",
    "recharge", "prépayé", "postpayé",
    "ressource", "vente par lot",
    "arrangement", "échéancier", "AOD", "P2P",
    "TVA", "ajustement", "forcement",
    "bureau de poste", "CMP",
    "activation", "désactivation", "réactivation",
    "modem", "ONT",
    "retour ressource",
]

# Declared step sections of a procedure guide, in display order
PROCEDURE_SECTIONS: List[str] = [
    "Étapes",
    "Prérequis",
    "Condition",
    "Règles_Générales",
    "Définitions_et_Règles",
    "Définition_Cas_et_Catégories",
    "Préambule_Frais",
    "Partie_Enregistrement_Ajustement",
    "Partie_Encaissement",
    "Création_Enquête_PSTN",
    "Consultation_et_Conversion_Ordres",
    "Création_VOIP",
    "Création_FTTH_et_Recharge",
    "Création_par_Vente_Individuel",
    "Prolongation_Durée",
    "Modification_Vers_Permanente",
    "Changement_Article_Ressource",
    "Vente_Ressource_pour_Client",
    "Cas_Vente_pour_Client",
    "Cas_Vente_pour_Non_Client",
    "Changement_État_Ressource_après_Retour",
    "Création_Arrangement_Paiement_AOD",
    "Création_Promesse_Paiement_P2P",
    "Validation_Arrangement_Approval",
    "Encaissement_Arrangement",
    "Édition_Facture_Détaillée",
    "Saisie_Frais_Via_Changement_Offre",
    "Informations_Facture_Exemple",
    "Informations_Frais_Exemple",
    "Mode_Paiement_Exemple",
]


# ---------------------------
# Pydantic response schemas
# ---------------------------

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class SearchResponse(_Frozen):
    records: Tuple[Any, ...] = ()
    relaxed: bool = False
    relaxed_criteria: Tuple[str, ...] = ()


class EligibilityVerdict(_Frozen):
    eligible: bool
    reasons: Tuple[str, ...] = Field(min_length=1)


class ComparisonRow(_Frozen):
    record_id: str
    label: str
    summary: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    public_price: Optional[float] = None
    reference_price: Optional[float] = None
    savings: Optional[float] = None
    savings_percent: Optional[int] = None
    has_free_item: bool = False
    tariff_count: int = Field(default=0, ge=0)


class ComparisonResponse(_Frozen):
    rows: Tuple[ComparisonRow, ...] = ()


class DerivedDetails(_Frozen):
    record_id: str
    found: bool
    tariffs: Tuple[Dict[str, Any], ...] = ()
    documents: Tuple[str, ...] = ()
    activation_channels: Tuple[str, ...] = ()
    extras: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)


class IndexStatistics(_Frozen):
    kind: str
    generation: int
    records: int
    categorical: Dict[str, int] = Field(default_factory=dict)
    buckets: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    keywords: int = 0
    flags: Dict[str, int] = Field(default_factory=dict)
