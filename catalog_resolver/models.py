from __future__ import annotations

"""
Pydantic models of the four catalog record kinds.

Field names follow the catalog files so records validate straight from
JSON.  All records are frozen once validated.  Unknown keys are ignored,
except on resale items where product-specific blobs (specifications,
return policy, ...) vary per product and are kept as extras.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import PROCEDURE_SECTIONS


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


# ---------------------------
# Partnership agreements (conventions)
# ---------------------------

class ConventionEligibility(_Record):
    active: Optional[bool] = None
    retired: Optional[bool] = None
    family: Optional[bool] = None
    family_details: Optional[str] = None
    subsidiaries: Optional[bool] = None
    widows_invalids: Optional[bool] = None
    second_access: Optional[bool] = None
    second_access_condition: Optional[str] = None
    hierarchical: Optional[bool] = None
    civil: Optional[bool] = None
    adherents: Optional[bool] = None
    conditions: List[str] = Field(default_factory=list)
    details: Optional[str] = None


class ConventionOffer(_Record):
    category: str
    technology: Optional[str] = None
    speed_mbps: Optional[float] = None
    plan: Optional[str] = None
    volume_go: Optional[float] = None
    frequency: Optional[str] = None
    product: Optional[str] = None
    type: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    price_convention_da: float
    price_public_da: Optional[float] = None
    discount: Optional[str] = None
    condition: Optional[str] = None
    label: Optional[str] = None
    note: Optional[str] = None


class RequiredDocuments(_Record):
    nouvelle_demande: str = ""
    basculement: str = ""


class Convention(_Record):
    convention_id: str
    partner_name: str
    aliases: List[str] = Field(default_factory=list)
    client_type: str
    eligibility: ConventionEligibility = Field(default_factory=ConventionEligibility)
    documents: List[str] = Field(default_factory=list)
    documents_requis: Optional[RequiredDocuments] = None
    offers: List[ConventionOffer] = Field(default_factory=list)
    notes: Optional[str] = None
    store_items: List[Any] = Field(default_factory=list)


# ---------------------------
# Public commercial offers
# ---------------------------

class SpeedRange(_Record):
    debit_initial_min_mbps: Optional[float] = None
    debit_initial_max_mbps: Optional[float] = None
    debits_final_disponibles_mbps: List[float] = Field(default_factory=list)


class TariffLine(_Record):
    model_config = ConfigDict(frozen=True, extra="allow")

    debit_initial_mbps: Optional[float] = None
    debit_final_mbps: Optional[float] = None
    tarif_actuel_da: Optional[float] = None
    tarif_nouveau_da: Optional[float] = None
    valeur: Optional[float] = None
    type_kit: Optional[str] = None
    longueur_metres: Optional[float] = None
    condition: Optional[str] = None
    volume_to: Optional[float] = None
    validite_jours: Optional[float] = None


class TariffTable(_Record):
    type_tableau: str = ""
    unite_prix: str = ""
    lignes: List[TariffLine] = Field(default_factory=list)


class AssociatedProduct(_Record):
    type_produit: str = ""
    designation: str = ""
    tarif_actuel_da_ttc: Optional[float] = None
    tarif_nouveau_da_ttc: Optional[float] = None
    conditions: List[str] = Field(default_factory=list)


class PublicOffer(_Record):
    id_offre: str
    nom_commercial: str
    famille: str
    sous_famille: str = ""
    technologies: List[str] = Field(default_factory=list)
    segments_cibles: List[str] = Field(default_factory=list)
    sous_segments: List[str] = Field(default_factory=list)
    client_type: str = ""
    locataire: Optional[bool] = None
    conventionne: Optional[bool] = None
    types_clients_exclus: List[str] = Field(default_factory=list)
    type_offre: str = ""
    engagement_mois: Optional[float] = None
    numero_document: str = ""
    canaux_activation: List[str] = Field(default_factory=list)
    periode_activation: Optional[Dict[str, Any]] = None
    validite: Optional[Dict[str, Any]] = None
    debits_eligibles: Optional[SpeedRange] = None
    caracteristiques_debit: Optional[Dict[str, Any]] = None
    tarification: List[Any] = Field(default_factory=list)
    avantages_principaux: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    conditions_particulieres: List[str] = Field(default_factory=list)
    tableaux_tarifaires: List[TariffTable] = Field(default_factory=list)
    produits_associes: List[AssociatedProduct] = Field(default_factory=list)
    modes_paiement: List[str] = Field(default_factory=list)
    documents_a_fournir: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


# ---------------------------
# Resale inventory items (depot-vente)
# ---------------------------

class ResalePricing(_Record):
    model_config = ConfigDict(frozen=True, extra="allow")

    periode: Optional[str] = None
    type: Optional[str] = None
    prix_da: Optional[float] = None
    nom: Optional[str] = None
    duree_mois: Optional[float] = None
    validite_jours: Optional[float] = None


class ResaleItem(_Record):
    model_config = ConfigDict(frozen=True, extra="allow")

    id_produit: str
    nom_produit: str
    categorie: str
    type_produit: str
    marque: Optional[str] = None
    modele: Optional[str] = None
    partenaire: Optional[str] = None
    reference_document: Optional[str] = None
    couleurs: List[str] = Field(default_factory=list)
    segments_cibles: List[str] = Field(default_factory=list)
    prix_ttc_da: Optional[float] = None
    prix_ancien_ttc_da: Optional[float] = None
    prix_nouveau_ttc_da: Optional[float] = None
    reduction_percentage: Optional[float] = None
    economie_da: Optional[float] = None
    canaux_vente: List[str] = Field(default_factory=list)
    garantie_mois: Optional[float] = None
    sav_partenaire: Optional[str] = None
    contact_sav: Optional[Union[str, Dict[str, Any]]] = None
    accessoires_inclus: List[str] = Field(default_factory=list)
    couverture_garantie: List[str] = Field(default_factory=list)
    sav_procedure: Optional[Dict[str, Any]] = None
    tarification: List[ResalePricing] = Field(default_factory=list)
    avantages: List[str] = Field(default_factory=list)
    avantages_cles: List[str] = Field(default_factory=list)
    avantages_principaux: List[str] = Field(default_factory=list)
    points_forts: List[str] = Field(default_factory=list)
    modes_paiement: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


# ---------------------------
# Operational procedure guides (NGBSS)
# ---------------------------

class ProcedureStep(_Record):
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    title: Optional[str] = Field(default=None, alias="Titre")
    instructions: List[str] = Field(default_factory=list, alias="Instructions")

    def lines(self) -> List[str]:
        """Instructions followed by any extra example/detail lines."""
        out = list(self.instructions)
        for value in (self.model_extra or {}).values():
            if isinstance(value, str):
                out.append(value)
            elif isinstance(value, list):
                out.extend(str(v) for v in value)
        return out


class Procedure(_Record):
    """
    One procedure guide.  The catalog stores each step section as its own
    top-level key; validation gathers the declared sections into an
    ordered ``sections`` mapping (single strings become one-item lists).
    """

    title: str = Field(alias="Titre_Procedure")
    source_documents: List[str] = Field(default_factory=list, alias="Source_Documents")
    sections: Dict[str, List[Union[ProcedureStep, str]]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_sections(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "sections" in data:
            return data
        sections: Dict[str, List[Any]] = {}
        for name in PROCEDURE_SECTIONS:
            value = data.get(name)
            if value is None:
                continue
            sections[name] = [value] if isinstance(value, (str, dict)) else list(value)
        out = {k: v for k, v in data.items() if k not in PROCEDURE_SECTIONS}
        out["sections"] = sections
        return out

    def section_lines(self) -> List[tuple]:
        """(section, line) pairs in section order."""
        pairs = []
        for name, items in self.sections.items():
            for item in items:
                if isinstance(item, ProcedureStep):
                    if item.title:
                        pairs.append((name, item.title))
                    pairs.extend((name, line) for line in item.lines())
                else:
                    pairs.append((name, item))
        return pairs
