from __future__ import annotations

"""
Projections from catalog records to caller-facing structures.

This module turns validated records into the flat views the tool layer
renders: per-kind derived details (tariffs, documents, activation
channels), step-by-step procedure guides and one-line summaries.  All
transformation logic is kept here so :mod:`catalog_resolver.engine`
stays a thin facade.
"""

from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .config import DerivedDetails
from .models import Convention, Procedure, PublicOffer, ResaleItem


def _texts(values: Iterable[Any]) -> List[str]:
    """Non-blank values as trimmed strings, order kept."""
    out: List[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            out.append(text)
    return out


def _dump(model: Any) -> Dict[str, Any]:
    return model.model_dump(mode="json", exclude_none=True, by_alias=True)


# ---------------------------
# Per-kind detail projections
# ---------------------------

def convention_details(convention: Convention) -> Dict[str, Any]:
    documents: List[str] = []
    if convention.documents_requis is not None:
        documents.extend(
            _texts([convention.documents_requis.nouvelle_demande, convention.documents_requis.basculement])
        )
    documents.extend(_texts(convention.documents))
    eligibility = convention.eligibility
    return {
        "tariffs": [_dump(offer) for offer in convention.offers],
        "documents": documents,
        "activation_channels": [],
        "extras": {
            "aliases": _texts(convention.aliases),
            "conditions": _texts(eligibility.conditions),
            "eligibility_details": _texts([eligibility.details, eligibility.family_details]),
            "notes": _texts([convention.notes]),
        },
    }


def offer_details(offer: PublicOffer) -> Dict[str, Any]:
    tariffs: List[Dict[str, Any]] = []
    for table in offer.tableaux_tarifaires:
        for line in table.lignes:
            row = _dump(line)
            row["type_tableau"] = table.type_tableau
            row["unite_prix"] = table.unite_prix
            tariffs.append(row)
    return {
        "tariffs": tariffs,
        "documents": _texts(offer.documents_a_fournir),
        "activation_channels": _texts(offer.canaux_activation),
        "extras": {
            "payment_modes": _texts(offer.modes_paiement),
            "associated_products": _texts(p.designation for p in offer.produits_associes),
            "advantages": _texts(offer.avantages_principaux),
            "limitations": _texts(offer.limitations),
            "conditions": _texts(offer.conditions_particulieres),
            "notes": _texts(offer.notes),
        },
    }


def resale_details(item: ResaleItem) -> Dict[str, Any]:
    tariffs = [_dump(row) for row in item.tarification]
    if not tariffs:
        main = {
            "prix_ttc_da": item.prix_ttc_da,
            "prix_nouveau_ttc_da": item.prix_nouveau_ttc_da,
            "prix_ancien_ttc_da": item.prix_ancien_ttc_da,
            "reduction_percentage": item.reduction_percentage,
            "economie_da": item.economie_da,
        }
        main = {k: v for k, v in main.items() if v is not None}
        if main:
            tariffs.append(main)

    extra = item.model_extra or {}
    documents: List[str] = []
    claims = extra.get("reclamations")
    if isinstance(claims, dict):
        documents.extend(_texts(claims.get("documents_requis") or []))

    contact = item.contact_sav
    if isinstance(contact, dict):
        contact_lines = _texts(contact.values())
    else:
        contact_lines = _texts([contact])
    warranty = [f"{item.garantie_mois:g} mois"] if item.garantie_mois else []
    # "sous_garantie: ..." lines, keys in declared order
    procedure = [f"{key}: {value}" for key, value in (item.sav_procedure or {}).items() if _texts([value])]
    return {
        "tariffs": tariffs,
        "documents": documents,
        "activation_channels": _texts(item.canaux_vente),
        "extras": {
            "warranty": warranty + _texts(item.couverture_garantie),
            "after_sales": _texts([item.sav_partenaire]) + contact_lines,
            "after_sales_procedure": procedure,
            "accessories": _texts(item.accessoires_inclus),
            "advantages": _texts(item.avantages + item.avantages_cles + item.avantages_principaux + item.points_forts),
            "payment_modes": _texts(item.modes_paiement),
            "notes": _texts(item.notes),
        },
    }


def guide_steps(procedure: Procedure) -> List[str]:
    """
    Flatten a procedure into "[section] instruction" lines, sections in
    their declared order.
    """
    return [f"[{section}] {line}" for section, line in procedure.section_lines() if str(line).strip()]


def procedure_details(procedure: Procedure) -> Dict[str, Any]:
    return {
        "tariffs": [],
        "documents": _texts(procedure.source_documents),
        "activation_channels": [],
        "extras": {
            "sections": list(procedure.sections),
            "steps": guide_steps(procedure),
        },
    }


# ---------------------------
# Generic projections
# ---------------------------

def derive_details(kind, record_id: str, record: Optional[Any]) -> DerivedDetails:
    """Build the :class:`DerivedDetails` view of one record (or a not-found view)."""
    if record is None:
        logger.debug("Details requested for unknown {} id {}", kind.name, record_id)
        return DerivedDetails(record_id=record_id, found=False)
    projected = kind.details(record)
    extras = {key: tuple(values) for key, values in projected.get("extras", {}).items() if values}
    return DerivedDetails(
        record_id=record_id,
        found=True,
        tariffs=tuple(projected.get("tariffs", ())),
        documents=tuple(projected.get("documents", ())),
        activation_channels=tuple(projected.get("activation_channels", ())),
        extras=extras,
    )


def summarize(kind, record: Any) -> Dict[str, Any]:
    """
    Compact dictionary for listing a record: id, label, categorical values
    and the representative value of every numeric attribute.
    """
    summary: Dict[str, Any] = {
        "id": kind.record_id(record),
        "label": kind.record_label(record),
    }
    for field in kind.categorical:
        summary[field.name] = field.values(record)
    for field in kind.numeric:
        summary[field.name] = field.representative(record)
    return summary
