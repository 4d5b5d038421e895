from __future__ import annotations

"""
Record-kind descriptors.

One generic engine serves every catalog; what differs between catalogs
is captured here as data: field accessors, the candidate-selection
priority of categorical attributes, numeric breakpoints, keyword
vocabularies, synonym tables, eligibility rules and the relaxation plan.

Text-bearing fields are declared explicitly per kind; nothing here walks
a record's attributes by reflection.
"""

import re
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import BaseModel

from .config import (
    CLIENT_TYPE_WILDCARDS,
    CONVENTION_DOCUMENT_KEYWORDS,
    CONVENTION_SYNONYMS,
    MISSING_BUCKET,
    OFFER_KEYWORDS,
    OFFER_SYNONYMS,
    PRICE_BREAKPOINTS,
    PROCEDURE_ACTIONS,
    PROCEDURE_TOPICS,
    RESALE_KEYWORDS,
    RESALE_SYNONYMS,
    SPEED_BREAKPOINTS,
    WARRANTY_BREAKPOINTS,
)
from .errors import UnknownKindError
from .mapping import convention_details, offer_details, procedure_details, resale_details
from .models import Convention, Procedure, PublicOffer, ResaleItem
from .normalize import TermNormalizer, dedupe, fold_text, normalize_category_value, strip_accents


# ---------------------------
# Derived row types
# ---------------------------

@dataclass(frozen=True)
class TariffRow:
    """One priced line of a record, reduced to what comparisons need."""

    label: str
    current: Optional[float] = None
    new: Optional[float] = None
    public: Optional[float] = None
    condition: Optional[str] = None

    @property
    def chosen(self) -> Optional[float]:
        """New/updated amount if positive, else the current one if positive."""
        if self.new is not None and self.new > 0:
            return self.new
        if self.current is not None and self.current > 0:
            return self.current
        return None


@dataclass(frozen=True)
class BundledItem:
    label: str
    price: Optional[float] = None
    conditions: Tuple[str, ...] = ()


# ---------------------------
# Field descriptors
# ---------------------------

def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def bucket_label(value: Optional[float], breakpoints: Sequence[float]) -> str:
    """
    Discrete band for ``value`` given inclusive upper ``breakpoints``.

    With (1000, 2000): 0-1000, 1001-2000, 2001+.  Missing values get
    their own band.
    """
    if value is None:
        return MISSING_BUCKET
    idx = bisect_left(breakpoints, value)
    if idx == 0:
        return f"0-{_fmt(breakpoints[0])}"
    if idx == len(breakpoints):
        return f"{_fmt(breakpoints[-1] + 1)}+"
    return f"{_fmt(breakpoints[idx - 1] + 1)}-{_fmt(breakpoints[idx])}"


@dataclass(frozen=True)
class CategoricalField:
    name: str
    values: Callable[[Any], List[str]]
    substring: bool = False
    wildcards: Tuple[str, ...] = ()
    synonyms: Optional[str] = None  # synonym table name, defaults to ``name``
    folded: bool = False  # compare without accents

    @property
    def table(self) -> str:
        return self.synonyms or self.name

    def _key(self, value: Any) -> str:
        key = normalize_category_value(value)
        return strip_accents(key) if self.folded else key

    def keys(self, record: Any) -> List[str]:
        return dedupe(k for k in (self._key(v) for v in self.values(record)) if k)

    def tokens(self, normalizer: TermNormalizer, term: Any) -> List[str]:
        """Canonical query tokens for ``term``, shaped like this field's keys."""
        return dedupe(t for t in (self._key(v) for v in normalizer.normalize(self.table, term)) if t)

    def matches_key(self, key: str, tokens: Sequence[str]) -> bool:
        if key in self.wildcards:
            return True
        if self.substring:
            return any(token in key for token in tokens)
        return key in tokens


@dataclass(frozen=True)
class NumericField:
    """
    Numeric attribute.  ``values`` may return several numbers (one per
    tariff row); a range predicate passes when any of them is inside the
    range.  Bucketing and sorting use the minimum (or maximum, with
    ``use_max``).
    """

    name: str
    values: Callable[[Any], List[float]]
    breakpoints: Tuple[float, ...] = ()
    missing_passes: bool = False
    use_max: bool = False
    bucketer: Optional[Callable[[Optional[float]], str]] = None

    def representative(self, record: Any) -> Optional[float]:
        vals = [v for v in self.values(record) if v is not None]
        if not vals:
            return None
        return max(vals) if self.use_max else min(vals)

    def bucket(self, record: Any) -> str:
        value = self.representative(record)
        if self.bucketer is not None:
            return self.bucketer(value)
        return bucket_label(value, self.breakpoints)


@dataclass(frozen=True)
class FlagField:
    name: str
    value: Callable[[Any], Optional[bool]]


@dataclass(frozen=True)
class TextGroup:
    name: str
    fields: Callable[[Any], List[str]]
    fuzzy: bool = False


@dataclass(frozen=True)
class EligibilityRule:
    """
    Boolean profile criterion.

    ``value`` says whether the record accepts members of the group
    (None when the record is silent).  ``required`` says whether the
    record is reserved to them; only rules with a ``required`` accessor
    react to a caller asserting non-membership.
    """

    flag: str
    label: str
    value: Callable[[Any], Optional[bool]]
    required: Optional[Callable[[Any], bool]] = None
    detail: Optional[Callable[[Any], Optional[str]]] = None


@dataclass(frozen=True)
class AttributeRule:
    """Categorical profile criterion, e.g. the caller's segment."""

    attribute: str
    label: str
    values: Callable[[Any], List[str]]
    synonyms: Optional[str] = None
    substring: bool = True  # a target containing the term also matches


@dataclass(frozen=True)
class RelaxationPlan:
    """Names of the predicates touched by each relaxation step."""

    price: Optional[str] = None
    speed: Optional[str] = None
    technology: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class RecordKind:
    name: str
    label: str
    model: Type[BaseModel]
    root_key: Optional[str]
    record_id: Callable[[Any], str]
    record_label: Callable[[Any], str]
    categorical: Tuple[CategoricalField, ...]  # candidate-selection priority order
    numeric: Tuple[NumericField, ...] = ()
    flags: Tuple[FlagField, ...] = ()
    text_groups: Tuple[TextGroup, ...] = ()
    keyword_fields: Callable[[Any], List[str]] = lambda record: []
    vocabulary: Tuple[str, ...] = ()
    synonyms: Mapping[str, Mapping[str, Sequence[str]]] = field(default_factory=dict)
    tariffs: Callable[[Any], List[TariffRow]] = lambda record: []
    bundled: Callable[[Any], List[BundledItem]] = lambda record: []
    eligibility: Tuple[EligibilityRule, ...] = ()
    eligibility_attributes: Tuple[AttributeRule, ...] = ()
    relaxation: RelaxationPlan = RelaxationPlan()
    price_field: Optional[str] = None
    details: Callable[[Any], Dict[str, Any]] = lambda record: {}

    def categorical_field(self, name: str) -> Optional[CategoricalField]:
        return next((f for f in self.categorical if f.name == name), None)

    def numeric_field(self, name: str) -> Optional[NumericField]:
        return next((f for f in self.numeric if f.name == name), None)

    def flag_field(self, name: str) -> Optional[FlagField]:
        return next((f for f in self.flags if f.name == name), None)

    def text_group(self, name: str) -> Optional[TextGroup]:
        return next((g for g in self.text_groups if g.name == name), None)

    def price(self, record: Any) -> Optional[float]:
        if self.price_field is None:
            return None
        numeric = self.numeric_field(self.price_field)
        return numeric.representative(record) if numeric else None

    def coerce(self, item: Any) -> BaseModel:
        """Validate a raw mapping into this kind's model; models pass through."""
        if isinstance(item, self.model):
            return item
        return self.model.model_validate(item)


def _num(value: Any) -> List[float]:
    return [float(value)] if value is not None else []


def _positive(values: Sequence[Optional[float]]) -> List[float]:
    return [float(v) for v in values if v is not None and v > 0]


# ---------------------------
# Partnership agreements
# ---------------------------

_CONVENTION_FLAGS: Tuple[Tuple[str, str], ...] = (
    ("active", "active employees"),
    ("retired", "retired employees"),
    ("family", "family members"),
    ("subsidiaries", "subsidiary employees"),
    ("widows_invalids", "widows and disabled employees"),
    ("second_access", "a second access line"),
    ("hierarchical", "hierarchical staff"),
    ("civil", "civil staff"),
    ("adherents", "association members"),
)


def _convention_flag(flag: str) -> Callable[[Convention], Optional[bool]]:
    return lambda c: getattr(c.eligibility, flag)


def _convention_offer_label(offer) -> str:
    if offer.label:
        return offer.label
    parts = [offer.category, offer.technology, offer.plan or offer.product or offer.model]
    if offer.speed_mbps:
        parts.append(f"{_fmt(offer.speed_mbps)} Mbps")
    return " ".join(p for p in parts if p)


def _convention_tariffs(c: Convention) -> List[TariffRow]:
    return [
        TariffRow(
            label=_convention_offer_label(o),
            current=o.price_convention_da,
            public=o.price_public_da,
            condition=o.condition,
        )
        for o in c.offers
    ]


def _convention_bundled(c: Convention) -> List[BundledItem]:
    return [
        BundledItem(
            label=_convention_offer_label(o),
            price=o.price_convention_da,
            conditions=tuple(t for t in (o.condition, o.discount, o.note) if t),
        )
        for o in c.offers
        if o.category.upper() == "HARDWARE"
    ]


def _convention_keyword_text(c: Convention) -> List[str]:
    texts = list(c.documents)
    if c.documents_requis is not None:
        texts += [c.documents_requis.nouvelle_demande, c.documents_requis.basculement]
    texts += list(c.eligibility.conditions)
    texts += [c.eligibility.details or "", c.notes or ""]
    return texts


CONVENTIONS = RecordKind(
    name="conventions",
    label="partnership agreement",
    model=Convention,
    root_key=None,
    record_id=lambda c: c.convention_id,
    record_label=lambda c: c.partner_name,
    categorical=(
        CategoricalField("category", lambda c: [o.category for o in c.offers], synonyms="family"),
        CategoricalField("technology", lambda c: [o.technology for o in c.offers if o.technology], substring=True),
        CategoricalField("client_type", lambda c: [c.client_type]),
    ),
    numeric=(
        NumericField("price", lambda c: _positive([o.price_convention_da for o in c.offers]), PRICE_BREAKPOINTS),
        NumericField(
            "speed",
            lambda c: _positive([o.speed_mbps for o in c.offers]),
            SPEED_BREAKPOINTS,
            missing_passes=True,
            use_max=True,
        ),
    ),
    flags=tuple(FlagField(flag, _convention_flag(flag)) for flag, _ in _CONVENTION_FLAGS),
    text_groups=(
        TextGroup("name", lambda c: [c.partner_name, c.convention_id] + list(c.aliases), fuzzy=True),
    ),
    keyword_fields=_convention_keyword_text,
    vocabulary=tuple(CONVENTION_DOCUMENT_KEYWORDS),
    synonyms=CONVENTION_SYNONYMS,
    tariffs=_convention_tariffs,
    bundled=_convention_bundled,
    eligibility=tuple(
        EligibilityRule(
            flag,
            label,
            _convention_flag(flag),
            detail=(lambda c: c.eligibility.family_details) if flag == "family" else None,
        )
        for flag, label in _CONVENTION_FLAGS
    ),
    relaxation=RelaxationPlan(price="price", speed="speed", technology="technology", category="category"),
    price_field="price",
    details=convention_details,
)


# ---------------------------
# Public commercial offers
# ---------------------------

def _offer_tariffs(o: PublicOffer) -> List[TariffRow]:
    rows: List[TariffRow] = []
    for table in o.tableaux_tarifaires:
        for line in table.lignes:
            label_bits = [table.type_tableau]
            if line.debit_initial_mbps is not None:
                label_bits.append(f"{_fmt(line.debit_initial_mbps)} Mbps")
            if line.debit_final_mbps is not None:
                label_bits.append(f"-> {_fmt(line.debit_final_mbps)} Mbps")
            if line.type_kit:
                label_bits.append(line.type_kit)
            rows.append(
                TariffRow(
                    label=" ".join(b for b in label_bits if b),
                    current=line.tarif_actuel_da,
                    new=line.tarif_nouveau_da,
                    condition=line.condition,
                )
            )
    return rows


def _offer_prices(o: PublicOffer) -> List[float]:
    return [row.chosen for row in _offer_tariffs(o) if row.chosen is not None]


def _offer_speed(o: PublicOffer) -> List[float]:
    if o.debits_eligibles is None:
        return []
    return _num(o.debits_eligibles.debit_initial_max_mbps)


def commitment_bucket(months: Optional[float]) -> str:
    if not months:
        return "sans-engagement"
    if months == 12:
        return "12-mois"
    if months == 24:
        return "24-mois"
    return "autre"


def _excluded(o: PublicOffer, group: str) -> bool:
    return any(normalize_category_value(t) == group for t in o.types_clients_exclus)


PUBLIC_OFFERS = RecordKind(
    name="offers",
    label="public offer",
    model=PublicOffer,
    root_key="referentiel_offres",
    record_id=lambda o: o.id_offre,
    record_label=lambda o: o.nom_commercial,
    categorical=(
        CategoricalField("family", lambda o: [o.famille]),
        CategoricalField("technology", lambda o: list(o.technologies), substring=True),
        CategoricalField("segment", lambda o: list(o.segments_cibles)),
        CategoricalField("client_type", lambda o: [o.client_type], wildcards=CLIENT_TYPE_WILDCARDS),
        CategoricalField("sub_family", lambda o: [o.sous_famille], substring=True),
        CategoricalField("offer_type", lambda o: [o.type_offre]),
    ),
    numeric=(
        NumericField("price", _offer_prices, PRICE_BREAKPOINTS),
        NumericField("speed", _offer_speed, SPEED_BREAKPOINTS, missing_passes=True),
        NumericField(
            "commitment",
            lambda o: _num(o.engagement_mois),
            missing_passes=True,
            bucketer=commitment_bucket,
        ),
    ),
    flags=(
        FlagField("tenant", lambda o: o.locataire),
        FlagField("affiliated", lambda o: o.conventionne),
        FlagField("has_commitment", lambda o: bool(o.engagement_mois and o.engagement_mois > 0)),
    ),
    text_groups=(
        TextGroup("name", lambda o: [o.nom_commercial, o.id_offre], fuzzy=True),
    ),
    keyword_fields=lambda o: (
        [o.nom_commercial, o.sous_famille]
        + o.avantages_principaux
        + o.limitations
        + o.conditions_particulieres
        + o.documents_a_fournir
        + o.notes
    ),
    vocabulary=tuple(OFFER_KEYWORDS),
    synonyms=OFFER_SYNONYMS,
    tariffs=_offer_tariffs,
    bundled=lambda o: [
        BundledItem(p.designation, p.tarif_nouveau_da_ttc, tuple(p.conditions)) for p in o.produits_associes
    ],
    eligibility=(
        EligibilityRule(
            "tenant",
            "tenants",
            lambda o: o.locataire is not False and not _excluded(o, "LOCATAIRES"),
            required=lambda o: o.locataire is True,
        ),
        EligibilityRule(
            "affiliated",
            "customers under a partnership agreement",
            lambda o: not _excluded(o, "CONVENTIONNES"),
            required=lambda o: o.conventionne is True,
        ),
    ),
    eligibility_attributes=(
        AttributeRule("segment", "segment", lambda o: list(o.segments_cibles), substring=False),
        AttributeRule("sub_segment", "sub-segment", lambda o: list(o.sous_segments)),
    ),
    relaxation=RelaxationPlan(price="price", speed="speed", technology="technology", category="family"),
    price_field="price",
    details=offer_details,
)


# ---------------------------
# Resale inventory items
# ---------------------------

def resale_main_price(item: ResaleItem) -> Optional[float]:
    """
    Headline price of a resale item: the plain TTC price, else the
    discounted price, else the cheapest subscription row.
    """
    if item.prix_ttc_da:
        return item.prix_ttc_da
    if item.prix_nouveau_ttc_da:
        return item.prix_nouveau_ttc_da
    prices = [row.prix_da for row in item.tarification if row.prix_da is not None]
    return min(prices) if prices else None


def _resale_tariffs(item: ResaleItem) -> List[TariffRow]:
    rows: List[TariffRow] = []
    if item.prix_ttc_da:
        rows.append(TariffRow(label=item.nom_produit, current=item.prix_ttc_da))
    elif item.prix_nouveau_ttc_da:
        rows.append(
            TariffRow(
                label=item.nom_produit,
                current=item.prix_ancien_ttc_da,
                new=item.prix_nouveau_ttc_da,
                public=item.prix_ancien_ttc_da,
            )
        )
    for row in item.tarification:
        label = row.nom or " ".join(t for t in (row.type, row.periode) if t) or item.nom_produit
        rows.append(TariffRow(label=label, current=row.prix_da))
    return rows


RESALE_ITEMS = RecordKind(
    name="resale",
    label="resale item",
    model=ResaleItem,
    root_key="referentiel_produits_depot_vente",
    record_id=lambda r: r.id_produit,
    record_label=lambda r: r.nom_produit,
    categorical=(
        CategoricalField("brand", lambda r: [r.marque] if r.marque else []),
        CategoricalField("category", lambda r: [r.categorie]),
        CategoricalField("product_type", lambda r: [r.type_produit], substring=True),
        CategoricalField("segment", lambda r: list(r.segments_cibles)),
        CategoricalField("partner", lambda r: [r.partenaire] if r.partenaire else [], substring=True),
    ),
    numeric=(
        NumericField("price", lambda r: _num(resale_main_price(r)), PRICE_BREAKPOINTS),
        NumericField("warranty", lambda r: _num(r.garantie_mois), WARRANTY_BREAKPOINTS),
    ),
    flags=(
        FlagField(
            "has_reduction",
            lambda r: bool((r.reduction_percentage or 0) > 0 or (r.economie_da or 0) > 0),
        ),
    ),
    text_groups=(
        TextGroup(
            "name",
            lambda r: [r.nom_produit, r.id_produit, r.marque or "", r.modele or "", r.partenaire or ""],
            fuzzy=True,
        ),
    ),
    keyword_fields=lambda r: (
        [r.nom_produit]
        + r.avantages
        + r.avantages_cles
        + r.avantages_principaux
        + r.points_forts
        + r.couverture_garantie
        + r.accessoires_inclus
        + r.canaux_vente
        + r.modes_paiement
        + r.notes
    ),
    vocabulary=tuple(RESALE_KEYWORDS),
    synonyms=RESALE_SYNONYMS,
    tariffs=_resale_tariffs,
    bundled=lambda r: [BundledItem(label, 0.0) for label in r.accessoires_inclus],
    eligibility_attributes=(
        AttributeRule("segment", "segment", lambda r: list(r.segments_cibles)),
    ),
    relaxation=RelaxationPlan(price="price", category="category"),
    price_field="price",
    details=resale_details,
)


# ---------------------------
# Procedure guides
# ---------------------------

def _procedure_content(p: Procedure) -> List[str]:
    return [p.title] + [line for _, line in p.section_lines()]


def procedure_topics(p: Procedure) -> List[str]:
    """Known topics mentioned in the title or any step."""
    haystack = fold_text(" ".join(_procedure_content(p)))
    return [topic for topic in (fold_text(t) for t in PROCEDURE_TOPICS) if topic in haystack]


# "Cliquer sur : Client > Compte", "Aller à Facturation puis Encaissement"
_MENU_LEAD = re.compile(r"\b(?:cliquer sur|aller [àa]|menu)\b\s*:?\s*(.+)", re.IGNORECASE)
_MENU_ARROW = re.compile(r"->|→")
_MENU_SEPARATOR = re.compile(r"\s*(?:->|→|»|>)\s*|\s+(?:puis|ensuite)\s+", re.IGNORECASE)


def procedure_menus(p: Procedure) -> List[str]:
    """
    Navigation paths named in the steps.

    A step counts when it starts a path ("cliquer sur", "aller à", "menu")
    or chains entries with an arrow, and names at least two entries.  Each
    entry longer than two characters is kept, then the whole "A > B" path.
    """
    menus: List[str] = []
    for _, line in p.section_lines():
        text = str(line)
        lead = _MENU_LEAD.search(text)
        if lead is None and not _MENU_ARROW.search(text):
            continue
        path = lead.group(1) if lead is not None else text
        parts = [" ".join(part.strip(" «»<>:.\"'“”").split()) for part in _MENU_SEPARATOR.split(path)]
        parts = [part for part in parts if len(part) > 2]
        if len(parts) < 2:
            continue
        menus.extend(parts)
        menus.append(" > ".join(parts))
    return dedupe(menus)


PROCEDURES = RecordKind(
    name="procedures",
    label="procedure guide",
    model=Procedure,
    root_key="Procédures_NGBSS",
    record_id=lambda p: p.title,
    record_label=lambda p: p.title,
    categorical=(
        CategoricalField("topic", procedure_topics, substring=True, folded=True),
        CategoricalField("source", lambda p: list(p.source_documents), substring=True, folded=True),
        CategoricalField("section", lambda p: list(p.sections), substring=True, folded=True),
        CategoricalField("menu", procedure_menus, substring=True, folded=True),
    ),
    text_groups=(
        TextGroup("name", lambda p: [p.title], fuzzy=True),
        TextGroup("content", _procedure_content),
    ),
    keyword_fields=_procedure_content,
    vocabulary=tuple(dedupe(PROCEDURE_ACTIONS + PROCEDURE_TOPICS)),
    relaxation=RelaxationPlan(category="topic"),
    details=procedure_details,
)


# ---------------------------
# Registry
# ---------------------------

KINDS: Dict[str, RecordKind] = {k.name: k for k in (CONVENTIONS, PUBLIC_OFFERS, RESALE_ITEMS, PROCEDURES)}


def get_kind(name: str) -> RecordKind:
    try:
        return KINDS[name.strip().lower()]
    except KeyError:
        raise UnknownKindError(f"Unknown catalog kind {name!r}; expected one of {sorted(KINDS)}") from None
