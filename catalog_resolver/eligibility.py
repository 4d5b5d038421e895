from __future__ import annotations

"""
Eligibility of a caller profile for one record.

A profile maps the kind's eligibility flags (``retired``, ``tenant``, ...)
to booleans and its eligibility attributes (``segment``, ...) to terms.

Rules:

- unknown record -> not eligible, "record not found"
- no usable criterion in the profile -> not eligible,
  "no eligibility criteria provided"
- flag asserted True: record says False -> negative reason, record says
  True -> positive reason, record silent -> nothing
- flag asserted False: only rules that can reserve a record to a group
  react; a reserved record gives a negative reason, otherwise positive
- attribute term: compared to the record's values after synonym
  normalization (exact, or containment when the rule allows it);
  mismatch is negative, match is positive, a record with no values
  imposes no constraint (positive)
- any negative reason makes the verdict ineligible and only negative
  reasons are returned
- criteria supplied but none answered by the record -> not eligible,
  one "not specified" reason per criterion
"""

from typing import Any, List, Mapping, Optional, Tuple

from loguru import logger

from .config import EligibilityVerdict
from .errors import UnknownFilterError
from .kinds import AttributeRule, EligibilityRule, RecordKind
from .normalize import TermNormalizer, normalize_category_value
from .query import as_bool
from .store import CatalogStore

RECORD_NOT_FOUND = "record not found"
NO_CRITERIA = "no eligibility criteria provided"


class EligibilityResolver:
    def __init__(self, store: CatalogStore, normalizer: Optional[TermNormalizer] = None) -> None:
        self.store = store
        self.kind: RecordKind = store.kind
        self.normalizer = normalizer or store.normalizer

    def check(self, record_id: str, profile: Optional[Mapping[str, Any]] = None) -> EligibilityVerdict:
        flags, attributes = self._parse_profile(profile or {})
        record = self.store.indices().get(record_id)
        if record is None:
            return EligibilityVerdict(eligible=False, reasons=(RECORD_NOT_FOUND,))

        criteria = [rule for rule, asserted in flags if asserted or rule.required is not None]
        if not criteria and not attributes:
            return EligibilityVerdict(eligible=False, reasons=(NO_CRITERIA,))

        negatives: List[str] = []
        positives: List[str] = []
        unanswered: List[str] = []

        for rule, asserted in flags:
            if asserted:
                self._check_membership(rule, record, negatives, positives, unanswered)
            elif rule.required is not None:
                if rule.required(record):
                    negatives.append(f"reserved to {rule.label}")
                else:
                    positives.append(f"not reserved to {rule.label}")

        for rule, term in attributes:
            self._check_attribute(rule, term, record, negatives, positives)

        if negatives:
            logger.debug("{} {} not eligible: {}", self.kind.name, record_id, negatives)
            return EligibilityVerdict(eligible=False, reasons=tuple(negatives))
        if positives:
            return EligibilityVerdict(eligible=True, reasons=tuple(positives))
        reasons = tuple(f"eligibility not specified for {label}" for label in unanswered)
        return EligibilityVerdict(eligible=False, reasons=reasons or (NO_CRITERIA,))

    # ---------------------------
    # Helpers
    # ---------------------------

    def _parse_profile(
        self, profile: Mapping[str, Any]
    ) -> Tuple[List[Tuple[EligibilityRule, bool]], List[Tuple[AttributeRule, str]]]:
        rules = {rule.flag: rule for rule in self.kind.eligibility}
        attribute_rules = {rule.attribute: rule for rule in self.kind.eligibility_attributes}
        flags: List[Tuple[EligibilityRule, bool]] = []
        attributes: List[Tuple[AttributeRule, str]] = []
        for key, value in profile.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            if key in rules:
                flags.append((rules[key], as_bool(key, value)))
            elif key in attribute_rules:
                attributes.append((attribute_rules[key], str(value).strip()))
            else:
                raise UnknownFilterError(f"unknown eligibility criterion '{key}' for {self.kind.name}")
        # Declared order keeps reasons stable whatever the profile order
        flags.sort(key=lambda item: list(rules).index(item[0].flag))
        attributes.sort(key=lambda item: list(attribute_rules).index(item[0].attribute))
        return flags, attributes

    @staticmethod
    def _check_membership(
        rule: EligibilityRule,
        record: Any,
        negatives: List[str],
        positives: List[str],
        unanswered: List[str],
    ) -> None:
        accepted = rule.value(record)
        if accepted is False:
            negatives.append(f"not open to {rule.label}")
        elif accepted is True:
            reason = f"open to {rule.label}"
            detail = rule.detail(record) if rule.detail else None
            if detail:
                reason = f"{reason}: {detail}"
            positives.append(reason)
        else:
            unanswered.append(rule.label)

    def _check_attribute(
        self,
        rule: AttributeRule,
        term: str,
        record: Any,
        negatives: List[str],
        positives: List[str],
    ) -> None:
        values = [normalize_category_value(v) for v in rule.values(record) if v]
        if not values:
            positives.append(f"no {rule.label} restriction")
            return
        tokens = self.normalizer.normalize(rule.synonyms or rule.attribute, term)
        if any(v == t or (rule.substring and t in v) for v in values for t in tokens):
            positives.append(f"{rule.label} '{term}' is targeted")
        else:
            negatives.append(f"{rule.label} '{term}' is not targeted (targets: {', '.join(values)})")
