from __future__ import annotations

"""
Progressive relaxation of over-constrained queries.

When a search comes back empty, predicates are loosened in a fixed
order, each step applied on top of the previous ones, stopping at the
first step that yields records:

1. widen the price ceiling by the configured factor (rounded up)
2. drop the speed range
3. drop the technology term
4. keep only the category/family term, or nothing when there is none

Steps whose predicate is absent from the query are skipped and leave no
log entry, so the log is always an ordered subsequence of the steps
above.  Detail-mode queries (record id) are never relaxed.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from loguru import logger

from .config import RELAXATION_PRICE_FACTOR
from .kinds import RelaxationPlan
from .query import NumericRange, Query
from .search import SearchEngine


class RelaxationStep(str, Enum):
    WIDEN_PRICE = "widen_price"
    DROP_SPEED = "drop_speed"
    DROP_TECHNOLOGY = "drop_technology"
    CATEGORY_ONLY = "category_only"


RELAXATION_ORDER: Tuple[RelaxationStep, ...] = tuple(RelaxationStep)


@dataclass(frozen=True)
class QueryResult:
    records: Tuple[Any, ...]
    steps: Tuple[RelaxationStep, ...] = ()
    log: Tuple[str, ...] = ()

    @property
    def relaxed(self) -> bool:
        return bool(self.steps)


class RelaxationStrategy:
    def __init__(
        self,
        engine: SearchEngine,
        plan: Optional[RelaxationPlan] = None,
        price_factor: float = RELAXATION_PRICE_FACTOR,
    ) -> None:
        self.engine = engine
        self.plan = plan or engine.kind.relaxation
        self.price_factor = price_factor

    def search_with_relaxation(self, query: Query) -> QueryResult:
        records = self.engine.search(query)
        if records or query.record_id is not None:
            return QueryResult(tuple(records))

        steps: List[RelaxationStep] = []
        log: List[str] = []
        current = query

        for step in RELAXATION_ORDER:
            relaxed = self._apply(step, current)
            if relaxed is None:
                continue
            current, message = relaxed
            steps.append(step)
            log.append(message)
            logger.debug("{} relaxation step {}: {}", self.engine.kind.name, step.value, message)
            records = self.engine.search(current)
            if records:
                break

        if records:
            logger.info("{} search relaxed ({}) -> {} result(s)", self.engine.kind.name, ", ".join(s.value for s in steps), len(records))
        return QueryResult(tuple(records), tuple(steps), tuple(log))

    def _apply(self, step: RelaxationStep, query: Query) -> Optional[Tuple[Query, str]]:
        plan = self.plan
        if step is RelaxationStep.WIDEN_PRICE:
            bounds = query.numeric_range(plan.price) if plan.price else None
            if bounds is None or bounds.maximum is None:
                return None
            ceiling = math.ceil(bounds.maximum * self.price_factor)
            widened = query.with_numeric(plan.price, NumericRange(bounds.minimum, ceiling))
            return widened, f"price ceiling widened to {ceiling}"

        if step is RelaxationStep.DROP_SPEED:
            if not plan.speed or query.numeric_range(plan.speed) is None:
                return None
            return query.without_numeric(plan.speed), "speed constraints removed"

        if step is RelaxationStep.DROP_TECHNOLOGY:
            if not plan.technology or query.categorical_term(plan.technology) is None:
                return None
            return query.without_categorical(plan.technology), "technology constraint removed"

        # CATEGORY_ONLY always applies: it is the last resort
        term = query.categorical_term(plan.category) if plan.category else None
        if term is not None:
            return query.only_categorical(plan.category), f"all records of the category returned ({term})"
        return Query(), "no narrower relaxation possible: all records returned"
