import logging
from typing import Optional

from allocation import AllocationRequest, strategy_for
from budgets import resolve_line_budgets
from classification import classify
from coerce import round_money
from grouping import group_hours
from models import BillingType, Origin
from records import (
    EntityRecord,
    EntityRevenue,
    HourRecord,
    PriorConsumptionRecord,
    RevenueInputs,
)

logger = logging.getLogger(__name__)


def compute_entity_revenue(
    entity: EntityRecord,
    inputs: RevenueInputs,
    hours_by_month: dict[str, list[HourRecord]],
    year: int,
    prior: Optional[PriorConsumptionRecord] = None,
) -> EntityRevenue:
    classification = classify(entity.tag_names, entity.origin)
    budget = resolve_line_budgets(inputs.lines.get(entity.key, ()))
    request = AllocationRequest(
        entity=f"{entity.origin.value}:{entity.id}",
        year=year,
        hours_by_month=hours_by_month,
        budget=budget,
        prior=prior,
    )
    series = strategy_for(classification.billing_type).allocate(request)

    total_budget = None
    if classification.billing_type is BillingType.fixed_price:
        total_budget = round_money(budget.total_budget)

    return EntityRevenue(
        entity_id=entity.id,
        name=entity.name,
        company_name=entity.company_name,
        origin=entity.origin,
        billing_type=classification.billing_type,
        display_type=classification.display_type,
        monthly=series,
        total_budget=total_budget,
    )


def compute_revenue(inputs: RevenueInputs, year: int) -> list[EntityRevenue]:
    """Monthly revenue of every entity for ``year``; projects first, then offers."""
    if not inputs.entities:
        logger.warning(f"compute_revenue: year={year} no entities found")
        return []

    grouped = group_hours(inputs.hours, year)
    entities = sorted(
        inputs.entities, key=lambda e: (e.origin is Origin.offer, e.id)
    )
    results = [
        compute_entity_revenue(
            entity,
            inputs,
            grouped.get(entity.key, {}),
            year,
            inputs.prior_consumptions.get(entity.key),
        )
        for entity in entities
    ]
    logger.info(
        f"compute_revenue: year={year} entities={len(results)} "
        f"hour_records={len(inputs.hours)}"
    )
    return results
