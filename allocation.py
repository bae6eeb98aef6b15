"""Conversion of grouped hours into monthly recognised revenue.

One strategy per billing type. Strategies are stateless; the fixed-price
strategy keeps its budget bookkeeping in an :class:`AllocationState` created
per call, so entities never share counters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from budgets import BudgetSummary, LineBudget
from coerce import ZERO, floor_money, round_money
from models import BillingType
from periods import month_from_key
from records import HourRecord, MonthlySeries, PriorConsumptionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationRequest:
    entity: str
    year: int
    hours_by_month: dict[str, list[HourRecord]]
    budget: BudgetSummary
    prior: Optional[PriorConsumptionRecord] = None

    def months_ascending(self) -> list[tuple[int, list[HourRecord]]]:
        return [
            (month_from_key(key), self.hours_by_month[key])
            for key in sorted(self.hours_by_month)
        ]


def _sum_hours(hours: Iterable[HourRecord]) -> Decimal:
    return sum((hour.quantity for hour in hours), ZERO)


class AllocationStrategy:
    def allocate(self, request: AllocationRequest) -> MonthlySeries:
        raise NotImplementedError


class HoursOnlyStrategy(AllocationStrategy):
    """Internal work and untagged projects: hours count, revenue stays zero."""

    def allocate(self, request: AllocationRequest) -> MonthlySeries:
        series = MonthlySeries(request.year)
        for month, hours in request.months_ascending():
            series.add(month, hours=_sum_hours(hours))
        return series


class RateCardStrategy(AllocationStrategy):
    """Cost-plus and contract work: every hour bills at its line's rate."""

    def allocate(self, request: AllocationRequest) -> MonthlySeries:
        series = MonthlySeries(request.year)
        for month, hours in request.months_ascending():
            revenue = ZERO
            for hour in hours:
                revenue += self._hour_revenue(hour, request)
            series.add(month, hours=_sum_hours(hours), revenue=round_money(revenue))
        return series

    def _hour_revenue(self, hour: HourRecord, request: AllocationRequest) -> Decimal:
        budget = request.budget
        if hour.line_id is None:
            return hour.quantity * budget.primary_rate

        line = budget.lines.get(hour.line_id)
        if line is None:
            logger.warning(
                f"line_not_found: entity={request.entity} hour={hour.id} line={hour.line_id}"
            )
            return ZERO
        if line.is_no_charge:
            return ZERO
        return hour.quantity * line.rate


class AllocationState:
    """Budget consumption of one fixed-price entity during one computation."""

    def __init__(self, budget: BudgetSummary, remaining_budget: Decimal) -> None:
        self.budget = budget
        self.remaining_budget = remaining_budget
        self.unassigned_lines: list[LineBudget] = budget.unassigned_order()
        self._used_hours: dict[int, Decimal] = {line_id: ZERO for line_id in budget.lines}

    def used_hours(self, line_id: int) -> Decimal:
        return self._used_hours[line_id]

    def line_remaining_hours(self, line_id: int) -> Decimal:
        line = self.budget.lines[line_id]
        return max(ZERO, line.remaining_hours - self._used_hours[line_id])

    def recognize(self, nominal: Decimal, usage: list[tuple[int, Decimal]]) -> Decimal:
        """Book one hour's nominal revenue against the remaining budget.

        Returns the revenue actually recognised, never more than what is left.
        Line usage advances by the recognised fraction of the nominal amount.
        """
        nominal = round_money(nominal)
        if nominal <= 0 or self.remaining_budget <= 0:
            return ZERO
        actual = min(nominal, self.remaining_budget)
        fraction = actual / nominal
        for line_id, hours in usage:
            self._used_hours[line_id] += hours * fraction
        self.remaining_budget -= actual
        return actual


class FixedPriceStrategy(AllocationStrategy):
    """Fixed-price work: revenue follows the hours until the budget runs out.

    Months are processed in ascending order, and within a month hours booked
    on a line come before unassigned hours. Consumption order decides which
    month absorbs the budget, so both orders are part of the result.
    """

    def allocate(self, request: AllocationRequest) -> MonthlySeries:
        budget = request.budget
        prior_amount = budget.prior_consumption_amount(request.prior)
        starting_budget = floor_money(budget.total_budget - prior_amount)
        if starting_budget <= 0:
            logger.info(
                f"fixed_price_no_budget: entity={request.entity} "
                f"total_budget={budget.total_budget} prior={prior_amount}"
            )
            return HoursOnlyStrategy().allocate(request)

        state = AllocationState(budget, starting_budget)
        series = MonthlySeries(request.year)
        for month, hours in request.months_ascending():
            assigned = [hour for hour in hours if hour.line_id is not None]
            unassigned = [hour for hour in hours if hour.line_id is None]
            for hour in assigned:
                revenue = self._assigned_revenue(hour, state, request)
                series.add(month, hours=hour.quantity, revenue=revenue)
            for hour in unassigned:
                revenue = self._unassigned_revenue(hour, state)
                series.add(month, hours=hour.quantity, revenue=revenue)

        logger.info(
            f"fixed_price_done: entity={request.entity} starting_budget={starting_budget} "
            f"recognized={series.total_revenue} remaining={state.remaining_budget}"
        )
        return series

    def _assigned_revenue(
        self, hour: HourRecord, state: AllocationState, request: AllocationRequest
    ) -> Decimal:
        line = state.budget.lines.get(hour.line_id)
        if line is None:
            logger.warning(
                f"line_not_found: entity={request.entity} hour={hour.id} line={hour.line_id}"
            )
            return ZERO
        if line.is_no_charge:
            return ZERO
        if line.is_cost_plus:
            nominal = hour.quantity * line.rate
        else:
            covered = min(hour.quantity, state.line_remaining_hours(line.line_id))
            overflow = hour.quantity - covered
            nominal = covered * line.rate + overflow * state.budget.fallback_rate
            if overflow > 0:
                logger.debug(
                    f"line_overflow: entity={request.entity} hour={hour.id} "
                    f"line={line.line_id} covered={covered} overflow={overflow}"
                )
        return state.recognize(nominal, [(line.line_id, hour.quantity)])

    def _unassigned_revenue(self, hour: HourRecord, state: AllocationState) -> Decimal:
        hours_left = hour.quantity
        nominal = ZERO
        usage: list[tuple[int, Decimal]] = []
        for line in state.unassigned_lines:
            if hours_left <= 0:
                break
            take = min(hours_left, state.line_remaining_hours(line.line_id))
            if take <= 0:
                continue
            nominal += take * line.rate
            usage.append((line.line_id, take))
            hours_left -= take
        nominal += hours_left * state.budget.fallback_rate
        return state.recognize(nominal, usage)


STRATEGIES: dict[BillingType, AllocationStrategy] = {
    BillingType.fixed_price: FixedPriceStrategy(),
    BillingType.cost_plus: RateCardStrategy(),
    BillingType.contract: RateCardStrategy(),
    BillingType.internal: HoursOnlyStrategy(),
    BillingType.invalid_tag: HoursOnlyStrategy(),
}


def strategy_for(billing_type: BillingType) -> AllocationStrategy:
    try:
        return STRATEGIES[billing_type]
    except KeyError as exc:
        raise ValueError(f"No allocation strategy for {billing_type!r}") from exc
