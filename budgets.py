from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from coerce import ZERO
from models import ConsumptionUnit, InvoiceBasis
from records import BillingLineRecord, PriorConsumptionRecord


@dataclass(frozen=True)
class LineBudget:
    line_id: int
    rate: Decimal
    quantity: Decimal
    invoice_basis: InvoiceBasis
    remaining_hours: Decimal
    remaining_budget: Decimal

    @property
    def line_budget(self) -> Decimal:
        return self.quantity * self.rate

    @property
    def is_no_charge(self) -> bool:
        return self.invoice_basis is InvoiceBasis.no_charge

    @property
    def is_cost_plus(self) -> bool:
        return self.invoice_basis is InvoiceBasis.cost_plus

    @property
    def absorbs_unassigned(self) -> bool:
        return (
            self.invoice_basis is InvoiceBasis.normal
            and self.quantity > 0
            and self.rate > 0
        )


@dataclass(frozen=True)
class BudgetSummary:
    total_budget: Decimal
    lines: dict[int, LineBudget]
    fallback_rate: Decimal
    primary_rate: Decimal

    def unassigned_order(self) -> list[LineBudget]:
        """Lines that take unassigned hours, largest line budget first."""
        eligible = [line for line in self.lines.values() if line.absorbs_unassigned]
        return sorted(eligible, key=lambda line: (-line.line_budget, line.line_id))

    def prior_consumption_amount(
        self, prior: Optional[PriorConsumptionRecord]
    ) -> Decimal:
        if prior is None:
            return ZERO
        if prior.unit is ConsumptionUnit.hours:
            return prior.amount * self.fallback_rate
        return prior.amount


def resolve_line_budgets(lines: Iterable[BillingLineRecord]) -> BudgetSummary:
    total_budget = ZERO
    rated_hours = ZERO
    rated_budget = ZERO
    primary_rate: Optional[Decimal] = None
    resolved: dict[int, LineBudget] = {}

    for line in sorted(lines, key=lambda l: l.id):
        no_charge = line.invoice_basis is InvoiceBasis.no_charge
        remaining_hours = max(ZERO, line.quantity - line.invoiced_quantity)
        resolved[line.id] = LineBudget(
            line_id=line.id,
            rate=line.rate,
            quantity=line.quantity,
            invoice_basis=line.invoice_basis,
            remaining_hours=remaining_hours,
            remaining_budget=ZERO if no_charge else remaining_hours * line.rate,
        )
        if no_charge:
            continue

        total_budget += line.quantity * line.rate
        if line.quantity > 0 and line.rate > 0:
            rated_hours += line.quantity
            rated_budget += line.quantity * line.rate
        if primary_rate is None and line.rate > 0:
            primary_rate = line.rate

    fallback_rate = rated_budget / rated_hours if rated_hours > 0 else ZERO
    return BudgetSummary(
        total_budget=total_budget,
        lines=resolved,
        fallback_rate=fallback_rate,
        primary_rate=primary_rate if primary_rate is not None else ZERO,
    )
