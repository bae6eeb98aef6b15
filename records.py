from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from coerce import ZERO
from models import BillingType, ConsumptionUnit, InvoiceBasis, Origin

EntityKey = tuple[Origin, int]

MONTHS = range(1, 13)


@dataclass(frozen=True)
class EntityRecord:
    id: int
    origin: Origin
    name: str
    company_name: Optional[str]
    tag_names: tuple[str, ...] = ()

    @property
    def key(self) -> EntityKey:
        return (self.origin, self.id)


@dataclass(frozen=True)
class BillingLineRecord:
    id: int
    quantity: Decimal
    rate: Decimal
    invoiced_quantity: Decimal = ZERO
    invoice_basis: InvoiceBasis = InvoiceBasis.normal


@dataclass(frozen=True)
class HourRecord:
    id: int
    work_date: Optional[date]
    quantity: Decimal
    line_id: Optional[int]
    entity_id: Optional[int]
    origin: Optional[Origin]

    @property
    def entity_key(self) -> Optional[EntityKey]:
        if self.origin is None or self.entity_id is None:
            return None
        return (self.origin, self.entity_id)


@dataclass(frozen=True)
class PriorConsumptionRecord:
    amount: Decimal
    unit: ConsumptionUnit = ConsumptionUnit.revenue


@dataclass(frozen=True)
class RevenueInputs:
    entities: tuple[EntityRecord, ...]
    lines: dict[EntityKey, tuple[BillingLineRecord, ...]]
    hours: tuple[HourRecord, ...]
    prior_consumptions: dict[EntityKey, PriorConsumptionRecord] = field(
        default_factory=dict
    )


@dataclass
class MonthTotals:
    hours: Decimal = ZERO
    revenue: Decimal = ZERO


class MonthlySeries:
    """Hours and revenue per calendar month of one year, months 1..12."""

    def __init__(self, year: int) -> None:
        self.year = year
        self.months: dict[int, MonthTotals] = {month: MonthTotals() for month in MONTHS}

    def add(self, month: int, *, hours: Decimal = ZERO, revenue: Decimal = ZERO) -> None:
        totals = self.months[month]
        totals.hours += hours
        totals.revenue += revenue

    @property
    def total_hours(self) -> Decimal:
        return sum((m.hours for m in self.months.values()), ZERO)

    @property
    def total_revenue(self) -> Decimal:
        return sum((m.revenue for m in self.months.values()), ZERO)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MonthlySeries):
            return NotImplemented
        return self.year == other.year and self.months == other.months

    def __repr__(self) -> str:
        return f"MonthlySeries(year={self.year}, months={self.months!r})"


@dataclass(frozen=True)
class EntityRevenue:
    entity_id: int
    name: str
    company_name: Optional[str]
    origin: Origin
    billing_type: BillingType
    display_type: str
    monthly: MonthlySeries
    total_budget: Optional[Decimal] = None
