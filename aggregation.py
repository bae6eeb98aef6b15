from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from coerce import ZERO
from models import KpiField
from periods import months_of_year
from records import EntityRevenue, MonthlySeries


@dataclass(frozen=True)
class MonthlyKpi:
    month: str
    target_revenue: Decimal
    final_revenue: Optional[Decimal]
    total_revenue: Decimal
    total_hours: Decimal

    @property
    def target_final_diff(self) -> Optional[Decimal]:
        if self.final_revenue is None:
            return None
        return self.final_revenue - self.target_revenue

    @property
    def target_total_diff(self) -> Decimal:
        return self.total_revenue - self.target_revenue


@dataclass(frozen=True)
class YearlyKpis:
    year: int
    months: list[MonthlyKpi]


def monthly_totals(results: Iterable[EntityRevenue], year: int) -> MonthlySeries:
    totals = MonthlySeries(year)
    for result in results:
        if result.monthly.year != year:
            continue
        for month, values in result.monthly.months.items():
            totals.add(month, hours=values.hours, revenue=values.revenue)
    return totals


def variance_table(
    year: int,
    totals: MonthlySeries,
    manual: dict[tuple[int, KpiField], Decimal],
) -> YearlyKpis:
    months = []
    for period in months_of_year(year):
        computed = totals.months[period.month]
        months.append(
            MonthlyKpi(
                month=period.key,
                target_revenue=manual.get((period.month, KpiField.target_revenue), ZERO),
                final_revenue=manual.get((period.month, KpiField.final_revenue)),
                total_revenue=computed.revenue,
                total_hours=computed.hours,
            )
        )
    return YearlyKpis(year=year, months=months)
