from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from aggregation import YearlyKpis, monthly_totals, variance_table
from coerce import from_cents, to_cents
from csv_utils import export_revenue
from engine import compute_revenue
from models import Entity, KpiField, KpiValue, Origin, PriorConsumption
from records import EntityRevenue
from repository import RevenueRepository
from schemas import KpiValueIn, PriorConsumptionIn

logger = logging.getLogger(__name__)


class RevenueService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.repository = RevenueRepository(session)

    def compute(self, year: int) -> list[EntityRevenue]:
        inputs = self.repository.load_inputs(year)
        logger.debug(
            f"revenue_inputs: year={year} entities={len(inputs.entities)} "
            f"hours={len(inputs.hours)} prior={len(inputs.prior_consumptions)}"
        )
        return compute_revenue(inputs, year)


class ManualInputService:
    """Values entered by hand next to the synced CRM data."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _entity(self, origin: Origin, external_id: int) -> Entity:
        entity = self.session.scalar(
            select(Entity).where(
                Entity.origin == origin, Entity.external_id == external_id
            )
        )
        if not entity:
            raise ValueError("Entity not found")
        return entity

    def get_prior_consumption(
        self, origin: Origin, external_id: int, year: int
    ) -> Optional[PriorConsumption]:
        entity = self._entity(origin, external_id)
        return self.session.scalar(
            select(PriorConsumption).where(
                PriorConsumption.entity_id == entity.id,
                PriorConsumption.year == year,
            )
        )

    def upsert_prior_consumption(self, data: PriorConsumptionIn) -> PriorConsumption:
        entity = self._entity(data.origin, data.entity_id)
        existing = self.session.scalar(
            select(PriorConsumption).where(
                PriorConsumption.entity_id == entity.id,
                PriorConsumption.year == data.year,
            )
        )
        if existing:
            existing.amount = str(data.amount)
            existing.unit = data.unit
            prior = existing
        else:
            prior = PriorConsumption(
                entity_id=entity.id,
                year=data.year,
                amount=str(data.amount),
                unit=data.unit,
            )
            self.session.add(prior)
        self.session.commit()
        self.session.refresh(prior)
        logger.info(
            f"prior_consumption_saved: entity={data.origin.value}:{data.entity_id} "
            f"year={data.year} unit={data.unit.value} updated={existing is not None}"
        )
        return prior

    def list_kpi_values(self, year: int) -> list[KpiValue]:
        return list(
            self.session.scalars(
                select(KpiValue)
                .where(KpiValue.year == year)
                .order_by(KpiValue.month, KpiValue.field)
            ).all()
        )

    def upsert_kpi_value(self, data: KpiValueIn) -> KpiValue:
        value_cents = to_cents(data.value)
        existing = self.session.scalar(
            select(KpiValue).where(
                KpiValue.year == data.year,
                KpiValue.month == data.month,
                KpiValue.field == data.field,
            )
        )
        if existing:
            existing.value_cents = value_cents
            value = existing
        else:
            value = KpiValue(
                year=data.year,
                month=data.month,
                field=data.field,
                value_cents=value_cents,
            )
            self.session.add(value)
        self.session.commit()
        self.session.refresh(value)
        logger.info(
            f"kpi_value_saved: year={data.year} month={data.month} "
            f"field={data.field.value} updated={existing is not None}"
        )
        return value


class KpiService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def manual_values(self, year: int) -> dict[tuple[int, KpiField], Decimal]:
        rows = ManualInputService(self.session).list_kpi_values(year)
        return {(row.month, row.field): from_cents(row.value_cents) for row in rows}

    def yearly(self, year: int) -> YearlyKpis:
        results = RevenueService(self.session).compute(year)
        totals = monthly_totals(results, year)
        return variance_table(year, totals, self.manual_values(year))


class ExportService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def revenue_csv(self, year: int) -> str:
        results = RevenueService(self.session).compute(year)
        return export_revenue(results, year)
