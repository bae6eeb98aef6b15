from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from coerce import parse_decimal, parse_work_date
from models import BillingLine, Entity, HourRecord, Origin, PriorConsumption
from records import (
    BillingLineRecord,
    EntityKey,
    EntityRecord,
    HourRecord as HourRecordData,
    PriorConsumptionRecord,
    RevenueInputs,
)

logger = logging.getLogger(__name__)


def _entity_record(entity: Entity) -> EntityRecord:
    return EntityRecord(
        id=entity.external_id,
        origin=entity.origin,
        name=entity.name or "Unnamed entity",
        company_name=entity.company_name,
        tag_names=tuple(sorted(tag.name for tag in entity.tags)),
    )


def _line_record(line: BillingLine) -> BillingLineRecord:
    return BillingLineRecord(
        id=line.id,
        quantity=parse_decimal(line.quantity),
        rate=parse_decimal(line.rate),
        invoiced_quantity=parse_decimal(line.invoiced_quantity),
        invoice_basis=line.invoice_basis,
    )


def _hour_record(row: HourRecord) -> HourRecordData:
    origin = Origin.from_upstream(row.entity_origin)
    if row.entity_origin and origin is None:
        logger.warning(f"unknown_origin: hour={row.id} origin={row.entity_origin!r}")
    return HourRecordData(
        id=row.id,
        work_date=parse_work_date(row.work_date),
        quantity=parse_decimal(row.quantity),
        line_id=row.billing_line_id,
        entity_id=row.entity_external_id,
        origin=origin,
    )


class RevenueRepository:
    """Reads everything one revenue computation needs, as engine records.

    CRM text fields and origin spellings are translated here and nowhere else.
    Database errors are not caught.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def load_inputs(self, year: int) -> RevenueInputs:
        entities = self.session.scalars(
            select(Entity)
            .options(selectinload(Entity.tags), selectinload(Entity.billing_lines))
            .order_by(Entity.origin, Entity.external_id)
        ).all()

        records: list[EntityRecord] = []
        lines: dict[EntityKey, tuple[BillingLineRecord, ...]] = {}
        for entity in entities:
            record = _entity_record(entity)
            records.append(record)
            lines[record.key] = tuple(_line_record(line) for line in entity.billing_lines)

        hour_rows = self.session.scalars(
            select(HourRecord)
            .where(HourRecord.work_date.like(f"{year:04d}-%"))
            .order_by(HourRecord.id)
        ).all()

        return RevenueInputs(
            entities=tuple(records),
            lines=lines,
            hours=tuple(_hour_record(row) for row in hour_rows),
            prior_consumptions=self.prior_consumptions(year),
        )

    def prior_consumptions(self, year: int) -> dict[EntityKey, PriorConsumptionRecord]:
        rows = self.session.execute(
            select(PriorConsumption, Entity)
            .join(Entity, PriorConsumption.entity_id == Entity.id)
            .where(PriorConsumption.year == year)
        ).all()
        return {
            (entity.origin, entity.external_id): PriorConsumptionRecord(
                amount=parse_decimal(prior.amount), unit=prior.unit
            )
            for prior, entity in rows
        }
