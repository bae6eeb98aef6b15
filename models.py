from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class Origin(str, Enum):
    project = "project"
    offer = "offer"

    @classmethod
    def from_upstream(cls, value: Optional[str]) -> Optional["Origin"]:
        """Translate the CRM's origin spelling, or None when it is unknown.

        The CRM says ``opdracht``/``offerte`` on hour rows and
        ``project``/``offer`` elsewhere, in varying case.
        """
        if value is None:
            return None
        return UPSTREAM_ORIGINS.get(value.strip().lower())

    @property
    def label(self) -> str:
        return "Project" if self is Origin.project else "Offer"


UPSTREAM_ORIGINS = {
    "project": Origin.project,
    "opdracht": Origin.project,
    "offer": Origin.offer,
    "offerte": Origin.offer,
}


class BillingType(str, Enum):
    fixed_price = "fixed_price"
    cost_plus = "cost_plus"
    contract = "contract"
    internal = "internal"
    invalid_tag = "invalid_tag"


class InvoiceBasis(str, Enum):
    normal = "normal"
    cost_plus = "cost_plus"
    no_charge = "no_charge"


class ConsumptionUnit(str, Enum):
    revenue = "revenue"
    hours = "hours"


class KpiField(str, Enum):
    target_revenue = "target_revenue"
    final_revenue = "final_revenue"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


entity_tags = Table(
    "entity_tags",
    Base.metadata,
    Column("entity_id", Integer, ForeignKey("entities.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)


class Tag(Base, TimestampMixin):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    entities: Mapped[list["Entity"]] = relationship(
        "Entity", secondary="entity_tags", back_populates="tags"
    )


class Entity(Base, TimestampMixin):
    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[int] = mapped_column(Integer, nullable=False)
    origin: Mapped[Origin] = mapped_column(SAEnum(Origin), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    company_name: Mapped[Optional[str]] = mapped_column(String(255))

    tags: Mapped[list["Tag"]] = relationship(
        "Tag", secondary="entity_tags", back_populates="entities"
    )
    billing_lines: Mapped[list["BillingLine"]] = relationship(
        "BillingLine", back_populates="entity", order_by="BillingLine.id"
    )
    prior_consumptions: Mapped[list["PriorConsumption"]] = relationship(
        "PriorConsumption", back_populates="entity"
    )

    __table_args__ = (
        UniqueConstraint("origin", "external_id", name="uq_entity_origin_external"),
    )


class BillingLine(Base, TimestampMixin):
    __tablename__ = "billing_lines"

    # CRM line id; hour rows reference it without a foreign key.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    entity_id: Mapped[int] = mapped_column(ForeignKey("entities.id"), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    quantity: Mapped[Optional[str]] = mapped_column(String(32))
    rate: Mapped[Optional[str]] = mapped_column(String(32))
    invoiced_quantity: Mapped[Optional[str]] = mapped_column(String(32))
    invoice_basis: Mapped[InvoiceBasis] = mapped_column(
        SAEnum(InvoiceBasis), nullable=False, default=InvoiceBasis.normal
    )

    entity: Mapped["Entity"] = relationship("Entity", back_populates="billing_lines")

    __table_args__ = (Index("ix_billing_lines_entity", "entity_id"),)


class HourRecord(Base, TimestampMixin):
    __tablename__ = "hour_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    work_date: Mapped[Optional[str]] = mapped_column(String(32))
    quantity: Mapped[Optional[str]] = mapped_column(String(32))
    # may name a line the sync has not delivered yet, so no foreign key
    billing_line_id: Mapped[Optional[int]] = mapped_column(Integer)
    entity_origin: Mapped[Optional[str]] = mapped_column(String(32))
    entity_external_id: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_hour_records_work_date", "work_date"),
        Index("ix_hour_records_entity", "entity_origin", "entity_external_id"),
    )


class PriorConsumption(Base, TimestampMixin):
    __tablename__ = "prior_consumptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    entity_id: Mapped[int] = mapped_column(ForeignKey("entities.id"), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[str] = mapped_column(String(32), nullable=False, default="0")
    unit: Mapped[ConsumptionUnit] = mapped_column(
        SAEnum(ConsumptionUnit), nullable=False, default=ConsumptionUnit.revenue
    )

    entity: Mapped["Entity"] = relationship(
        "Entity", back_populates="prior_consumptions"
    )

    __table_args__ = (
        UniqueConstraint("entity_id", "year", name="uq_prior_consumption_entity_year"),
    )


class KpiValue(Base, TimestampMixin):
    __tablename__ = "kpi_values"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    field: Mapped[KpiField] = mapped_column(SAEnum(KpiField), nullable=False)
    value_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("year", "month", "field", name="uq_kpi_year_month_field"),
        Index("ix_kpi_values_year", "year"),
    )
