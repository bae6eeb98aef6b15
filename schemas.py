from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)

from models import BillingType, ConsumptionUnit, KpiField, Origin

MAX_AMOUNT = 10**12


class PriorConsumptionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entity_id: int
    origin: Origin = Origin.project
    year: int = Field(..., ge=1970, le=3000)
    amount: Decimal = Field(..., ge=0, le=MAX_AMOUNT)
    unit: ConsumptionUnit = ConsumptionUnit.revenue


class PriorConsumptionOut(BaseModel):
    entity_id: int
    origin: Origin
    year: int
    amount: float
    unit: ConsumptionUnit


class KpiValueIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., ge=1970, le=3000)
    month: int = Field(..., ge=1, le=12)
    field: KpiField
    value: Decimal = Field(..., ge=-MAX_AMOUNT, le=MAX_AMOUNT)


class MonthTotalsOut(BaseModel):
    hours: float
    revenue: float


class EntityRevenueOut(BaseModel):
    entity_id: int
    name: str
    company_name: Optional[str]
    origin: Origin
    billing_type: BillingType
    display_type: str
    monthly_series: dict[int, MonthTotalsOut]
    total_budget: Optional[float] = None

    @model_serializer(mode="wrap")
    def _omit_missing_budget(self, handler: SerializerFunctionWrapHandler) -> dict:
        # total_budget is only reported for fixed-price entities
        data = handler(self)
        if self.total_budget is None:
            data.pop("total_budget", None)
        return data


class MonthlyKpiOut(BaseModel):
    month: str
    target_revenue: float
    final_revenue: Optional[float]
    total_revenue: float
    total_hours: float
    target_final_diff: Optional[float]
    target_total_diff: float


class YearlyKpisOut(BaseModel):
    year: int
    months: list[MonthlyKpiOut]
