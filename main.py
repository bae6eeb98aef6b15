import logging
import tomllib
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from coerce import ZERO, parse_decimal
from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import SessionLocal
from models import ConsumptionUnit, Origin
from periods import resolve_year
from records import EntityRevenue
from schemas import (
    EntityRevenueOut,
    KpiValueIn,
    MonthTotalsOut,
    MonthlyKpiOut,
    PriorConsumptionIn,
    PriorConsumptionOut,
    YearlyKpisOut,
)
from services import ExportService, KpiService, ManualInputService, RevenueService

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Revenue Recognition")


def _load_app_version() -> str:
    pyproject = Path(__file__).resolve().parent / "pyproject.toml"
    try:
        with open(pyproject, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"
    return str(data.get("project", {}).get("version", "unknown"))


APP_VERSION = _load_app_version()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_csrf(x_csrf_token: Optional[str] = Header(default=None)) -> None:
    if not validate_csrf_token(x_csrf_token):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")


def revenue_out(result: EntityRevenue) -> EntityRevenueOut:
    return EntityRevenueOut(
        entity_id=result.entity_id,
        name=result.name,
        company_name=result.company_name,
        origin=result.origin,
        billing_type=result.billing_type,
        display_type=result.display_type,
        monthly_series={
            month: MonthTotalsOut(hours=float(totals.hours), revenue=float(totals.revenue))
            for month, totals in result.monthly.months.items()
        },
        total_budget=None if result.total_budget is None else float(result.total_budget),
    )


@app.get("/api/health")
def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/csrf-token")
def csrf_token():
    return {"csrf_token": generate_csrf_token()}


@app.get("/api/revenue", response_model=list[EntityRevenueOut])
def api_revenue(year: Optional[str] = None, db: Session = Depends(get_db)):
    resolved = resolve_year(year)
    results = RevenueService(db).compute(resolved)
    return [revenue_out(result) for result in results]


@app.get("/api/revenue/export.csv")
def export_revenue_endpoint(year: Optional[str] = None, db: Session = Depends(get_db)):
    resolved = resolve_year(year)
    csv_text = ExportService(db).revenue_csv(resolved)
    filename = f"revenue_{resolved}.csv"
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/kpi", response_model=YearlyKpisOut)
def api_kpi(year: Optional[str] = None, db: Session = Depends(get_db)):
    kpis = KpiService(db).yearly(resolve_year(year))
    return YearlyKpisOut(
        year=kpis.year,
        months=[
            MonthlyKpiOut(
                month=m.month,
                target_revenue=float(m.target_revenue),
                final_revenue=None if m.final_revenue is None else float(m.final_revenue),
                total_revenue=float(m.total_revenue),
                total_hours=float(m.total_hours),
                target_final_diff=(
                    None if m.target_final_diff is None else float(m.target_final_diff)
                ),
                target_total_diff=float(m.target_total_diff),
            )
            for m in kpis.months
        ],
    )


@app.post("/api/kpi", dependencies=[Depends(require_csrf)])
def save_kpi_value(data: KpiValueIn, db: Session = Depends(get_db)):
    value = ManualInputService(db).upsert_kpi_value(data)
    return {
        "year": value.year,
        "month": value.month,
        "field": value.field.value,
        "value": value.value_cents / 100,
    }


@app.post(
    "/api/manual/prior-consumption",
    response_model=PriorConsumptionOut,
    dependencies=[Depends(require_csrf)],
)
def save_prior_consumption(data: PriorConsumptionIn, db: Session = Depends(get_db)):
    try:
        prior = ManualInputService(db).upsert_prior_consumption(data)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return PriorConsumptionOut(
        entity_id=data.entity_id,
        origin=data.origin,
        year=prior.year,
        amount=float(parse_decimal(prior.amount)),
        unit=prior.unit,
    )


@app.get(
    "/api/manual/prior-consumption/{origin}/{entity_id}/{year}",
    response_model=PriorConsumptionOut,
)
def get_prior_consumption(
    origin: str, entity_id: int, year: int, db: Session = Depends(get_db)
):
    resolved = Origin.from_upstream(origin)
    if resolved is None:
        raise HTTPException(status_code=400, detail=f"Unknown origin: {origin}")
    try:
        prior = ManualInputService(db).get_prior_consumption(resolved, entity_id, year)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if prior is None:
        return PriorConsumptionOut(
            entity_id=entity_id,
            origin=resolved,
            year=year,
            amount=float(ZERO),
            unit=ConsumptionUnit.revenue,
        )
    return PriorConsumptionOut(
        entity_id=entity_id,
        origin=resolved,
        year=year,
        amount=float(parse_decimal(prior.amount)),
        unit=prior.unit,
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
