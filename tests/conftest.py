import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from database import Base
from models import (
    BillingLine,
    Entity,
    HourRecord,
    InvoiceBasis,
    Origin,
    PriorConsumption,
    Tag,
)


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    with Session(engine) as db:
        yield db


@pytest.fixture
def crm_session(session):
    """A small CRM snapshot for 2024, as the sync would leave it."""
    fixed = Tag(name="Fixed price")
    hourly = Tag(name="Nacalculatie")
    website = Entity(
        external_id=10,
        origin=Origin.project,
        name="Website",
        company_name="Acme",
        tags=[fixed],
    )
    support = Entity(
        external_id=11,
        origin=Origin.project,
        name="Support",
        company_name="Acme",
        tags=[hourly],
    )
    pitch = Entity(
        external_id=10, origin=Origin.offer, name="Pitch", company_name="Beta"
    )
    untagged = Entity(external_id=5, origin=Origin.project, name=None)
    session.add_all([fixed, hourly, website, support, pitch, untagged])
    session.flush()

    session.add_all(
        [
            BillingLine(
                id=100,
                entity_id=website.id,
                quantity="10",
                rate="100,00",
                invoiced_quantity="",
            ),
            BillingLine(id=101, entity_id=support.id, quantity="20", rate="80"),
            BillingLine(
                id=102,
                entity_id=pitch.id,
                quantity="5",
                rate="95",
                invoice_basis=InvoiceBasis.no_charge,
            ),
            BillingLine(id=103, entity_id=pitch.id, quantity="5", rate="90"),
        ]
    )
    session.add_all(
        [
            HourRecord(
                id=1,
                work_date="2024-01-15",
                quantity="12",
                billing_line_id=100,
                entity_origin="opdracht",
                entity_external_id=10,
            ),
            HourRecord(
                id=2,
                work_date="2024-02-01",
                quantity="3",
                billing_line_id=100,
                entity_origin="Project",
                entity_external_id=10,
            ),
            HourRecord(
                id=3,
                work_date="2024-03-04",
                quantity="2,5",
                billing_line_id=101,
                entity_origin="project",
                entity_external_id=11,
            ),
            HourRecord(
                id=4,
                work_date="2024-03-04",
                quantity="4",
                billing_line_id=None,
                entity_origin="offerte",
                entity_external_id=10,
            ),
            HourRecord(
                id=5,
                work_date="2024-03-05",
                quantity="1",
                billing_line_id=102,
                entity_origin="offer",
                entity_external_id=10,
            ),
            HourRecord(
                id=6,
                work_date="2023-12-31",
                quantity="8",
                billing_line_id=100,
                entity_origin="project",
                entity_external_id=10,
            ),
            HourRecord(
                id=7,
                work_date="2024-06-01",
                quantity="2",
                billing_line_id=None,
                entity_origin="klant",
                entity_external_id=10,
            ),
            HourRecord(
                id=8,
                work_date="2024-06-01",
                quantity="3",
                billing_line_id=None,
                entity_origin="project",
                entity_external_id=5,
            ),
        ]
    )
    session.add(PriorConsumption(entity_id=website.id, year=2024, amount="200"))
    session.commit()
    return session
