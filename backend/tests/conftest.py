from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_db
from app.db.init_db import init_db
from app.db.repository import BillingRepository
from app.db.session import make_engine
from app.main import app as fastapi_app
from app.models import Company, Customer, Item
from app.schemas.invoice import InvoiceSave
from app.schemas.payment import PaymentSave
from app.services.invoice_service import save_invoice
from app.services.payment_service import save_payment

MAHARASHTRA = 27
KARNATAKA = 29


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db):
    return BillingRepository(db)


@pytest.fixture
def seed(db):
    company = Company(name="Demo Enterprises", state_id=MAHARASHTRA)
    stateless = Company(name="Unregistered Co", state_id=None)
    db.add_all([company, stateless])
    db.flush()

    local = Customer(company_id=company.id, name="Sharma Traders", place_of_supply_state_id=MAHARASHTRA)
    remote = Customer(company_id=company.id, name="Bengaluru Retail", place_of_supply_state_id=KARNATAKA)
    unknown = Customer(company_id=company.id, name="Walk-in", place_of_supply_state_id=None)
    stateless_customer = Customer(company_id=stateless.id, name="Local Buyer", place_of_supply_state_id=MAHARASHTRA)
    almirah = Item(company_id=company.id, name="Steel Almirah", sell_price=Decimal("1000"), tax_rate=Decimal("18"))
    rice = Item(company_id=company.id, name="Basmati Rice", sell_price=Decimal("200"), tax_rate=Decimal("5"))
    milk = Item(company_id=company.id, name="Fresh Milk", sell_price=Decimal("50"), tax_rate=Decimal("0"))
    db.add_all([local, remote, unknown, stateless_customer, almirah, rice, milk])
    db.commit()

    return SimpleNamespace(
        company_id=company.id,
        stateless_company_id=stateless.id,
        local_customer_id=local.id,
        remote_customer_id=remote.id,
        unknown_customer_id=unknown.id,
        stateless_customer_id=stateless_customer.id,
        almirah_id=almirah.id,
        rice_id=rice.id,
        milk_id=milk.id,
    )


@pytest.fixture
def make_invoice(repo, seed):
    def _make(total="1180", customer_id=None, **overrides):
        data = InvoiceSave(
            company_id=overrides.pop("company_id", seed.company_id),
            customer_id=customer_id or seed.local_customer_id,
            invoice_no=overrides.pop("invoice_no", "INV-1"),
            invoice_date=date(2024, 4, 1),
            total=Decimal(total),
            **overrides,
        )
        return save_invoice(repo, data)
    return _make


@pytest.fixture
def make_payment(repo, seed):
    def _make(total_amount="2000", customer_id=None):
        data = PaymentSave(customer_id=customer_id or seed.local_customer_id, total_amount=Decimal(total_amount))
        return save_payment(repo, data)
    return _make


@pytest.fixture
def client(session_factory, seed):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()
