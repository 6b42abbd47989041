from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from shoppingbird.core.auth import create_access_token, get_password_hash
from shoppingbird.core.database import Base, get_db
from shoppingbird.models import (
    CatalogItem, Currency, PriceEntry, Store, TaxAssociation, TaxType, Unit, User,
)
from shoppingbird.services.currency_service import CurrencyCache


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.state.currency_cache = CurrencyCache()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def cashier(db):
    user = User(
        username="cashier",
        email="cashier@shoppingbird.test",
        full_name="Casey Cashier",
        password_hash=get_password_hash("secret123"),
        is_store_employee=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def auth_headers(cashier):
    token = create_access_token({"user_id": cashier.id, "username": cashier.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed(db):
    """
    Two stores, USD base + EUR, two taxes (6% and 8%) and three items:

    - milk: store barcode "1234" at store 1, 23.60 ea, no taxes
    - coffee: upc 012345678905, priced 100.00 at store 1 with both taxes
    - soap: ean 0098765432109, never priced
    """
    main_store = Store(name="Main Street")
    harbor = Store(name="Harbor")
    ea = Unit(unit="ea", description="Each")
    kg = Unit(unit="kg", description="Kilogram")
    usd = Currency(code="USD", name="US Dollar", symbol="$", factor=Decimal("1"), is_base_currency=True)
    eur = Currency(code="EUR", name="Euro", symbol="€", factor=Decimal("0.9"))
    state_tax = TaxType(name="State Tax", percentage=Decimal("6"))
    city_tax = TaxType(name="City Tax", percentage=Decimal("8"))
    db.add_all([main_store, harbor, ea, kg, usd, eur, state_tax, city_tax])
    db.flush()

    milk = CatalogItem(description="Organic Milk 1L", brand="Farmstead")
    coffee = CatalogItem(description="Dark Roast Coffee", brand="Bean Co", upc="012345678905")
    soap = CatalogItem(description="Lavender Soap", ean="0098765432109")
    db.add_all([milk, coffee, soap])
    db.flush()

    milk_price = PriceEntry(
        item_id=milk.id, store_id=main_store.id, barcode="1234", unit_id=ea.id,
        retail_price=Decimal("23.60"), currency_id=usd.id,
    )
    coffee_price = PriceEntry(
        item_id=coffee.id, store_id=main_store.id, barcode="C-100", unit_id=kg.id,
        retail_price=Decimal("100.00"), currency_id=usd.id,
    )
    db.add_all([milk_price, coffee_price])
    db.flush()

    yesterday = date.today() - timedelta(days=1)
    db.add_all([
        TaxAssociation(price_list_id=coffee_price.id, tax_type_id=state_tax.id, effective_date=yesterday),
        TaxAssociation(price_list_id=coffee_price.id, tax_type_id=city_tax.id, effective_date=yesterday),
    ])
    db.commit()

    return {
        "store": main_store,
        "other_store": harbor,
        "ea": ea,
        "kg": kg,
        "usd": usd,
        "eur": eur,
        "state_tax": state_tax,
        "city_tax": city_tax,
        "milk": milk,
        "coffee": coffee,
        "soap": soap,
        "milk_price": milk_price,
        "coffee_price": coffee_price,
    }
