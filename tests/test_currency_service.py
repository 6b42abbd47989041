from decimal import Decimal

import pytest
from fastapi import HTTPException

from shoppingbird.models import Currency
from shoppingbird.schemas.currency import CurrencyCreate, CurrencyUpdate
from shoppingbird.services.currency_service import CurrencyCache, CurrencyService


@pytest.fixture
def service(db, seed):
    return CurrencyService(db, CurrencyCache())


def test_convert_through_base(service, seed):
    result = service.convert(Decimal("100"), seed["usd"].id, seed["eur"].id)

    assert result.converted_amount == Decimal("90.00")
    assert result.conversion_rate == Decimal("0.9")
    assert result.from_currency.code == "USD"
    assert result.to_currency.code == "EUR"


@pytest.mark.parametrize("amount", ["1", "19.99", "1234.56"])
def test_round_trip(service, seed, amount):
    there = service.convert(Decimal(amount), seed["usd"].id, seed["eur"].id)
    back = service.convert(there.converted_amount, seed["eur"].id, seed["usd"].id)

    assert abs(back.converted_amount - Decimal(amount)) <= Decimal("0.01")


def test_convert_to_base(service, seed):
    result = service.convert_to_base(Decimal("90"), seed["eur"].id)

    assert result.to_currency.code == "USD"
    assert result.converted_amount == Decimal("100.00")


def test_unknown_currency(service):
    with pytest.raises(HTTPException) as exc:
        service.get_currency_by_id(404)

    assert exc.value.status_code == 404
    assert exc.value.detail == "Currency with ID 404 not found"


def test_lookup_by_code_is_case_insensitive(service):
    assert service.get_currency_by_code("eur").name == "Euro"


def test_base_currency_is_cached(service, db, seed):
    assert service.get_base_currency().code == "USD"

    # a write behind the service's back is not seen until invalidation
    db.query(Currency).filter(Currency.code == "USD").update({Currency.name: "Dollar"})
    db.commit()
    assert service.get_base_currency().name == "US Dollar"

    service.cache.invalidate()
    assert service.get_base_currency().name == "Dollar"


def test_changing_base_invalidates_cache_and_keeps_single_base(service, db, seed):
    assert service.get_base_currency().code == "USD"
    service.get_active_currencies()

    service.update_currency(seed["eur"].id, CurrencyUpdate(is_base_currency=True))

    assert service.cache.active_currencies is None
    assert service.get_base_currency().code == "EUR"
    bases = db.query(Currency).filter(Currency.is_base_currency.is_(True)).all()
    assert [c.code for c in bases] == ["EUR"]


@pytest.mark.parametrize("change", [
    {"is_base_currency": False},
    {"is_active": False},
])
def test_base_currency_cannot_be_cleared_or_deactivated(service, db, seed, change):
    with pytest.raises(HTTPException) as exc:
        service.update_currency(seed["usd"].id, CurrencyUpdate(**change))

    assert exc.value.status_code == 400
    usd = db.query(Currency).filter(Currency.code == "USD").one()
    assert usd.is_base_currency is True
    assert usd.is_active is True
    assert service.convert_to_base(Decimal("90"), seed["eur"].id).converted_amount == Decimal("100.00")


def test_inactive_currency_cannot_become_base(service, db, seed):
    service.update_currency(seed["eur"].id, CurrencyUpdate(is_active=False))

    with pytest.raises(HTTPException) as exc:
        service.update_currency(seed["eur"].id, CurrencyUpdate(is_base_currency=True))

    assert exc.value.status_code == 400
    assert service.get_base_currency().code == "USD"


def test_no_base_currency(db):
    service = CurrencyService(db, CurrencyCache())

    with pytest.raises(HTTPException) as exc:
        service.get_base_currency()

    assert exc.value.detail == "No base currency found"


def test_active_currencies_base_first(service, seed):
    service.create_currency(CurrencyCreate(code="gbp", name="Pound", symbol="£", factor=Decimal("0.8")))

    codes = [c.code for c in service.get_active_currencies()]

    assert codes[0] == "USD"
    assert set(codes) == {"USD", "EUR", "GBP"}


def test_duplicate_code(service):
    with pytest.raises(HTTPException) as exc:
        service.create_currency(CurrencyCreate(code="EUR", name="Euro again", symbol="E"))

    assert exc.value.status_code == 400


def test_update_exchange_rates(service, seed):
    service.get_active_currencies()

    result = service.update_exchange_rates(
        {"EUR": Decimal("0.95"), "USD": Decimal("2"), "XYZ": Decimal("3")}, source="ecb"
    )

    assert result.updated_count == 1
    assert sorted(result.skipped_codes) == ["USD", "XYZ"]
    assert service.cache.active_currencies is None
    eur = service.get_currency_by_code("EUR")
    assert eur.factor == Decimal("0.95")
    assert eur.update_source == "ecb"
    assert service.get_base_currency().factor == Decimal("1")


def test_delete_base_currency_is_refused(service, seed):
    with pytest.raises(HTTPException) as exc:
        service.delete_currency(seed["usd"].id)

    assert exc.value.status_code == 400


class TestFormatMoney:

    def test_symbol_and_thousands(self, service, seed):
        usd = service.get_currency_by_code("USD")
        assert CurrencyService.format_money(Decimal("1234.5"), usd) == "$1,234.50"

    def test_code_suffix(self, service, seed):
        eur = service.get_currency_by_code("EUR")
        assert CurrencyService.format_money(Decimal("10"), eur, show_symbol=False, show_code=True) == "10.00 EUR"

    def test_negative_and_precision(self, service, seed):
        usd = service.get_currency_by_code("USD")
        assert CurrencyService.format_money(Decimal("-5.555"), usd, decimal_places=1) == "-$5.6"
