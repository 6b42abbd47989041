from decimal import Decimal

from sqlalchemy.exc import OperationalError

from shoppingbird.models import CatalogItem, PriceEntry
from shoppingbird.services.barcode_resolver import BarcodeResolver, normalize_barcodes


class TestNormalizeBarcodes:

    def test_upc_a_gets_ean13_variant(self):
        assert normalize_barcodes("012345678912") == ["012345678912", "0012345678912"]

    def test_ean13_with_leading_zero_gets_upc_a_variant(self):
        assert normalize_barcodes("0123456789123") == ["0123456789123", "123456789123"]

    def test_non_digits_are_stripped(self):
        assert normalize_barcodes(" 0-12345-67891-2 ") == ["012345678912", "0012345678912"]

    def test_other_lengths_have_no_variants(self):
        assert normalize_barcodes("1234") == ["1234"]
        assert normalize_barcodes("1234567890123") == ["1234567890123"]

    def test_no_duplicates(self):
        variants = normalize_barcodes("000000000000")
        assert len(variants) == len(set(variants))

    def test_empty_input(self):
        assert normalize_barcodes("") == []
        assert normalize_barcodes("abc") == []


class TestSearch:

    def test_store_barcode_match(self, db, seed):
        result = BarcodeResolver.search(db, "1234", seed["store"].id)

        assert result.found is True
        assert result.search_method == "price_list"
        assert result.item.retail_price == Decimal("23.60")
        assert result.item.unit == "ea"
        assert result.item.description == "Organic Milk 1L"
        assert result.item.currency_code == "USD"

    def test_same_code_at_other_store_is_not_found(self, db, seed):
        result = BarcodeResolver.search(db, "1234", seed["other_store"].id)

        assert result.found is False
        assert result.unpriced is False
        assert result.message == 'No item found with barcode "1234"'

    def test_global_code_match(self, db, seed):
        result = BarcodeResolver.search(db, "012345678905", seed["store"].id)

        assert result.found is True
        assert result.search_method == "upc"
        assert result.item.item_id == seed["coffee"].id
        assert result.item.barcode == "C-100"

    def test_store_barcode_wins_over_global_code(self, db, seed):
        # Another item whose UPC equals milk's store barcode, priced at the same store
        clash = CatalogItem(description="Clashing Item", upc="1234")
        db.add(clash)
        db.flush()
        db.add(PriceEntry(
            item_id=clash.id, store_id=seed["store"].id, barcode="CLASH", unit_id=seed["ea"].id,
            retail_price=Decimal("1.00"), currency_id=seed["usd"].id,
        ))
        db.commit()

        result = BarcodeResolver.search(db, "1234", seed["store"].id)

        assert result.search_method == "price_list"
        assert result.item.item_id == seed["milk"].id

    def test_unpriced_item(self, db, seed):
        result = BarcodeResolver.search(db, "0098765432109", seed["store"].id)

        assert result.found is False
        assert result.unpriced is True
        assert result.message == 'Item "Lavender Soap" found but no price set for this store'

    def test_inactive_price_is_ignored(self, db, seed):
        seed["milk_price"].is_active = False
        db.commit()

        result = BarcodeResolver.search(db, "1234", seed["store"].id)

        assert result.found is False

    def test_preferred_currency(self, db, seed):
        db.add(PriceEntry(
            item_id=seed["milk"].id, store_id=seed["store"].id, barcode="1234", unit_id=seed["ea"].id,
            retail_price=Decimal("21.50"), currency_id=seed["eur"].id,
        ))
        db.commit()

        preferred = BarcodeResolver.search(db, "1234", seed["store"].id, preferred_currency="eur")
        fallback = BarcodeResolver.search(db, "1234", seed["store"].id, preferred_currency="GBP")

        assert preferred.item.currency_code == "EUR"
        assert preferred.item.retail_price == Decimal("21.50")
        assert fallback.found is True
        assert fallback.item.currency_code == "USD"

    def test_blank_barcode(self, db, seed):
        result = BarcodeResolver.search(db, "   ", seed["store"].id)

        assert result.found is False
        assert result.message == "Barcode is required"

    def test_backend_failure_is_reported_as_search_error(self, db, seed, monkeypatch):
        def broken_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "query", broken_query)

        result = BarcodeResolver.search(db, "1234", seed["store"].id)

        assert result.found is False
        assert result.search_error is True
        assert result.message == "Search error occurred"


class TestSearchWithVariants:

    def test_ean13_scan_finds_upc_a_item(self, db, seed):
        result = BarcodeResolver.search_with_variants(db, "0012345678905", seed["store"].id)

        assert result.found is True
        assert result.matched_code == "012345678905"
        assert result.item.item_id == seed["coffee"].id

    def test_falls_back_to_raw_input_result(self, db, seed):
        result = BarcodeResolver.search_with_variants(db, "999", seed["store"].id)

        assert result.found is False
        assert result.message == 'No item found with barcode "999"'

    def test_non_numeric_store_barcode_found_through_raw_input(self, db, seed):
        result = BarcodeResolver.search_with_variants(db, "C-100", seed["store"].id)

        assert result.found is True
        assert result.item.item_id == seed["coffee"].id

    def test_scanned_code_wins_over_its_digits_only_form(self, db, seed):
        db.add(PriceEntry(
            item_id=seed["soap"].id, store_id=seed["store"].id, barcode="100", unit_id=seed["ea"].id,
            retail_price=Decimal("4.50"), currency_id=seed["usd"].id,
        ))
        db.commit()

        coffee = BarcodeResolver.search_with_variants(db, "C-100", seed["store"].id)
        soap = BarcodeResolver.search_with_variants(db, "100", seed["store"].id)

        assert coffee.item.item_id == seed["coffee"].id
        assert coffee.matched_code == "C-100"
        assert soap.item.item_id == seed["soap"].id
