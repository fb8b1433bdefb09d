"""Tests for CatalogStore."""

import json
import threading

import pytest

from shopzing.catalog import CatalogStore
from shopzing.errors import PersistenceError, ProductNotFoundError, ValidationError
from shopzing.filters import ProductFilter
from shopzing.persistence import CATALOG_KEY
from shopzing.seed import DEFAULT_PRODUCTS

NEW_PRODUCT = {
    "title": "Wireless Earbuds",
    "description": "Compact earbuds",
    "price": 79.5,
    "image": "https://example.com/earbuds.jpg",
    "category": "Electronics",
    "rating": 4.1,
    "stock": 12,
    "brand": "AudioTech",
    "tags": ["wireless", "compact"],
    "featured": False,
}


class TestLoading:
    def test_seeds_and_persists_defaults(self, adapter):
        store = CatalogStore(adapter)

        assert [p.id for p in store.list()] == [r["id"] for r in DEFAULT_PRODUCTS]
        assert adapter.load(CATALOG_KEY) == DEFAULT_PRODUCTS

    def test_corrupt_data_reseeds(self, adapter):
        adapter.data_dir.mkdir(parents=True)
        adapter.path_for(CATALOG_KEY).write_text("[{]", encoding="utf-8")

        store = CatalogStore(adapter)
        assert len(store) == len(DEFAULT_PRODUCTS)

    def test_records_missing_fields_reseed(self, adapter):
        adapter.save(CATALOG_KEY, [{"id": "1"}])
        store = CatalogStore(adapter)
        assert len(store) == len(DEFAULT_PRODUCTS)

    def test_duplicate_ids_reseed(self, adapter):
        adapter.save(CATALOG_KEY, [DEFAULT_PRODUCTS[0], DEFAULT_PRODUCTS[0]])
        store = CatalogStore(adapter)
        assert len(store) == len(DEFAULT_PRODUCTS)

    @pytest.mark.parametrize(
        "overrides",
        [{"stock": -3}, {"rating": 9}, {"price": -1}, {"title": "  "}, {"stock": "many"}],
    )
    def test_records_breaking_invariants_reseed(self, adapter, overrides):
        adapter.save(CATALOG_KEY, [{**DEFAULT_PRODUCTS[0], **overrides}])
        store = CatalogStore(adapter)
        assert len(store) == len(DEFAULT_PRODUCTS)
        assert store.get_by_id("1").stock == 50

    def test_stored_empty_catalog_stays_empty(self, adapter):
        adapter.save(CATALOG_KEY, [])
        store = CatalogStore(adapter)
        assert store.list() == []
        assert store.search("") == []


class TestReads:
    def test_get_by_id(self, catalog):
        assert catalog.get_by_id("3").title == "Designer Leather Jacket"

    def test_get_by_id_unknown(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.get_by_id("nope")

    def test_by_category_exact(self, catalog):
        assert [p.id for p in catalog.by_category("Electronics")] == ["1", "2", "4", "6"]
        assert catalog.by_category("electronics") == []

    def test_search_wireless_finds_headphones_only(self, catalog):
        assert [p.id for p in catalog.search("wireless")] == ["1"]

    @pytest.mark.parametrize("query", ["", " "])
    def test_blank_search_is_full_catalog(self, catalog, query):
        assert catalog.search(query) == catalog.list()

    def test_featured_keeps_insertion_order(self, catalog):
        assert [p.id for p in catalog.featured()] == ["1", "2", "4", "7"]

    def test_categories_first_seen_order(self, catalog):
        assert catalog.categories() == ["Electronics", "Fashion", "Food", "Home", "Sports"]

    def test_filter(self, catalog):
        result = catalog.filter(ProductFilter(category="Electronics", max_price=300, min_rating=4.7))
        assert [p.id for p in result] == ["1", "6"]

    def test_query_searches_then_filters(self, catalog):
        result = catalog.query("premium", ProductFilter(max_price=100))
        assert [p.id for p in result] == ["5", "8"]

    def test_returned_products_are_copies(self, catalog):
        product = catalog.get_by_id("1")
        product.price = 1.0
        product.tags.append("hacked")

        fresh = catalog.get_by_id("1")
        assert fresh.price == 299.99
        assert "hacked" not in fresh.tags


class TestRecommend:
    def test_default_catalog_ranking(self, catalog):
        assert [p.id for p in catalog.recommend("1")] == ["4", "2", "6", "3"]

    def test_never_includes_source(self, catalog):
        for product in catalog.list():
            result = catalog.recommend(product.id)
            assert product.id not in [p.id for p in result]
            assert len(result) <= 4

    def test_unknown_product_has_no_recommendations(self, catalog):
        assert catalog.recommend("missing") == []


class TestMutations:
    def test_add_assigns_id_and_persists(self, catalog, adapter):
        product = catalog.add(NEW_PRODUCT)

        assert product.id not in [r["id"] for r in DEFAULT_PRODUCTS]
        assert catalog.list()[-1].id == product.id
        stored = adapter.load(CATALOG_KEY)
        assert stored[-1]["id"] == product.id
        assert stored[-1]["title"] == "Wireless Earbuds"

    def test_add_invalid_has_no_side_effect(self, catalog, adapter):
        before = adapter.load(CATALOG_KEY)
        with pytest.raises(ValidationError):
            catalog.add({**NEW_PRODUCT, "price": -5})
        assert len(catalog) == len(DEFAULT_PRODUCTS)
        assert adapter.load(CATALOG_KEY) == before

    def test_update_merges_fields(self, catalog, adapter):
        updated = catalog.update("5", {"price": 19.99, "stock": 0})

        assert updated.price == 19.99
        assert updated.stock == 0
        assert updated.title == "Organic Coffee Beans"
        assert [r for r in adapter.load(CATALOG_KEY) if r["id"] == "5"][0]["price"] == 19.99

    def test_update_unknown(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.update("nope", {"stock": 1})

    @pytest.mark.parametrize("fields", [{"price": -1}, {"stock": -1}, {"rating": 7}, {"id": "x"}])
    def test_update_rejects_invalid(self, catalog, fields):
        with pytest.raises(ValidationError):
            catalog.update("5", fields)
        assert catalog.get_by_id("5").to_dict() == DEFAULT_PRODUCTS[4]

    def test_delete(self, catalog, adapter):
        removed = catalog.delete("3")

        assert removed.id == "3"
        with pytest.raises(ProductNotFoundError):
            catalog.get_by_id("3")
        assert "3" not in [r["id"] for r in adapter.load(CATALOG_KEY)]

    def test_delete_unknown(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.delete("nope")

    def test_changes_survive_reload(self, catalog, adapter):
        added = catalog.add(NEW_PRODUCT)
        catalog.update("1", {"featured": False})
        catalog.delete("8")

        reloaded = CatalogStore(adapter)
        assert reloaded.list() == catalog.list()
        assert reloaded.get_by_id(added.id).tags == ["wireless", "compact"]


class TestPersistenceFailure:
    def test_mutation_kept_in_memory(self, failing_adapter):
        store = CatalogStore(failing_adapter)
        failing_adapter.fail = True

        with pytest.raises(PersistenceError) as exc_info:
            store.add(NEW_PRODUCT)

        added = exc_info.value.result
        assert added.title == "Wireless Earbuds"
        assert store.get_by_id(added.id).title == "Wireless Earbuds"
        # Disk still has only the seed
        assert len(failing_adapter.load(CATALOG_KEY)) == len(DEFAULT_PRODUCTS)

    def test_flush_retries_persist(self, failing_adapter):
        store = CatalogStore(failing_adapter)
        failing_adapter.fail = True
        with pytest.raises(PersistenceError):
            store.delete("1")

        failing_adapter.fail = False
        store.flush()
        assert "1" not in [r["id"] for r in failing_adapter.load(CATALOG_KEY)]

    def test_unwritable_seed_still_serves(self, failing_adapter):
        failing_adapter.fail = True
        store = CatalogStore(failing_adapter)
        assert len(store) == len(DEFAULT_PRODUCTS)


class TestConcurrency:
    def test_parallel_adds_and_reads(self, catalog, adapter):
        errors = []

        def writer(n):
            try:
                catalog.add({**NEW_PRODUCT, "title": f"Item {n}"})
            except Exception as e:  # pragma: no cover - surfaced via assertion
                errors.append(e)

        def reader():
            try:
                for _ in range(20):
                    catalog.search("item")
                    catalog.recommend("1")
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(20)]
        threads += [threading.Thread(target=reader) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(catalog) == len(DEFAULT_PRODUCTS) + 20
        stored = json.loads(adapter.path_for(CATALOG_KEY).read_text(encoding="utf-8"))
        assert len(stored) == len(DEFAULT_PRODUCTS) + 20
