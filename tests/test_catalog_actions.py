#!/usr/bin/env python3
"""
Command agent tests against an in-memory catalog.

TEST COVERAGE:
    - Product lookup (not found with suggestions, ambiguous, missing reference)
    - Price, stock, create, delete previews and execution
    - Bulk partial failure and search result limits
    - Undo data
"""

import unittest

from fakes import FakeCatalog, make_item
from storechat.agents.catalog_actions import CatalogActionsService
from storechat.agents.finder import ProductFinder
from storechat.schemas.action_models import ActionIntent, ActionType, ErrorKind, ProductReference, build_entities
from storechat.utils.errors import AmbiguousProductError, MissingEntityError, ProductNotFoundError


def make_intent(action_type, **entities):
    return ActionIntent(
        type=action_type,
        confidence=0.9,
        entities=build_entities(action_type, entities),
        original_message="test",
    )


def demo_catalog(**kwargs):
    return FakeCatalog([
        make_item(1, "Blue Shirt", price=20.0, inventory=4, sku="SH-BLUE", product_type="Shirts", vendor="Acme"),
        make_item(2, "Red Shirt", price=25.0, inventory=0, sku="SH-RED", product_type="Shirts", vendor="Acme"),
        make_item(3, "Coffee Mug", price=8.5, inventory=12, sku="MUG-1", product_type="Kitchen", vendor="Potter"),
    ], **kwargs)


class TestProductFinder(unittest.TestCase):
    def setUp(self):
        self.finder = ProductFinder(demo_catalog())

    def test_find_by_sku_and_id(self):
        self.assertEqual(self.finder.find(ProductReference(sku="mug-1")).title, "Coffee Mug")
        self.assertEqual(self.finder.find(ProductReference(product_id="2")).title, "Red Shirt")

    def test_not_found_suggests_titles(self):
        with self.assertRaises(ProductNotFoundError) as ctx:
            self.finder.find(ProductReference(product_name="Blu Shrt"))
        self.assertIn("Blue Shirt", ctx.exception.suggestions)

    def test_ambiguous(self):
        with self.assertRaises(AmbiguousProductError) as ctx:
            self.finder.find(ProductReference(product_name="shirt"))
        self.assertEqual(sorted(ctx.exception.matches), ["Blue Shirt", "Red Shirt"])

    def test_missing_reference(self):
        with self.assertRaises(MissingEntityError):
            self.finder.find(ProductReference())


class TestCatalogActions(unittest.TestCase):
    def setUp(self):
        self.catalog = demo_catalog()
        self.service = CatalogActionsService(self.catalog)

    def test_price_preview_does_not_write(self):
        preview = self.service.preview_action(make_intent(ActionType.update_price, product_name="Coffee Mug", price=10))
        self.assertTrue(preview.success)
        self.assertEqual(preview.affected_products, 1)
        self.assertEqual(preview.changes[0].old_value, 8.5)
        self.assertEqual(preview.changes[0].new_value, 10.0)
        self.assertEqual(self.catalog.calls, [])

    def test_percentage_price_update_and_undo(self):
        result = self.service.execute_action(make_intent(ActionType.update_price, sku="SH-BLUE", percentage=10))
        self.assertTrue(result.success)
        self.assertEqual(self.catalog.items["1"].variants[0].price, 22.0)
        self.assertTrue(result.can_undo)

        undo = self.service.undo_action(ActionType.update_price, result.undo_data)
        self.assertTrue(undo.success)
        self.assertEqual(self.catalog.items["1"].variants[0].price, 20.0)

    def test_not_found_becomes_failed_result(self):
        result = self.service.preview_action(make_intent(ActionType.update_price, product_name="Blu Shrt", price=5))
        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, ErrorKind.not_found)
        self.assertIn("Blue Shirt", result.data["suggestions"])

    def test_ambiguous_becomes_failed_result(self):
        result = self.service.execute_action(make_intent(ActionType.update_stock, product_name="shirt", quantity=3))
        self.assertFalse(result.success)
        self.assertEqual(result.error_kind, ErrorKind.ambiguous)

    def test_missing_price(self):
        result = self.service.preview_action(make_intent(ActionType.update_price, product_name="Coffee Mug"))
        self.assertEqual(result.error_kind, ErrorKind.invalid_entity)

    def test_stock_update(self):
        result = self.service.execute_action(make_intent(ActionType.update_stock, product_name="Coffee Mug", quantity=30))
        self.assertTrue(result.success)
        self.assertEqual(self.catalog.items["3"].inventory_available, 30)
        self.assertEqual(result.undo_data, {"product_id": "3", "old_quantity": 12})

    def test_create_and_undo(self):
        result = self.service.execute_action(make_intent(ActionType.create_product, product_name="Summer Hat", price=15))
        self.assertTrue(result.success)
        created = self.catalog.items[result.undo_data["product_id"]]
        self.assertEqual(created.status, "draft")
        self.assertEqual(created.price, 15.0)

        self.service.undo_action(ActionType.create_product, result.undo_data)
        self.assertNotIn(created.id, self.catalog.items)

    def test_delete_is_not_undoable(self):
        result = self.service.execute_action(make_intent(ActionType.delete_product, sku="SH-RED"))
        self.assertTrue(result.success)
        self.assertFalse(result.can_undo)
        self.assertNotIn("2", self.catalog.items)

    def test_bulk_preview_counts_category(self):
        preview = self.service.preview_action(make_intent(ActionType.bulk_update, category="shirts", percentage=10))
        self.assertEqual(preview.message, "Preview: bulk update will affect 2 products")
        self.assertEqual(preview.affected_products, 2)

    def test_bulk_with_empty_category(self):
        result = self.service.preview_action(make_intent(ActionType.bulk_update, category="garden", percentage=10))
        self.assertEqual(result.error_kind, ErrorKind.not_found)

    def test_search_preview_changes_nothing(self):
        preview = self.service.preview_action(make_intent(ActionType.search_products, search_query="shirt"))
        self.assertTrue(preview.success)
        self.assertEqual(preview.affected_products, 0)


class FlakyCatalog(FakeCatalog):
    def update_variant_price(self, item_id, variant_id, price):
        if item_id == "3":
            raise RuntimeError("connection reset")
        return super().update_variant_price(item_id, variant_id, price)


class TestBulkPartialFailure(unittest.TestCase):
    def test_failures_do_not_abort_the_batch(self):
        items = [make_item(n, f"Phone {n}", price=100.0, vendor="Apple") for n in range(1, 11)]
        catalog = FakeCatalog(items, failing_ids={"4", "7"})
        service = CatalogActionsService(catalog)

        result = service.execute_action(make_intent(ActionType.bulk_update, category="Apple", percentage=10))
        self.assertTrue(result.success)
        self.assertEqual(result.affected_products, 8)
        self.assertEqual(result.data["total"], 10)
        self.assertEqual(sorted(f["product_id"] for f in result.data["failures"]), ["4", "7"])
        self.assertEqual(catalog.items["1"].variants[0].price, 110.0)
        self.assertEqual(catalog.items["4"].variants[0].price, 100.0)
        self.assertEqual(len(result.undo_data["items"]), 8)

    def test_unexpected_errors_stay_per_item(self):
        items = [make_item(n, f"Phone {n}", price=100.0, vendor="Apple") for n in range(1, 6)]
        catalog = FlakyCatalog(items)
        result = CatalogActionsService(catalog).execute_action(
            make_intent(ActionType.bulk_update, category="Apple", percentage=10)
        )
        self.assertTrue(result.success)
        self.assertEqual(result.affected_products, 4)
        self.assertEqual(result.data["failures"], [{"product_id": "3", "title": "Phone 3", "error": "connection reset"}])
        self.assertEqual(catalog.items["5"].variants[0].price, 110.0)
        self.assertNotIn("3", result.undo_data["items"])

    def test_all_failures(self):
        catalog = FakeCatalog([make_item(1, "Phone", vendor="Apple")], failing_ids={"1"})
        result = CatalogActionsService(catalog).execute_action(
            make_intent(ActionType.bulk_update, category="Apple", quantity=3)
        )
        self.assertFalse(result.success)
        self.assertEqual(result.affected_products, 0)


class TestSearch(unittest.TestCase):
    def test_results_are_capped(self):
        items = [make_item(n, f"Case {n}", sku=f"CASE-{n}") for n in range(15)]
        service = CatalogActionsService(FakeCatalog(items))
        result = service.execute_action(make_intent(ActionType.search_products, search_query="case"))
        self.assertTrue(result.success)
        self.assertEqual(len(result.data["products"]), 10)
        self.assertEqual(result.data["total"], 15)
        self.assertEqual(result.message, 'Found 15 products for "case"')


if __name__ == "__main__":
    unittest.main()
