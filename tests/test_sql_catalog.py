#!/usr/bin/env python3
"""
Database Integration Test for the SQL catalog

PURPOSE:
    Runs the catalog service against an in-memory SQLite database seeded
    from the demo catalog CSV.
"""

import unittest

from storechat.data.catalog import NewCatalogItem
from storechat.data.database import create_tables, make_engine, make_session_factory
from storechat.data.populate_db import populate_products
from storechat.data.sql_catalog import SqlCatalogService
from storechat.utils.errors import CatalogItemMissingError


class TestSqlCatalog(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine("sqlite://")
        self.session_factory = make_session_factory(self.engine)
        self.inserted = populate_products(self.session_factory, bind=self.engine)
        self.catalog = SqlCatalogService(self.session_factory)

    def tearDown(self):
        self.engine.dispose()

    def _by_title(self, title):
        return next(i for i in self.catalog.find_all() if i.title == title)

    def test_seeded_catalog(self):
        self.assertEqual(self.inserted, 10)
        items = self.catalog.find_all()
        self.assertEqual(len(items), 10)
        note = self._by_title("Infinix Note 30")
        self.assertEqual(note.sku, "INF-NOTE30")
        self.assertEqual(note.price, 189.0)
        self.assertEqual(note.tags, ["android", "phone"])

    def test_populate_is_idempotent(self):
        self.assertEqual(populate_products(self.session_factory, bind=self.engine), 0)

    def test_update_variant_price(self):
        note = self._by_title("Infinix Note 30")
        variant = self.catalog.update_variant_price(note.id, note.variants[0].id, 10.004)
        self.assertEqual(variant.price, 10.0)
        self.assertEqual(self._by_title("Infinix Note 30").price, 10.0)

    def test_set_inventory(self):
        ipad = self._by_title("iPad Air")
        updated = self.catalog.set_inventory(ipad.id, 3)
        self.assertEqual(updated.inventory_available, 3)

    def test_create_and_delete(self):
        created = self.catalog.create_item(NewCatalogItem(title="Summer Hat", price=15, quantity=4, tags=["hats"]))
        self.assertEqual(created.status, "draft")
        self.assertEqual(created.inventory_available, 4)
        self.assertEqual(len(self.catalog.find_all()), 11)

        self.catalog.delete_item(created.id)
        self.assertEqual(len(self.catalog.find_all()), 10)

    def test_missing_items(self):
        with self.assertRaises(CatalogItemMissingError):
            self.catalog.set_inventory("9999", 1)
        with self.assertRaises(CatalogItemMissingError):
            self.catalog.delete_item("not-a-number")
        note = self._by_title("Infinix Note 30")
        with self.assertRaises(CatalogItemMissingError):
            self.catalog.update_variant_price(note.id, "9999", 1.0)

    def test_create_tables_is_safe_to_repeat(self):
        create_tables(self.engine)
        self.assertEqual(len(self.catalog.find_all()), 10)


if __name__ == "__main__":
    unittest.main()
