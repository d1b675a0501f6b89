#!/usr/bin/env python3
"""
Entity extraction tests.

USAGE:
    Run from project root: python -m pytest tests/test_entity_extractor.py -v
"""

import unittest

from storechat.nlu.entity_extractor import EntityExtractor, parse_amount


class TestParseAmount(unittest.TestCase):
    def test_plain_and_decimal(self):
        self.assertEqual(parse_amount("10"), 10.0)
        self.assertEqual(parse_amount("10.00"), 10.0)
        self.assertEqual(parse_amount("10,5"), 10.5)

    def test_thousands_separators(self):
        self.assertEqual(parse_amount("1,500"), 1500.0)
        self.assertEqual(parse_amount("1.500.000"), 1500000.0)
        self.assertEqual(parse_amount("$1,500.00"), 1500.0)
        self.assertEqual(parse_amount("1.500,75"), 1500.75)

    def test_numbers_pass_through(self):
        self.assertEqual(parse_amount(12), 12.0)
        self.assertEqual(parse_amount(2.5), 2.5)

    def test_garbage(self):
        self.assertIsNone(parse_amount(None))
        self.assertIsNone(parse_amount("abc"))
        self.assertIsNone(parse_amount(""))


class TestEntityExtractor(unittest.TestCase):
    def setUp(self):
        self.extractor = EntityExtractor()

    def test_price_and_name(self):
        entities = self.extractor.extract("infinix note 30 price to $10.00")
        self.assertEqual(entities["price"], 10.0)
        self.assertEqual(entities["product_name"], "infinix note 30")
        self.assertNotIn("search_query", entities)

    def test_percentage_is_not_a_price(self):
        entities = self.extractor.extract("increase all Apple products by 10%")
        self.assertEqual(entities["percentage"], 10.0)
        self.assertNotIn("price", entities)
        self.assertEqual(entities["category"], "Apple")

    def test_decrease_makes_percentage_negative(self):
        entities = self.extractor.extract("decrease all shoes products by 15%")
        self.assertEqual(entities["percentage"], -15.0)

    def test_stock_quantity(self):
        entities = self.extractor.extract("set stock of Red Mug to 25")
        self.assertEqual(entities["quantity"], 25)
        self.assertEqual(entities["product_name"], "Red Mug")

    def test_sku_and_product_id(self):
        self.assertEqual(self.extractor.extract("delete product sku ABC-123")["sku"], "ABC-123")
        self.assertEqual(self.extractor.extract("remove product id 42")["product_id"], "42")

    def test_no_entities_uses_whole_message(self):
        entities = self.extractor.extract("hello there")
        self.assertEqual(entities, {"search_query": "hello there"})


if __name__ == "__main__":
    unittest.main()
