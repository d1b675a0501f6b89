#!/usr/bin/env python3
"""
Shopify catalog backend tests with a mocked HTTP session.
"""

import unittest
from unittest.mock import Mock

import requests

from storechat.data.catalog import NewCatalogItem
from storechat.data.shopify_client import ShopifyCatalogService, extract_next_page_info
from storechat.utils.errors import CatalogAuthError, CatalogItemMissingError, CatalogUnavailableError


def response(status=200, body=None, link=None, text=""):
    r = Mock()
    r.status_code = status
    r.json.return_value = body if body is not None else {}
    r.headers = {"Link": link} if link else {}
    r.text = text
    return r


def product(product_id, title, price="10.00", inventory=3):
    return {
        "id": product_id,
        "title": title,
        "body_html": "<p>Nice</p>",
        "vendor": "Acme",
        "product_type": "Shirts",
        "tags": "cotton, summer",
        "status": "active",
        "variants": [{
            "id": product_id * 10,
            "price": price,
            "sku": f"SKU-{product_id}",
            "inventory_quantity": inventory,
            "inventory_item_id": product_id * 100,
        }],
    }


class TestShopifyCatalog(unittest.TestCase):
    def setUp(self):
        self.session = requests.Session()
        self.session.request = Mock()
        self.catalog = ShopifyCatalogService(
            domain="demo.myshopify.com", access_token="shpat_secret", api_version="2023-10", session=self.session,
        )

    def test_access_token_header(self):
        self.assertEqual(self.session.headers["X-Shopify-Access-Token"], "shpat_secret")

    def test_find_all_follows_pagination(self):
        next_link = '<https://demo.myshopify.com/admin/api/2023-10/products.json?limit=250&page_info=abc123>; rel="next"'
        self.session.request.side_effect = [
            response(body={"products": [product(1, "Blue Shirt")]}, link=next_link),
            response(body={"products": [product(2, "Red Shirt")]}),
        ]
        items = self.catalog.find_all()
        self.assertEqual([i.title for i in items], ["Blue Shirt", "Red Shirt"])
        self.assertEqual(items[0].description, "Nice")
        self.assertEqual(items[0].tags, ["cotton", "summer"])
        self.assertEqual(items[0].variants[0].inventory_item_id, "100")

        second_call = self.session.request.call_args_list[1]
        self.assertEqual(second_call.kwargs["params"], {"limit": 250, "page_info": "abc123"})

    def test_update_variant_price(self):
        self.session.request.return_value = response(body={"variant": {"id": 10, "price": "12.50"}})
        variant = self.catalog.update_variant_price("1", "10", 12.5)
        self.assertEqual(variant.price, 12.5)
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("PUT", "https://demo.myshopify.com/admin/api/2023-10/variants/10.json"))
        self.assertEqual(kwargs["json"], {"variant": {"id": 10, "price": "12.50"}})

    def test_set_inventory(self):
        self.session.request.side_effect = [
            response(body={"product": product(1, "Blue Shirt")}),
            response(body={"locations": [{"id": 555}]}),
            response(body={}),
        ]
        item = self.catalog.set_inventory("1", 9)
        self.assertEqual(item.inventory_available, 9)
        set_call = self.session.request.call_args_list[2]
        self.assertEqual(set_call.kwargs["json"], {"inventory_item_id": 100, "location_id": 555, "available": 9})

    def test_create_item(self):
        self.session.request.return_value = response(body={"product": product(7, "Summer Hat", "15.00", 0)})
        item = self.catalog.create_item(NewCatalogItem(title="Summer Hat", price=15))
        self.assertEqual(item.id, "7")
        body = self.session.request.call_args.kwargs["json"]["product"]
        self.assertEqual(body["status"], "draft")
        self.assertEqual(body["variants"][0]["price"], "15.00")

    def test_error_mapping(self):
        self.session.request.return_value = response(status=401)
        with self.assertRaises(CatalogAuthError):
            self.catalog.find_all()

        self.session.request.return_value = response(status=404)
        with self.assertRaises(CatalogItemMissingError):
            self.catalog.delete_item("5")

        self.session.request.return_value = response(status=502, text="bad gateway")
        with self.assertRaises(CatalogUnavailableError):
            self.catalog.find_all()

        self.session.request.return_value = None
        self.session.request.side_effect = requests.exceptions.ConnectTimeout("timed out")
        with self.assertRaises(CatalogUnavailableError):
            self.catalog.find_all()

    def test_connection_check_never_raises(self):
        self.session.request.return_value = response(body={"shop": {"domain": "demo.myshopify.com", "name": "Demo"}})
        self.assertEqual(self.catalog.test_connection()["shop_name"], "Demo")

        self.session.request.return_value = response(status=403)
        status = self.catalog.test_connection()
        self.assertFalse(status["connected"])


class TestLinkHeader(unittest.TestCase):
    def test_extract(self):
        header = (
            '<https://x/products.json?page_info=prev1>; rel="previous", '
            '<https://x/products.json?limit=250&page_info=next2>; rel="next"'
        )
        self.assertEqual(extract_next_page_info(header), "next2")
        self.assertIsNone(extract_next_page_info('<https://x/products.json?page_info=prev1>; rel="previous"'))
        self.assertIsNone(extract_next_page_info(None))


if __name__ == "__main__":
    unittest.main()
