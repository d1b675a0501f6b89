"""Shopify Admin REST catalog backend."""
import re
from typing import Any, Dict, List, Optional

import requests

from .catalog import CatalogItem, CatalogService, CatalogVariant, NewCatalogItem
from ..app.config import Config
from ..utils.errors import (
    CatalogAuthError,
    CatalogItemMissingError,
    CatalogUnavailableError,
)
from ..utils.logger import get_logger
from ..utils.security import mask_secrets

logger = get_logger("catalog")

PAGE_LIMIT = 250  # Maximum allowed by Shopify
_NEXT_LINK = re.compile(r'<[^>]*[?&]page_info=([^&>]+)[^>]*>;\s*rel="next"')


def extract_next_page_info(link_header: Optional[str]) -> Optional[str]:
    """Return the ``page_info`` cursor of the rel="next" link, if any."""
    if not link_header:
        return None
    match = _NEXT_LINK.search(link_header)
    return match.group(1) if match else None


class ShopifyCatalogService(CatalogService):
    name = "shopify"

    def __init__(
        self,
        domain: Optional[str] = None,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.domain = domain or Config.SHOPIFY_DOMAIN
        self.api_version = api_version or Config.SHOPIFY_API_VERSION
        self.timeout = timeout or Config.CATALOG_TIMEOUT_SECONDS
        self.base_url = f"https://{self.domain}/admin/api/{self.api_version}"
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": access_token or Config.SHOPIFY_ACCESS_TOKEN or "",
            "Content-Type": "application/json",
        })
        self._location_id: Optional[int] = None

    # --- HTTP plumbing --------------------------------------------------

    def _request(self, method: str, path: str, item_id: Optional[str] = None, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"[CATALOG] Shopify {method} {path} failed: {mask_secrets(str(e))}")
            raise CatalogUnavailableError(f"Shopify request failed: {mask_secrets(str(e))}") from e

        status = response.status_code
        if status in (401, 403):
            raise CatalogAuthError(f"Shopify rejected credentials ({status})")
        if status == 404:
            raise CatalogItemMissingError(item_id or path)
        if status >= 400:
            detail = mask_secrets(response.text[:200])
            logger.error(f"[CATALOG] Shopify {method} {path} -> {status}: {detail}")
            raise CatalogUnavailableError(f"Shopify returned {status}: {detail}")
        return response

    def _json(self, response: requests.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise CatalogUnavailableError("Shopify returned a non-JSON body") from e

    # --- conversion -----------------------------------------------------

    @staticmethod
    def to_item(product: Dict[str, Any]) -> CatalogItem:
        tags = [t.strip() for t in (product.get("tags") or "").split(",") if t.strip()]
        variants = [
            CatalogVariant(
                id=str(v["id"]),
                title=v.get("title") or "Default",
                price=float(v.get("price") or 0),
                sku=v.get("sku") or "",
                inventory=int(v.get("inventory_quantity") or 0),
                inventory_item_id=str(v["inventory_item_id"]) if v.get("inventory_item_id") else None,
            )
            for v in product.get("variants") or []
        ]
        return CatalogItem(
            id=str(product["id"]),
            title=product.get("title") or "",
            description=re.sub(r"<[^>]+>", "", product.get("body_html") or ""),
            vendor=product.get("vendor") or "",
            product_type=product.get("product_type") or "",
            tags=tags,
            status=product.get("status") or "active",
            variants=variants,
        )

    # --- CatalogService -------------------------------------------------

    def find_all(self) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        params: Dict[str, Any] = {"limit": PAGE_LIMIT}
        while True:
            response = self._request("GET", "/products.json", params=params)
            items.extend(self.to_item(p) for p in self._json(response).get("products", []))
            page_info = extract_next_page_info(response.headers.get("Link"))
            if not page_info:
                break
            # page_info requests may not repeat other filters
            params = {"limit": PAGE_LIMIT, "page_info": page_info}
        logger.info(f"[CATALOG] Fetched {len(items)} products from Shopify")
        return items

    def update_variant_price(self, item_id: str, variant_id: str, price: float) -> CatalogVariant:
        body = {"variant": {"id": int(variant_id), "price": f"{float(price):.2f}"}}
        response = self._request("PUT", f"/variants/{variant_id}.json", item_id=item_id, json=body)
        variant = self._json(response).get("variant", {})
        return CatalogVariant(
            id=str(variant.get("id", variant_id)),
            title=variant.get("title") or "Default",
            price=float(variant.get("price") or price),
            sku=variant.get("sku") or "",
            inventory=int(variant.get("inventory_quantity") or 0),
        )

    def _primary_location(self) -> int:
        if self._location_id is None:
            locations = self._json(self._request("GET", "/locations.json")).get("locations", [])
            if not locations:
                raise CatalogUnavailableError("Store has no inventory locations")
            self._location_id = int(locations[0]["id"])
        return self._location_id

    def set_inventory(self, item_id: str, quantity: int) -> CatalogItem:
        product = self._json(self._request("GET", f"/products/{item_id}.json", item_id=item_id))["product"]
        location_id = self._primary_location()
        for variant in product.get("variants") or []:
            inventory_item_id = variant.get("inventory_item_id")
            if not inventory_item_id:
                continue
            self._request(
                "POST",
                "/inventory_levels/set.json",
                item_id=item_id,
                json={
                    "inventory_item_id": int(inventory_item_id),
                    "location_id": location_id,
                    "available": int(quantity),
                },
            )
            variant["inventory_quantity"] = int(quantity)
        return self.to_item(product)

    def create_item(self, data: NewCatalogItem) -> CatalogItem:
        body = {
            "product": {
                "title": data.title,
                "body_html": data.description or f"<p>New product: {data.title}</p>",
                "vendor": data.vendor or Config.DEFAULT_VENDOR,
                "product_type": data.product_type,
                "tags": ", ".join(data.tags),
                "status": data.status,
                "variants": [{
                    "title": "Default",
                    "price": f"{data.price:.2f}",
                    "sku": data.sku,
                    "inventory_quantity": data.quantity,
                    "inventory_management": "shopify",
                }],
            }
        }
        response = self._request("POST", "/products.json", json=body)
        return self.to_item(self._json(response)["product"])

    def delete_item(self, item_id: str) -> None:
        self._request("DELETE", f"/products/{item_id}.json", item_id=item_id)

    def test_connection(self) -> Dict[str, Any]:
        """Used by the health endpoint. Never raises."""
        try:
            shop = self._json(self._request("GET", "/shop.json")).get("shop", {})
            return {"connected": True, "domain": shop.get("domain"), "shop_name": shop.get("name")}
        except (CatalogAuthError, CatalogUnavailableError, CatalogItemMissingError) as e:
            return {"connected": False, "error": str(e)}
