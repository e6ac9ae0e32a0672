# backend/utils/shopify_client.py
import base64
import hashlib
import hmac
import logging
from typing import Optional

import httpx

from config import settings
from utils.sku_catalog import SKU_TYPES

logger = logging.getLogger(__name__)


class ShopifyConfigError(RuntimeError):
    pass


def verify_webhook_hmac(secret: str, body: bytes, header_hmac: Optional[str]) -> bool:
    """Check Shopify's X-Shopify-Hmac-Sha256 header against the raw body."""
    if not header_hmac:
        return False
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, header_hmac.strip())


class ShopifyClient:
    def __init__(self, store_name=None, api_key=None, api_password=None, api_version=None):
        self.store_name = store_name or settings.SHOPIFY_STORE_NAME
        self.api_key = api_key or settings.SHOPIFY_API_KEY
        self.api_password = api_password or settings.SHOPIFY_API_PASSWORD
        self.api_version = api_version or settings.SHOPIFY_API_VERSION

    @property
    def configured(self) -> bool:
        return bool(self.store_name and self.api_key and self.api_password)

    @property
    def base_url(self) -> str:
        return f"https://{self.store_name}.myshopify.com/admin/api/{self.api_version}"

    def build_product_payload(self, product) -> dict:
        # One variant per known SKU type; inventory is tracked locally, not in Shopify
        variants = []
        for sku_type, sku in product.shopify_skus.items():
            details = SKU_TYPES.get(sku_type)
            if not details or details.variant is None:
                continue
            variants.append({
                "option1": details.title,
                "sku": sku,
                "price": details.price,
                "weight": float(details.volume),
                "weight_unit": "g",
                "inventory_management": None,
                "inventory_policy": "continue",
            })

        return {
            "product": {
                "title": product.name,
                "body_html": f"<p>{product.name}</p><p>Product Code: {product.product_code}</p>",
                "vendor": product.supplier or "Scent Australia",
                "product_type": "Fragrance Oil",
                "tags": ", ".join(t for t in (product.category, product.tag) if t),
                "options": [{"name": "Size", "values": [v["option1"] for v in variants]}],
                "variants": variants,
            }
        }

    async def create_product(self, product) -> dict:
        # Push a product with its SKU variants to the Shopify Admin API
        if not self.configured:
            raise ShopifyConfigError("Shopify credentials not configured")

        url = f"{self.base_url}/products.json"
        async with httpx.AsyncClient(timeout=15.0) as client:
            try:
                response = await client.post(
                    url,
                    json=self.build_product_payload(product),
                    auth=(self.api_key, self.api_password),
                )
                response.raise_for_status()
                return response.json().get("product", {})
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                resp_text = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
                logger.error("Shopify create product error: %s", resp_text)
                raise


shopify_client = ShopifyClient()
