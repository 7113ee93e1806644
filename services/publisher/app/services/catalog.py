"""Catalog reads and writes on top of ShopifyClient.

Caching:
- RunCaches lives exactly as long as one CatalogGateway (one run)
- Entries are append-only and never invalidated: a SKU created by this same
  process mid-run is not seen until the next run
- Overlapping runs are not coordinated here (see scripts/run_checks.py for the
  optional Redis run lock)

Dry run:
- Every mutation is skipped (logged) when dry_run is True; reads still happen
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.schemas.catalog import Collection, Product, Variant
from app.services import queries
from app.services.pagination import fetch_all, iter_pages
from app.services.shopify_client import (
    ShopifyClient,
    ShopifyGraphQLError,
    ShopifyUserError,
    raise_for_user_errors,
)

logger = logging.getLogger("uvicorn.error")

ON_HAND_CHUNK_SIZE = 200
PENDING_CHANGES_NAMESPACE = "custom"
PENDING_CHANGES_KEY = "product_changes"
MAIN_ITEM_CONFIRMED_KEY = "main_item_confirmed"


@dataclass(frozen=True)
class UnitMeta:
    """Unit fields of a variant_options metaobject."""

    base_unit: str | None = None
    reference_unit: str | None = None
    numeric_quantity: str | None = None


@dataclass
class RunCaches:
    """Per-run memo tables. Lifetime = one run; never invalidated."""

    sku_lookups: dict[str, list[Variant]] = field(default_factory=dict)
    product_tax: dict[str, str] = field(default_factory=dict)
    unit_meta: dict[str, UnitMeta] = field(default_factory=dict)
    location_ids: list[str] | None = None
    publication_ids: list[str] | None = None
    market_publications: dict[str, str | None] = field(default_factory=dict)


def _already_published(messages: list[str]) -> bool:
    return all(re.search(r"already", m, re.IGNORECASE) for m in messages)


class CatalogGateway:
    """Typed access to the Admin API for the publish gate."""

    def __init__(self, client: ShopifyClient, *, dry_run: bool = True, caches: RunCaches | None = None):
        self.client = client
        self.dry_run = dry_run
        self.caches = caches or RunCaches()

    # ============================================================
    # Reads
    # ============================================================

    async def iter_flagged_product_pages(self) -> AsyncIterator[list[Product]]:
        """Page through products that have a pending-changes metafield."""

        async def fetch(after: str | None) -> dict[str, Any]:
            data = await self.client.execute(queries.PRODUCTS_PAGE_QUERY, {"after": after})
            return data["products"]

        async for nodes in iter_pages(fetch):
            yield [Product.from_node(n) for n in nodes]

    async def get_product(self, product_id: str) -> Product | None:
        data = await self.client.execute(queries.PRODUCT_QUERY, {"id": product_id})
        node = data.get("product")
        return Product.from_node(node) if node else None

    async def load_variants(self, product: Product) -> list[Variant]:
        """All variants of a product, continuing from the page embedded in the product node."""

        async def fetch(after: str | None) -> dict[str, Any]:
            data = await self.client.execute(queries.VARIANTS_PAGE_QUERY, {"id": product.id, "after": after})
            return data["product"]["variants"]

        nodes = await fetch_all(fetch, initial=product.variants_connection or None)
        return [Variant.model_validate(n) for n in nodes]

    async def load_collections(self, product: Product) -> list[Collection]:
        async def fetch(after: str | None) -> dict[str, Any]:
            data = await self.client.execute(
                queries.COLLECTIONS_PAGE_QUERY, {"id": product.id, "after": after}
            )
            return data["product"]["collections"]

        nodes = await fetch_all(fetch, initial=product.collections_connection or None)
        return [Collection.model_validate(n) for n in nodes]

    async def find_variants_by_sku(self, sku: str) -> list[Variant]:
        """Variants anywhere in the catalog whose SKU equals `sku` case-insensitively.

        Memoized per run by lowercased SKU.
        """
        key = sku.strip().lower()
        if not key:
            return []
        cached = self.caches.sku_lookups.get(key)
        if cached is not None:
            return cached
        escaped = sku.strip().replace("\\", "\\\\").replace('"', '\\"')
        data = await self.client.execute(queries.PRODUCT_VARIANTS_BY_SKU_QUERY, {"q": f'sku:"{escaped}"'})
        nodes = (data.get("productVariants") or {}).get("nodes") or []
        matches = [Variant.model_validate(n) for n in nodes if str(n.get("sku") or "").strip().lower() == key]
        self.caches.sku_lookups[key] = matches
        return matches

    async def get_product_tax(self, product_id: str) -> str:
        if product_id in self.caches.product_tax:
            return self.caches.product_tax[product_id]
        data = await self.client.execute(queries.PRODUCT_TAX_QUERY, {"id": product_id})
        mf = (data.get("product") or {}).get("metafield") or {}
        value = str(mf.get("value") or "").strip()
        self.caches.product_tax[product_id] = value
        return value

    async def get_unit_meta(self, handle: str) -> UnitMeta:
        """Look up the variant_options metaobject for an option value handle."""
        if handle in self.caches.unit_meta:
            return self.caches.unit_meta[handle]
        data = await self.client.execute(
            queries.METAOBJECT_BY_HANDLE, {"type": "variant_options", "handle": handle}
        )
        fields = ((data.get("metaobjectByHandle") or {}).get("fields")) or []
        values = {f.get("key"): f.get("value") for f in fields}
        meta = UnitMeta(
            base_unit=values.get("base_unit") or None,
            reference_unit=values.get("reference_unit") or None,
            numeric_quantity=values.get("numeric_value") or None,
        )
        self.caches.unit_meta[handle] = meta
        return meta

    async def location_ids(self) -> list[str]:
        if self.caches.location_ids is None:

            async def fetch(after: str | None) -> dict[str, Any]:
                data = await self.client.execute(queries.LOCATIONS_QUERY, {"after": after})
                return data["locations"]

            self.caches.location_ids = [n["id"] for n in await fetch_all(fetch)]
        return self.caches.location_ids

    async def publication_ids(self) -> list[str]:
        if self.caches.publication_ids is None:

            async def fetch(after: str | None) -> dict[str, Any]:
                data = await self.client.execute(queries.PUBLICATIONS_QUERY, {"after": after})
                return data["publications"]

            self.caches.publication_ids = [n["id"] for n in await fetch_all(fetch)]
        return self.caches.publication_ids

    async def market_publication_id(self, catalog_title: str) -> str | None:
        """Publication backing the MarketCatalog with this title (case-insensitive)."""
        wanted = catalog_title.strip().lower()
        if wanted in self.caches.market_publications:
            return self.caches.market_publications[wanted]

        async def fetch(after: str | None) -> dict[str, Any]:
            data = await self.client.execute(queries.PUBLICATIONS_MARKETS_QUERY, {"after": after})
            return data["publications"]

        found: str | None = None
        async for nodes in iter_pages(fetch):
            for n in nodes:
                catalog = n.get("catalog") or {}
                if catalog.get("__typename") == "MarketCatalog" and (catalog.get("title") or "").strip().lower() == wanted:
                    found = n["id"]
                    break
            if found:
                break
        self.caches.market_publications[wanted] = found
        return found

    # ============================================================
    # Writes (skipped in dry run)
    # ============================================================

    async def set_status(self, product_id: str, status: str) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: would set {product_id} status={status}")
            return
        data = await self.client.execute(queries.UPDATE_PRODUCT_STATUS, {"id": product_id, "status": status})
        raise_for_user_errors("productUpdate", data.get("productUpdate"))

    async def _set_metafield(self, product_id: str, key: str, type_: str, value: str) -> None:
        metafields = [
            {
                "ownerId": product_id,
                "namespace": PENDING_CHANGES_NAMESPACE,
                "key": key,
                "type": type_,
                "value": value,
            }
        ]
        data = await self.client.execute(queries.SET_METAFIELDS, {"metafields": metafields})
        raise_for_user_errors("metafieldsSet", data.get("metafieldsSet"))

    async def set_pending_changes(self, product_id: str, labels: list[str]) -> None:
        """Overwrite the whole pending-changes list (last writer wins)."""
        if self.dry_run:
            logger.info(f"DRY RUN: would set {product_id} product_changes={labels}")
            return
        await self._set_metafield(product_id, PENDING_CHANGES_KEY, "list.single_line_text_field", json.dumps(labels))

    async def set_main_item_confirmed(self, product_id: str) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: would set {product_id} main_item_confirmed=true")
            return
        await self._set_metafield(product_id, MAIN_ITEM_CONFIRMED_KEY, "boolean", "true")

    async def update_inventory_item_origin(self, inventory_item_id: str, country_code: str) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: would set {inventory_item_id} countryCodeOfOrigin={country_code}")
            return
        data = await self.client.execute(
            queries.INVENTORY_ITEM_UPDATE,
            {"id": inventory_item_id, "input": {"countryCodeOfOrigin": country_code}},
        )
        raise_for_user_errors("inventoryItemUpdate", data.get("inventoryItemUpdate"))

    async def zero_on_hand(self, inventory_item_ids: list[str]) -> int:
        """Set on-hand to 0 for every (item, location) pair. Returns pairs submitted."""
        if self.dry_run:
            logger.info(f"DRY RUN: would zero on-hand for {len(inventory_item_ids)} inventory items")
            return 0
        locations = await self.location_ids()
        if not locations or not inventory_item_ids:
            return 0

        pairs = [(inv, loc) for inv in inventory_item_ids for loc in locations]
        for i in range(0, len(pairs), ON_HAND_CHUNK_SIZE):
            chunk = pairs[i : i + ON_HAND_CHUNK_SIZE]
            payload = {
                "reason": "correction",
                # Timestamp reference; not guaranteed unique across chunks.
                "referenceDocumentUri": f"gid://fi-app/AutoZero/{int(time.time() * 1000)}",
                "setQuantities": [
                    {"inventoryItemId": inv, "locationId": loc, "quantity": 0} for inv, loc in chunk
                ],
            }
            data = await self.client.execute(queries.INVENTORY_SET_ON_HAND, {"input": payload})
            errs = (data.get("inventorySetOnHandQuantities") or {}).get("userErrors") or []
            if errs:
                logger.warning(f"inventorySetOnHandQuantities userErrors: {json.dumps(errs)}")
        return len(pairs)

    async def publish(self, product_id: str, publication_id: str) -> None:
        """Publish to one publication; errors are logged, never raised."""
        try:
            data = await self.client.execute(
                queries.PUBLISHABLE_PUBLISH, {"id": product_id, "input": [{"publicationId": publication_id}]}
            )
            raise_for_user_errors("publishablePublish", data.get("publishablePublish"))
        except ShopifyUserError as e:
            if not _already_published(e.messages):
                logger.warning(f"publishablePublish warning ({publication_id}): {'; '.join(e.messages)}")
        except ShopifyGraphQLError as e:
            logger.warning(f"publishablePublish error ({publication_id}): {e}")
        except httpx.HTTPError as e:
            logger.warning(f"publishablePublish request failed ({publication_id}): {e!r}")

    async def publish_to_all(self, product_id: str) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: would publish {product_id} to all publications")
            return
        for publication_id in await self.publication_ids():
            await self.publish(product_id, publication_id)

    async def ensure_in_market_catalog(self, product_id: str, catalog_title: str) -> bool:
        """Publish to the market catalog's publication. False if no such catalog exists."""
        publication_id = await self.market_publication_id(catalog_title)
        if not publication_id:
            return False
        if self.dry_run:
            logger.info(f"DRY RUN: would publish {product_id} to market '{catalog_title}'")
            return True
        await self.publish(product_id, publication_id)
        return True

    async def add_to_collection_by_handle(self, product_id: str, handle: str) -> tuple[bool, str]:
        """Add a product to the collection with this handle. Returns (ok, note)."""
        data = await self.client.execute(queries.FIND_COLLECTION_BY_HANDLE, {"q": f"handle:{handle}"})
        nodes = (data.get("collections") or {}).get("nodes") or []
        if not nodes:
            return False, f"Collection '{handle}' not found."
        col = nodes[0]
        if self.dry_run:
            return True, f"Would add to '{col['title']}' (DRY RUN)."
        res = await self.client.execute(queries.COLLECTION_ADD_PRODUCTS, {"id": col["id"], "productIds": [product_id]})
        try:
            raise_for_user_errors("collectionAddProducts", res.get("collectionAddProducts"))
        except ShopifyUserError as e:
            return False, f"Failed to add to '{col['title']}': {'; '.join(e.messages)}"
        return True, f"Added to '{col['title']}'."
