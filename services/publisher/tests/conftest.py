"""Shared fixtures: an in-memory catalog and recording webhook/Slack doubles."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from app.schemas.catalog import Collection, Product, Variant
from app.services.catalog import UnitMeta
from app.services.shopify_client import ApiCostBudget, ShopifyUserError
from app.services.webhooks import WebhookResult
from app.tenants import TenantConfig


def build_variant(
    vid: str,
    sku: str | None,
    *,
    product_id: str = "gid://shopify/Product/1",
    product_title: str = "Almond Oil",
    title: str = "Default",
    hs: str | None = "33049990",
    price: str = "100.00",
    options: dict[str, str] | None = None,
    country: str | None = None,
) -> Variant:
    return Variant.model_validate(
        {
            "id": vid,
            "title": title,
            "sku": sku,
            "price": price,
            "selectedOptions": [{"name": k, "value": v} for k, v in (options or {}).items()],
            "inventoryItem": {
                "id": f"{vid}-inv",
                "harmonizedSystemCode": hs,
                "countryCodeOfOrigin": country,
            },
            "product": {"id": product_id, "title": product_title, "options": []},
        }
    )


def build_product(
    pid: str = "gid://shopify/Product/1",
    *,
    title: str = "Almond Oil",
    status: str = "DRAFT",
    labels: list[str] | None = None,
    tax: str = "5%",
    pre_order: str = "No",
    origin: str = "IN",
    description: str = "<p>Cold pressed almond oil.</p>",
    has_image: bool = True,
    options: list[dict[str, Any]] | None = None,
    main_item_confirmed: bool = False,
) -> Product:
    return Product(
        id=pid,
        title=title,
        status=status,
        description_html=description,
        has_image=has_image,
        options=options or [],
        pending_changes=list(labels or []),
        tax_rate=tax,
        pre_order=pre_order,
        country_of_origin=origin,
        main_item_confirmed=main_item_confirmed,
    )


def tax_collection(percent: str) -> Collection:
    return Collection(title=f"Shopify (India | Tax Rate {percent}%)", handle=f"tax-{percent}")


class FakeCatalog:
    """In-memory stand-in for CatalogGateway that records every write."""

    def __init__(self, *, dry_run: bool = False):
        self.dry_run = dry_run
        self.products: list[Product] = []
        self.variants: dict[str, list[Variant]] = {}
        self.collections: dict[str, list[Collection]] = {}
        self.store_variants: list[Variant] = []
        self.product_tax: dict[str, str] = {}
        self.unit_meta: dict[str, UnitMeta] = {}
        self.market_catalog_exists = True
        self.reject_status_writes = False
        self.writes: list[tuple] = []
        self.client = SimpleNamespace(stats=ApiCostBudget())

    def add(self, product: Product, variants: list[Variant], collections: list[Collection] | None = None) -> None:
        self.products.append(product)
        self.variants[product.id] = variants
        self.collections[product.id] = collections or []
        self.store_variants.extend(variants)
        self.product_tax.setdefault(product.id, product.tax_rate)

    def writes_of(self, kind: str) -> list[tuple]:
        return [w for w in self.writes if w[0] == kind]

    async def iter_flagged_product_pages(self):
        yield list(self.products)

    async def get_product(self, product_id: str) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)

    async def load_variants(self, product: Product) -> list[Variant]:
        return list(self.variants.get(product.id, []))

    async def load_collections(self, product: Product) -> list[Collection]:
        return list(self.collections.get(product.id, []))

    async def find_variants_by_sku(self, sku: str) -> list[Variant]:
        key = sku.strip().lower()
        return [v for v in self.store_variants if v.sku_clean.lower() == key]

    async def get_product_tax(self, product_id: str) -> str:
        return self.product_tax.get(product_id, "")

    async def get_unit_meta(self, handle: str) -> UnitMeta:
        return self.unit_meta.get(handle, UnitMeta())

    async def set_status(self, product_id: str, status: str) -> None:
        if self.reject_status_writes:
            raise ShopifyUserError("productUpdate", [{"field": ["status"], "message": "Status is invalid"}])
        self.writes.append(("status", product_id, status))

    async def set_pending_changes(self, product_id: str, labels: list[str]) -> None:
        self.writes.append(("pending_changes", product_id, list(labels)))

    async def set_main_item_confirmed(self, product_id: str) -> None:
        self.writes.append(("main_item_confirmed", product_id))

    async def update_inventory_item_origin(self, inventory_item_id: str, country_code: str) -> None:
        self.writes.append(("origin", inventory_item_id, country_code))

    async def zero_on_hand(self, inventory_item_ids: list[str]) -> int:
        self.writes.append(("zero_on_hand", tuple(inventory_item_ids)))
        return len(inventory_item_ids)

    async def publish_to_all(self, product_id: str) -> None:
        self.writes.append(("publish_all", product_id))

    async def ensure_in_market_catalog(self, product_id: str, catalog_title: str) -> bool:
        if not self.market_catalog_exists:
            return False
        self.writes.append(("market_catalog", product_id, catalog_title))
        return True

    async def add_to_collection_by_handle(self, product_id: str, handle: str) -> tuple[bool, str]:
        self.writes.append(("collection_add", product_id, handle))
        return True, f"Added to '{handle}'."


class FakeWebhooks:
    """Records webhook calls; per-endpoint results are configurable."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.results: dict[str, WebhookResult] = {}

    def _result(self, name: str) -> WebhookResult:
        return self.results.get(name, WebhookResult(ok=True, status=200))

    async def field_changed(self, product_id: str, change: str, **fields: Any) -> WebhookResult:
        self.calls.append(("field_changed", product_id, change, fields))
        return self._result(change)

    async def unit_price_update(self, product_id: str) -> WebhookResult:
        self.calls.append(("unit_price", product_id))
        return self._result("unit_price")

    async def confirm_items(self, payload) -> WebhookResult:
        self.calls.append(("confirm_items", payload))
        return self._result("confirm_items")

    def payloads(self) -> list:
        return [c[1] for c in self.calls if c[0] == "confirm_items"]


class FakeNotifier:
    def __init__(self):
        self.sent: list[tuple[str, bool]] = []

    async def send(self, text: str, *, success: bool = False) -> bool:
        self.sent.append((text, success))
        return True


@pytest.fixture
def tenant() -> TenantConfig:
    return TenantConfig(cosmetics_check=False, tax_codes={"5": "TX-5", "18": "TX-18"})


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def webhooks() -> FakeWebhooks:
    return FakeWebhooks()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_variant():
    return build_variant


@pytest.fixture
def make_product():
    return build_product


@pytest.fixture
def make_tax_collection():
    return tax_collection
