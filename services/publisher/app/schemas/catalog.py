"""Catalog entities parsed from Admin GraphQL nodes."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

STATUS_ACTIVE = "ACTIVE"
STATUS_DRAFT = "DRAFT"

VARIANT_QUANTITIES_NAMESPACE = "custom"
VARIANT_QUANTITIES_KEY = "variant_quantities"


def parse_list_metafield(mf: dict[str, Any] | None) -> list[str]:
    """Parse a list.* metafield value (JSON array string); anything else is empty."""
    if not mf or mf.get("value") is None:
        return []
    try:
        parsed = json.loads(str(mf["value"]).strip())
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [str(x) for x in parsed]


def parse_string_metafield(mf: dict[str, Any] | None) -> str:
    if not mf or mf.get("value") is None:
        return ""
    return str(mf["value"]).strip()


class _Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LinkedMetafield(_Node):
    namespace: str | None = None
    key: str | None = None


class ProductOption(_Node):
    name: str
    linked_metafield: LinkedMetafield | None = Field(default=None, alias="linkedMetafield")

    @property
    def is_variant_quantities_linked(self) -> bool:
        lm = self.linked_metafield
        return bool(lm and lm.namespace == VARIANT_QUANTITIES_NAMESPACE and lm.key == VARIANT_QUANTITIES_KEY)


def linked_option_name(options: list[ProductOption]) -> str | None:
    """Name of the option linked to the variant quantities metaobject, if any."""
    for opt in options:
        if opt.is_variant_quantities_linked:
            return opt.name
    return None


class SelectedOption(_Node):
    name: str
    value: str


class InventoryItem(_Node):
    id: str
    harmonized_system_code: str | None = Field(default=None, alias="harmonizedSystemCode")
    country_code_of_origin: str | None = Field(default=None, alias="countryCodeOfOrigin")


class OwnerProduct(_Node):
    """The product a variant belongs to, as returned by SKU lookups."""

    id: str
    title: str = ""
    options: list[ProductOption] = Field(default_factory=list)

    @property
    def variant_quantities_option(self) -> str | None:
        return linked_option_name(self.options)


class Variant(_Node):
    id: str
    title: str = ""
    sku: str | None = None
    price: str | None = None
    selected_options: list[SelectedOption] = Field(default_factory=list, alias="selectedOptions")
    inventory_item: InventoryItem | None = Field(default=None, alias="inventoryItem")
    product: OwnerProduct | None = None

    @property
    def sku_clean(self) -> str:
        return (self.sku or "").strip()

    @property
    def hs_code(self) -> str:
        if not self.inventory_item:
            return ""
        return (self.inventory_item.harmonized_system_code or "").strip()

    @property
    def label(self) -> str:
        """Human label built from selected options, e.g. 'Size: 500 g, Color: Red'."""
        parts = [f"{so.name}: {so.value}" for so in self.selected_options]
        return ", ".join(parts) or self.id

    def selected_value(self, option_name: str | None) -> str | None:
        if not option_name:
            return None
        for so in self.selected_options:
            if so.name == option_name:
                return so.value.strip()
        return None


class Collection(_Node):
    title: str | None = None
    handle: str | None = None


class Product(_Node):
    """A flagged product with its first pages of variants/collections and scalar metafields."""

    id: str
    title: str = ""
    status: str = STATUS_DRAFT
    description_html: str | None = Field(default=None, alias="descriptionHtml")
    has_image: bool = False
    options: list[ProductOption] = Field(default_factory=list)
    collections_connection: dict[str, Any] = Field(default_factory=dict)
    variants_connection: dict[str, Any] = Field(default_factory=dict)
    pending_changes: list[str] = Field(default_factory=list)
    tax_rate: str = ""
    pre_order: str = ""
    country_of_origin: str = ""
    main_item_confirmed: bool = False
    cosmetics_reference_count: int = 0

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> Product:
        images = (node.get("images") or {}).get("edges") or []
        cosmetics = ((node.get("metafieldCosmetics") or {}).get("references") or {}).get("nodes") or []
        return cls(
            id=node["id"],
            title=node.get("title") or "",
            status=node.get("status") or STATUS_DRAFT,
            description_html=node.get("descriptionHtml"),
            has_image=len(images) > 0,
            options=node.get("options") or [],
            collections_connection=node.get("collections") or {},
            variants_connection=node.get("variants") or {},
            pending_changes=parse_list_metafield(node.get("metafieldChanges")),
            tax_rate=parse_string_metafield(node.get("metafieldTax")),
            pre_order=parse_string_metafield(node.get("metafieldPreOrder")),
            country_of_origin=parse_string_metafield(node.get("metafieldOrigin")),
            main_item_confirmed=parse_string_metafield(node.get("metafieldMainItemConfirmed")).lower() == "true",
            cosmetics_reference_count=len(cosmetics),
        )

    @property
    def variant_quantities_option(self) -> str | None:
        return linked_option_name(self.options)

    def option(self, name: str) -> ProductOption | None:
        for opt in self.options:
            if opt.name == name:
                return opt
        return None
