"""Payloads sent to the automation webhooks."""

from pydantic import BaseModel, Field


class ConfirmItem(BaseModel):
    """One item record in an item-confirmation payload."""

    sku: str
    is_main_item: bool
    rate: str | None = None
    variant_title: str
    hs_code: str | None = None
    variant_base_unit: str | None = None
    variant_reference_unit: str | None = None
    variant_numeric_quantity: str | None = None


class ConfirmItemsPayload(BaseModel):
    """Item confirmation for one SKU group.

    `main_item_only` distinguishes the single main-item handshake from a full
    group confirmation.
    """

    store: str
    product_id: str
    tax_percentage: str = ""
    tax_id: str = ""
    items: list[ConfirmItem] = Field(default_factory=list)
    count: int = 0
    skus: list[str] = Field(default_factory=list)
    main_item_sku: str
    main_item_only: bool = False

    @classmethod
    def for_items(cls, items: list[ConfirmItem], **kwargs) -> "ConfirmItemsPayload":
        return cls(items=items, count=len(items), skus=[i.sku for i in items], **kwargs)
