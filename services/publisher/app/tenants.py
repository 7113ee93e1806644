"""Per-store constants and rule toggles.

The same pipeline serves every store; anything that differs between stores
(store code, label strings, report wording, optional rules) lives here and is
passed explicitly to the services that need it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.settings import Settings, get_settings

# Pending-change labels (values of the custom.product_changes list metafield)
LABEL_NEW_PRODUCT_CHECKS = "New Product Checks"
LABEL_TITLE_UPDATED = "Title Updated"
LABEL_PRICE_UPDATED = "Price Updated"
LABEL_HSN_UPDATED = "HSN Updated"
LABEL_TAX_UPDATED = "Tax Updated"


@dataclass(frozen=True)
class TenantConfig:
    """Store-specific configuration for one engine instance."""

    store_code: str = "FI"
    store_name: str = "FI"

    label_full_check: str = LABEL_NEW_PRODUCT_CHECKS
    label_title_updated: str = LABEL_TITLE_UPDATED
    label_price_updated: str = LABEL_PRICE_UPDATED
    label_hsn_updated: str = LABEL_HSN_UPDATED
    label_tax_updated: str = LABEL_TAX_UPDATED

    tax_label: str = "Indian tax rate"
    tax_collection_prefix: str = "Shopify (India | Tax Rate"
    market_catalog_title: str = "India"
    cosmetics_collection_handle: str = "cosmetic-supplies-missing-metafield"
    cosmetics_collection_name: str = "Cosmetic Supplies Missing Metafield"
    tax_codes: dict[str, str] = field(default_factory=dict)

    cosmetics_check: bool = True
    main_item_confirmation: bool = False
    zero_stock_on_check: bool = True
    sync_origin_to_inventory: bool = False

    @property
    def simple_labels(self) -> tuple[str, ...]:
        """Labels handled by a single field-changed webhook call each."""
        return (
            self.label_title_updated,
            self.label_price_updated,
            self.label_hsn_updated,
            self.label_tax_updated,
        )

    @property
    def report_prefix(self) -> str:
        return f"{self.store_name} Store"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> TenantConfig:
        """Build the tenant for the current process from settings."""
        s = settings or get_settings()
        return cls(
            store_code=s.store_code,
            store_name=s.store_name,
            market_catalog_title=s.market_catalog_title,
            tax_codes=s.tax_codes,
            cosmetics_check=s.cosmetics_check,
            main_item_confirmation=s.main_item_confirmation,
            zero_stock_on_check=s.zero_stock_on_check,
            sync_origin_to_inventory=s.sync_origin_to_inventory,
        )
