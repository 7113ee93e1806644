"""Publish-readiness checks for one product.

All checks are combined with AND into the verdict:
- tax rate metafield present, and the product sits in the matching tax collection
- unit-bearing options linked to the variant quantities metaobject
- at least one image, pre-order setting, country of origin, description >= 10 chars
- every pattern-matched variant has a resolvable main item; every variant has an HS code
- no duplicate SKUs anywhere in the catalog
- no tax mismatch against any resolved main item

Side effects that run for every product under check, whatever the verdict:
- on-hand zeroed at every location (tenant.zero_stock_on_check)
- cosmetics collection assignment (tenant.cosmetics_check)
- inventory country-of-origin fill-in (tenant.sync_origin_to_inventory)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from app.schemas.catalog import Collection, Product, Variant
from app.services.catalog import CatalogGateway
from app.services.sku_groups import SkuGroup, SkuGroupResolver, SkuResolution
from app.services.units import find_glossary_term
from app.tenants import TenantConfig

logger = logging.getLogger("uvicorn.error")

MIN_DESCRIPTION_LENGTH = 10
FILL_IN = "Fill in"

_TAX_RE = re.compile(r"^([0-9]+(?:\.[0-9]+)?)%(.*)$", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_COSMETIC_RE = re.compile(r"\bcosmetic\b", re.IGNORECASE)
_COUNTRY_CODE_RE = re.compile(r"^[A-Za-z]{2}$")


def parse_tax_percent(raw: str | None) -> str | None:
    """'5% GST' -> '5'; None when there is no leading percentage."""
    m = _TAX_RE.match(raw or "")
    return m.group(1) if m else None


def split_tax(raw: str | None, tax_codes: dict[str, str] | None = None) -> tuple[str, str]:
    """Split a tax metafield into (percentage, external tax code).

    The code is whatever follows the '%', or the tenant's table entry for the
    percentage when nothing follows it.
    """
    m = _TAX_RE.match((raw or "").strip())
    if not m:
        return "", ""
    percent, code = m.group(1), m.group(2).strip()
    if not code and tax_codes:
        code = tax_codes.get(percent, "")
    return percent, code


def strip_html_to_text(html: str | None) -> str:
    if not html:
        return ""
    text = _TAG_RE.sub(" ", str(html))
    text = re.sub(r"&nbsp;", " ", text, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", text).strip()


def has_tax_collection(collections: list[Collection], percent: str | None) -> bool:
    if not percent:
        return False
    rate_re = re.compile(rf"Tax Rate\s+{re.escape(percent)}%", re.IGNORECASE)
    return any(
        c.title and re.search("shopify", c.title, re.IGNORECASE) and rate_re.search(c.title)
        for c in collections
    )


def unit_link_failed(product: Product, variants: list[Variant]) -> bool:
    """True when some option carries unit/pack values but none of those options is linked.

    One linked unit-bearing option is enough to pass (any-linked rule), which is
    what the failure line states: "None of the variant options which require
    bundling are linked ...".
    """
    names_with_units: list[str] = []
    for v in variants:
        for so in v.selected_options:
            if so.name not in names_with_units and find_glossary_term(so.value):
                names_with_units.append(so.name)
    if not names_with_units:
        return False
    for name in names_with_units:
        opt = product.option(name)
        if opt and opt.is_variant_quantities_linked:
            return False
    return True


@dataclass
class IssueRow:
    label: str
    sku: str
    main_exists: str
    hs: str


@dataclass
class ComplianceResult:
    """Verdict plus the facts behind it."""

    passed: bool
    reasons: list[str]
    variants: list[Variant]
    resolution: SkuResolution
    issue_rows: list[IssueRow] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    tax_percent: str | None = None
    has_tax: bool = False
    collection_assigned: bool = False
    link_check_failed: bool = False
    country_of_origin: str = ""

    @property
    def is_main_item_holder(self) -> bool:
        return self.resolution.is_main_item_holder

    @property
    def groups(self) -> list[SkuGroup]:
        return list(self.resolution.groups.values())


def build_failure_lines(
    tenant: TenantConfig,
    *,
    has_tax: bool,
    tax_percent: str | None,
    collection_assigned: bool,
    tax_mismatch: bool,
    link_check_failed: bool,
    duplicate_skus: list[str],
    missing_main_groups: list[SkuGroup],
    preorder_empty: bool,
    origin_empty: bool,
    description_empty: bool,
    image_empty: bool,
) -> list[str]:
    """Ordered human-readable failure reasons."""
    lines: list[str] = []
    if not has_tax:
        lines.append(f"{tenant.tax_label} is empty.")
        if not collection_assigned:
            lines.append("Tax collection not assigned.")
    elif not collection_assigned:
        if tax_percent:
            lines.append(f"Assign product to collection: {tenant.tax_collection_prefix} {tax_percent}%).")
        else:
            lines.append(f"Assign product to the appropriate {tenant.tax_collection_prefix} …%) collection.")
    if tax_mismatch:
        lines.append("Mismatch in tax between composite and main product.")
    if link_check_failed:
        lines.append(
            'None of the variant options which require bundling are linked to the "Variant Quantities" metaobject.'
        )
    if duplicate_skus:
        lines.append(f"Duplicate SKUs found: {', '.join(duplicate_skus)}")
    for g in missing_main_groups:
        lines.append(f"Main item missing for pattern '{g.key}': expected '{g.expected_main_sku}'.")
    if preorder_empty:
        lines.append("Pre-order setting is empty.")
    if origin_empty:
        lines.append("Country of origin metafield is empty.")
    if description_empty:
        lines.append("Product description is empty.")
    if image_empty:
        lines.append("No product images.")
    return lines


class ComplianceEvaluator:
    """Runs the fixed rule set against one product."""

    def __init__(self, catalog: CatalogGateway, tenant: TenantConfig):
        self.catalog = catalog
        self.tenant = tenant
        self.resolver = SkuGroupResolver(catalog)

    async def evaluate(self, product: Product) -> ComplianceResult:
        tenant = self.tenant
        has_tax = bool(product.tax_rate)
        tax_percent = parse_tax_percent(product.tax_rate)
        preorder_empty = not product.pre_order
        origin_empty = not product.country_of_origin
        description_empty = len(strip_html_to_text(product.description_html)) < MIN_DESCRIPTION_LENGTH
        image_empty = not product.has_image

        collections = await self.catalog.load_collections(product)
        collection_assigned = has_tax_collection(collections, tax_percent)

        variants = await self.catalog.load_variants(product)
        link_check_failed = unit_link_failed(product, variants)

        notes: list[str] = []
        if tenant.cosmetics_check:
            note = await self._cosmetics_side_check(product)
            if note:
                notes.append(note)

        if tenant.zero_stock_on_check:
            inventory_ids = [v.inventory_item.id for v in variants if v.inventory_item]
            await self.catalog.zero_on_hand(inventory_ids)

        if tenant.sync_origin_to_inventory:
            note = await self._sync_origin(product, variants)
            if note:
                notes.append(note)

        resolution = await self.resolver.resolve(product, variants)

        rows: list[IssueRow] = []
        for check in resolution.checks:
            v = check.variant
            sku = v.sku_clean
            hs = v.hs_code
            main_exists = "N/A" if check.main_exists is None else ("Yes" if check.main_exists else "No")
            has_issue = not hs or (check.parts is not None and not check.main_exists)
            if has_issue:
                rows.append(IssueRow(label=v.label, sku=sku or FILL_IN, main_exists=main_exists, hs=hs or FILL_IN))

        sku_main_ok = not any(r.main_exists == "No" or r.sku == FILL_IN for r in rows)
        hs_ok = not any(r.hs == FILL_IN for r in rows)

        passed = (
            has_tax
            and collection_assigned
            and not link_check_failed
            and not image_empty
            and not preorder_empty
            and not origin_empty
            and not description_empty
            and sku_main_ok
            and hs_ok
            and not resolution.tax_mismatch
            and not resolution.duplicate_skus
        )

        reasons = build_failure_lines(
            tenant,
            has_tax=has_tax,
            tax_percent=tax_percent,
            collection_assigned=collection_assigned,
            tax_mismatch=resolution.tax_mismatch,
            link_check_failed=link_check_failed,
            duplicate_skus=resolution.duplicate_skus,
            missing_main_groups=resolution.missing_main_groups,
            preorder_empty=preorder_empty,
            origin_empty=origin_empty,
            description_empty=description_empty,
            image_empty=image_empty,
        )

        logger.info(f"Compliance {product.id}: passed={passed} reasons={len(reasons)} issue_rows={len(rows)}")
        return ComplianceResult(
            passed=passed,
            reasons=[] if passed else reasons,
            variants=variants,
            resolution=resolution,
            issue_rows=rows,
            notes=notes,
            tax_percent=tax_percent,
            has_tax=has_tax,
            collection_assigned=collection_assigned,
            link_check_failed=link_check_failed,
            country_of_origin=product.country_of_origin,
        )

    async def _cosmetics_side_check(self, product: Product) -> str | None:
        """Park cosmetics without the supplies metafield in a review collection."""
        if not _COSMETIC_RE.search(product.title or ""):
            return None
        if product.cosmetics_reference_count > 0:
            return None
        ok, detail = await self.catalog.add_to_collection_by_handle(product.id, self.tenant.cosmetics_collection_handle)
        if not ok:
            logger.warning(f"Cosmetics collection assignment failed for {product.id}: {detail}")
        return f"Note: Cosmetic supplies metafield missing; added to '{self.tenant.cosmetics_collection_name}'."

    async def _sync_origin(self, product: Product, variants: list[Variant]) -> str | None:
        code = product.country_of_origin.strip()
        if not _COUNTRY_CODE_RE.match(code):
            return None
        code = code.upper()
        updated = 0
        for v in variants:
            item = v.inventory_item
            if item and not (item.country_code_of_origin or "").strip():
                await self.catalog.update_inventory_item_origin(item.id, code)
                updated += 1
        if not updated:
            return None
        return f"Note: Country of origin {code} copied to {updated} inventory item(s)."
