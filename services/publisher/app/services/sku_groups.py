"""SKU grouping and main-item resolution.

SKU pattern:
- `<base>-<digits><tail>`: digits mandatory, tail = optional trailing letters
- Expected main SKU = `<base>-0<tail>`; group key = lowercase `<base><tail>`
- Digits == 0 marks the group's main item; anything else is a composite that
  references a main item which must exist somewhere in the catalog

SKUs that do not match form singleton "non-pattern" groups and are trivially
their own main item.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.schemas.catalog import Product, Variant

if TYPE_CHECKING:
    from app.services.catalog import CatalogGateway

logger = logging.getLogger("uvicorn.error")

SKU_PATTERN = re.compile(r"^(.+)-(\d+)([A-Za-z]*)$")
NON_PATTERN_MAIN_SKU = "NA"


@dataclass(frozen=True)
class SkuParts:
    """Pieces of a pattern-matched SKU."""

    base: str
    digits: int
    tail: str

    @property
    def expected_main(self) -> str:
        return f"{self.base}-0{self.tail}"

    @property
    def group_key(self) -> str:
        return f"{self.base}{self.tail}".lower()

    @property
    def is_main(self) -> bool:
        return self.digits == 0


def parse_sku(sku: str | None) -> SkuParts | None:
    """Split a SKU into (base, digits, tail), or None when it does not match.

    Example:
        >>> parse_sku("ABC-12X")
        SkuParts(base='ABC', digits=12, tail='X')
    """
    m = SKU_PATTERN.match(str(sku or ""))
    if not m:
        return None
    return SkuParts(base=m.group(1), digits=int(m.group(2)), tail=m.group(3) or "")


def expected_main_sku(sku: str | None) -> str | None:
    parts = parse_sku(sku)
    return parts.expected_main if parts else None


def is_main_item_holder(skus: list[str]) -> bool:
    """True iff at least one SKU matches the pattern and every matching SKU has digits 0."""
    matched = [p for p in (parse_sku(s) for s in skus) if p is not None]
    return bool(matched) and all(p.is_main for p in matched)


@dataclass
class SkuGroup:
    key: str
    expected_main_sku: str
    members: list[Variant] = field(default_factory=list)
    main_node: Variant | None = None
    is_non_pattern: bool = False

    @property
    def main_item_sku(self) -> str:
        if self.is_non_pattern:
            return NON_PATTERN_MAIN_SKU
        if self.main_node and self.main_node.sku:
            return self.main_node.sku
        return self.expected_main_sku

    @property
    def is_missing_main(self) -> bool:
        return not self.is_non_pattern and self.main_node is None

    def main_in_product(self, product_id: str) -> bool:
        node = self.main_node
        return bool(node and node.product and node.product.id == product_id)


@dataclass
class VariantCheck:
    """Per-variant facts gathered during resolution."""

    variant: Variant
    parts: SkuParts | None
    main_exists: bool | None = None  # None: SKU does not follow the pattern
    duplicate: bool = False


@dataclass
class SkuResolution:
    groups: dict[str, SkuGroup] = field(default_factory=dict)
    checks: list[VariantCheck] = field(default_factory=list)
    duplicate_skus: list[str] = field(default_factory=list)
    tax_mismatch: bool = False
    is_main_item_holder: bool = False

    @property
    def missing_main_groups(self) -> list[SkuGroup]:
        return [g for g in self.groups.values() if g.is_missing_main]


class SkuGroupResolver:
    """Classifies a product's variants and resolves main items across the catalog."""

    def __init__(self, catalog: CatalogGateway):
        self.catalog = catalog

    async def is_duplicate(self, variant: Variant) -> bool:
        """Another variant anywhere in the catalog shares this SKU (case-insensitive)."""
        sku = variant.sku_clean
        if not sku:
            return False
        matches = await self.catalog.find_variants_by_sku(sku)
        return any(m.id != variant.id for m in matches)

    async def find_main(self, parts: SkuParts) -> Variant | None:
        matches = await self.catalog.find_variants_by_sku(parts.expected_main)
        return matches[0] if matches else None

    async def resolve(self, product: Product, variants: list[Variant]) -> SkuResolution:
        """Group variants, look up main items, and flag duplicates and tax mismatches.

        Lookups run in variant order; the tax comparison needs the main item
        lookup for its group to have happened first.
        """
        result = SkuResolution(is_main_item_holder=is_main_item_holder([v.sku_clean for v in variants]))
        seen_dups: set[str] = set()

        for v in variants:
            sku = v.sku_clean
            check = VariantCheck(variant=v, parts=parse_sku(sku))
            result.checks.append(check)

            if sku and await self.is_duplicate(v):
                check.duplicate = True
                if sku not in seen_dups:
                    seen_dups.add(sku)
                    result.duplicate_skus.append(sku)

            parts = check.parts
            if parts is None:
                if sku:
                    key = f"nonpattern:{sku.lower()}"
                    group = result.groups.setdefault(
                        key, SkuGroup(key=key, expected_main_sku=sku, main_node=v, is_non_pattern=True)
                    )
                    group.members.append(v)
                continue

            group = result.groups.get(parts.group_key)
            if group is None:
                group = SkuGroup(key=parts.group_key, expected_main_sku=parts.expected_main)
                result.groups[parts.group_key] = group
            group.members.append(v)

            main = await self.find_main(parts)
            check.main_exists = main is not None
            if main is not None and group.main_node is None:
                group.main_node = main
                if main.product:
                    main_tax = await self.catalog.get_product_tax(main.product.id)
                    if main_tax != product.tax_rate:
                        logger.info(
                            f"Tax mismatch for {product.id}: main {main.sku} has '{main_tax}', "
                            f"product has '{product.tax_rate}'"
                        )
                        result.tax_mismatch = True

        return result
