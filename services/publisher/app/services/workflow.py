"""Draft/active publish workflow.

Transition table (verdict, current status -> next status, actions):
- pass, DRAFT  -> ACTIVE; publish everywhere, market catalog, item confirmations
- pass, ACTIVE -> ACTIVE; re-publish everywhere, item confirmations
- pass, other  -> unchanged; nothing else
- fail, ACTIVE -> DRAFT
- fail, other  -> unchanged

Item confirmations:
- main item holders: one main-item-only payload per group, once (tenant toggle,
  skipped when the product is already flagged as confirmed)
- composites: one full payload per SKU group, plus a unit price update when an
  option is linked to variant quantities

The full-check label may be removed only when every confirmation succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from app.schemas.catalog import STATUS_ACTIVE, STATUS_DRAFT, OwnerProduct, Product, Variant
from app.schemas.webhooks import ConfirmItem, ConfirmItemsPayload
from app.services.catalog import CatalogGateway
from app.services.compliance import ComplianceResult, split_tax
from app.services.sku_groups import SkuGroup, parse_sku
from app.services.units import option_value_handle
from app.services.webhooks import WebhookClient
from app.tenants import TenantConfig

logger = logging.getLogger("uvicorn.error")


class Action(str, Enum):
    SET_ACTIVE = "set_active"
    SET_DRAFT = "set_draft"
    PUBLISH_ALL = "publish_all"
    ENSURE_MARKET_CATALOG = "ensure_market_catalog"
    CONFIRM_MAIN_ITEM = "confirm_main_item"
    CONFIRM_SKU_GROUPS = "confirm_sku_groups"
    UNIT_PRICE_UPDATE = "unit_price_update"


@dataclass(frozen=True)
class Transition:
    current: str
    next_status: str
    actions: tuple[Action, ...] = ()

    @property
    def changes_status(self) -> bool:
        return self.current != self.next_status


def decide(
    *,
    passed: bool,
    status: str,
    is_main_item_holder: bool,
    has_unit_link: bool,
    main_item_confirmed: bool,
    tenant: TenantConfig,
) -> Transition:
    """Pure transition function: verdict + current status -> next status and actions."""
    if not passed:
        if status == STATUS_ACTIVE:
            return Transition(status, STATUS_DRAFT, (Action.SET_DRAFT,))
        return Transition(status, status)

    if status not in (STATUS_DRAFT, STATUS_ACTIVE):
        return Transition(status, status)

    actions: list[Action] = []
    if status == STATUS_DRAFT:
        actions += [Action.SET_ACTIVE, Action.PUBLISH_ALL, Action.ENSURE_MARKET_CATALOG]
    else:
        actions.append(Action.PUBLISH_ALL)

    if is_main_item_holder:
        if tenant.main_item_confirmation and not main_item_confirmed:
            actions.append(Action.CONFIRM_MAIN_ITEM)
    else:
        actions.append(Action.CONFIRM_SKU_GROUPS)
        if has_unit_link:
            actions.append(Action.UNIT_PRICE_UPDATE)

    return Transition(status, STATUS_ACTIVE, tuple(actions))


@dataclass
class WorkflowOutcome:
    transition: Transition
    label_done: bool
    notes: list[str] = field(default_factory=list)


def variant_title(product_title: str, variant: Variant) -> str:
    vt = (variant.title or "").strip()
    return f"{product_title} — {vt}" if vt else product_title


class WorkflowExecutor:
    """Applies a Transition's actions through the catalog and webhooks."""

    def __init__(self, catalog: CatalogGateway, webhooks: WebhookClient, tenant: TenantConfig):
        self.catalog = catalog
        self.webhooks = webhooks
        self.tenant = tenant

    def plan(self, product: Product, result: ComplianceResult) -> Transition:
        return decide(
            passed=result.passed,
            status=product.status,
            is_main_item_holder=result.is_main_item_holder,
            has_unit_link=product.variant_quantities_option is not None,
            main_item_confirmed=product.main_item_confirmed,
            tenant=self.tenant,
        )

    async def apply(self, product: Product, result: ComplianceResult) -> WorkflowOutcome:
        transition = self.plan(product, result)
        outcome = WorkflowOutcome(transition=transition, label_done=result.passed)
        actions = transition.actions

        # Status writes are fatal on userErrors and run first.
        if Action.SET_ACTIVE in actions:
            await self.catalog.set_status(product.id, STATUS_ACTIVE)
        if Action.SET_DRAFT in actions:
            await self.catalog.set_status(product.id, STATUS_DRAFT)
        if Action.PUBLISH_ALL in actions:
            await self.catalog.publish_to_all(product.id)
        if Action.ENSURE_MARKET_CATALOG in actions:
            await self.catalog.ensure_in_market_catalog(product.id, self.tenant.market_catalog_title)

        if not result.passed:
            return outcome

        if Action.CONFIRM_MAIN_ITEM in actions:
            ok, note = await self._confirm_main_items(product, result)
            outcome.label_done = outcome.label_done and ok
            outcome.notes.append(note)

        if Action.CONFIRM_SKU_GROUPS in actions:
            if Action.UNIT_PRICE_UPDATE in actions:
                up = await self.webhooks.unit_price_update(product.id)
                if up.skipped:
                    outcome.notes.append("Note: Unit Price Update not sent (DRY RUN).")
                elif up.ok:
                    outcome.notes.append("Note: Data sent for Unit Price Update.")
                else:
                    outcome.notes.append("Note: Error in sending data for Unit Price Update.")
                outcome.label_done = outcome.label_done and up.ok
            else:
                outcome.notes.append(
                    "Note: Unit Price webhook skipped since none of the selected options are linked "
                    "to variant quantities metafield."
                )
            ok, note = await self._confirm_sku_groups(product, result)
            outcome.label_done = outcome.label_done and ok
            outcome.notes.append(note)

        return outcome

    # ============================================================
    # Item confirmation payloads
    # ============================================================

    async def _unit_fields(self, owner_options_from: Product | OwnerProduct | None, variant: Variant) -> dict:
        linked = owner_options_from.variant_quantities_option if owner_options_from else None
        value = variant.selected_value(linked)
        if not value:
            return {}
        meta = await self.catalog.get_unit_meta(option_value_handle(value))
        return {
            "variant_base_unit": meta.base_unit,
            "variant_reference_unit": meta.reference_unit,
            "variant_numeric_quantity": meta.numeric_quantity,
        }

    async def _main_item(self, product: Product, node: Variant) -> ConfirmItem:
        owner = node.product
        title = ((owner.title if owner else "") or product.title).strip()
        unit = await self._unit_fields(owner or product, node)
        return ConfirmItem(
            sku=node.sku or "",
            is_main_item=True,
            rate=node.price,
            variant_title=variant_title(title, node),
            hs_code=node.hs_code or None,
            **unit,
        )

    async def _member_item(self, product: Product, v: Variant, *, is_main: bool) -> ConfirmItem:
        unit = await self._unit_fields(product, v)
        return ConfirmItem(
            sku=v.sku_clean,
            is_main_item=is_main,
            rate=v.price,
            variant_title=variant_title(product.title, v),
            hs_code=v.hs_code or None,
            **unit,
        )

    def _payload(self, product: Product, group: SkuGroup, items: list[ConfirmItem], *, main_only: bool) -> ConfirmItemsPayload:
        percent, code = split_tax(product.tax_rate, self.tenant.tax_codes)
        return ConfirmItemsPayload.for_items(
            items,
            store=self.tenant.store_code,
            product_id=product.id,
            tax_percentage=percent,
            tax_id=code,
            main_item_sku=group.main_item_sku,
            main_item_only=main_only,
        )

    async def build_group_payload(self, product: Product, group: SkuGroup) -> ConfirmItemsPayload:
        """Full confirmation: resolved main item first, then this product's members."""
        items: list[ConfirmItem] = []
        if group.is_non_pattern:
            for v in group.members:
                items.append(await self._member_item(product, v, is_main=True))
            return self._payload(product, group, items, main_only=False)

        main = group.main_node
        if main is not None:
            items.append(await self._main_item(product, main))
        main_here = group.main_in_product(product.id)
        for v in group.members:
            if not v.sku_clean:
                continue
            if main_here and main is not None:
                parts = parse_sku(v.sku_clean)
                if parts and parts.is_main:
                    continue
                if (main.sku or "").lower() == v.sku_clean.lower() or main.id == v.id:
                    continue
            items.append(await self._member_item(product, v, is_main=False))
        return self._payload(product, group, items, main_only=False)

    async def _confirm_sku_groups(self, product: Product, result: ComplianceResult) -> tuple[bool, str]:
        all_ok = True
        skipped = False
        for group in result.groups:
            payload = await self.build_group_payload(product, group)
            r = await self.webhooks.confirm_items(payload)
            skipped = skipped or r.skipped
            if not r.ok:
                logger.warning(f"Item confirmation failed for {product.id} group {group.key}: HTTP {r.status}")
                all_ok = False
        if skipped:
            return all_ok, "Note: New SKU webhook not sent (DRY RUN)."
        if all_ok:
            return True, "Note: Data sent for Zoho item confirmation."
        return False, "Note: Error in sending data for Zoho item confirmation."

    async def _confirm_main_items(self, product: Product, result: ComplianceResult) -> tuple[bool, str]:
        """Single-item handshake per group, then persist the confirmed flag."""
        all_ok = True
        skipped = False
        for group in result.groups:
            if group.is_non_pattern or group.main_node is None:
                continue
            item = await self._main_item(product, group.main_node)
            r = await self.webhooks.confirm_items(self._payload(product, group, [item], main_only=True))
            skipped = skipped or r.skipped
            all_ok = all_ok and r.ok
        if skipped:
            return all_ok, "Note: Main item confirmation not sent (DRY RUN)."
        if not all_ok:
            return False, "Note: Error in sending main item confirmation."
        await self.catalog.set_main_item_confirmed(product.id)
        return True, "Note: Main item confirmation sent."
